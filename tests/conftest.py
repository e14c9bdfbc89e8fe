import pytest

from tests.utils import ASSETS_DIR


@pytest.fixture()
def demo_map_path():
    return ASSETS_DIR / "tiled_base64_zlib.tmx"
