import dataclasses

import numpy as np
import pytest

from tmx_parser.model import Colour, Layer, Map, Orientation, Rect, Tileset


class TestColour:
    @pytest.mark.parametrize("value", ["#ff0000", "ff0000", "#FF0000"])
    def test_parse(self, value):
        assert Colour.parse(value) == Colour(red=255, green=0, blue=0)

    @pytest.mark.parametrize("value", ["ff00", "red", "#ff00000", "#gg0000", "", "#", "0xff00"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            Colour.parse(value)

    def test_hex(self):
        assert Colour(30, 42, 54).hex == "#1e2a36"


class TestOrientation:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("orthogonal", Orientation.ORTHOGONAL),
            ("isometric", Orientation.ISOMETRIC),
            ("staggered", Orientation.STAGGERED),
        ],
    )
    def test_parse(self, value, expected):
        assert Orientation.parse(value) is expected

    def test_unknown(self):
        with pytest.raises(ValueError):
            Orientation.parse("hexagonal")


def _map(*first_gids):
    tilesets = tuple(
        Tileset(first_gid=gid, name=f"ts{gid}", tile_width=16, tile_height=16) for gid in first_gids
    )
    return Map(
        version="1.0",
        orientation=Orientation.ORTHOGONAL,
        width=1,
        height=1,
        tile_width=16,
        tile_height=16,
        tilesets=tilesets,
    )


class TestGetTilesetByGid:
    """Prove the lookup picks the largest first_gid strictly below the GID."""

    def test_boundaries(self):
        tmx_map = _map(1, 50)
        assert tmx_map.get_tileset_by_gid(50).first_gid == 1
        assert tmx_map.get_tileset_by_gid(51).first_gid == 50
        assert tmx_map.get_tileset_by_gid(2).first_gid == 1

    def test_below_all(self):
        tmx_map = _map(1, 50)
        assert tmx_map.get_tileset_by_gid(1) is None
        assert tmx_map.get_tileset_by_gid(0) is None

    def test_no_tilesets(self):
        assert _map().get_tileset_by_gid(10) is None

    def test_unsorted(self):
        tmx_map = _map(100, 1, 50)
        assert tmx_map.get_tileset_by_gid(75).first_gid == 50
        assert tmx_map.get_tileset_by_gid(500).first_gid == 100


class TestLayer:
    def _layer(self):
        tiles = np.array([[1, 2, 3], [4, 5, 6]], dtype=np.uint32)
        tiles.flags.writeable = False
        return Layer(name="Ground", tiles=tiles)

    def test_size(self):
        layer = self._layer()
        assert (layer.width, layer.height) == (3, 2)

    def test_get_tile_gid(self):
        layer = self._layer()
        assert layer.get_tile_gid(2, 1) == 6
        assert layer.get_tile_gid(0, 0) == 1
        assert layer.get_tile_gid(3, 0) == 0
        assert layer.get_tile_gid(-1, 0) == 0

    def test_defaults(self):
        layer = Layer(name="Empty")
        assert layer.opacity == 1.0
        assert layer.visible is True
        assert layer.tiles.shape == (0, 0)
        assert dict(layer.properties) == {}


def test_entities_are_frozen():
    rect = Rect(x=0, y=0, width=1, height=1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        rect.x = 5

    tileset = Tileset(first_gid=1, name="t", tile_width=8, tile_height=8)
    with pytest.raises(dataclasses.FrozenInstanceError):
        tileset.first_gid = 2
    with pytest.raises(TypeError):
        tileset.properties["x"] = "y"
