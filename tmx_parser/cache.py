"""
Resource cache for tilesets loaded from external .tsx files.

Several maps often reference the same tileset file. The cache maps the path
of that file to the parsed (immutable) Tileset so each file is parsed at most
once per cache instance:

    cache = ResourceCache()
    level1 = parse_file("level1.tmx", cache=cache)
    level2 = parse_file("level2.tmx", cache=cache)   # reuses shared tilesets

The cache has no locking; use one per thread or guard it yourself.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from .model import Tileset

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ResourceCache:
    """A cache that identifies tilesets by their path in the filesystem."""

    def __init__(self):
        self._tilesets: Dict[Path, Tileset] = {}

    def get(self, path: PathLike) -> Optional[Tileset]:
        """Obtain a tileset from the cache, if it exists."""
        return self._tilesets.get(Path(path))

    def get_or_try_insert_with(self, path: PathLike, factory: Callable[[], Tileset]) -> Tileset:
        """
        Return the tileset mapped to ``path``, calling ``factory`` if there is none.

        If the factory raises, the error propagates and the cache stays as it
        was, so a later call for the same path will try again.
        """
        key = Path(path)
        try:
            return self._tilesets[key]
        except KeyError:
            pass

        tileset = factory()
        self._tilesets[key] = tileset
        logger.debug("Cached tileset %r from %s", tileset.name, key)
        return tileset

    def __contains__(self, path: PathLike) -> bool:
        return Path(path) in self._tilesets

    def __len__(self) -> int:
        return len(self._tilesets)
