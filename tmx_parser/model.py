"""
In-memory model of a parsed TMX map.

=============================================================================
OWNERSHIP
=============================================================================

Everything here is built once, bottom-up, by the builders in
:mod:`tmx_parser.builders` and never changed afterwards:

    Map
    ├── Tileset*          (each with Image*)
    ├── Layer*            (tile grid as a read-only uint32 numpy array)
    └── ObjectGroup*      (each with Rect / Ellipse / Polyline / Polygon)

All classes are frozen dataclasses, collections are tuples and property
mappings are read-only views. Tilesets loaded from external .tsx files are
shared between maps through :class:`tmx_parser.cache.ResourceCache`.

=============================================================================
GLOBAL TILE IDs (GIDs)
=============================================================================

Tiles are referenced by Global IDs across all tilesets of a map:

    Tileset A (first_gid=1):   tiles 1-100
    Tileset B (first_gid=101): tiles 101-200

    GID 0 = empty tile (no graphic)

=============================================================================
"""

import string
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import ClassVar, Mapping, Optional, Tuple, Union

import numpy as np

#: Property mappings are plain name -> value text.
Properties = Mapping[str, str]

EMPTY_PROPERTIES: Properties = MappingProxyType({})


# =============================================================================
# COLOUR
# =============================================================================

@dataclass(frozen=True)
class Colour:
    """
    RGB colour, as used for map backgrounds, object group outlines and
    transparent image colours.

    XML format (the leading '#' is optional):
        backgroundcolor="#ff0000"
        trans="ff00ff"
    """
    red: int
    green: int
    blue: int

    @classmethod
    def parse(cls, text: str) -> 'Colour':
        """
        Parse a 6-hex-digit colour.

        Raises ValueError for any other length or for non-hex characters,
        so "ff00", "red" and "#aarrggbb" style values are all rejected.
        """
        digits = text[1:] if text.startswith('#') else text
        if len(digits) != 6 or any(c not in string.hexdigits for c in digits):
            raise ValueError(f"Invalid colour: {text!r}")

        return cls(
            red=int(digits[0:2], 16),
            green=int(digits[2:4], 16),
            blue=int(digits[4:6], 16),
        )

    @property
    def hex(self) -> str:
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"


# =============================================================================
# ORIENTATION
# =============================================================================

class Orientation(Enum):
    """Map grid geometry."""
    ORTHOGONAL = "orthogonal"
    ISOMETRIC = "isometric"
    STAGGERED = "staggered"

    @classmethod
    def parse(cls, text: str) -> 'Orientation':
        # Enum lookup raises ValueError for unknown values
        return cls(text)


# =============================================================================
# IMAGE
# =============================================================================

@dataclass(frozen=True)
class Image:
    """
    Image reference used in tilesets.

    source: Path to image file (relative to the TMX/TSX file)
    width, height: Image size in pixels
    transparent_colour: Pixels of this colour become transparent
    """
    source: str                                      # Path to image file
    width: int                                       # Image width (pixels)
    height: int                                      # Image height (pixels)
    transparent_colour: Optional[Colour] = None      # 'trans' attribute


# =============================================================================
# TILESET
# =============================================================================

@dataclass(frozen=True)
class Tileset:
    """
    Tileset - a set of tile graphics with a contiguous GID range.

    ==========================================================================
    SPACING AND MARGIN
    ==========================================================================

    margin = pixels around the EDGE of the entire image
    spacing = pixels BETWEEN tiles

    Both default to 0 when the attribute is absent.

    ==========================================================================
    EMBEDDED vs EXTERNAL
    ==========================================================================

    Embedded tilesets live inside the TMX file. External tilesets live in a
    .tsx file referenced by ``<tileset firstgid="1" source="terrain.tsx"/>``;
    for those ``source`` keeps the reference as written in the map.

    The cache holds one Tileset per .tsx file, but each map receives its own
    copy carrying the map's first_gid and source, so ``map_a.tilesets[0] is
    map_b.tilesets[0]`` is False even when both come from the same file.
    Only the images tuple (and the properties mapping) are the same objects.

    The format allows several images per tileset, so ``images`` is a tuple.
    Usually there is exactly one.
    """
    first_gid: int                                   # GID of the first tile
    name: str                                        # Tileset name
    tile_width: int                                  # Tile width in pixels
    tile_height: int                                 # Tile height in pixels
    spacing: int = 0                                 # Pixels between tiles
    margin: int = 0                                  # Pixels around edge
    images: Tuple[Image, ...] = ()
    properties: Properties = field(default_factory=lambda: EMPTY_PROPERTIES)
    source: Optional[str] = None                     # TSX file path (if external)

    @property
    def image(self) -> Optional[Image]:
        """The first (usually only) image of the tileset."""
        return self.images[0] if self.images else None


# =============================================================================
# TILE LAYER
# =============================================================================

@dataclass(frozen=True, eq=False)
class Layer:
    """
    Tile layer - a grid of tile references.

    ``tiles`` is a read-only numpy array of shape (rows, map width) and dtype
    uint32. Each row has exactly the map width; index as ``tiles[y, x]``.
    A GID of 0 conventionally means "no tile", what that means for rendering
    is up to the caller.
    """
    name: str                                        # Layer name
    opacity: float = 1.0                             # Transparency
    visible: bool = True                             # Is layer visible?
    tiles: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=np.uint32))
    properties: Properties = field(default_factory=lambda: EMPTY_PROPERTIES)

    @property
    def width(self) -> int:
        return self.tiles.shape[1]

    @property
    def height(self) -> int:
        return self.tiles.shape[0]

    def get_tile_gid(self, x: int, y: int) -> int:
        """
        Get the GID of the tile at position (x, y).

        Returns 0 (empty) for positions outside the grid.
        """
        if 0 <= x < self.width and 0 <= y < self.height:
            return int(self.tiles[y, x])
        return 0


# =============================================================================
# OBJECTS
# =============================================================================

class ObjectShape(Enum):
    RECT = "rect"
    ELLIPSE = "ellipse"
    POLYLINE = "polyline"
    POLYGON = "polygon"


@dataclass(frozen=True)
class Rect:
    """Rectangle object - the default when an object has no shape child."""
    shape: ClassVar[ObjectShape] = ObjectShape.RECT

    x: int
    y: int
    width: int
    height: int
    visible: bool = True


@dataclass(frozen=True)
class Ellipse:
    """Ellipse inscribed in the (x, y, width, height) box."""
    shape: ClassVar[ObjectShape] = ObjectShape.ELLIPSE

    x: int
    y: int
    width: int
    height: int
    visible: bool = True


@dataclass(frozen=True)
class Polyline:
    """Open path; points are offsets relative to (x, y)."""
    shape: ClassVar[ObjectShape] = ObjectShape.POLYLINE

    x: int
    y: int
    points: Tuple[Tuple[int, int], ...]
    visible: bool = True


@dataclass(frozen=True)
class Polygon:
    """Closed path; points are offsets relative to (x, y)."""
    shape: ClassVar[ObjectShape] = ObjectShape.POLYGON

    x: int
    y: int
    points: Tuple[Tuple[int, int], ...]
    visible: bool = True


MapObject = Union[Rect, Ellipse, Polyline, Polygon]


# =============================================================================
# OBJECT GROUP
# =============================================================================

@dataclass(frozen=True)
class ObjectGroup:
    """
    Object layer - vector shapes overlaid on the map.

    Used for non-tile data such as collision shapes, spawn points and
    trigger zones. Objects keep document order.
    """
    name: str                                        # Layer name
    opacity: float = 1.0                             # Transparency
    visible: bool = True                             # Is layer visible?
    colour: Optional[Colour] = None                  # Outline colour
    objects: Tuple[MapObject, ...] = ()
    properties: Properties = field(default_factory=lambda: EMPTY_PROPERTIES)


# =============================================================================
# MAP
# =============================================================================

@dataclass(frozen=True)
class Map:
    """
    Complete Tiled map - the root of the model.

    ==========================================================================
    USAGE
    ==========================================================================

        tmx_map = tmx_parser.parse_file("level1.tmx")
        print(f"Map size: {tmx_map.width}x{tmx_map.height}")

        ground = tmx_map.get_layer_by_name("Ground")
        gid = ground.get_tile_gid(5, 10)
        tileset = tmx_map.get_tileset_by_gid(gid)

    ==========================================================================
    """
    version: str                                     # TMX format version
    orientation: Orientation                         # Map orientation
    width: int                                       # Map width in tiles
    height: int                                      # Map height in tiles
    tile_width: int                                  # Tile width in pixels
    tile_height: int                                 # Tile height in pixels
    tilesets: Tuple[Tileset, ...] = ()
    layers: Tuple[Layer, ...] = ()
    object_groups: Tuple[ObjectGroup, ...] = ()
    properties: Properties = field(default_factory=lambda: EMPTY_PROPERTIES)
    background_colour: Optional[Colour] = None

    def get_tileset_by_gid(self, gid: int) -> Optional[Tileset]:
        """
        Find the tileset for a given GID.

        =======================================================================
        ALGORITHM
        =======================================================================

        Scans all tilesets and picks the one with the largest first_gid that
        is still strictly below ``gid``. Tilesets don't need to be sorted.

            Tileset A: first_gid=1
            Tileset B: first_gid=50

            GID 50 → Tileset A   (50 is not strictly below 50)
            GID 51 → Tileset B
            GID 1  → None        (no first_gid below 1)
        """
        found = None
        for tileset in self.tilesets:
            if tileset.first_gid < gid and (found is None or tileset.first_gid > found.first_gid):
                found = tileset
        return found

    def get_layer_by_name(self, name: str) -> Optional[Layer]:
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    def get_object_group_by_name(self, name: str) -> Optional[ObjectGroup]:
        for group in self.object_groups:
            if group.name == name:
                return group
        return None
