"""
TMX Parser - reads Tiled maps into an immutable model

Requisitos:
    pip install numpy defusedxml
"""

from .builders import parse, parse_file, parse_string, parse_tileset
from .cache import ResourceCache
from .errors import (
    DecodingError, DecompressingError, InvalidDocument, MalformedAttributes,
    PrematureEnd, TiledError, UnsupportedFormat,
)
from .model import (
    Colour, Ellipse, Image, Layer, Map, MapObject, ObjectGroup, ObjectShape,
    Orientation, Polygon, Polyline, Rect, Tileset,
)

__version__ = "0.1.0"
__all__ = [
    "parse",
    "parse_file",
    "parse_string",
    "parse_tileset",
    "ResourceCache",
    "TiledError",
    "MalformedAttributes",
    "DecompressingError",
    "DecodingError",
    "PrematureEnd",
    "UnsupportedFormat",
    "InvalidDocument",
    "Map",
    "Orientation",
    "Colour",
    "Tileset",
    "Image",
    "Layer",
    "ObjectGroup",
    "ObjectShape",
    "MapObject",
    "Rect",
    "Ellipse",
    "Polyline",
    "Polygon",
]
