#!/usr/bin/env python3

"""
TMX Parser - print a summary of a Tiled map

Usage:
    python -m tmx_parser [-v] [map.tmx]

Without a path, assets/tiled_base64_zlib.tmx is opened.
-v enables debug logging.
"""

import logging
import sys
from pathlib import Path

from .builders import parse_file
from .errors import TiledError
from .model import Ellipse, Map, Polygon, Polyline, Rect

DEFAULT_MAP_PATH = "assets/tiled_base64_zlib.tmx"


def describe_map(tmx_map: Map) -> str:
    """Human readable multi-line summary of a parsed map."""
    lines = [
        f"Map v{tmx_map.version} ({tmx_map.orientation.value})",
        f"  Size: {tmx_map.width}x{tmx_map.height} tiles of {tmx_map.tile_width}x{tmx_map.tile_height} px",
    ]
    if tmx_map.background_colour:
        lines.append(f"  Background: {tmx_map.background_colour.hex}")
    for name, value in sorted(tmx_map.properties.items()):
        lines.append(f"  Property {name} = {value}")

    lines.append(f"Tilesets: {len(tmx_map.tilesets)}")
    for tileset in tmx_map.tilesets:
        origin = f" from {tileset.source}" if tileset.source else ""
        lines.append(
            f"  - {tileset.name}: firstgid={tileset.first_gid}, "
            f"{tileset.tile_width}x{tileset.tile_height} px, {len(tileset.images)} image(s){origin}"
        )

    lines.append(f"Layers: {len(tmx_map.layers)}")
    for layer in tmx_map.layers:
        used = int((layer.tiles != 0).sum())
        hidden = "" if layer.visible else ", hidden"
        lines.append(
            f"  - {layer.name}: {layer.width}x{layer.height}, {used} tiles, opacity {layer.opacity}{hidden}"
        )

    lines.append(f"Object groups: {len(tmx_map.object_groups)}")
    for group in tmx_map.object_groups:
        lines.append(f"  - {group.name}: {len(group.objects)} objects")
        for obj in group.objects:
            if isinstance(obj, (Rect, Ellipse)):
                lines.append(f"      {obj.shape.value} at ({obj.x}, {obj.y}) size {obj.width}x{obj.height}")
            elif isinstance(obj, (Polyline, Polygon)):
                lines.append(f"      {obj.shape.value} at ({obj.x}, {obj.y}) with {len(obj.points)} points")

    return "\n".join(lines)


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)

    level = logging.WARNING
    if "-v" in args:
        args.remove("-v")
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if len(args) > 1:
        print(__doc__)
        return 1

    source_path = args[0] if args else DEFAULT_MAP_PATH

    if not Path(source_path).exists():
        print(f"Error: File '{source_path}' not found")
        return 1

    try:
        tmx_map = parse_file(source_path)
    except (TiledError, OSError) as e:
        print(f"Error: {e}")
        return 1

    print(f"Opened {source_path}")
    print(describe_map(tmx_map))
    return 0


if __name__ == "__main__":
    sys.exit(main())
