"""
Model builders - turn the XML event stream into the model.

=============================================================================
HOW A BUILDER WORKS
=============================================================================

Every element type has one builder with the same shape:

    1. extract its own attributes           (attributes.extract_attributes)
    2. start empty collections for children
    3. consume its children                 (events.descend), with handlers
                                            that call the child builders
    4. assemble the frozen entity

A builder only hands its result to the parent after it returns, so an error
anywhere leaves no half-built entity behind; it simply propagates out of
parse().

=============================================================================
TMX FILE STRUCTURE
=============================================================================

    <map version="1.0" orientation="orthogonal" width="100" height="100"
         tilewidth="32" tileheight="32" backgroundcolor="#000000">
        <properties>
            <property name="music" value="forest.ogg"/>
        </properties>
        <tileset firstgid="1" name="terrain" tilewidth="32" tileheight="32">
            <image source="terrain.png" width="256" height="256"/>
        </tileset>
        <tileset firstgid="65" source="trees.tsx"/>
        <layer name="Ground">
            <data encoding="base64" compression="zlib">...</data>
        </layer>
        <objectgroup name="Collisions">
            <object x="100" y="200" width="32" height="32"/>
            <object x="0" y="0"><polygon points="0,0 10,0 10,10"/></object>
        </objectgroup>
    </map>

=============================================================================
"""

import io
import logging
from dataclasses import replace
from pathlib import Path
from types import MappingProxyType
from typing import Optional, Union

from .attributes import (
    Field, colour, extract_attributes, flag, get_attribute, integer, number,
    orientation, positive, text, unsigned,
)
from .cache import ResourceCache
from .data import decode_tile_data, empty_grid
from .errors import MalformedAttributes, PrematureEnd
from .events import EndDocument, EventStream, StartElement, descend
from .model import (
    Ellipse, Image, Layer, Map, ObjectGroup, Polygon, Polyline, Properties,
    Rect, Tileset,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ATTRIBUTE TABLES
# =============================================================================

MAP_FIELDS = (
    Field('version', text, required=True),
    Field('orientation', orientation, required=True),
    Field('width', positive, required=True),
    Field('height', positive, required=True),
    Field('tilewidth', positive, required=True),
    Field('tileheight', positive, required=True),
    Field('backgroundcolor', colour),
)

TILESET_FIELDS = (
    Field('firstgid', unsigned, required=True),
    Field('name', text, required=True),
    Field('tilewidth', unsigned, required=True),
    Field('tileheight', unsigned, required=True),
    Field('spacing', unsigned),
    Field('margin', unsigned),
)

# Same as above, but a .tsx file doesn't know its own firstgid
TSX_TILESET_FIELDS = tuple(
    replace(f, required=False) if f.name == 'firstgid' else f for f in TILESET_FIELDS
)

EXTERNAL_TILESET_FIELDS = (
    Field('firstgid', unsigned, required=True),
    Field('source', text, required=True),
)

IMAGE_FIELDS = (
    Field('source', text, required=True),
    Field('width', integer, required=True),
    Field('height', integer, required=True),
    Field('trans', colour),
)

LAYER_FIELDS = (
    Field('name', text, required=True),
    Field('opacity', number),
    Field('visible', flag),
)

OBJECT_GROUP_FIELDS = (
    Field('name', text, required=True),
    Field('opacity', number),
    Field('visible', flag),
    Field('color', colour),
)

OBJECT_FIELDS = (
    Field('x', integer, required=True),
    Field('y', integer, required=True),
    Field('width', unsigned),
    Field('height', unsigned),
    Field('visible', flag),
)

POINTS_FIELDS = (
    Field('points', text, required=True),
)

PROPERTY_FIELDS = (
    Field('name', text, required=True),
    Field('value', text, required=True),
)


# =============================================================================
# PROPERTIES
# =============================================================================

def build_properties(stream: EventStream) -> Properties:
    """
    Parse a <properties> block into a read-only name -> value mapping.

    XML format:
        <properties>
            <property name="solid" value="1"/>
        </properties>
    """
    properties = {}

    def on_property(attrs):
        values = extract_attributes(attrs, PROPERTY_FIELDS, "property must have a name and a value")
        properties[values['name']] = values['value']

    descend(stream, 'properties', {'property': on_property})
    return MappingProxyType(properties)


# =============================================================================
# IMAGE
# =============================================================================

def build_image(stream: EventStream, attrs) -> Image:
    values = extract_attributes(
        attrs, IMAGE_FIELDS, "image must have a source, width and height with correct types"
    )
    descend(stream, 'image', {})
    return Image(
        source=values['source'],
        width=values['width'],
        height=values['height'],
        transparent_colour=values['trans'],
    )


# =============================================================================
# TILESET
# =============================================================================

def build_tileset(stream: EventStream, attrs, fields=TILESET_FIELDS, first_gid: int = 1) -> Tileset:
    """
    Parse an embedded <tileset> (or the root of a .tsx file).

    Parameters:
    -----------
    fields : tuple of Field
        TILESET_FIELDS inside a map, TSX_TILESET_FIELDS for .tsx files
    first_gid : int
        Used when the element has no firstgid attribute (.tsx files)
    """
    values = extract_attributes(
        attrs, fields, "tileset must have a firstgid, name, tile width and height with correct types"
    )
    images = []
    properties = MappingProxyType({})

    def on_image(child_attrs):
        images.append(build_image(stream, child_attrs))

    def on_properties(child_attrs):
        nonlocal properties
        properties = build_properties(stream)

    descend(stream, 'tileset', {'image': on_image, 'properties': on_properties})

    return Tileset(
        first_gid=values['firstgid'] if values['firstgid'] is not None else first_gid,
        name=values['name'],
        tile_width=values['tilewidth'],
        tile_height=values['tileheight'],
        spacing=values['spacing'] or 0,
        margin=values['margin'] or 0,
        images=tuple(images),
        properties=properties,
    )


def build_external_tileset(stream: EventStream, attrs, cache: ResourceCache, base_dir: Path) -> Tileset:
    """
    Resolve ``<tileset firstgid="..." source="file.tsx"/>`` through the cache.

    The .tsx file is parsed at most once per cache; the map gets a copy with
    its own first_gid and the source reference as written.
    """
    values = extract_attributes(
        attrs, EXTERNAL_TILESET_FIELDS, "external tileset must have a firstgid and a source"
    )
    descend(stream, 'tileset', {})

    source = values['source']
    path = base_dir / source

    def load():
        logger.debug("Loading external tileset %s", path)
        return parse_tileset(path)

    shared = cache.get_or_try_insert_with(path, load)
    return replace(shared, first_gid=values['firstgid'], source=source)


# =============================================================================
# LAYER
# =============================================================================

def build_layer(stream: EventStream, attrs, width: int) -> Layer:
    """
    Parse a <layer> element.

    ``width`` is the map width; every row of the tile grid has that length.
    """
    values = extract_attributes(attrs, LAYER_FIELDS, "layer must have a name")
    tiles = empty_grid(width)
    properties = MappingProxyType({})

    def on_data(child_attrs):
        nonlocal tiles
        tiles = decode_tile_data(stream, child_attrs, width)

    def on_properties(child_attrs):
        nonlocal properties
        properties = build_properties(stream)

    descend(stream, 'layer', {'data': on_data, 'properties': on_properties})

    return Layer(
        name=values['name'],
        opacity=values['opacity'] if values['opacity'] is not None else 1.0,
        visible=values['visible'] if values['visible'] is not None else True,
        properties=properties,
        tiles=tiles,
    )


# =============================================================================
# OBJECTS
# =============================================================================

def parse_points(value: str):
    """
    Parse a points attribute: space separated "x,y" integer pairs.

        "0,0 10,0 10,10"  ->  ((0, 0), (10, 0), (10, 10))
    """
    points = []
    for pair in value.split(' '):
        coords = pair.split(',')
        if len(coords) != 2:
            raise MalformedAttributes("one of a polyline's points does not have an x and y coordinate")
        try:
            points.append((integer(coords[0]), integer(coords[1])))
        except ValueError:
            raise MalformedAttributes("one of a polyline's points does not have integer coordinates") from None
    return tuple(points)


def build_object(stream: EventStream, attrs):
    """
    Parse an <object> element into one of Rect, Ellipse, Polyline, Polygon.

    =======================================================================
    VARIANT SELECTION
    =======================================================================

        <ellipse/> child      → Ellipse (needs width and height)
        <polyline points=""/> → Polyline
        <polygon points=""/>  → Polygon
        no shape child        → Rect (needs width and height)

    If several shape children are present the last one wins.
    """
    values = extract_attributes(attrs, OBJECT_FIELDS, "objects must have an x and a y number")
    x, y = values['x'], values['y']
    width, height = values['width'], values['height']
    visible = values['visible'] if values['visible'] is not None else True
    shape = None

    def on_ellipse(child_attrs):
        nonlocal shape
        if width is None or height is None:
            raise MalformedAttributes("An ellipse must have a width and height")
        shape = Ellipse(x=x, y=y, width=width, height=height, visible=visible)

    def on_polyline(child_attrs):
        nonlocal shape
        points = extract_attributes(child_attrs, POINTS_FIELDS, "A polyline must have points")['points']
        shape = Polyline(x=x, y=y, points=parse_points(points), visible=visible)

    def on_polygon(child_attrs):
        nonlocal shape
        points = extract_attributes(child_attrs, POINTS_FIELDS, "A polygon must have points")['points']
        shape = Polygon(x=x, y=y, points=parse_points(points), visible=visible)

    descend(stream, 'object', {
        'ellipse': on_ellipse,
        'polyline': on_polyline,
        'polygon': on_polygon,
    })

    if shape is not None:
        return shape
    if width is not None and height is not None:
        return Rect(x=x, y=y, width=width, height=height, visible=visible)
    raise MalformedAttributes("A rect must have a width and a height")


def build_object_group(stream: EventStream, attrs) -> ObjectGroup:
    values = extract_attributes(attrs, OBJECT_GROUP_FIELDS, "object groups must have a name")
    objects = []
    properties = MappingProxyType({})

    def on_object(child_attrs):
        objects.append(build_object(stream, child_attrs))

    def on_properties(child_attrs):
        nonlocal properties
        properties = build_properties(stream)

    descend(stream, 'objectgroup', {'object': on_object, 'properties': on_properties})

    return ObjectGroup(
        name=values['name'],
        opacity=values['opacity'] if values['opacity'] is not None else 1.0,
        visible=values['visible'] if values['visible'] is not None else True,
        colour=values['color'],
        objects=tuple(objects),
        properties=properties,
    )


# =============================================================================
# MAP
# =============================================================================

def build_map(stream: EventStream, attrs, cache: Optional[ResourceCache] = None,
              base_dir: Optional[Path] = None) -> Map:
    """
    Parse the root <map> element and everything inside it.

    Parameters:
    -----------
    cache : ResourceCache, optional
        Used to load external tilesets; a fresh one is used if not given
    base_dir : Path, optional
        Directory external tileset paths are relative to (default: cwd)
    """
    values = extract_attributes(
        attrs, MAP_FIELDS, "map must have a version, orientation, width, height and tile size with correct types"
    )
    width = values['width']
    if cache is None:
        cache = ResourceCache()
    if base_dir is None:
        base_dir = Path('.')

    tilesets = []
    layers = []
    object_groups = []
    properties = MappingProxyType({})

    def on_tileset(child_attrs):
        if get_attribute(child_attrs, 'source') is not None:
            tilesets.append(build_external_tileset(stream, child_attrs, cache, base_dir))
        else:
            tilesets.append(build_tileset(stream, child_attrs))

    def on_layer(child_attrs):
        layers.append(build_layer(stream, child_attrs, width))

    def on_object_group(child_attrs):
        object_groups.append(build_object_group(stream, child_attrs))

    def on_properties(child_attrs):
        nonlocal properties
        properties = build_properties(stream)

    descend(stream, 'map', {
        'tileset': on_tileset,
        'layer': on_layer,
        'objectgroup': on_object_group,
        'properties': on_properties,
    })

    logger.debug(
        "Parsed %dx%d map: %d tilesets, %d layers, %d object groups",
        width, values['height'], len(tilesets), len(layers), len(object_groups),
    )
    return Map(
        version=values['version'],
        orientation=values['orientation'],
        width=width,
        height=values['height'],
        tile_width=values['tilewidth'],
        tile_height=values['tileheight'],
        tilesets=tuple(tilesets),
        layers=tuple(layers),
        object_groups=tuple(object_groups),
        properties=properties,
        background_colour=values['backgroundcolor'],
    )


# =============================================================================
# ENTRY POINTS
# =============================================================================

def _find_root(stream: EventStream, name: str) -> StartElement:
    while True:
        event = stream.next()
        if isinstance(event, StartElement) and event.name == name:
            return event
        if isinstance(event, EndDocument):
            raise PrematureEnd(f"Document ended before {name} was parsed")


def parse(source, cache: Optional[ResourceCache] = None, base_dir: Optional[Path] = None) -> Map:
    """
    Parse a TMX document.

    Parameters:
    -----------
    source : str, Path or binary file object
        The TMX document
    cache : ResourceCache, optional
        Shared cache for external tilesets
    base_dir : Path, optional
        Directory external tileset paths are relative to

    Raises:
    -------
    TiledError : (a subclass of) on the first problem found
    """
    stream = EventStream(source)
    root = _find_root(stream, 'map')
    return build_map(stream, root.attributes, cache=cache, base_dir=base_dir)


def parse_string(document: Union[str, bytes], **kwargs) -> Map:
    """Parse a TMX document held in memory."""
    if isinstance(document, str):
        document = document.encode('utf-8')
    return parse(io.BytesIO(document), **kwargs)


def parse_file(path: Union[str, Path], cache: Optional[ResourceCache] = None) -> Map:
    """Parse a .tmx file; external tilesets are resolved next to it."""
    path = Path(path)
    with path.open('rb') as fp:
        return parse(fp, cache=cache, base_dir=path.parent)


def parse_tileset(source, first_gid: int = 1) -> Tileset:
    """
    Parse a standalone tileset document (.tsx file).

    Such a file has a <tileset> root without firstgid; ``first_gid`` is used
    instead. Maps referencing the file replace it with their own value.
    """
    if isinstance(source, (str, Path)):
        with open(source, 'rb') as fp:
            return parse_tileset(fp, first_gid=first_gid)

    stream = EventStream(source)
    root = _find_root(stream, 'tileset')
    return build_tileset(stream, root.attributes, fields=TSX_TILESET_FIELDS, first_gid=first_gid)
