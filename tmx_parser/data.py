"""
Tile data decoding.

=============================================================================
PIPELINE
=============================================================================

The <data> element of a layer holds the tile grid. TMX supports several
encodings, this parser supports exactly one combination:

    <data encoding="base64" compression="zlib">
        eJztwTEBAAAAwqD1T20JT6AAAAAAAAAAAAAAAAAAAAAAAAAA...
    </data>

Decoding steps:

    text ──base64──> compressed bytes ──zlib──> raw bytes
         ──little-endian uint32──> GIDs ──rows of map width──> grid

Every other encoding/compression (csv, gzip, zstd, uncompressed, ...) is
rejected with UnsupportedFormat before any decoding is attempted.

=============================================================================
ODD SIZES
=============================================================================

- Trailing bytes that don't make up a whole uint32 are ignored, reading
  simply stops at the end of the data.
- If the number of GIDs isn't a multiple of the width, the trailing short
  row is dropped (with a warning), so every row has exactly ``width`` GIDs.
"""

import base64
import logging
import zlib

import numpy as np

from .attributes import Field, extract_attributes, text
from .errors import (
    DecodingError, DecompressingError, MalformedAttributes, PrematureEnd, UnsupportedFormat,
)
from .events import Characters, EndDocument, EndElement, EventStream

logger = logging.getLogger(__name__)

SUPPORTED_ENCODING = 'base64'
SUPPORTED_COMPRESSION = 'zlib'

DATA_FIELDS = (
    Field('encoding', text),
    Field('compression', text),
)


def decode_tile_data(stream: EventStream, attributes, width: int) -> np.ndarray:
    """
    Decode a <data> element into a grid of GIDs.

    Parameters:
    -----------
    stream : EventStream
        Positioned right after the <data> start tag; consumed up to and
        including </data>
    attributes : sequence of (name, text)
        The attributes of the <data> element
    width : int
        Row width (the map width in tiles)

    Returns:
    --------
    np.ndarray : read-only uint32 array of shape (rows, width); (0, width)
                 when the element has no character data
    """
    values = extract_attributes(attributes, DATA_FIELDS, "data must have an encoding and a compression")
    encoding, compression = values['encoding'], values['compression']
    if encoding != SUPPORTED_ENCODING or compression != SUPPORTED_COMPRESSION:
        raise UnsupportedFormat(
            f"Only {SUPPORTED_ENCODING} and {SUPPORTED_COMPRESSION} allowed for the moment "
            f"(got encoding={encoding!r}, compression={compression!r})"
        )

    chunks = []
    open_depth = stream.depth
    while True:
        event = stream.next()
        if isinstance(event, Characters):
            if stream.depth == open_depth:
                chunks.append(event.text)
        elif isinstance(event, EndElement):
            if stream.depth < open_depth:
                break
        elif isinstance(event, EndDocument):
            raise PrematureEnd("Document ended before </data> was found")

    payload = ''.join(chunks)
    if not payload.strip():
        return empty_grid(width)
    return decode_base64_zlib(payload, width)


def decode_base64_zlib(payload: str, width: int) -> np.ndarray:
    """
    Decode base64 text holding zlib-compressed little-endian uint32 GIDs.

    Raises:
    -------
    DecodingError : payload is not valid base64
    DecompressingError : the zlib stream is corrupt or truncated
    MalformedAttributes : width is not positive
    """
    # Tiled wraps the payload in newlines and indentation
    compact = ''.join(payload.split())
    try:
        compressed = base64.b64decode(compact, validate=True)
    except ValueError as e:
        # binascii.Error is a ValueError, as is non-ASCII input
        raise DecodingError(f"Invalid base64 tile data: {e}") from e

    decompressor = zlib.decompressobj()
    try:
        raw = decompressor.decompress(compressed) + decompressor.flush()
    except zlib.error as e:
        raise DecompressingError(f"Invalid zlib tile data: {e}") from e
    if not decompressor.eof:
        raise DecompressingError("Invalid zlib tile data: stream is truncated")

    return _reshape(raw, width)


def _reshape(raw: bytes, width: int) -> np.ndarray:
    if width <= 0:
        raise MalformedAttributes(f"Row width must be positive, got {width}")
    count = len(raw) // 4
    rows = count // width
    if rows * width != count:
        logger.warning("Dropping %d trailing tiles that don't fill a row of %d", count - rows * width, width)
    if rows == 0:
        return empty_grid(width)

    gids = np.frombuffer(raw, dtype='<u4', count=rows * width)
    # astype() copies into native byte order and detaches from `raw`
    return _freeze(gids.reshape(rows, width).astype(np.uint32))


def empty_grid(width: int) -> np.ndarray:
    """A read-only grid with no rows."""
    return _freeze(np.zeros((0, width), dtype=np.uint32))


def _freeze(grid: np.ndarray) -> np.ndarray:
    grid.flags.writeable = False
    return grid


def encode_base64_zlib(tiles) -> str:
    """
    Inverse of decode_base64_zlib: encode a grid of GIDs as base64 text.

    Accepts anything numpy can turn into an array of uint32.
    """
    raw = np.asarray(tiles, dtype='<u4').tobytes()
    return base64.b64encode(zlib.compress(raw)).decode('ascii')
