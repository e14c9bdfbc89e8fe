import base64
import io
import zlib
from pathlib import Path

import numpy as np

from tmx_parser.events import EndDocument, EndElement, EventStream, StartElement

ASSETS_DIR = Path(__file__).parent.parent / "assets"


def tile_payload(grid) -> str:
    """Encode a grid the way Tiled writes base64 + zlib layer data."""
    raw = np.asarray(grid, dtype="<u4").tobytes()
    return base64.b64encode(zlib.compress(raw)).decode("ascii")


def map_xml(body: str = "", width: int = 3, height: int = 2, **extra) -> str:
    """A minimal valid <map> document wrapping ``body``."""
    attrs = {
        "version": "1.0",
        "orientation": "orthogonal",
        "width": str(width),
        "height": str(height),
        "tilewidth": "16",
        "tileheight": "16",
    }
    attrs.update(extra)
    attr_text = " ".join(f'{key}="{value}"' for key, value in attrs.items())
    return f'<?xml version="1.0" encoding="UTF-8"?>\n<map {attr_text}>{body}</map>'


def layer_xml(grid, name="Ground") -> str:
    return (
        f'<layer name="{name}"><data encoding="base64" compression="zlib">\n'
        f"   {tile_payload(grid)}\n"
        f"  </data></layer>"
    )


def stream_for(xml_text: str) -> EventStream:
    return EventStream(io.BytesIO(xml_text.encode("utf-8")))


def open_element(xml_text: str, name: str):
    """Return (stream, attributes) positioned right after the start tag of ``name``."""
    stream = stream_for(xml_text)
    for event in stream:
        if isinstance(event, StartElement) and event.name == name:
            return stream, event.attributes
    raise AssertionError(f"<{name}> not found")


class ListStream:
    """Stand-in for EventStream that replays a fixed list of events."""

    def __init__(self, events, depth=1):
        self._events = list(events)
        self.depth = depth

    def next(self):
        if not self._events:
            return EndDocument()
        event = self._events.pop(0)
        if isinstance(event, StartElement):
            self.depth += 1
        elif isinstance(event, EndElement):
            self.depth -= 1
        return event
