"""
Errors raised while parsing TMX documents.

Every failure is terminal: the first error aborts the whole parse and no
partially built entity is returned. All errors derive from TiledError so
callers can catch a single type.

    TiledError
    ├── MalformedAttributes   missing/invalid attribute or broken structure
    ├── DecompressingError    zlib failure while inflating tile data
    ├── DecodingError         base64 failure while decoding tile data
    ├── PrematureEnd          document ended before a closing tag
    ├── UnsupportedFormat     valid TMX we don't handle (e.g. gzip data)
    └── InvalidDocument       the XML itself is broken or forbidden
"""


class TiledError(Exception):
    """Base class for all TMX parsing errors."""


class MalformedAttributes(TiledError):
    """An attribute was missing, had the wrong type or wasn't formatted correctly."""


class DecompressingError(TiledError):
    """The tile data could not be inflated."""


class DecodingError(TiledError):
    """The tile data text could not be decoded into bytes."""


class PrematureEnd(TiledError):
    """The document ended before we expected."""


class UnsupportedFormat(TiledError):
    """The document uses a part of the format this parser does not support."""


class InvalidDocument(TiledError):
    """The XML is not well-formed, or uses constructs we refuse to expand."""
