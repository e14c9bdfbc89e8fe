"""
Attribute extraction for TMX elements.

Each element type declares a table of :class:`Field` descriptors. A single
generic routine, :func:`extract_attributes`, scans the element's attribute
list once and converts the requested values:

    MAP_FIELDS = (
        Field('version', text, required=True),
        Field('width', positive, required=True),
        Field('backgroundcolor', colour),
    )

    values = extract_attributes(attrs, MAP_FIELDS, "map must have ...")
    values['width']            # -> int
    values['backgroundcolor']  # -> Colour or None

Converters take the raw attribute text and either return the converted value
or raise ValueError.

=============================================================================
OPTIONAL ATTRIBUTES
=============================================================================

An optional attribute that is absent and one that is present but can't be
converted both end up as None, so the caller applies its default. The second
case is logged as a warning since it usually hides a typo in the map.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

from .errors import MalformedAttributes
from .model import Colour, Orientation

logger = logging.getLogger(__name__)

Attributes = Sequence[Tuple[str, str]]
Converter = Callable[[str], Any]

_INT_RE = re.compile(r'[+-]?[0-9]+\Z')

UINT32_MAX = 0xFFFFFFFF
INT32_MIN = -0x80000000
INT32_MAX = 0x7FFFFFFF


@dataclass(frozen=True)
class Field:
    """One attribute to pull out of an element."""
    name: str                     # Attribute name in the XML
    convert: Converter            # Text -> value, raises ValueError
    required: bool = False


def extract_attributes(attributes: Attributes, fields: Iterable[Field],
                       message: str) -> Dict[str, Any]:
    """
    Pull the requested fields out of an element's attribute list.

    Parameters:
    -----------
    attributes : sequence of (name, text)
        The attributes of one element, in document order
    fields : iterable of Field
        What to extract; unknown attribute names are ignored
    message : str
        Description of what was expected, used for the error

    Returns:
    --------
    dict : field name -> converted value, None for missing optional fields

    Raises:
    -------
    MalformedAttributes : if a required field is absent or fails to convert
    """
    wanted = {f.name: f for f in fields}
    values: Dict[str, Any] = dict.fromkeys(wanted)

    for name, raw in attributes:
        field = wanted.get(name)
        if field is None:
            continue
        try:
            values[name] = field.convert(raw)
        except ValueError:
            if not field.required:
                logger.warning("Ignoring invalid value for attribute %r: %r", name, raw)
            values[name] = None

    for field in wanted.values():
        if field.required and values[field.name] is None:
            raise MalformedAttributes(message)

    return values


def get_attribute(attributes: Attributes, name: str) -> Optional[str]:
    """Return the raw text of one attribute, or None."""
    for key, value in attributes:
        if key == name:
            return value
    return None


# =============================================================================
# CONVERTERS
# =============================================================================

def text(value: str) -> str:
    return value


def _parse_int(value: str, low: int, high: int) -> int:
    if not _INT_RE.match(value):
        raise ValueError(f"Not an integer: {value!r}")
    number = int(value)
    if not low <= number <= high:
        raise ValueError(f"Integer out of range: {value!r}")
    return number


def integer(value: str) -> int:
    """Signed 32-bit integer."""
    return _parse_int(value, INT32_MIN, INT32_MAX)


def unsigned(value: str) -> int:
    """Unsigned 32-bit integer."""
    return _parse_int(value, 0, UINT32_MAX)


def positive(value: str) -> int:
    """Unsigned 32-bit integer greater than zero."""
    return _parse_int(value, 1, UINT32_MAX)


def number(value: str) -> float:
    return float(value)


def flag(value: str) -> bool:
    """Boolean flag; Tiled writes "0"/"1", but "true"/"false" is accepted too."""
    lowered = value.strip().lower()
    if lowered in ('1', 'true'):
        return True
    if lowered in ('0', 'false'):
        return False
    raise ValueError(f"Not a boolean flag: {value!r}")


def colour(value: str) -> Colour:
    return Colour.parse(value)


def orientation(value: str) -> Orientation:
    return Orientation.parse(value)
