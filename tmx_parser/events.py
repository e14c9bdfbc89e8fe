"""
Pull-based XML event stream and the element descent loop.

=============================================================================
EVENTS
=============================================================================

The parser never sees an element tree. It pulls one event at a time:

    <layer name="Ground">           StartElement('layer', [('name', 'Ground')])
        <data encoding="base64">    StartElement('data', [('encoding', 'base64')])
            eJxjYGBgAAAABQAB        Characters('\\n eJxjYGBgAAAABQAB\\n ')
        </data>                     EndElement('data')
    </layer>                        EndElement('layer')
                                    EndDocument()

Names are local names, any XML namespace is stripped. The character data of
an element is delivered as a single Characters event right before that
element's EndElement.

The underlying tokenizer is defusedxml's iterparse, so entity expansion
attacks and external references are refused instead of being resolved.

=============================================================================
DESCENT
=============================================================================

Every container element is consumed by :func:`descend`, which dispatches
the start tags of its direct children to handlers and returns once the
element's own end tag is reached:

    descend(stream, 'tileset', {
        'image': lambda attrs: images.append(build_image(stream, attrs)),
    })

A handler may consume the rest of its child element (e.g. by calling
descend itself) or leave it alone; either way the loop keeps track of the
nesting depth and skips whatever is left of that child.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Mapping, Tuple, Union

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import ParseError, iterparse

from .errors import InvalidDocument, PrematureEnd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StartElement:
    name: str
    attributes: List[Tuple[str, str]]


@dataclass(frozen=True)
class EndElement:
    name: str


@dataclass(frozen=True)
class Characters:
    text: str


@dataclass(frozen=True)
class EndDocument:
    pass


Event = Union[StartElement, EndElement, Characters, EndDocument]

Handler = Callable[[List[Tuple[str, str]]], None]


def local_name(tag: str) -> str:
    """Strip the namespace from a "{uri}name" tag."""
    if tag.startswith('{'):
        return tag.rpartition('}')[2]
    return tag


class EventStream:
    """
    Cursor over the events of one XML document.

    Parameters:
    -----------
    source : str, Path or binary file object
        Where to read the document from (anything iterparse accepts)

    The stream is passed explicitly to every builder so nested builders
    consume events in strict document order.
    """

    def __init__(self, source):
        self.depth = 0               # Number of currently open elements
        self._events = self._read(source)
        self._finished = False

    def _read(self, source) -> Iterator[Event]:
        try:
            for event, elem in iterparse(source, events=('start', 'end')):
                name = local_name(elem.tag)
                if event == 'start':
                    attributes = [(local_name(key), value) for key, value in elem.attrib.items()]
                    yield StartElement(name, attributes)
                else:
                    if elem.text:
                        yield Characters(elem.text)
                    yield EndElement(name)
                    # Children were already delivered; keep memory flat
                    elem.clear()
        except ParseError as e:
            raise InvalidDocument(f"Invalid XML: {e}") from e
        except DefusedXmlException as e:
            raise InvalidDocument(f"Refusing to parse XML: {e}") from e

    def next(self) -> Event:
        """Return the next event; EndDocument forever once exhausted."""
        if self._finished:
            return EndDocument()

        try:
            event = next(self._events)
        except StopIteration:
            self._finished = True
            return EndDocument()
        except Exception:
            self._finished = True
            raise

        if isinstance(event, StartElement):
            self.depth += 1
        elif isinstance(event, EndElement):
            self.depth -= 1
        return event

    def __iter__(self) -> Iterator[Event]:
        while True:
            event = self.next()
            yield event
            if isinstance(event, EndDocument):
                return


def descend(stream: EventStream, close_tag: str, handlers: Mapping[str, Handler]):
    """
    Consume the children of the currently open element up to its end tag.

    Parameters:
    -----------
    stream : EventStream
        Positioned right after the open element's StartElement
    close_tag : str
        Name of the open element, used for diagnostics
    handlers : mapping of child name -> handler(attributes)
        Called for each direct child with a matching name. Children without
        a handler are skipped along with their whole subtree.

    Raises:
    -------
    PrematureEnd : if the document ends before the end tag
    Any error raised by a handler, unchanged.
    """
    open_depth = stream.depth
    while True:
        event = stream.next()
        if isinstance(event, StartElement):
            if stream.depth == open_depth + 1:
                handler = handlers.get(event.name)
                if handler is not None:
                    handler(event.attributes)
                else:
                    logger.debug("Skipping unknown <%s> in <%s>", event.name, close_tag)
        elif isinstance(event, EndElement):
            if stream.depth < open_depth:
                return
        elif isinstance(event, EndDocument):
            raise PrematureEnd(f"Document ended before </{close_tag}> was found")
