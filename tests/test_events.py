import io

import pytest

from tmx_parser.errors import InvalidDocument, MalformedAttributes, PrematureEnd
from tmx_parser.events import (
    Characters, EndDocument, EndElement, EventStream, StartElement, descend, local_name,
)
from tests.utils import ListStream, open_element, stream_for


class TestEventStream:
    def test_events_in_order(self):
        stream = stream_for('<map a="1"><layer name="x">text</layer></map>')
        assert list(stream) == [
            StartElement("map", [("a", "1")]),
            StartElement("layer", [("name", "x")]),
            Characters("text"),
            EndElement("layer"),
            EndElement("map"),
            EndDocument(),
        ]

    def test_end_document_forever(self):
        stream = stream_for("<map/>")
        list(stream)
        assert stream.next() == EndDocument()
        assert stream.next() == EndDocument()

    def test_depth(self):
        stream = stream_for("<a><b/></a>")
        depths = []
        for _ in range(4):
            stream.next()
            depths.append(stream.depth)
        assert depths == [1, 2, 1, 0]

    def test_namespaces_stripped(self):
        stream = stream_for('<t:map xmlns:t="urn:tiled" xmlns:x="urn:x" x:id="3"/>')
        event = stream.next()
        assert event == StartElement("map", [("id", "3")])

    def test_accepts_path(self, tmp_path):
        path = tmp_path / "doc.xml"
        path.write_bytes(b"<map/>")
        assert EventStream(str(path)).next() == StartElement("map", [])

    def test_malformed_xml(self):
        stream = stream_for("<map><layer></map>")
        with pytest.raises(InvalidDocument, match="mismatched tag"):
            list(stream)
        assert stream.next() == EndDocument()

    def test_entities_refused(self):
        xml_text = '<?xml version="1.0"?><!DOCTYPE map [<!ENTITY boom "boom">]><map a="&boom;"/>'
        with pytest.raises(InvalidDocument):
            list(EventStream(io.BytesIO(xml_text.encode())))


def test_local_name():
    assert local_name("{urn:tiled}layer") == "layer"
    assert local_name("layer") == "layer"


class TestDescend:
    """Prove the descent loop dispatches direct children and stops at its own end tag."""

    def test_dispatch(self):
        stream, _ = open_element('<map><tileset id="1"/><layer id="2"/><tileset id="3"/></map>', "map")
        seen = []
        descend(stream, "map", {"tileset": lambda attrs: seen.append(attrs)})
        assert seen == [[("id", "1")], [("id", "3")]]
        assert stream.next() == EndDocument()

    def test_stops_at_own_end(self):
        stream, _ = open_element("<map><layer><data/></layer><after/></map>", "layer")
        descend(stream, "layer", {})
        assert stream.next() == StartElement("after", [])

    def test_unknown_subtree_skipped(self):
        # A nested element with the same name as the open one must not end the loop
        xml_text = '<map><group><map/><tileset id="nested"/></group><tileset id="direct"/></map>'
        stream, _ = open_element(xml_text, "map")
        seen = []
        descend(stream, "map", {"tileset": lambda attrs: seen.append(attrs)})
        assert seen == [[("id", "direct")]]

    def test_handler_may_consume_child(self):
        stream, _ = open_element('<map><layer><x/></layer><layer name="b"/></map>', "map")
        seen = []

        def on_layer(attrs):
            seen.append(attrs)
            descend(stream, "layer", {})

        descend(stream, "map", {"layer": on_layer})
        assert seen == [[], [("name", "b")]]

    def test_handler_error_propagates(self):
        stream, _ = open_element("<map><bad/><layer/></map>", "map")
        seen = []

        def on_bad(attrs):
            raise MalformedAttributes("bad child")

        with pytest.raises(MalformedAttributes, match="bad child"):
            descend(stream, "map", {"bad": on_bad, "layer": seen.append})
        assert seen == []

    def test_premature_end(self):
        stream = ListStream([StartElement("layer", []), EndElement("layer")])
        with pytest.raises(PrematureEnd, match="</map>"):
            descend(stream, "map", {})
