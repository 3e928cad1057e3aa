import io

import pytest

from pullfeedparser import AttributeDecodeError, XMLDecodeError
from pullfeedparser.events import END, EOF, START, TEXT, Attribute, XMLEvent, iter_events


def _summary(events):
    return [(event.kind, event.name or event.text) for event in events]


def test_events_for_simple_document():
    events = list(iter_events(b"<rss><channel><title> Hi </title></channel></rss>"))
    assert _summary(events) == [
        (START, "rss"),
        (START, "channel"),
        (START, "title"),
        (TEXT, "Hi"),
        (END, "title"),
        (END, "channel"),
        (END, "rss"),
        (EOF, ""),
    ]


def test_whitespace_between_elements_is_not_reported():
    events = list(iter_events("<a>\n  <b/>\n  <c>\n</c>\n</a>"))
    assert [event.kind for event in events] == [START, START, END, START, END, END, EOF]


def test_self_closing_element_is_start_then_end():
    events = list(iter_events('<link href="http://a.example/"/>'))
    assert _summary(events) == [(START, "link"), (END, "link"), (EOF, "")]
    assert events[0].attributes == (Attribute("href", "href", "http://a.example/"),)


def test_names_use_document_prefixes():
    xml = (
        '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#" '
        'xmlns="http://purl.org/rss/1.0/" xmlns:dc="http://purl.org/dc/elements/1.1/">'
        '<channel rdf:about="http://a.example/"><dc:creator>me</dc:creator></channel>'
        "</rdf:RDF>"
    )
    events = [event for event in iter_events(xml) if event.kind == START]
    assert [event.name for event in events] == ["rdf:RDF", "channel", "dc:creator"]
    assert events[1].attributes[0].decoded_key() == "rdf:about"
    assert events[1].attributes[0].decoded_value() == "http://a.example/"


def test_default_namespace_does_not_apply_to_attributes():
    xml = '<feed xmlns="http://www.w3.org/2005/Atom" xmlns:a="http://www.w3.org/2005/Atom"><link a:rel="self" href="x"/></feed>'
    link = [event for event in iter_events(xml) if event.name == "link"][0]
    keys = sorted(attribute.decoded_key() for attribute in link.attributes)
    assert keys == ["a:rel", "href"]


def test_xml_prefix_is_always_bound():
    events = list(iter_events('<feed xml:lang="en" xml:base="http://a.example/"/>'))
    keys = sorted(attribute.decoded_key() for attribute in events[0].attributes)
    assert keys == ["xml:base", "xml:lang"]


def test_unbound_attribute_namespace_raises_on_decode():
    attribute = Attribute("{urn:nowhere}rel", None, "self")
    with pytest.raises(AttributeDecodeError):
        attribute.decoded_key()
    assert attribute.decoded_value() == "self"


def test_comment_splits_text_runs():
    events = list(iter_events("<title>one<!-- note -->two</title>"))
    assert [event.text for event in events if event.kind == TEXT] == ["one", "two"]


def test_cdata_is_reported_as_text():
    events = list(iter_events("<title><![CDATA[<b>x</b>]]></title>"))
    assert XMLEvent(TEXT, text="<b>x</b>") in events


def test_small_chunks_produce_same_events():
    xml = (
        b'<?xml version="1.0" encoding="utf-8"?>'
        b'<feed xmlns="http://www.w3.org/2005/Atom"><title>Chunked &amp; fine</title>'
        b'<entry><link href="http://a.example/1"/></entry></feed>'
    )
    assert list(iter_events(xml, chunk_size=8)) == list(iter_events(xml))
    assert list(iter_events(io.BytesIO(xml), chunk_size=8)) == list(iter_events(xml))


def test_empty_source_yields_only_eof():
    assert list(iter_events(b"")) == [XMLEvent(EOF)]


def test_events_before_a_syntax_error_are_delivered():
    events = iter_events("<rss><channel><title>ok</title><bad></rss>")
    received = []
    with pytest.raises(XMLDecodeError):
        for event in events:
            received.append(event)
    assert (START, "channel") in _summary(received)
    assert (TEXT, "ok") in _summary(received)
