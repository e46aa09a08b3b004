"""
Unit tests for sequential XML emission

Tests cover:
1. Start/end tags and attributes
2. Empty elements
3. Escaping of text, attributes and CDATA terminators
"""

import io
import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from gifti_stream.writer.emitter import XmlEmitter


@pytest.fixture
def stream():
    return io.StringIO()


def test_prolog(stream):
    XmlEmitter(stream).write_start_document()
    assert stream.getvalue() == '<?xml version="1.0" encoding="UTF-8"?>'


def test_nested_elements_with_attributes(stream):
    out = XmlEmitter(stream)
    out.write_start_element("GIFTI")
    out.write_attribute("Version", "1.0")
    out.write_start_element("MetaData")
    out.write_end_element()
    out.write_end_element()
    assert stream.getvalue() == '<GIFTI Version="1.0"><MetaData/></GIFTI>'


def test_empty_element(stream):
    out = XmlEmitter(stream)
    out.write_start_element("GIFTI")
    out.write_characters("\n")
    out.write_empty_element("LabelTable")
    out.write_characters("\n")
    out.write_end_document()
    assert stream.getvalue() == "<GIFTI>\n<LabelTable/>\n</GIFTI>"


def test_text_is_escaped(stream):
    out = XmlEmitter(stream)
    out.write_start_element("MatrixData")
    out.write_characters("a < b & c")
    out.write_end_element()
    assert stream.getvalue() == "<MatrixData>a &lt; b &amp; c</MatrixData>"


def test_attribute_is_quoted(stream):
    out = XmlEmitter(stream)
    out.write_start_element("DataArray")
    out.write_attribute("ExternalFileName", "a<b&c")
    out.write_end_element()
    assert stream.getvalue() == '<DataArray ExternalFileName="a&lt;b&amp;c"/>'


def test_cdata_terminator_split(stream):
    out = XmlEmitter(stream)
    out.write_start_element("Value")
    out.write_cdata("x]]>y")
    out.write_end_element()
    assert stream.getvalue() == "<Value><![CDATA[x]]]]><![CDATA[>y]]></Value>"


def test_attribute_outside_start_tag(stream):
    out = XmlEmitter(stream)
    out.write_start_element("Data")
    out.write_characters("x")
    with pytest.raises(RuntimeError):
        out.write_attribute("Encoding", "ASCII")


def test_end_without_open_element(stream):
    with pytest.raises(RuntimeError):
        XmlEmitter(stream).write_end_element()
