"""
Sequential XML emission primitives.

``XmlEmitter`` mirrors a streaming XML writer: start tags are left open until
the first attribute-free write so attributes can follow them, and every call
appends to the output in order. There is no random access and no tree.
"""

from typing import List, TextIO

from xml.sax.saxutils import escape, quoteattr


class XmlEmitter:
    """Write XML to a text stream one call at a time."""

    def __init__(self, out: TextIO):
        self.out = out
        self._open: List[str] = []
        self._start_pending = False
        self._empty_pending = False

    def _close_start(self) -> None:
        if self._start_pending:
            self.out.write("/>" if self._empty_pending else ">")
            if self._empty_pending:
                self._open.pop()
            self._start_pending = False
            self._empty_pending = False

    def write_start_document(self, encoding: str = "UTF-8", version: str = "1.0") -> None:
        self.out.write(f'<?xml version="{version}" encoding="{encoding}"?>')

    def write_dtd(self, dtd: str) -> None:
        self._close_start()
        self.out.write(dtd)

    def write_start_element(self, tag: str) -> None:
        self._close_start()
        self.out.write(f"<{tag}")
        self._open.append(tag)
        self._start_pending = True

    def write_empty_element(self, tag: str) -> None:
        self.write_start_element(tag)
        self._empty_pending = True

    def write_attribute(self, name: str, value: str) -> None:
        if not self._start_pending:
            raise RuntimeError(f"Attribute {name!r} written outside a start tag")
        self.out.write(f" {name}={quoteattr(value if value is not None else '')}")

    def write_characters(self, text: str) -> None:
        self._close_start()
        self.out.write(escape(text))

    def write_cdata(self, text: str) -> None:
        self._close_start()
        # "]]>" cannot appear inside one CDATA section; split it across two
        body = (text or "").replace("]]>", "]]]]><![CDATA[>")
        self.out.write(f"<![CDATA[{body}]]>")

    def write_end_element(self) -> None:
        if not self._open:
            raise RuntimeError("No open element to close")
        if self._start_pending and not self._empty_pending:
            self.out.write("/>")
            self._start_pending = False
            self._open.pop()
            return
        self._close_start()
        self.out.write(f"</{self._open.pop()}>")

    def write_end_document(self) -> None:
        self._close_start()
        while self._open:
            self.out.write(f"</{self._open.pop()}>")
        self.out.flush()
