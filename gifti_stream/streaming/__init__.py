"""
GIFTI Streaming Reader Module

Push-model (SAX) reader that decodes <Data> payloads while their character
data arrives.

Key Components:
- parser.py: SAX content handler and read entry points
- decoder.py: incremental ASCII/base64/gzip decoding of one <Data> element
- state.py: explicit per-document parser state
"""

from .decoder import DataDecoder, VectorGrouper
from .parser import GiftiContentHandler, parse_gifti_bytes, read_gifti
from .state import ParserMode, ParserState

__all__ = [
    "DataDecoder",
    "VectorGrouper",
    "GiftiContentHandler",
    "parse_gifti_bytes",
    "read_gifti",
    "ParserMode",
    "ParserState",
]
