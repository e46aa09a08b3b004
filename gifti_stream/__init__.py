"""
gifti-stream: streaming reader and writer for GIFTI surface geometry files.

Public API:
- read_gifti / parse_gifti_bytes: decode a document into a Gifti container
- write_gifti / write_gifti_string: encode a Gifti container
- convert_gifti: read, optionally re-encode, and write atomically
"""

from .core.errors import GiftiFormatError
from .core.types import CoordinateTransform, DataArray, Gifti, Label
from .models.options import ReaderOptions, TransformParams, WriterOptions
from .pipeline.convert import convert_gifti
from .streaming.parser import parse_gifti_bytes, read_gifti
from .writer.writer import GiftiWriter, write_gifti, write_gifti_string

__all__ = [
    "GiftiFormatError",
    "CoordinateTransform",
    "DataArray",
    "Gifti",
    "Label",
    "ReaderOptions",
    "TransformParams",
    "WriterOptions",
    "convert_gifti",
    "parse_gifti_bytes",
    "read_gifti",
    "GiftiWriter",
    "write_gifti",
    "write_gifti_string",
]
