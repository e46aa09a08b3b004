from .emitter import XmlEmitter
from .encoder import DataEncoder, ElementCursor, LineWrapper
from .writer import GiftiWriter, write_gifti, write_gifti_string

__all__ = [
    "XmlEmitter",
    "DataEncoder",
    "ElementCursor",
    "LineWrapper",
    "GiftiWriter",
    "write_gifti",
    "write_gifti_string",
]
