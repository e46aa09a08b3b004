from pydantic import BaseModel, Field
from typing import Tuple

from ..config import DEBUG, DEFAULT_BUFFER_SIZE, DEFAULT_CHUNK_SIZE, DEFAULT_LINE_BREAKS


class TransformParams(BaseModel):
    """Per-axis affine parameters applied to points and normals"""
    scale: Tuple[float, float, float] = (1.0, 1.0, 1.0)
    offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @property
    def is_identity(self) -> bool:
        return self.scale == (1.0, 1.0, 1.0) and self.offset == (0.0, 0.0, 0.0)


class ReaderOptions(BaseModel):
    """GIFTI read parameters"""
    transform: TransformParams = Field(default_factory=TransformParams)
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)  # Bytes fed to the XML parser per step
    debug: bool = DEBUG  # Enable [READ]/[DATA] logging


class WriterOptions(BaseModel):
    """GIFTI write parameters"""
    transform: TransformParams = Field(default_factory=TransformParams)
    line_breaks: bool = DEFAULT_LINE_BREAKS  # Wrap encoded data at 76 characters (CRLF)
    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, gt=0)  # Working buffer size in bytes
    debug: bool = DEBUG  # Enable [WRITE] logging
