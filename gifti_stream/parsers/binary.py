"""
Binary primitives for GIFTI payloads.

This module provides the endian-aware reinterpretation of 4-byte spans,
byte-swap helpers, and the carry buffer used to keep partial elements and
partial base64 groups across chunk boundaries.

Byte order policy:
- 32-bit values are read as big-endian unless ``swap`` is requested
- ``swap`` is requested exactly when the array declares LittleEndian and the
  element type is wider than one byte (bytes are never swapped)
"""

import base64
import binascii
import struct

import numpy as np

from ..core.constants import (
    TYPE_NIFTI_TYPE_FLOAT32,
    TYPE_NIFTI_TYPE_INT32,
    TYPE_NIFTI_TYPE_UINT8,
)
from ..core.errors import GiftiFormatError


# Element width (bytes) per declared element type
ELEMENT_WIDTHS = {
    TYPE_NIFTI_TYPE_UINT8: 1,
    TYPE_NIFTI_TYPE_INT32: 4,
    TYPE_NIFTI_TYPE_FLOAT32: 4,
}

_DTYPE_CODES = {
    TYPE_NIFTI_TYPE_UINT8: "u1",
    TYPE_NIFTI_TYPE_INT32: "i4",
    TYPE_NIFTI_TYPE_FLOAT32: "f4",
}


# ============================================================================
# Scalar Reinterpretation
# ============================================================================

def swap_bytes(data: bytes, offset: int = 0) -> bytes:
    """Return the 4 bytes at ``offset`` in reverse order."""
    span = bytes(data[offset:offset + 4])
    if len(span) != 4:
        raise GiftiFormatError(f"Need 4 bytes at offset {offset}, got {len(span)}")
    return span[::-1]


def read_uint8(data: bytes, offset: int = 0, swap: bool = False) -> int:
    """
    Read one unsigned byte.

    ``swap`` is accepted for symmetry with the 32-bit readers and ignored:
    single bytes have no byte order.
    """
    return data[offset]


def read_int32(data: bytes, offset: int = 0, swap: bool = False) -> int:
    """
    Read a signed 32-bit integer at ``offset``.

    Examples:
        >>> read_int32(b"\\x00\\x00\\x00\\x07")
        7
        >>> read_int32(b"\\x07\\x00\\x00\\x00", swap=True)
        7
    """
    fmt = "<i" if swap else ">i"
    try:
        return struct.unpack_from(fmt, data, offset)[0]
    except struct.error as e:
        raise GiftiFormatError(f"Cannot read int32 at offset {offset}: {e}") from e


def read_float32(data: bytes, offset: int = 0, swap: bool = False) -> float:
    """
    Read an IEEE-754 32-bit float at ``offset``.

    Examples:
        >>> read_float32(b"\\x3f\\x80\\x00\\x00")
        1.0
        >>> read_float32(b"\\x00\\x00\\x80\\x3f", swap=True)
        1.0
    """
    fmt = "<f" if swap else ">f"
    try:
        return struct.unpack_from(fmt, data, offset)[0]
    except struct.error as e:
        raise GiftiFormatError(f"Cannot read float32 at offset {offset}: {e}") from e


# ============================================================================
# Bulk Reinterpretation
# ============================================================================

def needs_swap(data_type: str, little_endian: bool) -> bool:
    """Swap exactly when data is little-endian and wider than a byte."""
    return little_endian and ELEMENT_WIDTHS.get(data_type, 1) > 1


def element_dtype(data_type: str, little_endian: bool) -> np.dtype:
    """
    Return the numpy dtype describing one serialized element.

    Args:
        data_type: Declared DataType attribute (NIFTI_TYPE_*)
        little_endian: True if the array declares LittleEndian

    Raises:
        GiftiFormatError: If the element type is not supported
    """
    code = _DTYPE_CODES.get(data_type)
    if code is None:
        raise GiftiFormatError(f"Unsupported data type: {data_type!r}")
    if code == "u1":
        return np.dtype(code)
    order = "<" if needs_swap(data_type, little_endian) else ">"
    return np.dtype(order + code)


def reinterpret(data: bytes, data_type: str, little_endian: bool) -> np.ndarray:
    """
    Reinterpret whole elements of ``data`` as numbers.

    ``len(data)`` must be a multiple of the element width; callers pass the
    aligned output of ``AlignedCarry.push``.
    """
    dtype = element_dtype(data_type, little_endian)
    return np.frombuffer(data, dtype=dtype)


def serialize(values: np.ndarray, data_type: str, little_endian: bool) -> bytes:
    """Serialize values to the declared element type and byte order."""
    dtype = element_dtype(data_type, little_endian)
    values = np.asarray(values)
    if dtype.kind in "iu" and values.dtype.kind == "f":
        values = np.rint(values)
    return values.astype(dtype).tobytes()


# ============================================================================
# Carry Buffer
# ============================================================================

class AlignedCarry:
    """
    Regroup a byte stream into whole units of ``width`` bytes.

    Holds at most ``width - 1`` leftover bytes in a small scratch buffer with a
    valid-length cursor. ``push`` prefixes the leftover onto new data and
    returns the largest aligned prefix; the remainder is kept for the next
    call.

    Example:
        >>> carry = AlignedCarry(4)
        >>> carry.push(b"abcdef")
        b'abcd'
        >>> carry.pending
        2
        >>> carry.push(b"gh")
        b'efgh'
    """

    def __init__(self, width: int):
        if width < 1:
            raise ValueError("width must be positive")
        self.width = width
        self._scratch = bytearray(width)
        self._valid = 0

    @property
    def pending(self) -> int:
        """Number of carried bytes waiting for completion."""
        return self._valid

    def push(self, data: bytes) -> bytes:
        if self._valid:
            data = bytes(self._scratch[:self._valid]) + bytes(data)
        total = len(data)
        aligned = (total // self.width) * self.width
        rest = total - aligned
        self._scratch[:rest] = data[aligned:]
        self._valid = rest
        return bytes(data[:aligned])

    def drain(self) -> bytes:
        """Return and clear the carried bytes."""
        rest = bytes(self._scratch[:self._valid])
        self._valid = 0
        return rest

    def reset(self) -> None:
        self._valid = 0


# ============================================================================
# Base64 Grouping
# ============================================================================

def decode_base64(chunk: bytes) -> bytes:
    """Decode complete base64 groups, wrapping failures as GiftiFormatError."""
    try:
        return base64.b64decode(chunk, validate=True)
    except (binascii.Error, ValueError) as e:
        raise GiftiFormatError(f"Invalid base64 data: {e}") from e


def encode_base64(raw: bytes) -> str:
    """Encode raw bytes; unpadded when ``len(raw)`` is a multiple of 3."""
    return base64.b64encode(raw).decode("ascii")
