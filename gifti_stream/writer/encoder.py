"""
Incremental encoder for one GIFTI <Data> element.

The inverse of ``streaming.decoder``:

    backing buffer → inverse scale/offset → element bytes (declared endian)
    → working buffer → [deflate] → 3-byte groups → base64 → [76-char lines]

Elements are copied into a fixed-size working buffer. Each time the buffer
fills, and once for the final partial fill, its contents are handed to the
compression stage. Deflate output is regrouped into multiples of 3 bytes
before base64 encoding; the 0-2 remaining bytes are carried into the next
cycle, so the encoded text never contains padding except at the very end.
The output is identical to what an unbounded working buffer would produce.
"""

import zlib
from typing import Callable, Optional

import numpy as np

from ..core.constants import BASE64_BYTE_GROUP, BUFFER_SIZE, LINE_TERMINATOR, LINE_WIDTH
from ..core.errors import GiftiFormatError
from ..core.types import DataArray
from ..models.options import TransformParams
from ..parsers.binary import ELEMENT_WIDTHS, AlignedCarry, encode_base64, serialize
from ..transforms.affine import invert_normal_values, invert_point_values


class ElementCursor:
    """
    Read elements from a backing buffer with the inverse read-side transform.

    - triangles, colours and auxiliary arrays: values unchanged
    - normals: ``scale[i] * stored[i]``
    - points: ``scale[i] * (stored[i] + offset[i])``

    The component index ``i`` cycles modulo the array's group width.
    """

    def __init__(self, data_array: DataArray, transform: Optional[TransformParams] = None):
        if data_array.buffer is None:
            raise GiftiFormatError(f"Unsupported data type: {data_array.data_type!r}")
        self.data_array = data_array
        self.transform = transform or TransformParams()
        self.index = 0
        num_values = data_array.num_values
        capacity = data_array.buffer.size
        self.count = capacity if num_values is None else min(num_values, capacity)

    def has_next(self) -> bool:
        return self.index < self.count

    def take(self, limit: int) -> np.ndarray:
        """Return up to ``limit`` raw values and advance the cursor."""
        start = self.index
        stop = min(self.count, start + limit)
        values = self.data_array.buffer[start:stop]
        self.index = stop

        width = self.data_array.group_width
        if self.data_array.is_points:
            return invert_point_values(values, start, width, self.transform)
        if self.data_array.is_normals:
            return invert_normal_values(values, start, width, self.transform)
        return values


class LineWrapper:
    """
    Hold encoded text and release it in fixed-width CRLF-terminated lines.

    With wrapping disabled, text is passed straight through.
    """

    def __init__(self, write: Callable[[str], None], enabled: bool, width: int = LINE_WIDTH):
        self.write = write
        self.enabled = enabled
        self.width = width
        self._line = ""

    def push(self, text: str) -> None:
        if not text:
            return
        if not self.enabled:
            self.write(text)
            return
        self._line += text
        while len(self._line) > self.width:
            self.write(self._line[:self.width] + LINE_TERMINATOR)
            self._line = self._line[self.width:]

    def close(self) -> None:
        if self._line:
            self.write(self._line)
            self._line = ""
        if self.enabled:
            self.write(LINE_TERMINATOR)


class DataEncoder:
    """
    Encode one DataArray's backing buffer as <Data> character data.

    Args:
        data_array: Array to encode (Encoding attribute selects the branch)
        transform: Scale/offset whose inverse is applied to points and normals
        line_breaks: Wrap base64 text into 76-character CRLF lines
        buffer_size: Working buffer size in bytes (at least one element)

    Attributes:
        flush_cycles: Number of times the working buffer was handed on
    """

    def __init__(
        self,
        data_array: DataArray,
        transform: Optional[TransformParams] = None,
        line_breaks: bool = False,
        buffer_size: int = BUFFER_SIZE,
    ):
        self.data_array = data_array
        self.transform = transform or TransformParams()
        self.line_breaks = line_breaks
        self.flush_cycles = 0

        if not (data_array.is_ascii or data_array.is_base64_encoded or data_array.is_external_file_binary):
            raise GiftiFormatError(f"Unsupported data encoding: {data_array.encoding!r}")

        width = ELEMENT_WIDTHS.get(data_array.data_type)
        if width is None:
            raise GiftiFormatError(f"Unsupported data type: {data_array.data_type!r}")
        self.element_width = width
        self.elements_per_buffer = max(buffer_size // width, 1)
        self._working = bytearray(self.elements_per_buffer * width)

    def encode(self, write: Callable[[str], None]) -> None:
        """Write the encoded payload through ``write``."""
        if self.data_array.is_external_file_binary:
            return
        cursor = ElementCursor(self.data_array, self.transform)
        if self.data_array.is_ascii:
            self._encode_ascii(cursor, write)
        else:
            self._encode_binary(cursor, write)

    # ------------------------------------------------------------------
    # Binary branch
    # ------------------------------------------------------------------

    def _encode_binary(self, cursor: ElementCursor, write: Callable[[str], None]) -> None:
        data_array = self.data_array
        deflater = zlib.compressobj() if data_array.is_gzip_base64_binary else None
        carry = AlignedCarry(BASE64_BYTE_GROUP)
        wrapper = LineWrapper(write, self.line_breaks)

        def emit(raw: bytes) -> None:
            aligned = carry.push(raw)
            if aligned:
                wrapper.push(encode_base64(aligned))

        while cursor.has_next():
            values = cursor.take(self.elements_per_buffer)
            raw = serialize(values, data_array.data_type, data_array.is_little_endian)
            mark = len(raw)
            self._working[:mark] = raw
            self.flush_cycles += 1

            chunk = bytes(self._working[:mark])
            emit(deflater.compress(chunk) if deflater is not None else chunk)

        if deflater is not None:
            emit(deflater.flush(zlib.Z_FINISH))

        # Final 0-2 bytes, padded
        tail = carry.drain()
        if tail:
            wrapper.push(encode_base64(tail))
        wrapper.close()

    # ------------------------------------------------------------------
    # ASCII branch
    # ------------------------------------------------------------------

    def _encode_ascii(self, cursor: ElementCursor, write: Callable[[str], None]) -> None:
        data_array = self.data_array
        per_line = data_array.components if data_array.components > 1 else 1
        if data_array.is_points or data_array.is_normals or data_array.is_triangles:
            per_line = data_array.group_width
        integer = not data_array.is_float32

        pending = []
        while cursor.has_next():
            values = cursor.take(self.elements_per_buffer)
            self.flush_cycles += 1
            for value in values.tolist():
                pending.append(str(int(round(value))) if integer else str(np.float32(value)))
                if len(pending) == per_line:
                    write(" ".join(pending) + "\n")
                    pending = []
        if pending:
            write(" ".join(pending) + "\n")
