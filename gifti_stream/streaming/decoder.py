"""
Incremental decoder for one GIFTI <Data> element.

Character data for a <Data> element arrives in chunks of arbitrary size.
``DataDecoder.feed`` is called once per chunk and ``DataDecoder.close`` once
when the element ends. Between calls the decoder carries:

- pending text (ASCII: partial token; base64: fewer than 4 characters)
- the inflate stream state (GZipBase64Binary only)
- partial element bytes (fewer than 1 or 4 bytes)
- a partially filled vector group (fewer than ``group_width`` components)

Chunk boundaries never change the decoded values.

Pipeline (binary encodings):
    text → strip whitespace → 4-char groups → base64 → [inflate] →
    element bytes → numeric values → vector groups → scale/offset → buffer
"""

import zlib
from typing import Callable, Optional

import numpy as np

from ..core.constants import BASE64_CHAR_GROUP, BUFFER_SIZE
from ..core.errors import GiftiFormatError
from ..core.types import DataArray
from ..models.options import TransformParams
from ..parsers.ascii import parse_tokens, split_at_last_whitespace
from ..parsers.binary import ELEMENT_WIDTHS, AlignedCarry, decode_base64, reinterpret
from ..transforms.affine import apply_normal_transform, apply_point_transform
from ..utils.logging import log


def _log(message: str, debug: bool = False):
    """Internal logging function."""
    if debug:
        log(f"[DATA] {message}")


class VectorGrouper:
    """
    Group a flat value stream into fixed-width vectors.

    The component index cycles 0..width-1; each completed group is passed
    through ``transform`` and handed to ``sink``. Incomplete groups wait for
    the next ``push``.
    """

    def __init__(
        self,
        width: int,
        sink: Callable[[np.ndarray], None],
        transform: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    ):
        self.width = width
        self.sink = sink
        self.transform = transform
        self._pending = np.empty(0, dtype=np.float64)

    @property
    def component_index(self) -> int:
        return self._pending.size

    def push(self, values: np.ndarray) -> None:
        values = np.asarray(values, dtype=np.float64)
        if self._pending.size:
            values = np.concatenate([self._pending, values])
        complete = (values.size // self.width) * self.width
        self._pending = values[complete:].copy()
        if not complete:
            return
        groups = values[:complete].reshape(-1, self.width)
        if self.transform is not None:
            groups = self.transform(groups)
        self.sink(groups)


class DataDecoder:
    """
    Decode the character data of one <Data> element into its DataArray.

    Args:
        data_array: Array whose backing buffer receives the values
        transform: Scale/offset applied to points and normals
        buffer_size: Size of the inflate working buffer (bytes)
        debug: Enable [DATA] logging

    Raises:
        GiftiFormatError: On construction, for an unknown encoding or a
            float-typed triangle array (before any byte is consumed)
    """

    def __init__(
        self,
        data_array: DataArray,
        transform: Optional[TransformParams] = None,
        buffer_size: int = BUFFER_SIZE,
        debug: bool = False,
    ):
        self.data_array = data_array
        self.transform = transform or TransformParams()
        self.buffer_size = buffer_size
        self.debug = debug

        if data_array.is_triangles and data_array.is_float32:
            raise GiftiFormatError("Indices cannot be float data!")

        if not (data_array.is_ascii or data_array.is_base64_encoded or data_array.is_external_file_binary):
            raise GiftiFormatError(f"Unsupported data encoding: {data_array.encoding!r}")

        self._pending_text = ""
        self._text_carry = AlignedCarry(BASE64_CHAR_GROUP)
        self._inflater = zlib.decompressobj() if data_array.is_gzip_base64_binary else None
        self._element_carry: Optional[AlignedCarry] = None
        self._grouper: Optional[VectorGrouper] = None
        self._values_seen = 0
        self._received_text = False

        if data_array.is_external_file_binary:
            _log(
                f"External payload {data_array.external_filename!r} "
                f"@ {data_array.external_file_offset} left to caller",
                debug,
            )
            return

        if data_array.buffer is None:
            raise GiftiFormatError(f"Unsupported data type: {data_array.data_type!r}")

        if data_array.is_base64_encoded:
            self._element_carry = AlignedCarry(ELEMENT_WIDTHS[data_array.data_type])

        if data_array.is_points:
            self._grouper = VectorGrouper(
                data_array.group_width,
                data_array.append_values,
                lambda groups: apply_point_transform(groups, self.transform),
            )
        elif data_array.is_normals:
            self._grouper = VectorGrouper(
                data_array.group_width,
                data_array.append_values,
                lambda groups: apply_normal_transform(groups, self.transform),
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def leftover_bytes(self) -> int:
        """Bytes of an incomplete element carried to the next chunk."""
        return self._element_carry.pending if self._element_carry else 0

    @property
    def component_index(self) -> int:
        """Position inside the current vector group (0 when aligned)."""
        return self._grouper.component_index if self._grouper else 0

    def feed(self, text: str) -> None:
        """Consume one character-data event."""
        if self.data_array.is_external_file_binary:
            return
        if self.data_array.is_ascii:
            self._feed_ascii(text)
        else:
            self._feed_base64(text)

    def close(self) -> None:
        """
        Finish the element: flush pending text and the inflate stream.

        Raises:
            GiftiFormatError: If an incomplete base64 group or element remains,
                or the deflate stream ends before its final block
        """
        if self.data_array.is_external_file_binary:
            return

        if self.data_array.is_ascii:
            remainder, self._pending_text = self._pending_text, ""
            self._emit(parse_tokens(remainder, integer=self._integer_tokens))
        else:
            if self._text_carry.pending:
                raise GiftiFormatError(
                    f"Truncated base64 data ({self._text_carry.pending} trailing characters)"
                )
            if self._inflater is not None:
                try:
                    tail = self._inflater.flush()
                except zlib.error as e:
                    raise GiftiFormatError(f"Inflate failed: {e}") from e
                self._consume_bytes(tail)
                if self._received_text and not self._inflater.eof:
                    raise GiftiFormatError("Truncated deflate stream")
            if self.leftover_bytes:
                raise GiftiFormatError(
                    f"Data ends inside an element ({self.leftover_bytes} trailing bytes)"
                )

        if self.component_index:
            _log(f"Dropping incomplete vector group ({self.component_index} components)", self.debug)

        _log(
            f"{self.data_array.intent}: {self._values_seen} values decoded "
            f"({self.data_array.filled} stored)",
            self.debug,
        )

    # ------------------------------------------------------------------
    # ASCII branch
    # ------------------------------------------------------------------

    @property
    def _integer_tokens(self) -> bool:
        if self.data_array.is_points or self.data_array.is_normals:
            return False
        return not self.data_array.is_float32

    def _feed_ascii(self, text: str) -> None:
        self._pending_text += text
        complete, self._pending_text = split_at_last_whitespace(self._pending_text)
        if complete:
            self._emit(parse_tokens(complete, integer=self._integer_tokens))

    # ------------------------------------------------------------------
    # Base64 / GZipBase64 branch
    # ------------------------------------------------------------------

    def _feed_base64(self, text: str) -> None:
        stripped = "".join(text.split())
        if not stripped:
            return
        self._received_text = True
        try:
            chars = stripped.encode("ascii")
        except UnicodeEncodeError as e:
            raise GiftiFormatError(f"Invalid base64 data: {e}") from e

        aligned = self._text_carry.push(chars)
        if not aligned:
            return

        raw = decode_base64(aligned)

        if self._inflater is None:
            self._consume_bytes(raw)
            return

        # Inflate in bounded steps so output never exceeds the working buffer
        data = raw
        try:
            while data:
                chunk = self._inflater.decompress(data, self.buffer_size)
                self._consume_bytes(chunk)
                data = self._inflater.unconsumed_tail
        except zlib.error as e:
            raise GiftiFormatError(f"Inflate failed: {e}") from e

    def _consume_bytes(self, raw: bytes) -> None:
        if not raw:
            return
        aligned = self._element_carry.push(raw)
        if not aligned:
            return
        values = reinterpret(aligned, self.data_array.data_type, self.data_array.is_little_endian)
        self._emit(values)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _emit(self, values: np.ndarray) -> None:
        if not values.size:
            return
        self._values_seen += values.size
        if self._grouper is not None:
            self._grouper.push(values)
        else:
            # Indices and auxiliary arrays are stored verbatim
            self.data_array.append_values(values)
