"""
GIFTI Writer - single top-to-bottom pass over a Gifti container.

Emission order:
1. XML prolog and GIFTI doctype
2. <GIFTI> with the container's stored attributes
3. container <MetaData>
4. <LabelTable> with its labels, or an empty <LabelTable/> marker
5. per DataArray: attributes, <MetaData>, <CoordinateSystemTransformMatrix>
   blocks, then <Data> produced by ``DataEncoder``

Indentation is 3 spaces per level, tracked with a level counter. Elements
that carry character data are written inline; container elements put their
children on separate lines.
"""

import io
import os
from typing import Dict, List, Optional, TextIO, Union

from ..core import constants as C
from ..core.errors import GiftiFormatError
from ..core.types import DataArray, Gifti
from ..models.options import TransformParams, WriterOptions
from ..transforms.affine import format_matrix
from ..utils.logging import log
from .emitter import XmlEmitter
from .encoder import DataEncoder


Destination = Union[str, "os.PathLike[str]", TextIO]


def _log(message: str, debug: bool = False):
    """Internal logging function."""
    if debug:
        log(f"[WRITE] {message}")


class GiftiWriter:
    """
    Write a Gifti container as a GIFTI XML document.

    Args:
        gifti: Container to write
        options: Writer configuration (transform, line breaks, buffer size)

    Example:
        ```python
        writer = GiftiWriter(gifti, WriterOptions(line_breaks=True))
        writer.write("out.gii")
        ```
    """

    def __init__(self, gifti: Gifti, options: Optional[WriterOptions] = None):
        self.gifti = gifti
        self.options = options or WriterOptions()
        self.level = 0
        self._out: Optional[XmlEmitter] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def write(self, destination: Destination) -> None:
        """
        Write the document to a path or text stream.

        A failed write leaves an incomplete file behind; write to a temporary
        path and rename on success when that matters.

        Raises:
            GiftiFormatError: On I/O failure or unsupported array contents
        """
        if hasattr(destination, "write"):
            self._write_document(destination)
            return

        _log(f"Writing {os.fspath(destination)}", self.options.debug)
        try:
            with open(destination, "w", encoding="utf-8", newline="") as stream:
                self._write_document(stream)
        except OSError as e:
            raise GiftiFormatError(f"Cannot write {os.fspath(destination)}: {e}") from e

    # ------------------------------------------------------------------
    # Document structure
    # ------------------------------------------------------------------

    def _write_document(self, stream: TextIO) -> None:
        self.level = 0
        out = self._out = XmlEmitter(stream)

        try:
            out.write_start_document()
            out.write_characters("\n")
            out.write_dtd(C.DOC_TYPE)
            out.write_characters("\n")

            self._start_element(C.TAG_GIFTI, self.gifti.attributes)
            self._write_metadata(self.gifti.metadata)
            self._write_label_table()

            for index, data_array in enumerate(self.gifti.data_arrays, start=1):
                _log(f"DataArray #{index}: {data_array!r}", self.options.debug)
                self._write_data_array(data_array)

            self._end_element()  # GIFTI
            out.write_end_document()
        except OSError as e:
            raise GiftiFormatError(f"Write failed: {e}") from e
        finally:
            self._out = None

    def _write_label_table(self) -> None:
        label_table = self.gifti.label_table
        if label_table is None:
            self._empty_element(C.TAG_LABELTABLE)
            return

        self._start_element(C.TAG_LABELTABLE)
        for key, label in label_table.items():
            attributes = dict(label.attributes)
            attributes[C.ATT_KEY] = str(key)
            self._start_element(C.TAG_LABEL, attributes, C.LABEL_ATTRIBUTE_ORDER, contains_data=True)
            self._out.write_cdata(label.label)
            self._end_element(contains_data=True)
        self._end_element()  # LabelTable

    def _write_data_array(self, data_array: DataArray) -> None:
        self._start_element(C.TAG_DATAARRAY, data_array.attributes)
        self._write_metadata(data_array.metadata)

        for transform in data_array.transforms:
            self._start_element(C.TAG_COORDINATESYSTEMTRANSFORMMATRIX)

            self._start_element(C.TAG_DATASPACE, contains_data=True)
            self._out.write_cdata(transform.data_space)
            self._end_element(contains_data=True)

            self._start_element(C.TAG_TRANSFORMEDSPACE, contains_data=True)
            self._out.write_cdata(transform.transformed_space)
            self._end_element(contains_data=True)

            self._start_element(C.TAG_MATRIXDATA, contains_data=True)
            self._out.write_characters(format_matrix(transform.matrix))
            self._end_element(contains_data=True)

            self._end_element()  # CoordinateSystemTransformMatrix

        self._start_element(C.TAG_DATA)
        encoder = DataEncoder(
            data_array,
            transform=self.options.transform,
            line_breaks=self.options.line_breaks,
            buffer_size=self.options.buffer_size,
        )
        encoder.encode(self._out.write_characters)
        _log(f"  encoded in {encoder.flush_cycles} buffer cycle(s)", self.options.debug)
        self._end_element()  # Data

        self._end_element()  # DataArray

    def _write_metadata(self, metadata: Dict[str, str]) -> None:
        if not metadata:
            return

        self._start_element(C.TAG_METADATA)
        for name, value in metadata.items():
            self._start_element(C.TAG_MD)

            self._start_element(C.TAG_NAME, contains_data=True)
            self._out.write_cdata(name)
            self._end_element(contains_data=True)

            self._start_element(C.TAG_VALUE, contains_data=True)
            self._out.write_cdata(value)
            self._end_element(contains_data=True)

            self._end_element()  # MD
        self._end_element()  # MetaData

    # ------------------------------------------------------------------
    # Indented emission helpers
    # ------------------------------------------------------------------

    def _indent(self) -> None:
        if self.level:
            self._out.write_characters(C.INDENT * self.level)

    def _start_element(
        self,
        tag: str,
        attributes: Optional[Dict[str, str]] = None,
        order: Optional[List[str]] = None,
        contains_data: bool = False,
    ) -> None:
        self._indent()
        self._out.write_start_element(tag)

        if attributes:
            names = [name for name in order if name in attributes] if order else list(attributes)
            for name in names:
                self._out.write_attribute(name, attributes[name])

        if not contains_data:
            self._out.write_characters("\n")

        self.level += 1

    def _end_element(self, contains_data: bool = False) -> None:
        self.level -= 1
        if not contains_data:
            self._indent()
        self._out.write_end_element()
        self._out.write_characters("\n")

    def _empty_element(self, tag: str) -> None:
        self._indent()
        self._out.write_empty_element(tag)
        self._out.write_characters("\n")


def write_gifti(
    gifti: Gifti,
    destination: Destination,
    line_breaks: Optional[bool] = None,
    scale=None,
    offset=None,
    options: Optional[WriterOptions] = None,
) -> None:
    """
    Write a Gifti container.

    Args:
        gifti: Container to write
        destination: Path or text stream
        line_breaks: Wrap encoded data into 76-character lines (overrides options)
        scale: Per-axis scale used by the inverse point/normal transform
        offset: Per-axis offset used by the inverse point transform
        options: Advanced configuration
    """
    options = options or WriterOptions()
    update = {}
    if line_breaks is not None:
        update["line_breaks"] = line_breaks
    if scale is not None or offset is not None:
        update["transform"] = TransformParams(
            scale=scale if scale is not None else options.transform.scale,
            offset=offset if offset is not None else options.transform.offset,
        )
    if update:
        options = options.model_copy(update=update)

    GiftiWriter(gifti, options).write(destination)


def write_gifti_string(gifti: Gifti, **kwargs) -> str:
    """Render a Gifti container to a string (see ``write_gifti``)."""
    buffer = io.StringIO(newline="")
    write_gifti(gifti, buffer, **kwargs)
    return buffer.getvalue()
