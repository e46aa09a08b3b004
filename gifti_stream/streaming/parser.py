"""
GIFTI Streaming Reader - Core Implementation

Implements SAX-style incremental parsing of GIFTI documents. The XML parser
is fed fixed-size chunks of the input; every <Data> element is decoded while
its character data arrives, so the raw base64 text of a large array is never
held in memory as one string.

Architecture:
1. xml.sax IncrementalParser - push-model start/characters/end events
2. GiftiContentHandler - state machine building Gifti/DataArray entities
3. DataDecoder - one per <Data> element, owns all chunk-carry state
4. Identity transform matrices are dropped as they close
"""

import io
import os
import xml.sax
import xml.sax.handler
from typing import BinaryIO, Dict, Iterator, Optional, Union

from ..core import constants as C
from ..core.errors import GiftiFormatError
from ..core.types import CoordinateTransform, DataArray, Gifti, Label, parse_int_attribute
from ..models.options import ReaderOptions, TransformParams
from ..transforms.affine import is_identity, parse_matrix
from ..utils.logging import log
from .decoder import DataDecoder
from .state import TEXT_MODES, ParserMode, ParserState, PendingTransform


Source = Union[str, "os.PathLike[str]", BinaryIO]


def _log(message: str, debug: bool = False):
    """Internal logging function."""
    if debug:
        log(f"[READ] {message}")


def _attributes_to_map(attrs) -> Dict[str, str]:
    return {name: attrs.getValue(name) for name in attrs.getNames()}


class GiftiContentHandler(xml.sax.handler.ContentHandler):
    """
    SAX content handler turning GIFTI events into a ``Gifti``.

    Tag names are matched case-insensitively. All mutable cursor state lives
    in one ``ParserState`` owned by this handler; one handler decodes exactly
    one document.
    """

    def __init__(self, options: Optional[ReaderOptions] = None):
        super().__init__()
        self.options = options or ReaderOptions()
        self.state = ParserState()
        self.decoder: Optional[DataDecoder] = None

    @property
    def gifti(self) -> Optional[Gifti]:
        return self.state.gifti

    # ------------------------------------------------------------------
    # SAX callbacks
    # ------------------------------------------------------------------

    def startElement(self, name, attrs):
        tag = name.lower()
        state = self.state

        if tag == C.TAG_GIFTI.lower():
            state.gifti = Gifti(_attributes_to_map(attrs))
            state.metadata_holder = state.gifti
            _log(f"GIFTI version={state.gifti.version} arrays={state.gifti.num_data_arrays}", self.options.debug)

        elif tag == C.TAG_DATAARRAY.lower():
            self._require_gifti(name)
            state.data_array = DataArray(_attributes_to_map(attrs))
            state.metadata_holder = state.data_array
            state.gifti.data_arrays.append(state.data_array)
            _log(f"DataArray #{len(state.gifti.data_arrays)}: {state.data_array!r}", self.options.debug)

        elif tag == C.TAG_METADATA.lower():
            state.metadata = {}
            state.mode = ParserMode.METADATA

        elif tag == C.TAG_MD.lower():
            state.md_name = None
            state.md_value = None

        elif tag == C.TAG_NAME.lower():
            state.begin_text(ParserMode.METADATA_NAME)

        elif tag == C.TAG_VALUE.lower():
            state.begin_text(ParserMode.METADATA_VALUE)

        elif tag == C.TAG_LABEL.lower():
            state.label_attributes = _attributes_to_map(attrs)
            state.begin_text(ParserMode.LABEL)

        elif tag == C.TAG_COORDINATESYSTEMTRANSFORMMATRIX.lower():
            state.transform = PendingTransform()
            state.mode = ParserMode.TRANSFORM

        elif tag == C.TAG_DATASPACE.lower():
            state.begin_text(ParserMode.DATA_SPACE)

        elif tag == C.TAG_TRANSFORMEDSPACE.lower():
            state.begin_text(ParserMode.TRANSFORMED_SPACE)

        elif tag == C.TAG_MATRIXDATA.lower():
            state.begin_text(ParserMode.MATRIX)

        elif tag == C.TAG_DATA.lower():
            if state.data_array is None:
                raise GiftiFormatError("<Data> outside of <DataArray>")
            self.decoder = DataDecoder(
                state.data_array,
                transform=self.options.transform,
                debug=self.options.debug,
            )
            state.mode = ParserMode.DATA

    def characters(self, content):
        state = self.state
        if state.mode in TEXT_MODES:
            state.text.append(content)
        elif state.mode is ParserMode.DATA:
            self.decoder.feed(content)

    def endElement(self, name):
        tag = name.lower()
        state = self.state

        if tag == C.TAG_METADATA.lower():
            if state.metadata_holder is not None:
                state.metadata_holder.add_metadata(state.metadata)
            state.metadata = {}
            state.mode = ParserMode.IDLE

        elif tag == C.TAG_MD.lower():
            if state.md_name is not None:
                state.metadata[state.md_name] = state.md_value or ""

        elif tag == C.TAG_NAME.lower():
            state.md_name = state.end_text()

        elif tag == C.TAG_VALUE.lower():
            state.md_value = state.end_text()

        elif tag == C.TAG_LABEL.lower():
            self._commit_label(state.end_text())

        elif tag == C.TAG_DATASPACE.lower():
            text = state.end_text()
            self._require_transform(name).data_space = text

        elif tag == C.TAG_TRANSFORMEDSPACE.lower():
            text = state.end_text()
            self._require_transform(name).transformed_space = text

        elif tag == C.TAG_MATRIXDATA.lower():
            self._commit_transform(state.end_text())

        elif tag == C.TAG_COORDINATESYSTEMTRANSFORMMATRIX.lower():
            state.transform = None
            state.mode = ParserMode.IDLE

        elif tag == C.TAG_DATA.lower():
            self.decoder.close()
            self.decoder = None
            state.mode = ParserMode.IDLE

        elif tag == C.TAG_DATAARRAY.lower():
            state.data_array = None
            state.metadata_holder = state.gifti

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_gifti(self, tag: str) -> None:
        if self.state.gifti is None:
            raise GiftiFormatError(f"<{tag}> outside of <GIFTI>")

    def _require_transform(self, tag: str) -> PendingTransform:
        if self.state.transform is None:
            raise GiftiFormatError(f"<{tag}> outside of <{C.TAG_COORDINATESYSTEMTRANSFORMMATRIX}>")
        return self.state.transform

    def _commit_transform(self, text: str) -> None:
        state = self.state
        if state.data_array is None or state.transform is None:
            raise GiftiFormatError("<MatrixData> outside of <CoordinateSystemTransformMatrix>")

        matrix = parse_matrix(text)

        if is_identity(matrix):
            _log("Dropping identity transform matrix", self.options.debug)
            return

        state.data_array.add_transform(
            CoordinateTransform(
                data_space=state.transform.data_space,
                transformed_space=state.transform.transformed_space,
                matrix=matrix,
            )
        )

    def _commit_label(self, text: str) -> None:
        state = self.state
        self._require_gifti(C.TAG_LABEL)
        attributes = dict(state.label_attributes)
        key = parse_int_attribute(attributes.pop(C.ATT_KEY, None))
        state.gifti.add_label(Label(key=key, label=text, attributes=attributes))
        state.label_attributes = {}


# ============================================================================
# Public API
# ============================================================================

def _iter_chunks(stream: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            return
        yield chunk


def _parse_stream(stream: BinaryIO, options: ReaderOptions) -> Gifti:
    handler = GiftiContentHandler(options)
    parser = xml.sax.make_parser()
    parser.setFeature(xml.sax.handler.feature_namespaces, False)
    parser.setFeature(xml.sax.handler.feature_external_ges, False)
    parser.setContentHandler(handler)

    try:
        for chunk in _iter_chunks(stream, options.chunk_size):
            parser.feed(chunk)
        parser.close()
    except xml.sax.SAXParseException as e:
        raise GiftiFormatError(f"Invalid GIFTI XML: {e}") from e
    except xml.sax.SAXException as e:
        raise GiftiFormatError(f"XML parser failure: {e}") from e
    except (LookupError, UnicodeError) as e:
        raise GiftiFormatError(f"Unsupported document encoding: {e}") from e
    except OSError as e:
        raise GiftiFormatError(f"Read failed: {e}") from e

    if handler.gifti is None:
        raise GiftiFormatError("No <GIFTI> root element found")

    return handler.gifti


def read_gifti(
    source: Source,
    scale=None,
    offset=None,
    options: Optional[ReaderOptions] = None,
) -> Gifti:
    """
    Read a GIFTI document.

    Args:
        source: Path or binary file object
        scale: Per-axis scale applied to points and normals (default: 1,1,1)
        offset: Per-axis offset subtracted from points (default: 0,0,0)
        options: Advanced configuration (scale/offset override its transform)

    Returns:
        The fully decoded Gifti container

    Raises:
        GiftiFormatError: On any failure; no partial container is returned

    Example:
        ```python
        gifti = read_gifti("lh.pial.gii", offset=(0.0, 0.0, 10.0))
        points = gifti.get_points()      # (n, 3) float32
        triangles = gifti.get_indices()  # (m, 3) int32
        ```
    """
    options = options or ReaderOptions()
    if scale is not None or offset is not None:
        transform = TransformParams(
            scale=scale if scale is not None else options.transform.scale,
            offset=offset if offset is not None else options.transform.offset,
        )
        options = options.model_copy(update={"transform": transform})

    if hasattr(source, "read"):
        _log("Reading from stream", options.debug)
        return _parse_stream(source, options)

    _log(f"Reading {os.fspath(source)}", options.debug)
    try:
        with open(source, "rb") as stream:
            return _parse_stream(stream, options)
    except OSError as e:
        raise GiftiFormatError(f"Cannot open {os.fspath(source)}: {e}") from e


def parse_gifti_bytes(data: bytes, options: Optional[ReaderOptions] = None, **kwargs) -> Gifti:
    """Read a GIFTI document held in memory (see ``read_gifti``)."""
    return read_gifti(io.BytesIO(data), options=options, **kwargs)
