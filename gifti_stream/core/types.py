"""
Data model for GIFTI documents.

This module provides the entities shared by the streaming reader and writer:

- ``Gifti``: the container (document attributes, metadata, data arrays, labels)
- ``DataArray``: one typed array with its attribute map and backing buffer
- ``CoordinateTransform``: a 4x4 matrix between two named spaces
- ``Label``: one entry of the optional label table

Attribute maps are kept exactly as read (string -> string). Typed views such
as ``DataArray.num_elements`` are derived on demand with a lenient integer
policy: missing or malformed values count as 0.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

import numpy as np

from . import constants as C
from .errors import GiftiFormatError


def parse_int_attribute(value: Optional[str]) -> int:
    """
    Parse an integer attribute leniently.

    Examples:
        >>> parse_int_attribute("12")
        12
        >>> parse_int_attribute("twelve")
        0
        >>> parse_int_attribute(None)
        0
    """
    try:
        return int(value.strip())
    except (AttributeError, TypeError, ValueError):
        return 0


class MetadataSink(Protocol):
    """Anything that accepts committed <MetaData> entries."""

    def add_metadata(self, entries: Dict[str, str]) -> None:
        ...


@dataclass(frozen=True)
class CoordinateTransform:
    """
    A coordinate system transform attached to a data array.

    Attributes:
        data_space: Space the array values live in (<DataSpace>)
        transformed_space: Space the matrix maps into (<TransformedSpace>)
        matrix: 4x4 float64 matrix, row-major
    """
    data_space: str
    transformed_space: str
    matrix: np.ndarray

    def __post_init__(self):
        matrix = np.array(self.matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise GiftiFormatError(f"Transform matrix must be 4x4, got {matrix.shape}")
        matrix.setflags(write=False)
        object.__setattr__(self, "matrix", matrix)


@dataclass
class Label:
    """One <Label> entry: integer key, display text, remaining attributes (colour)."""
    key: int
    label: str
    attributes: Dict[str, str] = field(default_factory=dict)


class DataArray:
    """
    One <DataArray>: attribute map, metadata, transforms and backing buffer.

    The backing buffer is allocated eagerly for the three supported element
    types. Geometric arrays (points, normals) are stored as float32 after the
    reader applies scale/offset; triangle indices as int32; any other intent
    in its declared element type.
    """

    def __init__(self, attributes: Optional[Dict[str, str]] = None):
        self.attributes: Dict[str, str] = dict(attributes or {})
        self.metadata: Dict[str, str] = {}
        self.transforms: List[CoordinateTransform] = []
        self._filled = 0
        self.buffer: Optional[np.ndarray] = self._allocate()

    @classmethod
    def create(
        cls,
        values,
        intent: str,
        data_type: Optional[str] = None,
        encoding: str = C.ENCODING_GZIPBASE64BINARY,
        endian: str = C.DATA_ORDER_LITTLEENDIAN,
        metadata: Optional[Dict[str, str]] = None,
    ) -> "DataArray":
        """
        Build an array for writing from in-memory values.

        Args:
            values: 1-D or 2-D array-like (rows are elements)
            intent: NIFTI_INTENT_* value
            data_type: NIFTI_TYPE_* value (default: inferred from intent/values)
            encoding: Encoding attribute for the written Data element
            endian: Endian attribute for binary encodings
            metadata: Optional array metadata

        Example:
            >>> da = DataArray.create([[0, 1, 2]], C.NIFTI_INTENT_TRIANGLE)
            >>> da.attributes["DataType"], da.num_values
            ('NIFTI_TYPE_INT32', 3)
        """
        data = np.asarray(values)
        if data.ndim not in (1, 2):
            raise GiftiFormatError(f"Only 1-D and 2-D arrays are supported, got {data.ndim}-D")

        if data_type is None:
            if intent == C.NIFTI_INTENT_TRIANGLE or np.issubdtype(data.dtype, np.integer):
                data_type = C.TYPE_NIFTI_TYPE_INT32
            else:
                data_type = C.TYPE_NIFTI_TYPE_FLOAT32

        attributes = {
            C.ATT_INTENT: intent,
            C.ATT_DATATYPE: data_type,
            C.ATT_ARRAYINDEXINGORDER: C.DIM_ORDER_ROWMAJORORDER,
            C.ATT_DIMENSIONALITY: str(data.ndim),
            C.ATT_DIMN + "0": str(data.shape[0]),
        }
        if data.ndim == 2:
            attributes[C.ATT_DIMN + "1"] = str(data.shape[1])
        attributes[C.ATT_ENCODING] = encoding
        attributes[C.ATT_ENDIAN] = endian
        attributes[C.ATT_EXTERNALFILENAME] = ""
        attributes[C.ATT_EXTERNALFILEOFFSET] = ""

        array = cls(attributes)
        if metadata:
            array.add_metadata(metadata)
        if array.buffer is not None:
            array.append_values(data.reshape(-1))
        return array

    # ------------------------------------------------------------------
    # Buffer management
    # ------------------------------------------------------------------

    def _allocate(self) -> Optional[np.ndarray]:
        if not (self.is_float32 or self.is_int32 or self.is_unsigned_int8):
            return None
        if self.is_points or self.is_normals:
            dtype = np.float32
            size = self.num_elements * self.group_width
        elif self.is_triangles:
            dtype = np.int32
            size = self.num_elements * self.group_width
        else:
            dtype = {
                C.TYPE_NIFTI_TYPE_FLOAT32: np.float32,
                C.TYPE_NIFTI_TYPE_INT32: np.int32,
                C.TYPE_NIFTI_TYPE_UINT8: np.uint8,
            }[self.data_type]
            size = self.num_elements * max(self.components, 1)
        return np.zeros(size, dtype=dtype)

    @property
    def filled(self) -> int:
        """Number of values written into the backing buffer."""
        return self._filled

    def append_values(self, values: np.ndarray) -> None:
        """
        Append values to the backing buffer.

        Raises:
            GiftiFormatError: If no buffer exists or the declared extents overflow
        """
        if self.buffer is None:
            raise GiftiFormatError(f"Unsupported data type: {self.data_type!r}")
        values = np.asarray(values).reshape(-1)
        end = self._filled + values.size
        if end > self.buffer.size:
            raise GiftiFormatError(
                f"Data exceeds declared size ({end} > {self.buffer.size} values)"
            )
        self.buffer[self._filled:end] = values
        self._filled = end

    def reset_buffer(self) -> None:
        self._filled = 0
        if self.buffer is not None:
            self.buffer[:] = 0

    # ------------------------------------------------------------------
    # Metadata / transforms
    # ------------------------------------------------------------------

    def add_metadata(self, entries: Dict[str, str]) -> None:
        self.metadata.update(entries)

    def add_transform(self, transform: CoordinateTransform) -> None:
        self.transforms.append(transform)

    @property
    def num_transforms(self) -> int:
        return len(self.transforms)

    # ------------------------------------------------------------------
    # Attribute views
    # ------------------------------------------------------------------

    @property
    def data_type(self) -> Optional[str]:
        return self.attributes.get(C.ATT_DATATYPE)

    @property
    def intent(self) -> Optional[str]:
        return self.attributes.get(C.ATT_INTENT)

    @property
    def encoding(self) -> Optional[str]:
        return self.attributes.get(C.ATT_ENCODING)

    @property
    def is_little_endian(self) -> bool:
        return self.attributes.get(C.ATT_ENDIAN) == C.DATA_ORDER_LITTLEENDIAN

    @property
    def is_row_major_order(self) -> bool:
        return self.attributes.get(C.ATT_ARRAYINDEXINGORDER) != C.DIM_ORDER_COLUMNMAJORORDER

    @property
    def is_points(self) -> bool:
        return self.intent == C.NIFTI_INTENT_POINTSET

    @property
    def is_triangles(self) -> bool:
        return self.intent == C.NIFTI_INTENT_TRIANGLE

    @property
    def is_normals(self) -> bool:
        return self.intent == C.NIFTI_INTENT_VECTOR

    @property
    def is_color(self) -> bool:
        return self.intent in (C.NIFTI_INTENT_RGB_VECTOR, C.NIFTI_INTENT_RGBA_VECTOR)

    @property
    def is_float32(self) -> bool:
        return self.data_type == C.TYPE_NIFTI_TYPE_FLOAT32

    @property
    def is_int32(self) -> bool:
        return self.data_type == C.TYPE_NIFTI_TYPE_INT32

    @property
    def is_unsigned_int8(self) -> bool:
        return self.data_type == C.TYPE_NIFTI_TYPE_UINT8

    @property
    def dimensions(self) -> int:
        return parse_int_attribute(self.attributes.get(C.ATT_DIMENSIONALITY))

    def get_num_elements(self, dim: int = 0) -> int:
        return parse_int_attribute(self.attributes.get(f"{C.ATT_DIMN}{dim}"))

    @property
    def num_elements(self) -> int:
        return self.get_num_elements(0)

    @property
    def is_scalar(self) -> bool:
        return self.dimensions == 1

    @property
    def is_triple(self) -> bool:
        return self.dimensions == 2 and self.get_num_elements(1) == 3

    @property
    def is_quadruple(self) -> bool:
        return self.dimensions == 2 and self.get_num_elements(1) == 4

    @property
    def components(self) -> int:
        """Declared values per element (Dim1 for 2-D arrays, else 1)."""
        if self.dimensions == 2:
            return self.get_num_elements(1)
        return 1

    @property
    def group_width(self) -> int:
        """Components per output vector: 4 for quadruple shapes, otherwise 3."""
        if self.is_quadruple:
            return 4
        return C.DEFAULT_GROUP_WIDTH

    @property
    def num_values(self) -> Optional[int]:
        """Dim0 x (1 | 3 | 4), or None for any other shape."""
        if self.is_scalar:
            return self.num_elements
        if self.is_triple:
            return self.num_elements * 3
        if self.is_quadruple:
            return self.num_elements * 4
        return None

    @property
    def is_ascii(self) -> bool:
        return self.encoding == C.ENCODING_ASCII

    @property
    def is_base64_binary(self) -> bool:
        return self.encoding == C.ENCODING_BASE64BINARY

    @property
    def is_gzip_base64_binary(self) -> bool:
        return self.encoding == C.ENCODING_GZIPBASE64BINARY

    @property
    def is_base64_encoded(self) -> bool:
        return self.is_base64_binary or self.is_gzip_base64_binary

    @property
    def is_external_file_binary(self) -> bool:
        return self.encoding == C.ENCODING_EXTERNALFILEBINARY

    @property
    def external_filename(self) -> Optional[str]:
        return self.attributes.get(C.ATT_EXTERNALFILENAME)

    @property
    def external_file_offset(self) -> int:
        return parse_int_attribute(self.attributes.get(C.ATT_EXTERNALFILEOFFSET))

    # ------------------------------------------------------------------
    # Typed views
    # ------------------------------------------------------------------

    def _as_groups(self) -> Optional[np.ndarray]:
        if self.buffer is None:
            return None
        width = self.group_width
        usable = (self.buffer.size // width) * width
        return self.buffer[:usable].reshape(-1, width)

    def as_points(self) -> Optional[np.ndarray]:
        """Backing buffer as (n, 3|4) float32 rows."""
        return self._as_groups()

    def as_normals(self) -> Optional[np.ndarray]:
        return self._as_groups()

    def as_indices(self) -> Optional[np.ndarray]:
        """Backing buffer as (n, 3) int32 triangles."""
        return self._as_groups()

    def __repr__(self) -> str:
        return (
            f"DataArray(intent={self.intent!r}, data_type={self.data_type!r}, "
            f"encoding={self.encoding!r}, num_elements={self.num_elements})"
        )


class Gifti:
    """
    The document container.

    ``NumberOfDataArrays`` in ``attributes`` is advisory; ``data_arrays`` is
    authoritative.
    """

    def __init__(self, attributes: Optional[Dict[str, str]] = None):
        self.attributes: Dict[str, str] = dict(attributes or {})
        self.metadata: Dict[str, str] = {}
        self.data_arrays: List[DataArray] = []
        self.label_table: Optional["OrderedDict[int, Label]"] = None

    @classmethod
    def create(
        cls,
        data_arrays: Optional[List[DataArray]] = None,
        metadata: Optional[Dict[str, str]] = None,
        version: str = C.DEFAULT_VERSION,
    ) -> "Gifti":
        gifti = cls({C.ATT_VERSION: version, C.ATT_NUMBEROFDATAARRAYS: "0"})
        for data_array in data_arrays or []:
            gifti.add_data_array(data_array)
        if metadata:
            gifti.add_metadata(metadata)
        return gifti

    def add_metadata(self, entries: Dict[str, str]) -> None:
        self.metadata.update(entries)

    def add_data_array(self, data_array: DataArray) -> None:
        self.data_arrays.append(data_array)
        if C.ATT_NUMBEROFDATAARRAYS in self.attributes:
            self.attributes[C.ATT_NUMBEROFDATAARRAYS] = str(len(self.data_arrays))

    def add_label(self, label: Label) -> None:
        if self.label_table is None:
            self.label_table = OrderedDict()
        self.label_table[label.key] = label

    @property
    def version(self) -> Optional[str]:
        return self.attributes.get(C.ATT_VERSION)

    @property
    def num_data_arrays(self) -> int:
        """Declared array count (lenient, advisory)."""
        return parse_int_attribute(self.attributes.get(C.ATT_NUMBEROFDATAARRAYS))

    def _first(self, predicate) -> Optional[DataArray]:
        for data_array in self.data_arrays:
            if predicate(data_array):
                return data_array
        return None

    def get_points(self) -> Optional[np.ndarray]:
        data_array = self._first(lambda da: da.is_points)
        return data_array.as_points() if data_array else None

    def get_normals(self) -> Optional[np.ndarray]:
        data_array = self._first(lambda da: da.is_normals)
        return data_array.as_normals() if data_array else None

    def get_indices(self) -> Optional[np.ndarray]:
        data_array = self._first(lambda da: da.is_triangles)
        return data_array.as_indices() if data_array else None

    @property
    def description(self) -> str:
        return "".join(f"  {name} = {value}\n" for name, value in self.metadata.items())
