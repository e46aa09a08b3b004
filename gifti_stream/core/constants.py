"""
Constants for GIFTI reading and writing.

This module defines the element and attribute names of the GIFTI XML
container, the enumerated attribute values the codec understands, and the
fixed sizes used by the streaming reader and writer.
"""

# ============================================================================
# XML Element Tags
# ============================================================================

TAG_GIFTI = "GIFTI"
TAG_METADATA = "MetaData"
TAG_MD = "MD"
TAG_NAME = "Name"
TAG_VALUE = "Value"
TAG_LABELTABLE = "LabelTable"
TAG_LABEL = "Label"
TAG_DATAARRAY = "DataArray"
TAG_COORDINATESYSTEMTRANSFORMMATRIX = "CoordinateSystemTransformMatrix"
TAG_DATASPACE = "DataSpace"
TAG_TRANSFORMEDSPACE = "TransformedSpace"
TAG_MATRIXDATA = "MatrixData"
TAG_DATA = "Data"

# ============================================================================
# Document Attributes
# ============================================================================

ATT_VERSION = "Version"
ATT_NUMBEROFDATAARRAYS = "NumberOfDataArrays"

DEFAULT_VERSION = "1.0"
DOC_TYPE = '<!DOCTYPE GIFTI SYSTEM "http://gifti.projects.nitrc.org/gifti.dtd">'

# ============================================================================
# DataArray Attributes
# ============================================================================

ATT_ARRAYINDEXINGORDER = "ArrayIndexingOrder"
ATT_DATATYPE = "DataType"
ATT_DIMENSIONALITY = "Dimensionality"
ATT_DIMN = "Dim"  # Dim0, Dim1, ...
ATT_ENCODING = "Encoding"
ATT_ENDIAN = "Endian"
ATT_EXTERNALFILENAME = "ExternalFileName"
ATT_EXTERNALFILEOFFSET = "ExternalFileOffset"
ATT_INTENT = "Intent"

# Indexing order
DIM_ORDER_ROWMAJORORDER = "RowMajorOrder"
DIM_ORDER_COLUMNMAJORORDER = "ColumnMajorOrder"

# Element types
TYPE_NIFTI_TYPE_UINT8 = "NIFTI_TYPE_UINT8"
TYPE_NIFTI_TYPE_INT32 = "NIFTI_TYPE_INT32"
TYPE_NIFTI_TYPE_FLOAT32 = "NIFTI_TYPE_FLOAT32"

# Encodings
ENCODING_ASCII = "ASCII"
ENCODING_BASE64BINARY = "Base64Binary"
ENCODING_GZIPBASE64BINARY = "GZipBase64Binary"
ENCODING_EXTERNALFILEBINARY = "ExternalFileBinary"

ENCODINGS = (
    ENCODING_ASCII,
    ENCODING_BASE64BINARY,
    ENCODING_GZIPBASE64BINARY,
    ENCODING_EXTERNALFILEBINARY,
)

# Byte order
DATA_ORDER_BIGENDIAN = "BigEndian"
DATA_ORDER_LITTLEENDIAN = "LittleEndian"

# Intents
NIFTI_INTENT_GENMATRIX = "NIFTI_INTENT_GENMATRIX"
NIFTI_INTENT_LABEL = "NIFTI_INTENT_LABEL"
NIFTI_INTENT_NODE_INDEX = "NIFTI_INTENT_NODE_INDEX"
NIFTI_INTENT_POINTSET = "NIFTI_INTENT_POINTSET"
NIFTI_INTENT_RGB_VECTOR = "NIFTI_INTENT_RGB_VECTOR"
NIFTI_INTENT_RGBA_VECTOR = "NIFTI_INTENT_RGBA_VECTOR"
NIFTI_INTENT_SHAPE = "NIFTI_INTENT_SHAPE"
NIFTI_INTENT_TIME_SERIES = "NIFTI_INTENT_TIME_SERIES"
NIFTI_INTENT_TRIANGLE = "NIFTI_INTENT_TRIANGLE"
NIFTI_INTENT_NONE = "NIFTI_INTENT_NONE"
NIFTI_INTENT_VECTOR = "NIFTI_INTENT_VECTOR"

# ============================================================================
# Label Table
# ============================================================================

ATT_KEY = "Key"
ATT_RED = "Red"
ATT_GREEN = "Green"
ATT_BLUE = "Blue"
ATT_ALPHA = "Alpha"

# Attribute order used when writing <Label> elements
LABEL_ATTRIBUTE_ORDER = [ATT_KEY, ATT_RED, ATT_GREEN, ATT_BLUE, ATT_ALPHA]

# ============================================================================
# Streaming Sizes
# ============================================================================

# Working buffer size (bytes) shared by reader and writer
BUFFER_SIZE = 8192

# Vector grouping width when the declared shape does not give one
DEFAULT_GROUP_WIDTH = 3

# Base64 groups: 4 characters decode to 3 bytes
BASE64_CHAR_GROUP = 4
BASE64_BYTE_GROUP = 3

# Wrapped base64 line width (characters, CRLF terminated)
LINE_WIDTH = 76
LINE_TERMINATOR = "\r\n"

# Output indentation
INDENT = "   "
