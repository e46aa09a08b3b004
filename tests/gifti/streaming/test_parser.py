"""
Unit tests for the GIFTI streaming reader

Tests cover:
1. Document structure (attributes, metadata, label table, transforms)
2. Data decoding through the SAX handler, including tiny feed sizes
3. Identity matrix dropping and malformed matrices
4. Lenient attributes and error reporting
"""

import base64
import re
import tempfile
import pytest
from pathlib import Path

import numpy as np

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from gifti_stream.core import constants as C
from gifti_stream.core.errors import GiftiFormatError
from gifti_stream.models.options import ReaderOptions
from gifti_stream.streaming.parser import parse_gifti_bytes, read_gifti


IDENTITY = "1 0 0 0 0 1 0 0 0 0 1 0 0 0 0 1"
SHIFT = "1 0 0 10 0 1 0 20 0 0 1 30 0 0 0 1"


def b64(values, dtype):
    return base64.b64encode(np.asarray(values, dtype=dtype).tobytes()).decode("ascii")


def transform_block(matrix):
    return f"""
    <CoordinateSystemTransformMatrix>
      <DataSpace><![CDATA[NIFTI_XFORM_UNKNOWN]]></DataSpace>
      <TransformedSpace><![CDATA[NIFTI_XFORM_TALAIRACH]]></TransformedSpace>
      <MatrixData>{matrix}</MatrixData>
    </CoordinateSystemTransformMatrix>"""


def build_document(matrix=IDENTITY, triangle_type=C.TYPE_NIFTI_TYPE_INT32, extra=""):
    points = b64([1, 2, 3, 4, 5, 6], "<f4")
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE GIFTI SYSTEM "http://gifti.projects.nitrc.org/gifti.dtd">
<GIFTI Version="1.0" NumberOfDataArrays="2">
  <MetaData>
    <MD>
      <Name><![CDATA[UserName]]></Name>
      <Value><![CDATA[tester]]></Value>
    </MD>
    <MD>
      <Name><![CDATA[Date]]></Name>
      <Value><![CDATA[2020-01-01]]></Value>
    </MD>
  </MetaData>
  <LabelTable>
    <Label Key="0" Red="1" Green="1" Blue="1" Alpha="0"><![CDATA[unknown]]></Label>
    <Label Key="12" Red="0.5" Green="0" Blue="0" Alpha="1"><![CDATA[cortex]]></Label>
  </LabelTable>
  <DataArray Intent="NIFTI_INTENT_POINTSET" DataType="NIFTI_TYPE_FLOAT32" ArrayIndexingOrder="RowMajorOrder" Dimensionality="2" Dim0="2" Dim1="3" Encoding="Base64Binary" Endian="LittleEndian" ExternalFileName="" ExternalFileOffset="">
    <MetaData>
      <MD>
        <Name><![CDATA[AnatomicalStructurePrimary]]></Name>
        <Value><![CDATA[CortexLeft]]></Value>
      </MD>
    </MetaData>{transform_block(matrix)}
    <Data>
      {points}
    </Data>
  </DataArray>
  <DataArray Intent="NIFTI_INTENT_TRIANGLE" DataType="{triangle_type}" ArrayIndexingOrder="RowMajorOrder" Dimensionality="2" Dim0="2" Dim1="3" Encoding="ASCII" Endian="LittleEndian" ExternalFileName="" ExternalFileOffset="">
    <Data>0 1 2  3 4 5</Data>
  </DataArray>{extra}
</GIFTI>
"""


@pytest.fixture
def document_bytes():
    return build_document().encode("utf-8")


@pytest.fixture
def document_path(document_bytes):
    with tempfile.NamedTemporaryFile(mode="wb", suffix=".gii", delete=False) as f:
        f.write(document_bytes)
        path = f.name
    yield path
    Path(path).unlink(missing_ok=True)


# ============================================================================
# Document Structure
# ============================================================================

def test_document_attributes(document_bytes):
    gifti = parse_gifti_bytes(document_bytes)
    assert gifti.version == "1.0"
    assert gifti.num_data_arrays == 2
    assert len(gifti.data_arrays) == 2


def test_document_metadata(document_bytes):
    gifti = parse_gifti_bytes(document_bytes)
    assert gifti.metadata == {"UserName": "tester", "Date": "2020-01-01"}
    assert "  UserName = tester\n" in gifti.description


def test_array_metadata_not_merged_into_document(document_bytes):
    gifti = parse_gifti_bytes(document_bytes)
    assert gifti.data_arrays[0].metadata == {"AnatomicalStructurePrimary": "CortexLeft"}
    assert "AnatomicalStructurePrimary" not in gifti.metadata
    assert gifti.data_arrays[1].metadata == {}


def test_label_table(document_bytes):
    gifti = parse_gifti_bytes(document_bytes)
    assert list(gifti.label_table) == [0, 12]
    cortex = gifti.label_table[12]
    assert cortex.label == "cortex"
    assert cortex.attributes == {"Red": "0.5", "Green": "0", "Blue": "0", "Alpha": "1"}


def test_empty_label_table():
    document = re.sub(r"  <LabelTable>.*?</LabelTable>", "  <LabelTable/>", build_document(), flags=re.S)
    gifti = parse_gifti_bytes(document.encode("utf-8"))
    assert gifti.label_table is None


def test_decoded_data(document_bytes):
    gifti = parse_gifti_bytes(document_bytes)
    assert gifti.get_points().tolist() == [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]
    assert gifti.get_indices().tolist() == [[0, 1, 2], [3, 4, 5]]


def test_offset_applied_to_points_only(document_bytes):
    gifti = parse_gifti_bytes(document_bytes, offset=(1.0, 1.0, 1.0))
    assert gifti.get_points().tolist() == [[0.0, 1.0, 2.0], [3.0, 4.0, 5.0]]
    assert gifti.get_indices().tolist() == [[0, 1, 2], [3, 4, 5]]


@pytest.mark.parametrize("chunk_size", [1, 3, 17, 64])
def test_small_feed_sizes(document_bytes, chunk_size):
    gifti = parse_gifti_bytes(document_bytes, options=ReaderOptions(chunk_size=chunk_size))
    assert gifti.get_points().tolist() == [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]
    assert gifti.get_indices().tolist() == [[0, 1, 2], [3, 4, 5]]
    assert gifti.metadata["UserName"] == "tester"
    assert gifti.label_table[12].label == "cortex"


def test_read_from_path(document_path):
    gifti = read_gifti(document_path)
    assert gifti.get_points().shape == (2, 3)


def test_read_from_binary_stream(document_path):
    with open(document_path, "rb") as f:
        gifti = read_gifti(f, scale=(2.0, 2.0, 2.0))
    assert gifti.get_points().tolist() == [[2.0, 4.0, 6.0], [8.0, 10.0, 12.0]]


def test_mixed_case_tags():
    document = (
        '<gifti Version="1.0"><dataarray Intent="NIFTI_INTENT_TRIANGLE" '
        'DataType="NIFTI_TYPE_INT32" Dimensionality="2" Dim0="1" Dim1="3" '
        'Encoding="ASCII"><DATA>7 8 9</DATA></dataarray></gifti>'
    )
    gifti = parse_gifti_bytes(document.encode("utf-8"))
    assert gifti.get_indices().tolist() == [[7, 8, 9]]


# ============================================================================
# Transform Matrices
# ============================================================================

def test_identity_matrix_dropped(document_bytes):
    gifti = parse_gifti_bytes(document_bytes)
    assert gifti.data_arrays[0].num_transforms == 0


def test_non_identity_matrix_kept():
    gifti = parse_gifti_bytes(build_document(matrix=SHIFT).encode("utf-8"))
    transforms = gifti.data_arrays[0].transforms
    assert len(transforms) == 1
    assert transforms[0].data_space == "NIFTI_XFORM_UNKNOWN"
    assert transforms[0].transformed_space == "NIFTI_XFORM_TALAIRACH"
    assert transforms[0].matrix[:3, 3].tolist() == [10.0, 20.0, 30.0]


def test_short_matrix_rejected():
    document = build_document(matrix="1 0 0 0 0 1 0 0 0 0 1 0")
    with pytest.raises(GiftiFormatError, match="Could not read the coordinate transform matrix!"):
        parse_gifti_bytes(document.encode("utf-8"))


def misplaced_transform_child(tag, body):
    return (
        '<GIFTI Version="1.0"><DataArray Intent="NIFTI_INTENT_TRIANGLE" '
        'DataType="NIFTI_TYPE_INT32" Dimensionality="2" Dim0="1" Dim1="3" '
        f'Encoding="ASCII"><{tag}>{body}</{tag}><Data>1 2 3</Data></DataArray></GIFTI>'
    ).encode("utf-8")


@pytest.mark.parametrize("tag", [C.TAG_DATASPACE, C.TAG_TRANSFORMEDSPACE])
def test_space_tag_outside_transform_rejected(tag):
    with pytest.raises(GiftiFormatError, match=f"<{tag}> outside of <CoordinateSystemTransformMatrix>"):
        parse_gifti_bytes(misplaced_transform_child(tag, "NIFTI_XFORM_UNKNOWN"))


def test_matrix_outside_transform_rejected():
    with pytest.raises(GiftiFormatError, match="<MatrixData> outside of <CoordinateSystemTransformMatrix>"):
        parse_gifti_bytes(misplaced_transform_child(C.TAG_MATRIXDATA, SHIFT))


# ============================================================================
# Lenient Attributes
# ============================================================================

def test_malformed_dimension_reads_as_zero():
    extra = """
  <DataArray Intent="NIFTI_INTENT_SHAPE" DataType="NIFTI_TYPE_FLOAT32" Dimensionality="1" Dim0="many" Encoding="ASCII">
    <Data></Data>
  </DataArray>"""
    gifti = parse_gifti_bytes(build_document(extra=extra).encode("utf-8"))
    shape = gifti.data_arrays[2]
    assert shape.num_elements == 0
    assert shape.filled == 0


def test_external_file_array():
    extra = """
  <DataArray Intent="NIFTI_INTENT_SHAPE" DataType="NIFTI_TYPE_FLOAT32" Dimensionality="1" Dim0="4" Encoding="ExternalFileBinary" Endian="LittleEndian" ExternalFileName="shape.bin" ExternalFileOffset="64">
    <Data/>
  </DataArray>"""
    gifti = parse_gifti_bytes(build_document(extra=extra).encode("utf-8"))
    shape = gifti.data_arrays[2]
    assert shape.is_external_file_binary
    assert shape.external_filename == "shape.bin"
    assert shape.external_file_offset == 64
    assert shape.filled == 0


# ============================================================================
# Errors
# ============================================================================

def test_float_triangles_rejected():
    document = build_document(triangle_type=C.TYPE_NIFTI_TYPE_FLOAT32)
    with pytest.raises(GiftiFormatError, match="Indices cannot be float data!"):
        parse_gifti_bytes(document.encode("utf-8"))


def test_unknown_encoding_rejected():
    document = build_document().replace('Encoding="ASCII"', 'Encoding="Base32"')
    with pytest.raises(GiftiFormatError, match="Unsupported data encoding"):
        parse_gifti_bytes(document.encode("utf-8"))


def test_malformed_xml():
    document = build_document().replace("</DataArray>", "</DataArry>", 1)
    with pytest.raises(GiftiFormatError, match="Invalid GIFTI XML"):
        parse_gifti_bytes(document.encode("utf-8"))


def test_truncated_document():
    data = build_document().encode("utf-8")
    with pytest.raises(GiftiFormatError):
        parse_gifti_bytes(data[:len(data) // 2])


def test_not_a_gifti_document():
    with pytest.raises(GiftiFormatError, match="No <GIFTI> root element"):
        parse_gifti_bytes(b"<?xml version='1.0'?><Other/>")


def test_missing_file():
    with pytest.raises(GiftiFormatError, match="Cannot open"):
        read_gifti("/nonexistent/surface.gii")
