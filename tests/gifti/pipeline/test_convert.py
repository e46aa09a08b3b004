"""
Unit tests for the GIFTI conversion pipeline

Tests cover:
1. Re-encoding every in-file array
2. Conversion log file lifecycle
3. Destination untouched on failure
"""

import tempfile
import pytest
from pathlib import Path

import numpy as np

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from gifti_stream.core import constants as C
from gifti_stream.core.errors import GiftiFormatError
from gifti_stream.core.types import DataArray, Gifti
from gifti_stream.pipeline.convert import convert_gifti, reencode
from gifti_stream.streaming.parser import read_gifti
from gifti_stream.utils.logging import get_log_file
from gifti_stream.writer.writer import write_gifti


POINTS = [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0], [7.0, 8.0, 9.0]]


def build_surface():
    points = DataArray.create(POINTS, C.NIFTI_INTENT_POINTSET)
    triangles = DataArray.create([[0, 1, 2]], C.NIFTI_INTENT_TRIANGLE)
    external = DataArray.create([0.0], C.NIFTI_INTENT_SHAPE, encoding=C.ENCODING_EXTERNALFILEBINARY)
    external.attributes[C.ATT_EXTERNALFILENAME] = "shape.bin"
    return Gifti.create([points, triangles, external], metadata={"UserName": "tester"})


@pytest.fixture
def workdir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def source(workdir):
    path = workdir / "surface.gii"
    write_gifti(build_surface(), str(path))
    return path


# ============================================================================
# Re-encoding
# ============================================================================

def test_reencode_skips_external_arrays():
    gifti = build_surface()
    assert reencode(gifti, C.ENCODING_ASCII) == 2
    assert [da.encoding for da in gifti.data_arrays] == [
        C.ENCODING_ASCII, C.ENCODING_ASCII, C.ENCODING_EXTERNALFILEBINARY,
    ]


def test_reencode_counts_only_changes():
    gifti = build_surface()
    assert reencode(gifti, C.ENCODING_GZIPBASE64BINARY) == 0


@pytest.mark.parametrize("encoding", [C.ENCODING_EXTERNALFILEBINARY, "Base32"])
def test_reencode_rejects_target(encoding):
    with pytest.raises(GiftiFormatError, match="Cannot re-encode"):
        reencode(build_surface(), encoding)


# ============================================================================
# Conversion
# ============================================================================

def test_convert_to_ascii(source, workdir):
    dst = workdir / "surface.ascii.gii"
    convert_gifti(str(source), str(dst), encoding=C.ENCODING_ASCII)

    text = dst.read_text(encoding="utf-8")
    assert 'Encoding="ASCII"' in text
    assert "1.0 2.0 3.0\n" in text

    converted = read_gifti(str(dst))
    assert converted.get_points().tolist() == POINTS
    assert converted.get_indices().tolist() == [[0, 1, 2]]
    assert converted.metadata == {"UserName": "tester"}


def test_convert_keeps_encoding_by_default(source, workdir):
    dst = workdir / "copy.gii"
    gifti = convert_gifti(str(source), str(dst))
    assert gifti.data_arrays[0].is_gzip_base64_binary
    assert np.array_equal(read_gifti(str(dst)).get_points(), np.asarray(POINTS, dtype=np.float32))


def test_convert_with_line_breaks(source, workdir):
    dst = workdir / "wrapped.gii"
    convert_gifti(str(source), str(dst), encoding=C.ENCODING_BASE64BINARY, line_breaks=True)
    assert b"\r\n" in dst.read_bytes()
    assert read_gifti(str(dst)).get_points().tolist() == POINTS


def test_convert_writes_log(source, workdir):
    dst = workdir / "out.gii"
    log_path = workdir / "convert.log"
    convert_gifti(str(source), str(dst), encoding=C.ENCODING_ASCII, log_path=str(log_path))

    log_text = log_path.read_text(encoding="utf-8")
    assert "GIFTI CONVERSION LOG" in log_text
    assert "Target encoding: ASCII" in log_text
    assert "[CONVERT] Re-encoded 2 array(s) as ASCII" in log_text
    assert get_log_file() is None


def test_failed_conversion_leaves_destination(workdir):
    bad = workdir / "bad.gii"
    bad.write_text("<GIFTI><DataArray", encoding="utf-8")
    dst = workdir / "out.gii"
    dst.write_text("previous", encoding="utf-8")
    log_path = workdir / "convert.log"

    with pytest.raises(GiftiFormatError):
        convert_gifti(str(bad), str(dst), log_path=str(log_path))

    assert dst.read_text(encoding="utf-8") == "previous"
    assert "FAILED" in log_path.read_text(encoding="utf-8")
    assert list(workdir.glob("*.tmp")) == []
    assert get_log_file() is None


def test_missing_source(workdir):
    with pytest.raises(GiftiFormatError):
        convert_gifti(str(workdir / "missing.gii"), str(workdir / "out.gii"))
    assert not (workdir / "out.gii").exists()
