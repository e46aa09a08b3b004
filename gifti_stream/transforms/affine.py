"""
Affine maps applied to geometric GIFTI data.

Two kinds of transform meet in a GIFTI file:

1. Caller-supplied scale/offset (``TransformParams``), applied per axis to
   points and normals while reading, and inverted while writing:
   - points:  stored = scale * raw - offset      raw = scale * (stored + offset)
   - normals: stored = scale * raw               raw = scale * stored
   Normals are directions, so they never receive the offset.

2. <CoordinateSystemTransformMatrix> blocks: 16 whitespace-separated numbers
   forming a 4x4 matrix in row-major scan order. Identity matrices carry no
   information and are dropped on read.

Only components 0-2 of a group are touched; a fourth component (quadruple
shapes) passes through unchanged.
"""

import numpy as np

from ..core.errors import GiftiFormatError
from ..models.options import TransformParams


def _as_float_groups(groups: np.ndarray):
    groups = np.asarray(groups, dtype=np.float64)
    if groups.ndim != 2 or groups.shape[1] < 3:
        raise ValueError(f"Expected (n, >=3) groups, got shape {groups.shape}")
    return groups.copy()


def apply_point_transform(groups: np.ndarray, params: TransformParams) -> np.ndarray:
    """
    Forward map for points: ``scale[i] * raw[i] - offset[i]``.

    Example:
        >>> p = TransformParams(offset=(1, 1, 1))
        >>> apply_point_transform(np.array([[1.0, 2.0, 3.0]]), p).tolist()
        [[0.0, 1.0, 2.0]]
    """
    out = _as_float_groups(groups)
    out[:, :3] = np.asarray(params.scale) * out[:, :3] - np.asarray(params.offset)
    return out


def apply_normal_transform(groups: np.ndarray, params: TransformParams) -> np.ndarray:
    """Forward map for normals: ``scale[i] * raw[i]``."""
    out = _as_float_groups(groups)
    out[:, :3] = np.asarray(params.scale) * out[:, :3]
    return out


def invert_point_values(values: np.ndarray, start: int, width: int, params: TransformParams) -> np.ndarray:
    """
    Inverse map for a flat run of point values: ``scale[i] * (stored[i] + offset[i])``.

    Args:
        values: Flat run of stored values
        start: Absolute index of ``values[0]`` in the backing buffer
        width: Group width (component index cycles modulo ``width``)
        params: Scale/offset parameters
    """
    out = np.asarray(values, dtype=np.float64).copy()
    axis = (np.arange(out.size) + start) % width
    geometric = axis < 3
    scale = np.asarray(params.scale)[axis[geometric]]
    offset = np.asarray(params.offset)[axis[geometric]]
    out[geometric] = scale * (out[geometric] + offset)
    return out


def invert_normal_values(values: np.ndarray, start: int, width: int, params: TransformParams) -> np.ndarray:
    """Inverse map for a flat run of normal values: ``scale[i] * stored[i]``."""
    out = np.asarray(values, dtype=np.float64).copy()
    axis = (np.arange(out.size) + start) % width
    geometric = axis < 3
    out[geometric] = np.asarray(params.scale)[axis[geometric]] * out[geometric]
    return out


# ============================================================================
# Coordinate System Transform Matrices
# ============================================================================

def parse_matrix(text: str) -> np.ndarray:
    """
    Parse <MatrixData> text into a 4x4 matrix.

    The first 16 whitespace-separated tokens are read in row-major order;
    anything after them is ignored.

    Raises:
        GiftiFormatError: If fewer than 16 numeric tokens are present
    """
    tokens = text.split()
    values = []
    for token in tokens[:16]:
        try:
            values.append(float(token))
        except ValueError:
            break

    if len(values) < 16:
        raise GiftiFormatError("Could not read the coordinate transform matrix!")

    return np.array(values, dtype=np.float64).reshape(4, 4)


def is_identity(matrix: np.ndarray) -> bool:
    """True only for the exact 4x4 identity."""
    matrix = np.asarray(matrix)
    return matrix.shape == (4, 4) and bool(np.array_equal(matrix, np.eye(4)))


def format_matrix(matrix: np.ndarray) -> str:
    """
    Format a 4x4 matrix as 16 space-separated tokens, row-major.

    Example:
        >>> format_matrix(np.eye(4))[:16]
        '1.0 0.0 0.0 0.0 '
    """
    return " ".join(repr(float(v)) for v in np.asarray(matrix, dtype=np.float64).reshape(-1))
