"""
ASCII payload parsing for GIFTI Data elements.

Character data arrives in arbitrary chunks, so a number may be split across
two events. The reader keeps a pending-text accumulator, consumes everything
up to the last whitespace character as complete tokens, and retains the
suffix for the next event.

Unlike attribute parsing, payload parsing is strict: a token that is not a
number raises ``GiftiFormatError``.
"""

from typing import Tuple

import numpy as np

from ..core.errors import GiftiFormatError

# Token separators recognised when splitting pending text
SEPARATORS = (" ", "\t", "\n")


def split_at_last_whitespace(pending: str) -> Tuple[str, str]:
    """
    Split pending text at the last separator.

    Returns:
        Tuple of (complete, remainder). ``complete`` holds only whole tokens;
        ``remainder`` starts at the last separator and may hold a partial token.

    Examples:
        >>> split_at_last_whitespace("1.0 2.0 3.")
        ('1.0 2.0', ' 3.')
        >>> split_at_last_whitespace("12")
        ('', '12')
    """
    index = max(pending.rfind(sep) for sep in SEPARATORS)
    if index < 0:
        return "", pending
    return pending[:index], pending[index:]


def parse_tokens(text: str, integer: bool = False) -> np.ndarray:
    """
    Parse whitespace-delimited numeric tokens.

    Args:
        text: Text containing only complete tokens
        integer: Parse as int32 (indices) instead of float64

    Returns:
        1-D numpy array (empty if ``text`` has no tokens)

    Examples:
        >>> parse_tokens("0 1 2  3 4 5", integer=True).tolist()
        [0, 1, 2, 3, 4, 5]
        >>> parse_tokens(" 1.5\\t-2e3 ").tolist()
        [1.5, -2000.0]
    """
    parts = text.split()
    if not parts:
        return np.empty(0, dtype=np.int32 if integer else np.float64)

    try:
        if integer:
            return np.array([int(p) for p in parts], dtype=np.int32)
        return np.array([float(p) for p in parts], dtype=np.float64)
    except (ValueError, OverflowError) as e:
        raise GiftiFormatError(f"Invalid numeric token in ASCII data: {e}") from e
