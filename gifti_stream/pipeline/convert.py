"""
GIFTI re-encoding pipeline - read, optionally change encodings, write.

The output is written to a temporary sibling file and renamed into place
only after the writer finishes, so a failed conversion never leaves a
truncated document at the destination.
"""

import os
import tempfile
from datetime import datetime
from typing import Optional

from ..core import constants as C
from ..core.errors import GiftiFormatError
from ..core.types import Gifti
from ..models.options import ReaderOptions, WriterOptions
from ..streaming.parser import read_gifti
from ..utils.logging import close_log_file, log, set_log_file
from ..writer.writer import GiftiWriter


def _open_log(log_path: str, src: str, dst: str, encoding: Optional[str]):
    log_file = open(log_path, "w", encoding="utf-8")
    log_file.write(f"{'='*80}\n")
    log_file.write(f"GIFTI CONVERSION LOG\n")
    log_file.write(f"{'='*80}\n")
    log_file.write(f"Source: {src}\n")
    log_file.write(f"Destination: {dst}\n")
    log_file.write(f"Target encoding: {encoding or 'unchanged'}\n")
    log_file.write(f"Timestamp: {datetime.now().isoformat()}\n")
    log_file.write(f"{'='*80}\n\n")
    return log_file


def reencode(gifti: Gifti, encoding: str) -> int:
    """
    Rewrite the Encoding attribute of every array that holds decoded data.

    External-file arrays are left alone: their payload was never read.

    Returns:
        Number of arrays changed
    """
    if encoding not in C.ENCODINGS or encoding == C.ENCODING_EXTERNALFILEBINARY:
        raise GiftiFormatError(f"Cannot re-encode to {encoding!r}")

    changed = 0
    for data_array in gifti.data_arrays:
        if data_array.is_external_file_binary or data_array.encoding == encoding:
            continue
        data_array.attributes[C.ATT_ENCODING] = encoding
        changed += 1
    return changed


def convert_gifti(
    src: str,
    dst: str,
    encoding: Optional[str] = None,
    line_breaks: Optional[bool] = None,
    log_path: Optional[str] = None,
    debug: bool = False,
) -> Gifti:
    """
    Convert a GIFTI file, optionally changing the data encoding.

    Args:
        src: Input GIFTI path
        dst: Output GIFTI path
        encoding: New Encoding for every in-file array (None = keep)
        line_breaks: Wrap base64 output at 76 characters (None = config default)
        log_path: Optional per-conversion log file
        debug: Enable [READ]/[DATA]/[WRITE] logging

    Returns:
        The container that was written

    Raises:
        GiftiFormatError: On any read or write failure (``dst`` is untouched)
    """
    if log_path:
        set_log_file(_open_log(log_path, src, dst, encoding))

    try:
        log(f"[CONVERT] {src} -> {dst}")
        gifti = read_gifti(src, options=ReaderOptions(debug=debug))
        log(f"[CONVERT] ✓ Read {len(gifti.data_arrays)} data array(s)")

        if encoding:
            changed = reencode(gifti, encoding)
            log(f"[CONVERT] Re-encoded {changed} array(s) as {encoding}")

        writer_options = WriterOptions(debug=debug)
        if line_breaks is not None:
            writer_options = writer_options.model_copy(update={"line_breaks": line_breaks})

        directory = os.path.dirname(os.path.abspath(dst))
        fd, tmp_path = tempfile.mkstemp(suffix=".gii.tmp", dir=directory)
        os.close(fd)
        try:
            GiftiWriter(gifti, writer_options).write(tmp_path)
            os.replace(tmp_path, dst)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        log(f"[CONVERT] ✓ Wrote {dst}")
        return gifti
    except GiftiFormatError as e:
        log(f"[CONVERT] ✗ FAILED: {e}")
        raise
    except OSError as e:
        log(f"[CONVERT] ✗ FAILED: {e}")
        raise GiftiFormatError(f"Conversion failed: {e}") from e
    finally:
        close_log_file()
