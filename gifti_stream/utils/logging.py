"""
Console and per-conversion log file output.

Every reader and writer component logs through ``log`` with a bracketed
tag naming the stage: ``[READ]`` for document structure, ``[DATA]`` for
<Data> payload decoding, ``[WRITE]`` for emission and ``[CONVERT]`` for the
pipeline. Lines always go to stdout. While ``convert_gifti`` runs, they are
also appended to that conversion's log file, which is installed per thread
so concurrent conversions keep separate logs.

Usage:
    set_log_file(open("lh.pial.convert.log", "w"))
    try:
        log("[CONVERT] lh.pial.gii -> lh.pial.ascii.gii")
        ...
    finally:
        close_log_file()
"""

import threading
from typing import Optional, TextIO


_thread_local = threading.local()


def log(message: str) -> None:
    """
    Print one tagged line and append it to the current log file, if any.

    Example:
        >>> log("[DATA] NIFTI_INTENT_POINTSET: 30 values decoded (30 stored)")
        [DATA] NIFTI_INTENT_POINTSET: 30 values decoded (30 stored)
    """
    print(message)
    log_file = getattr(_thread_local, 'log_file', None)
    if log_file:
        try:
            log_file.write(message + "\n")
            log_file.flush()
        except (OSError, ValueError):
            # Closed or unwritable log file; stdout already has the line
            pass


def set_log_file(log_file: Optional[TextIO]) -> None:
    """Install ``log_file`` for this thread (None stops file output)."""
    _thread_local.log_file = log_file


def close_log_file() -> None:
    """
    Detach and close this thread's log file.

    Idempotent, so ``convert_gifti`` calls it unconditionally in ``finally``.
    """
    log_file = getattr(_thread_local, 'log_file', None)
    if log_file:
        set_log_file(None)
        try:
            log_file.close()
        except OSError:
            pass


def get_log_file() -> Optional[TextIO]:
    return getattr(_thread_local, 'log_file', None)
