"""
Error type for GIFTI reading and writing.

Every failure surfaced by the reader and writer (XML syntax, unsupported
source encoding, base64/inflate failure, malformed transform matrix,
float-typed index arrays, I/O errors) is reported as ``GiftiFormatError``.
"""


class GiftiFormatError(ValueError):
    """Raised when a GIFTI document cannot be read or written."""
