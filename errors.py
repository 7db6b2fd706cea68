"""
errors.py — Exception types raised by the PDF services and the coordinate mapper
"""


class PdfEditorError(Exception):
    """Base class for every error the editor reports to the user."""


class DocumentLoadError(PdfEditorError):
    """Bytes could not be opened as a PDF document."""


class InvalidPageIndex(PdfEditorError, IndexError):
    pass


class InvalidPageRange(PdfEditorError, ValueError):
    pass


class ImageDecodeError(PdfEditorError, ValueError):
    pass


class UnsupportedImageKind(PdfEditorError, ValueError):
    pass


class DegenerateViewport(PdfEditorError, ValueError):
    """Canvas rectangle has zero (or negative) width or height."""
