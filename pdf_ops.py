"""
pdf_ops.py — PDF mutations over byte buffers (text, image, merge, split)

Every function opens its own fitz.Document from the bytes it is given and
returns freshly serialized bytes. Input buffers are never modified.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

import fitz  # PyMuPDF

from errors import (
    DocumentLoadError, ImageDecodeError, InvalidPageIndex, UnsupportedImageKind,
)
from models import PageRange, PdfPoint

TEXT_FONT = "helv"  # PDF base-14 Helvetica
TEXT_SIZE = 12.0
TEXT_COLOR = (0, 0, 0)
IMAGE_WIDTH = 100.0
IMAGE_HEIGHT = 100.0

_JPEG_MAGIC = b"\xff\xd8\xff"
_PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
_IMAGE_KINDS = {"jpg": "jpeg", "jpeg": "jpeg", "png": "png"}
_MEDIA_TYPES = {"image/jpeg": "jpeg", "image/jpg": "jpeg", "image/pjpeg": "jpeg",
                "image/png": "png"}


def open_pdf(buffer: bytes) -> fitz.Document:
    """Open ``buffer`` as a PDF, raising DocumentLoadError on anything else."""
    if not buffer:
        raise DocumentLoadError("document is empty")
    try:
        doc = fitz.open(stream=buffer, filetype="pdf")
    except Exception as e:
        raise DocumentLoadError(f"cannot open PDF: {e}") from e
    if doc.needs_pass:
        doc.close()
        raise DocumentLoadError("document is password protected")
    if not doc.is_pdf or doc.page_count == 0:
        doc.close()
        raise DocumentLoadError("data is not a PDF document with pages")
    return doc


def _serialize(doc: fitz.Document) -> bytes:
    return doc.tobytes(garbage=3, deflate=True)


def _page(doc: fitz.Document, page_index: int) -> fitz.Page:
    if not 0 <= page_index < doc.page_count:
        raise InvalidPageIndex(
            f"page index {page_index} outside 0-{doc.page_count - 1}"
        )
    return doc[page_index]


def page_size(buffer: bytes, page_index: int) -> tuple[float, float]:
    """Intrinsic (width, height) of a page in PDF units.

    This is the unrotated mediabox, the same frame add_text and add_image
    place points in.
    """
    doc = open_pdf(buffer)
    try:
        rect = _page(doc, page_index).mediabox
        return rect.width, rect.height
    finally:
        doc.close()


def add_text(buffer: bytes, text: str, point: PdfPoint, page_index: int) -> bytes:
    """Draw ``text`` with its baseline starting at ``point`` (PDF space)."""
    doc = open_pdf(buffer)
    try:
        page = _page(doc, page_index)
        # PDF space (bottom-left origin) -> fitz space (top-left origin)
        where = fitz.Point(point.x, point.y) * page.transformation_matrix
        try:
            page.insert_text(
                where, text,
                fontname=TEXT_FONT, fontsize=TEXT_SIZE, color=TEXT_COLOR,
            )
            out = _serialize(doc)
        except Exception as e:
            raise DocumentLoadError(f"cannot write text: {e}") from e
    finally:
        doc.close()
    logging.info(f"Added text ({len(text)} chars) on page {page_index + 1}")
    return out


def normalize_image_kind(image_kind: str) -> str:
    kind = _IMAGE_KINDS.get((image_kind or "").strip().lower())
    if kind is None:
        raise UnsupportedImageKind(f"unsupported image kind '{image_kind}'")
    return kind


def image_kind_from_media_type(media_type: str) -> str:
    """Map a declared media type (e.g. ``image/png``) to an image kind."""
    kind = _MEDIA_TYPES.get((media_type or "").strip().lower())
    if kind is None:
        raise UnsupportedImageKind(f"unsupported image type '{media_type}'")
    return kind


def _check_image(image_bytes: bytes, kind: str):
    magic = _JPEG_MAGIC if kind == "jpeg" else _PNG_MAGIC
    if not image_bytes or not image_bytes.startswith(magic):
        raise ImageDecodeError(f"data is not a {kind.upper()} image")
    try:
        pix = fitz.Pixmap(image_bytes)
    except Exception as e:
        raise ImageDecodeError(f"cannot decode {kind.upper()} image: {e}") from e
    if pix.width == 0 or pix.height == 0:
        raise ImageDecodeError("image has no pixels")


def add_image(buffer: bytes, image_bytes: bytes, point: PdfPoint,
              page_index: int, image_kind: str) -> bytes:
    """Draw an image with its lower-left corner at ``point``.

    The image is stretched to IMAGE_WIDTH x IMAGE_HEIGHT regardless of its
    own aspect ratio.
    """
    kind = normalize_image_kind(image_kind)
    _check_image(image_bytes, kind)

    doc = open_pdf(buffer)
    try:
        page = _page(doc, page_index)
        area = fitz.Rect(point.x, point.y,
                         point.x + IMAGE_WIDTH, point.y + IMAGE_HEIGHT)
        area = area * page.transformation_matrix
        try:
            page.insert_image(area, stream=image_bytes, keep_proportion=False)
        except Exception as e:
            raise ImageDecodeError(f"cannot embed image: {e}") from e
        try:
            out = _serialize(doc)
        except Exception as e:
            raise DocumentLoadError(f"cannot save document: {e}") from e
    finally:
        doc.close()
    logging.info(f"Added {kind} image on page {page_index + 1}")
    return out


def merge(buffers: Iterable[bytes]) -> bytes:
    """Concatenate all pages of all ``buffers``, in order."""
    buffers = list(buffers)
    if not buffers:
        raise ValueError("nothing to merge")

    merged = fitz.open()
    try:
        for i, data in enumerate(buffers):
            try:
                src = open_pdf(data)
            except DocumentLoadError as e:
                raise DocumentLoadError(f"document {i + 1} of {len(buffers)}: {e}") from e
            try:
                merged.insert_pdf(src)
            except Exception as e:
                raise DocumentLoadError(f"document {i + 1} of {len(buffers)}: {e}") from e
            finally:
                src.close()
        try:
            out = _serialize(merged)
        except Exception as e:
            raise DocumentLoadError(f"cannot save merged document: {e}") from e
        logging.info(f"Merged {len(buffers)} documents into {merged.page_count} pages")
    finally:
        merged.close()
    return out


def split(buffer: bytes, ranges: Sequence[PageRange]) -> list[bytes]:
    """Produce one document per range, each holding pages start..end inclusive."""
    src = open_pdf(buffer)
    try:
        for rng in ranges:
            rng.validate(src.page_count)
        results: list[bytes] = []
        for rng in ranges:
            part = fitz.open()
            try:
                part.insert_pdf(src, from_page=rng.start, to_page=rng.end)
                results.append(_serialize(part))
            finally:
                part.close()
    finally:
        src.close()
    logging.info(f"Split document into {len(results)} parts")
    return results
