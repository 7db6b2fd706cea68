"""
coords.py — Screen-space click → PDF user-space point
"""

from errors import DegenerateViewport
from models import CanvasRect, PdfPoint, ScreenPoint

DEFAULT_VERTICAL_OFFSET = 225.0


def screen_to_pdf(click: ScreenPoint, rect: CanvasRect,
                  page_width: float, page_height: float,
                  vertical_offset: float = DEFAULT_VERTICAL_OFFSET) -> PdfPoint:
    """Map a click on the canvas to a point on the PDF page.

    The canvas shows the whole page scaled to ``rect``; Y is flipped so the
    result has its origin at the bottom-left. ``vertical_offset`` (screen
    pixels) is added to the distance from the canvas bottom before scaling.
    Points outside ``rect`` are mapped linearly, not clamped.
    """
    if rect.width <= 0 or rect.height <= 0:
        raise DegenerateViewport(
            f"canvas is {rect.width}x{rect.height} pixels"
        )
    from_bottom = rect.height - (click.y - rect.top) + vertical_offset
    return PdfPoint(
        x=(click.x - rect.left) * page_width / rect.width,
        y=from_bottom * page_height / rect.height,
    )
