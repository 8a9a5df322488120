"""Resolve the text under a screen-space selection rectangle."""

from __future__ import annotations

from typing import Sequence

from pdfstruct._config import ITEM_JOINER, SAME_LINE_TOLERANCE
from pdfstruct._geometry import merge_boxes, screen_to_pdf
from pdfstruct._text import normalize_whitespace
from pdfstruct._types import BoundingBox, RegionText, TextItem


def _line_bands(items: Sequence[TextItem]) -> list[int]:
    """Assign each item the index of its line band.

    Bands are anchored at their topmost item: an item joins the current band
    when it sits no more than ``SAME_LINE_TOLERANCE`` below that anchor.
    """
    bands = [0] * len(items)
    anchor: float | None = None
    band = -1
    # PDF y grows upwards: higher lines come first.
    for index in sorted(range(len(items)), key=lambda i: -items[i].y):
        y = items[index].y
        if anchor is None or anchor - y > SAME_LINE_TOLERANCE:
            anchor = y
            band += 1
        bands[index] = band
    return bands


def sort_reading_order(items: Sequence[TextItem]) -> list[TextItem]:
    """Sort items top-to-bottom, then left-to-right within a line band."""
    bands = _line_bands(items)
    order = sorted(
        range(len(items)),
        key=lambda i: (bands[i], items[i].x, -items[i].y),
    )
    return [items[i] for i in order]


def find_text_in_region(
    items: Sequence[TextItem],
    region: BoundingBox,
    page_height: float,
    scale: float = 1.0,
) -> RegionText:
    """Collect the items intersecting ``region`` and merge their text.

    Parameters
    ----------
    items
        The page's text items (PDF-space geometry).
    region
        Selection rectangle in screen pixels, top-left origin.
    page_height
        Viewport height in screen pixels at ``scale``.
    scale
        Render scale of the screen the region was drawn on.

    Returns
    -------
    RegionText
        Joined text plus the enclosing PDF-space box of the matched items.
        With no matches the text is empty and the box is the query region
        converted to PDF space.
    """
    pdf_region = screen_to_pdf(region, page_height, scale)
    matches = [item for item in items if item.bbox.intersects(pdf_region)]

    if not matches:
        return RegionText(text="", bounding_box=pdf_region)

    ordered = sort_reading_order(matches)
    text = normalize_whitespace(ITEM_JOINER.join(item.text for item in ordered))
    bounding_box = merge_boxes(item.bbox for item in ordered) or pdf_region

    return RegionText(text=text, bounding_box=bounding_box, items=tuple(ordered))
