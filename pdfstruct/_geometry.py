"""Coordinate transforms and bounding-box merging."""

from __future__ import annotations

import math
from typing import Iterable

from pdfstruct._types import BoundingBox, Matrix


def multiply_matrices(m1: Matrix, m2: Matrix) -> Matrix:
    """Compose two affine matrices, applying ``m2`` first and then ``m1``."""
    a1, b1, c1, d1, e1, f1 = m1
    a2, b2, c2, d2, e2, f2 = m2
    return (
        a1 * a2 + c1 * b2,
        b1 * a2 + d1 * b2,
        a1 * c2 + c1 * d2,
        b1 * c2 + d1 * d2,
        a1 * e2 + c1 * f2 + e1,
        b1 * e2 + d1 * f2 + f1,
    )


def matrix_scale(matrix: Matrix) -> float:
    """Length of the transformed unit x vector (the font size for text matrices)."""
    return math.hypot(matrix[0], matrix[1])


def screen_to_pdf(
    region: BoundingBox,
    page_height: float,
    scale: float = 1.0,
) -> BoundingBox:
    """Convert a top-left-origin screen rectangle to PDF user space.

    ``page_height`` is the viewport height in screen pixels at ``scale``.
    """
    return BoundingBox(
        x=region.x / scale,
        y=page_height / scale - region.y / scale - region.height / scale,
        width=region.width / scale,
        height=region.height / scale,
    )


def pdf_to_screen(
    rect: BoundingBox,
    page_height: float,
    scale: float = 1.0,
) -> BoundingBox:
    """Convert a PDF-space rectangle to top-left-origin screen pixels.

    ``page_height`` is the page height in PDF units.
    """
    return BoundingBox(
        x=rect.x * scale,
        y=(page_height - rect.y - rect.height) * scale,
        width=rect.width * scale,
        height=rect.height * scale,
    )


def merge_boxes(boxes: Iterable[BoundingBox]) -> BoundingBox | None:
    """Return the smallest box enclosing ``boxes``, or ``None`` when empty."""
    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    found = False

    for box in boxes:
        found = True
        min_x = min(min_x, box.x)
        min_y = min(min_y, box.y)
        max_x = max(max_x, box.right)
        max_y = max(max_y, box.top)

    if not found:
        return None

    return BoundingBox(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)
