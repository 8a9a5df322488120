"""Page text extraction with stable character offsets."""

from __future__ import annotations

import logging
from typing import Sequence

from pdfstruct._config import DEFAULT_RENDER_SCALE, ITEM_JOINER, WHITESPACE_RE
from pdfstruct._exceptions import PageReadFailure
from pdfstruct._geometry import matrix_scale, multiply_matrices
from pdfstruct._types import (
    DocumentHandle,
    PageHandle,
    PageTextResult,
    RawTextItem,
    TextItem,
    Viewport,
)

logger = logging.getLogger(__name__)


def normalize_whitespace(value: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return WHITESPACE_RE.sub(" ", value).strip()


def build_text_items(
    raw_items: Sequence[RawTextItem],
    viewport: Viewport,
) -> tuple[tuple[TextItem, ...], str]:
    """Normalize raw runs and assign offsets into the joined page text.

    Runs that normalize to an empty string are dropped and consume no offset.
    """
    items: list[TextItem] = []
    parts: list[str] = []
    cursor = 0

    for raw in raw_items:
        text = normalize_whitespace(raw.string)
        if not text:
            continue

        if parts:
            cursor += len(ITEM_JOINER)

        composed = multiply_matrices(viewport.transform, raw.transform)
        font_size = matrix_scale(raw.transform) or raw.height

        items.append(
            TextItem(
                text=text,
                x=raw.transform[4],
                y=raw.transform[5],
                width=raw.width,
                height=raw.height,
                font_name=raw.font_name,
                font_size=font_size,
                char_start=cursor,
                char_end=cursor + len(text) - 1,
                screen_x=composed[4],
                screen_y=composed[5],
            )
        )
        parts.append(text)
        cursor += len(text)

    return tuple(items), ITEM_JOINER.join(parts)


def extract_page_text(
    page: PageHandle,
    page_number: int,
    scale: float = DEFAULT_RENDER_SCALE,
) -> PageTextResult:
    """Extract ordered text items and normalized text from one page.

    Raises
    ------
    PageReadFailure
        If the backend cannot produce the page's text content.
    """
    viewport = page.get_viewport(scale)
    raw_items = page.get_text_content()
    items, text = build_text_items(raw_items, viewport)

    logger.debug(
        "Page %d: %d text items (%d raw), %d chars",
        page_number,
        len(items),
        len(raw_items),
        len(text),
    )

    return PageTextResult(
        page_number=page_number,
        items=items,
        text=text,
        width=viewport.width,
        height=viewport.height,
        scale=scale,
    )


def extract_document_page_text(
    document: DocumentHandle,
    page_number: int,
    scale: float = DEFAULT_RENDER_SCALE,
) -> PageTextResult:
    """Open ``page_number`` (1-based) on ``document`` and extract its text."""
    if page_number < 1 or page_number > document.num_pages:
        raise PageReadFailure(
            page_number,
            f"page out of range (document has {document.num_pages} pages)",
        )
    page = document.get_page(page_number)
    return extract_page_text(page, page_number, scale)
