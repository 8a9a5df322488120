"""Document-wide substring search over extracted page text."""

from __future__ import annotations

import logging
from typing import Sequence

from pdfstruct._config import SEARCH_CONTEXT_CHARS
from pdfstruct._geometry import merge_boxes, pdf_to_screen
from pdfstruct._options import ChunkSearchOptions
from pdfstruct._text import normalize_whitespace
from pdfstruct._types import (
    BoundingBox,
    ChunkMatch,
    PageChunk,
    PageTextResult,
    SearchResult,
    TextItem,
)

logger = logging.getLogger(__name__)


def fold_case(value: str) -> str:
    """Lowercase ``value`` without changing its length.

    Characters whose lowercase form has a different length are kept as-is so
    offsets found in the folded string index the original.
    """
    folded: list[str] = []
    for char in value:
        lowered = char.lower()
        folded.append(lowered if len(lowered) == 1 else char)
    return "".join(folded)


def normalize_query(value: str) -> str:
    """Collapse whitespace, trim and case-fold a search string."""
    return fold_case(normalize_whitespace(value))


def _match_bounding_box(
    page: PageTextResult,
    start: int,
    end: int,
    scale: float,
) -> BoundingBox | None:
    boxes = (
        pdf_to_screen(item.bbox, page.pdf_height, scale)
        for item in page.items
        if item.overlaps_range(start, end)
    )
    merged = merge_boxes(boxes)
    return merged.rounded() if merged is not None else None


def search_document(
    pages: Sequence[PageTextResult],
    query: str,
    scale: float = 1.0,
) -> list[SearchResult]:
    """Find every non-overlapping, case-insensitive occurrence of ``query``.

    Results are ordered by page, then by position. Bounding boxes are in
    top-left-origin screen pixels at ``scale``.
    """
    needle = normalize_query(query)
    if not needle:
        return []

    results: list[SearchResult] = []
    for page in pages:
        # Page text is whitespace-normalized at extraction; only case differs.
        text = page.text
        haystack = fold_case(text)

        position = haystack.find(needle)
        while position != -1:
            end = position + len(needle)
            results.append(
                SearchResult(
                    page=page.page_number,
                    matched_text=text[position:end],
                    context=text[
                        max(0, position - SEARCH_CONTEXT_CHARS) : end
                        + SEARCH_CONTEXT_CHARS
                    ],
                    position=position,
                    bounding_box=_match_bounding_box(page, position, end, scale),
                )
            )
            position = haystack.find(needle, end)

    logger.debug("Query %r matched %d times", needle, len(results))
    return results


def get_text_items_in_range(
    page_chunk: PageChunk,
    char_start: int,
    char_end: int,
) -> list[TextItem]:
    """Return the page's items overlapping the global range ``[char_start, char_end)``."""
    start = char_start - page_chunk.char_start
    end = char_end - page_chunk.char_start
    return [item for item in page_chunk.text_items if item.overlaps_range(start, end)]


def search_page_chunks(
    query: str,
    page_chunks: Sequence[PageChunk],
    options: ChunkSearchOptions | None = None,
) -> list[ChunkMatch]:
    """Exact-match search over page chunks reporting every occurrence.

    Unlike :func:`search_document`, occurrences may overlap: the cursor moves
    one character past each match start.
    """
    options = options or ChunkSearchOptions()
    if not query:
        return []

    needle = query if options.case_sensitive else fold_case(query)
    matches: list[ChunkMatch] = []

    for chunk in page_chunks:
        if options.page_limit is not None and chunk.page not in options.page_limit:
            continue

        haystack = chunk.text if options.case_sensitive else fold_case(chunk.text)
        index = haystack.find(needle)
        while index != -1:
            matches.append(
                ChunkMatch(chunk=chunk, match_index=index, match_length=len(query))
            )
            if options.max_results is not None and len(matches) >= options.max_results:
                return matches
            index = haystack.find(needle, index + 1)

    return matches
