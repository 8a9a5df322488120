"""Sentence-aligned semantic chunks and per-page chunks over document text."""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from pdfstruct._config import (
    PAGE_CHUNKS_FORMAT_VERSION,
    PAGE_SEPARATOR,
    SEMANTIC_CHUNK_ID_PREFIX,
    SENTENCE_BOUNDARY_RE,
)
from pdfstruct._exceptions import InvariantViolation
from pdfstruct._options import ChunkingOptions, PageChunkingOptions
from pdfstruct._text import normalize_whitespace
from pdfstruct._types import (
    ChunkOverlap,
    PageChunk,
    PageTextResult,
    PdfProcessingResult,
    SemanticChunk,
    SubChunk,
    TextItem,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class DocumentLayout:
    """Page texts joined by the page separator, with each page's start offset."""

    text: str
    page_numbers: tuple[int, ...]
    page_starts: tuple[int, ...]

    def page_at(self, offset: int) -> int:
        """Return the page number whose text range contains ``offset``.

        Offsets that fall into a separator belong to the preceding page; offsets
        past the end resolve to the last page.
        """
        index = bisect.bisect_right(self.page_starts, offset) - 1
        index = min(max(index, 0), len(self.page_numbers) - 1)
        return self.page_numbers[index]


def build_document_layout(pages: Sequence[PageTextResult]) -> DocumentLayout:
    starts: list[int] = []
    cursor = 0
    for index, page in enumerate(pages):
        if index:
            cursor += len(PAGE_SEPARATOR)
        starts.append(cursor)
        cursor += len(page.text)

    return DocumentLayout(
        text=PAGE_SEPARATOR.join(page.text for page in pages),
        page_numbers=tuple(page.page_number for page in pages),
        page_starts=tuple(starts),
    )


@dataclass(slots=True, frozen=True)
class _Sentence:
    index: int
    text: str
    # Offset of the first raw character and of the last non-space character.
    start: int
    last: int


def _split_sentences(text: str, min_length: int) -> list[_Sentence]:
    sentences: list[_Sentence] = []

    def _keep(start: int, raw: str) -> None:
        normalized = normalize_whitespace(raw)
        if not normalized or len(normalized) < min_length:
            return
        stripped = raw.rstrip()
        sentences.append(
            _Sentence(
                index=len(sentences),
                text=normalized,
                start=start,
                last=start + len(stripped) - 1,
            )
        )

    start = 0
    for boundary in SENTENCE_BOUNDARY_RE.finditer(text):
        _keep(start, text[start : boundary.start()])
        start = boundary.end()
    if start < len(text):
        _keep(start, text[start:])

    return sentences


def _joined_length(sentences: Sequence[_Sentence]) -> int:
    if not sentences:
        return 0
    return sum(len(s.text) for s in sentences) + len(sentences) - 1


def _overlap_seed(closed: Sequence[_Sentence], overlap_size: int) -> list[_Sentence]:
    """Trailing sentences of ``closed`` whose joined length fits the budget.

    Never repeats the whole closed chunk, so every chunk contributes new text.
    """
    seed: list[_Sentence] = []
    length = 0
    for sentence in reversed(closed[1:]):
        added = len(sentence.text) + (1 if seed else 0)
        if length + added > overlap_size:
            break
        seed.insert(0, sentence)
        length += added
    return seed


def _group_sentences(
    sentences: Sequence[_Sentence],
    options: ChunkingOptions,
) -> list[list[_Sentence]]:
    groups: list[list[_Sentence]] = []
    current: list[_Sentence] = []
    current_length = 0

    for sentence in sentences:
        if current and current_length + 1 + len(sentence.text) > options.max_chunk_size:
            groups.append(current)
            current = _overlap_seed(current, options.overlap_size)
            current_length = _joined_length(current)

        current_length += len(sentence.text) + (1 if current else 0)
        current.append(sentence)

    if current:
        groups.append(current)
    return groups


def _verify_tiling(chunks: Sequence[SemanticChunk], text_length: int) -> None:
    covered = 0
    for chunk in chunks:
        if not chunk.text:
            raise InvariantViolation(f"{chunk.id} is empty")
        if chunk.char_start > covered:
            raise InvariantViolation(
                f"{chunk.id} leaves a gap at [{covered}, {chunk.char_start})"
            )
        if chunk.char_end <= covered:
            raise InvariantViolation(f"{chunk.id} adds no text beyond offset {covered}")
        covered = chunk.char_end

    if covered != text_length:
        raise InvariantViolation(
            f"chunks cover {covered} of {text_length} document characters"
        )


def create_semantic_chunks(
    pages: Sequence[PageTextResult],
    options: ChunkingOptions | None = None,
) -> list[SemanticChunk]:
    """Split the whole document into overlapping, sentence-aligned chunks.

    Each kept sentence owns the document text from its own start up to the
    next kept sentence, so dropped fragments and separators are absorbed by
    their predecessor and the overlap-deduplicated chunk ranges tile the
    document text exactly.

    Raises
    ------
    InvariantViolation
        If the produced chunk ranges do not tile the document text.
    """
    options = options or ChunkingOptions()
    if not pages:
        return []

    layout = build_document_layout(pages)
    sentences = _split_sentences(layout.text, options.min_sentence_length)
    if not sentences:
        return []

    span_starts = [0] + [sentence.start for sentence in sentences[1:]]
    span_ends = [sentence.start for sentence in sentences[1:]] + [len(layout.text)]

    groups = _group_sentences(sentences, options)
    bounds = [
        (span_starts[group[0].index], span_ends[group[-1].index])
        for group in groups
    ]

    chunks: list[SemanticChunk] = []
    for index, (group, (char_start, char_end)) in enumerate(zip(groups, bounds)):
        prev_overlap = max(0, bounds[index - 1][1] - char_start) if index else 0
        next_overlap = (
            max(0, char_end - bounds[index + 1][0]) if index + 1 < len(bounds) else 0
        )
        chunks.append(
            SemanticChunk(
                id=f"{SEMANTIC_CHUNK_ID_PREFIX}-{index}",
                text=" ".join(sentence.text for sentence in group),
                page_start=layout.page_at(group[0].start),
                page_end=layout.page_at(group[-1].last),
                char_start=char_start,
                char_end=char_end,
                overlap=ChunkOverlap(prev=prev_overlap, next=next_overlap),
                sentence_count=len(group),
            )
        )

    _verify_tiling(chunks, len(layout.text))
    logger.debug(
        "Built %d semantic chunks from %d sentences over %d pages",
        len(chunks),
        len(sentences),
        len(pages),
    )
    return chunks


def get_chunks_for_section(
    chunks: Sequence[SemanticChunk],
    char_start: int,
    char_end: int,
) -> list[SemanticChunk]:
    """Return the chunks whose range overlaps ``[char_start, char_end)``."""
    return [
        chunk
        for chunk in chunks
        if chunk.char_start < char_end and chunk.char_end > char_start
    ]


def _items_in_page_range(
    items: Sequence[TextItem], start: int, end: int
) -> tuple[TextItem, ...]:
    return tuple(item for item in items if item.overlaps_range(start, end))


def _build_sub_chunks(
    page: PageTextResult,
    page_char_start: int,
    options: PageChunkingOptions,
) -> tuple[SubChunk, ...]:
    text = page.text
    max_size = options.max_chunk_size
    if len(text) <= max_size:
        return ()

    sub_chunks: list[SubChunk] = []
    start = 0
    while start < len(text):
        end = min(start + max_size, len(text))
        actual_end = end
        if end < len(text):
            # Prefer to cut after the last sentence end past the halfway point.
            sentence_end = text.rfind(". ", start, end + 1)
            if sentence_end > start + max_size / 2:
                actual_end = sentence_end + 1

        sub_chunks.append(
            SubChunk(
                index=len(sub_chunks),
                text=text[start:actual_end].strip(),
                char_start=page_char_start + start,
                char_end=page_char_start + actual_end,
                text_items=_items_in_page_range(page.items, start, actual_end),
            )
        )

        if actual_end >= len(text):
            break
        start = max(actual_end - options.overlap_size, start + 1)

    return tuple(sub_chunks)


def build_page_chunks(
    pages: Sequence[PageTextResult],
    options: PageChunkingOptions | None = None,
) -> PdfProcessingResult:
    """Place every page in document-wide char coordinates.

    Pages longer than ``max_chunk_size`` additionally get overlapping
    sub-chunks when sub-chunking is enabled.
    """
    options = options or PageChunkingOptions()
    layout = build_document_layout(pages)

    page_chunks: list[PageChunk] = []
    for page, char_start in zip(pages, layout.page_starts):
        sub_chunks = (
            _build_sub_chunks(page, char_start, options)
            if options.use_sub_chunking
            else ()
        )
        page_chunks.append(
            PageChunk(
                page=page.page_number,
                text=page.text,
                char_start=char_start,
                char_end=char_start + len(page.text),
                text_items=page.items,
                sub_chunks=sub_chunks or None,
            )
        )

    return PdfProcessingResult(
        version=PAGE_CHUNKS_FORMAT_VERSION,
        processed_at=datetime.now(timezone.utc).isoformat(),
        total_pages=len(pages),
        page_chunks=tuple(page_chunks),
        chunking_config=options.model_dump(),
    )
