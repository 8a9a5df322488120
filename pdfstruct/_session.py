"""Per-document session owning the handle and its derived artifacts."""

from __future__ import annotations

import asyncio
import functools
import logging
import threading

from pdfstruct._chunking import build_page_chunks, create_semantic_chunks
from pdfstruct._config import DEFAULT_RENDER_SCALE
from pdfstruct._exceptions import DocumentOpenError, PageReadFailure
from pdfstruct._options import ChunkingOptions, FigureFilterOptions, PageChunkingOptions
from pdfstruct._region import find_text_in_region
from pdfstruct._search import search_document
from pdfstruct._text import extract_document_page_text
from pdfstruct._types import (
    BoundingBox,
    DocumentFigures,
    DocumentHandle,
    PageTextResult,
    PdfProcessingResult,
    ProcessingReport,
    ProgressCallback,
    RegionText,
    SearchResult,
    SemanticChunk,
)
from pdfstruct.figures import extract_all_figures

logger = logging.getLogger(__name__)


class DocumentSession:
    """Lazily derived text, figures, chunks and search over one document.

    Page text is cached per page number. The cache only grows: writes are
    serialized by a lock, reads of populated entries take no lock. Everything
    is discarded on :meth:`close`.

    Work on the document handle is serialized: concurrent awaits on one
    session queue on an :class:`asyncio.Lock`, so pages are never read in
    parallel.
    """

    def __init__(
        self,
        document: DocumentHandle | None,
        *,
        doc_id: str = "",
        filename: str = "document.pdf",
        scale: float = DEFAULT_RENDER_SCALE,
    ) -> None:
        if document is None:
            raise DocumentOpenError("A document handle is required")
        if scale <= 0:
            raise ValueError("`scale` must be positive.")

        self._document = document
        self._doc_id = doc_id
        self._filename = filename
        self._scale = scale
        self._lock = threading.Lock()
        self._handle_lock = asyncio.Lock()
        self._pages: dict[int, PageTextResult] = {}
        self._figures: dict[FigureFilterOptions, DocumentFigures] = {}
        self._chunks: dict[ChunkingOptions, tuple[SemanticChunk, ...]] = {}
        self._closed = False

    def __enter__(self) -> DocumentSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def doc_id(self) -> str:
        return self._doc_id

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def num_pages(self) -> int:
        return self._document.num_pages

    @property
    def closed(self) -> bool:
        return self._closed

    def cached_page(self, page_number: int) -> PageTextResult | None:
        """Return the cached text of ``page_number`` without extracting it."""
        return self._pages.get(page_number)

    def _ensure_open(self) -> None:
        if self._closed:
            raise DocumentOpenError(f"Session for {self._filename!r} is closed")

    async def get_page_text(self, page_number: int) -> PageTextResult:
        """Return the text of one page, extracting it on first access.

        Raises
        ------
        PageReadFailure
            If the page does not exist or its content cannot be read.
        """
        self._ensure_open()
        cached = self._pages.get(page_number)
        if cached is not None:
            return cached

        async with self._handle_lock:
            cached = self._pages.get(page_number)
            if cached is not None:
                return cached

            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(
                None,
                functools.partial(
                    extract_document_page_text,
                    self._document,
                    page_number,
                    self._scale,
                ),
            )
            with self._lock:
                return self._pages.setdefault(page_number, result)

    async def load_all_pages(
        self,
        on_progress: ProgressCallback | None = None,
    ) -> tuple[list[PageTextResult], ProcessingReport]:
        """Extract every page in order, skipping unreadable ones.

        Returns the readable pages and a report of the pages that failed.
        """
        self._ensure_open()
        total = self.num_pages
        pages: list[PageTextResult] = []
        errors: list[str] = []

        for page_number in range(1, total + 1):
            try:
                pages.append(await self.get_page_text(page_number))
            except PageReadFailure as exc:
                logger.warning("Skipping unreadable page: %s", exc)
                errors.append(str(exc))
            if on_progress is not None:
                on_progress(page_number, total)

        report = ProcessingReport(
            total_pages=total,
            processed_pages=len(pages),
            errors=tuple(errors),
        )
        if errors:
            logger.info("%s: %s", self._filename, report.summary())
        return pages, report

    async def _readable_pages(self) -> list[PageTextResult]:
        pages, _report = await self.load_all_pages()
        return pages

    async def extract_figures(
        self,
        options: FigureFilterOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> DocumentFigures:
        """Extract figures from all pages; results are cached per option set."""
        self._ensure_open()
        options = options or FigureFilterOptions()
        cached = self._figures.get(options)
        if cached is not None:
            return cached

        async with self._handle_lock:
            cached = self._figures.get(options)
            if cached is not None:
                return cached

            result = await extract_all_figures(
                self._document, options=options, on_progress=on_progress
            )
            with self._lock:
                return self._figures.setdefault(options, result)

    async def semantic_chunks(
        self,
        options: ChunkingOptions | None = None,
    ) -> list[SemanticChunk]:
        """Chunk the readable pages; results are cached per option set."""
        self._ensure_open()
        options = options or ChunkingOptions()
        cached = self._chunks.get(options)
        if cached is None:
            pages = await self._readable_pages()
            chunks = tuple(create_semantic_chunks(pages, options))
            with self._lock:
                cached = self._chunks.setdefault(options, chunks)
        return list(cached)

    async def page_chunks(
        self,
        options: PageChunkingOptions | None = None,
    ) -> PdfProcessingResult:
        self._ensure_open()
        return build_page_chunks(await self._readable_pages(), options)

    async def search(self, query: str) -> list[SearchResult]:
        """Search readable pages; boxes are screen pixels at the session scale."""
        self._ensure_open()
        if not query.strip():
            return []
        return search_document(await self._readable_pages(), query, self._scale)

    async def find_text_in_region(
        self,
        page_number: int,
        region: BoundingBox,
    ) -> RegionText:
        """Resolve the text under a screen rectangle drawn at the session scale."""
        page = await self.get_page_text(page_number)
        return find_text_in_region(page.items, region, page.height, page.scale)

    def close(self) -> None:
        """Close the document handle and drop every cached artifact."""
        if self._closed:
            return
        self._closed = True
        with self._lock:
            self._pages.clear()
            self._figures.clear()
            self._chunks.clear()
        self._document.close()
        logger.debug("Closed session %s (%s)", self._doc_id, self._filename)

