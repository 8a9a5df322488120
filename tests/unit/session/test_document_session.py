"""Tests for the per-document session and its artifact caches."""

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from pdfstruct._chunking import create_semantic_chunks
from pdfstruct._exceptions import DocumentOpenError, PageReadFailure
from pdfstruct._options import ChunkingOptions, FigureFilterOptions
from pdfstruct._session import DocumentSession
from pdfstruct._types import BoundingBox
from tests.helpers.fake_document import (
    FakeDocument,
    FakeObjectCache,
    FakePage,
    OperatorListBuilder,
    raw_item,
    rgb_image,
)


class _HandleUseRecorder:
    """Records how many handle reads run at the same time."""

    def __init__(self) -> None:
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def enter(self) -> None:
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)

    def leave(self) -> None:
        with self._lock:
            self.active -= 1


class _RecordingPage(FakePage):
    def __init__(self, recorder: _HandleUseRecorder, **kwargs) -> None:
        super().__init__(**kwargs)
        self.recorder = recorder

    def _read(self, read):
        self.recorder.enter()
        try:
            time.sleep(0.002)
            return read()
        finally:
            self.recorder.leave()

    def get_text_content(self):
        return self._read(super().get_text_content)

    def get_operator_list(self):
        return self._read(super().get_operator_list)


def _pages() -> list[FakePage]:
    return [
        FakePage(raw_items=[raw_item("Hello", 72, 700), raw_item("world,", 112, 700)]),
        FakePage(
            raw_items=[raw_item("hello", 72, 700), raw_item("again.", 112, 700)],
            page_number=2,
        ),
    ]


def _session(pages: list[FakePage] | None = None, **kwargs) -> DocumentSession:
    document = FakeDocument(pages if pages is not None else _pages())
    return DocumentSession(document, doc_id="abc", filename="paper.pdf", **kwargs)


def test_requires_a_document_handle() -> None:
    with pytest.raises(DocumentOpenError, match="document handle"):
        DocumentSession(None)


def test_rejects_non_positive_scale() -> None:
    with pytest.raises(ValueError, match="scale"):
        _session(scale=0)


def test_exposes_identity_and_page_count() -> None:
    session = _session(scale=1.5)

    assert (session.doc_id, session.filename, session.scale) == ("abc", "paper.pdf", 1.5)
    assert session.num_pages == 2
    assert session.closed is False


async def test_page_text_is_extracted_once() -> None:
    pages = _pages()
    session = _session(pages)

    first = await session.get_page_text(1)
    second = await session.get_page_text(1)

    assert first is second
    assert first.text == "Hello world,"
    assert pages[0].text_calls == 1
    assert session.cached_page(1) is first
    assert session.cached_page(2) is None


async def test_missing_page_raises_page_read_failure() -> None:
    session = _session()

    with pytest.raises(PageReadFailure, match="out of range"):
        await session.get_page_text(9)


async def test_load_all_pages_skips_unreadable_pages() -> None:
    pages = _pages()
    pages.insert(1, FakePage(text_error="bad stream", page_number=2))
    session = _session(pages)
    progress: list[tuple[int, int]] = []

    loaded, report = await session.load_all_pages(
        lambda current, total: progress.append((current, total))
    )

    assert [page.page_number for page in loaded] == [1, 3]
    assert report.total_pages == 3
    assert report.processed_pages == 2
    assert report.errors == ("Page 2: bad stream",)
    assert report.summary() == "2 of 3 pages processed, 1 errors"
    assert progress == [(1, 3), (2, 3), (3, 3)]


async def test_search_uses_session_scale() -> None:
    session = _session(scale=2.0)

    results = await session.search("HELLO")

    assert [(r.page, r.matched_text) for r in results] == [(1, "Hello"), (2, "hello")]
    assert results[0].bounding_box == BoundingBox(x=144, y=164, width=50, height=20)


async def test_blank_search_does_not_extract_text() -> None:
    pages = _pages()
    session = _session(pages)

    assert await session.search("   ") == []
    assert pages[0].text_calls == 0


async def test_region_query_at_session_scale() -> None:
    session = _session(scale=2.0)

    region = await session.find_text_in_region(
        1, BoundingBox(x=144, y=164, width=50, height=20)
    )

    assert region.text == "Hello"
    assert region.bounding_box == BoundingBox(x=72, y=700, width=25, height=10)


async def test_semantic_chunks_are_cached_per_options(mocker) -> None:
    spy = mocker.patch(
        "pdfstruct._session.create_semantic_chunks", wraps=create_semantic_chunks
    )
    session = _session()

    first = await session.semantic_chunks()
    second = await session.semantic_chunks()
    other = await session.semantic_chunks(
        ChunkingOptions(max_chunk_size=15, overlap_size=0)
    )

    assert first == second
    assert first is not second
    assert [c.text for c in first] == ["Hello world, hello again."]
    assert len(other) == 1
    assert spy.call_count == 2


async def test_page_chunks_cover_readable_pages() -> None:
    result = await _session().page_chunks()

    assert result.total_pages == 2
    assert [c.char_start for c in result.page_chunks] == [0, 14]


async def test_figures_are_cached_per_options() -> None:
    page = FakePage(
        operators=OperatorListBuilder().paint("Im1").build(),
        objs=FakeObjectCache(primary={"Im1": rgb_image(60, 60)}),
    )
    session = _session([page])

    first = await session.extract_figures()
    second = await session.extract_figures(FigureFilterOptions())
    strict = await session.extract_figures(FigureFilterOptions(min_dimension=100))

    assert first is second
    assert len(first.figures) == 1
    assert strict.figures == ()


async def test_close_releases_document_and_blocks_further_use() -> None:
    document = FakeDocument(_pages())
    session = DocumentSession(document, filename="paper.pdf")
    await session.get_page_text(1)

    session.close()
    session.close()

    assert document.closed is True
    assert session.closed is True
    assert session.cached_page(1) is None
    with pytest.raises(DocumentOpenError, match="paper.pdf"):
        await session.get_page_text(1)
    with pytest.raises(DocumentOpenError):
        await session.search("hello")


def test_context_manager_closes_session() -> None:
    document = FakeDocument(_pages())

    with DocumentSession(document) as session:
        assert session.closed is False

    assert document.closed is True


async def test_concurrent_callers_read_the_handle_one_at_a_time() -> None:
    recorder = _HandleUseRecorder()
    pages = [
        _RecordingPage(
            recorder,
            raw_items=[raw_item(f"Page {n}.", 72, 700)],
            operators=OperatorListBuilder().paint("Im1").build(),
            objs=FakeObjectCache(primary={"Im1": rgb_image(60, 60)}),
            page_number=n,
        )
        for n in range(1, 9)
    ]
    session = _session(pages)

    *texts, figures = await asyncio.gather(
        *(session.get_page_text(n) for n in range(1, 9)),
        session.extract_figures(),
    )

    assert recorder.peak == 1
    assert [page.text for page in texts] == [f"Page {n}." for n in range(1, 9)]
    assert [figure.id for figure in figures.figures] == [
        f"fig-{n}-1" for n in range(1, 9)
    ]


async def test_concurrent_requests_for_one_page_extract_it_once() -> None:
    page = FakePage(raw_items=[raw_item("Hello", 72, 700)])
    session = _session([page])

    first, second = await asyncio.gather(
        session.get_page_text(1), session.get_page_text(1)
    )

    assert first is second
    assert page.text_calls == 1
