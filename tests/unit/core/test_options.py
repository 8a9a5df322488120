"""Tests for validated option models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pdfstruct._options import (
    ChunkingOptions,
    ChunkSearchOptions,
    FigureFilterOptions,
    PageChunkingOptions,
)


def test_chunking_defaults() -> None:
    options = ChunkingOptions()

    assert options.max_chunk_size == 3000
    assert options.overlap_size == 200
    assert options.min_sentence_length == 10


def test_page_chunking_defaults() -> None:
    options = PageChunkingOptions()

    assert options.model_dump() == {
        "max_chunk_size": 3000,
        "overlap_size": 300,
        "use_sub_chunking": True,
    }


@pytest.mark.parametrize("model", [ChunkingOptions, PageChunkingOptions])
def test_overlap_must_be_smaller_than_chunk_size(model) -> None:
    with pytest.raises(ValidationError, match="overlap_size"):
        model(max_chunk_size=100, overlap_size=100)


def test_chunk_size_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        ChunkingOptions(max_chunk_size=0, overlap_size=0)


def test_options_are_frozen_and_hashable() -> None:
    options = ChunkingOptions(max_chunk_size=100, overlap_size=20)

    with pytest.raises(ValidationError):
        options.max_chunk_size = 50  # type: ignore[misc]

    assert {options: "cached"}[ChunkingOptions(max_chunk_size=100, overlap_size=20)]


def test_figure_filter_defaults() -> None:
    options = FigureFilterOptions()

    assert options.min_dimension == 50
    assert options.min_aspect_ratio == 0.05
    assert options.max_aspect_ratio == 20.0
    assert options.transform_lookback == 20


def test_figure_filter_rejects_inverted_aspect_bounds() -> None:
    with pytest.raises(ValidationError, match="min_aspect_ratio"):
        FigureFilterOptions(min_aspect_ratio=5.0, max_aspect_ratio=1.0)


def test_search_options_page_limit_accepts_lists() -> None:
    options = ChunkSearchOptions(page_limit=[1, 3])

    assert options.page_limit == frozenset({1, 3})
    assert options.case_sensitive is False
    assert options.max_results is None
