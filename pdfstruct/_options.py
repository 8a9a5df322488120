"""Validated option sets for chunking, search, and figure filtering."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pdfstruct._config import (
    DEFAULT_MAX_CHUNK_SIZE,
    DEFAULT_MIN_SENTENCE_LENGTH,
    DEFAULT_OVERLAP_SIZE,
    DEFAULT_PAGE_CHUNK_OVERLAP,
    DEFAULT_PAGE_CHUNK_SIZE,
    MAX_FIGURE_ASPECT_RATIO,
    MIN_FIGURE_ASPECT_RATIO,
    MIN_FIGURE_DIMENSION,
    TRANSFORM_LOOKBACK_OPERATORS,
)


class ChunkingOptions(BaseModel):
    """Parameters for sentence-aligned semantic chunking."""

    model_config = ConfigDict(frozen=True)

    max_chunk_size: int = Field(
        default=DEFAULT_MAX_CHUNK_SIZE,
        gt=0,
        description="Character budget a chunk may not exceed when adding a sentence",
    )
    overlap_size: int = Field(
        default=DEFAULT_OVERLAP_SIZE,
        ge=0,
        description="Character budget for trailing sentences repeated in the next chunk",
    )
    min_sentence_length: int = Field(
        default=DEFAULT_MIN_SENTENCE_LENGTH,
        ge=0,
        description="Sentences shorter than this are dropped (page numbers, stray labels)",
    )

    @model_validator(mode="after")
    def validate_overlap(self) -> ChunkingOptions:
        if self.overlap_size >= self.max_chunk_size:
            raise ValueError("`overlap_size` must be smaller than `max_chunk_size`.")
        return self


class PageChunkingOptions(BaseModel):
    """Parameters for per-page chunks with character sub-chunks."""

    model_config = ConfigDict(frozen=True)

    max_chunk_size: int = Field(default=DEFAULT_PAGE_CHUNK_SIZE, gt=0)
    overlap_size: int = Field(default=DEFAULT_PAGE_CHUNK_OVERLAP, ge=0)
    use_sub_chunking: bool = True

    @model_validator(mode="after")
    def validate_overlap(self) -> PageChunkingOptions:
        if self.overlap_size >= self.max_chunk_size:
            raise ValueError("`overlap_size` must be smaller than `max_chunk_size`.")
        return self


class ChunkSearchOptions(BaseModel):
    """Filters for exact-match search over page chunks."""

    model_config = ConfigDict(frozen=True)

    case_sensitive: bool = False
    max_results: int | None = Field(default=None, gt=0)
    page_limit: frozenset[int] | None = Field(
        default=None,
        description="Restrict the search to these 1-indexed pages",
    )


class FigureFilterOptions(BaseModel):
    """Retention filter and placement knobs for figure extraction."""

    model_config = ConfigDict(frozen=True)

    min_dimension: int = Field(default=MIN_FIGURE_DIMENSION, ge=1)
    min_aspect_ratio: float = Field(default=MIN_FIGURE_ASPECT_RATIO, gt=0)
    max_aspect_ratio: float = Field(default=MAX_FIGURE_ASPECT_RATIO, gt=0)
    transform_lookback: int = Field(default=TRANSFORM_LOOKBACK_OPERATORS, ge=0)

    @model_validator(mode="after")
    def validate_aspect_bounds(self) -> FigureFilterOptions:
        if self.min_aspect_ratio > self.max_aspect_ratio:
            raise ValueError(
                "`min_aspect_ratio` must be less than or equal to `max_aspect_ratio`."
            )
        return self
