"""Data model and document-handle protocols for pdfstruct."""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Protocol, Sequence

from PIL import Image

Matrix = tuple[float, float, float, float, float, float]
IDENTITY_MATRIX: Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


# ---------------------------------------------------------------------------
# Input boundary
# ---------------------------------------------------------------------------


class OperatorCode(IntEnum):
    """Operator codes emitted in a page operator list."""

    OTHER = 0
    SAVE = 1
    RESTORE = 2
    TRANSFORM = 3
    BEGIN_TEXT = 4
    END_TEXT = 5
    SET_FONT = 6
    SET_TEXT_MATRIX = 7
    MOVE_TEXT = 8
    SHOW_TEXT = 9
    PAINT_FORM_XOBJECT_BEGIN = 10
    PAINT_FORM_XOBJECT_END = 11
    PAINT_IMAGE_XOBJECT = 12
    PAINT_INLINE_IMAGE_XOBJECT = 13
    PAINT_IMAGE_MASK_XOBJECT = 14


class ImageKind(IntEnum):
    """Sample layout of a decoded image object (the color-space code)."""

    UNKNOWN = 0
    GRAYSCALE = 1
    RGB = 2
    RGBA = 3


@dataclass(slots=True, frozen=True)
class RawTextItem:
    """A text run as reported by the document backend."""

    string: str
    transform: Matrix
    width: float
    height: float
    font_name: str = ""


@dataclass(slots=True, frozen=True)
class Viewport:
    """Mapping from PDF user space to pixel space at a given scale."""

    width: float
    height: float
    scale: float
    transform: Matrix


@dataclass(slots=True, frozen=True)
class OperatorList:
    """Decoded drawing instructions of a page."""

    codes: tuple[int, ...]
    args: tuple[tuple[Any, ...], ...]

    def __len__(self) -> int:
        return len(self.codes)


@dataclass(slots=True, frozen=True)
class ImageObject:
    """Decoded image samples resolved from the object cache."""

    width: int
    height: int
    kind: int
    data: bytes
    smask: Any | None = None

    @property
    def has_alpha(self) -> bool:
        return self.smask is not None


class ObjectCache(Protocol):
    """Page-scoped image object cache."""

    def get(self, name: str) -> ImageObject:
        """Primary named lookup; raises ``KeyError`` when the name is unknown."""
        ...

    def peek(self, name: str) -> ImageObject | None:
        """Direct object-table lookup without decoding side effects."""
        ...


class PageHandle(Protocol):
    """One page of an opened document."""

    objs: ObjectCache

    def get_viewport(self, scale: float) -> Viewport: ...

    def get_text_content(self) -> Sequence[RawTextItem]: ...

    def get_operator_list(self) -> OperatorList: ...


class DocumentHandle(Protocol):
    """An opened PDF document."""

    @property
    def num_pages(self) -> int: ...

    def get_page(self, page_number: int) -> PageHandle: ...

    def close(self) -> None: ...


class ProgressCallback(Protocol):
    """Called synchronously once per completed page."""

    def __call__(self, current: int, total: int) -> None: ...


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class BoundingBox:
    """Axis-aligned rectangle with ``(x, y)`` at its minimum corner."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y + self.height

    def intersects(self, other: BoundingBox) -> bool:
        """Strict overlap test; touching edges do not intersect."""
        return (
            self.x < other.right
            and self.right > other.x
            and self.y < other.top
            and self.top > other.y
        )

    def rounded(self) -> BoundingBox:
        return BoundingBox(
            x=round(self.x),
            y=round(self.y),
            width=round(self.width),
            height=round(self.height),
        )


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class TextItem:
    """A normalized text run with geometry and page-text offsets.

    ``x``/``y``/``width``/``height`` are in PDF user space (bottom-left
    origin). ``screen_x``/``screen_y`` are the viewport-space translation at
    the extraction scale. ``char_end`` is inclusive.
    """

    text: str
    x: float
    y: float
    width: float
    height: float
    font_name: str
    font_size: float
    char_start: int
    char_end: int
    screen_x: float = 0.0
    screen_y: float = 0.0

    @property
    def bbox(self) -> BoundingBox:
        return BoundingBox(x=self.x, y=self.y, width=self.width, height=self.height)

    def overlaps_range(self, start: int, end: int) -> bool:
        """Whether ``[char_start, char_end]`` overlaps the half-open ``[start, end)``."""
        return self.char_start < end and self.char_end + 1 > start


@dataclass(slots=True, frozen=True)
class PageTextResult:
    """Ordered text items and normalized text of one page.

    ``width``/``height`` are viewport dimensions at ``scale``.
    """

    page_number: int
    items: tuple[TextItem, ...]
    text: str
    width: float
    height: float
    scale: float = 1.0

    @property
    def pdf_height(self) -> float:
        return self.height / self.scale


@dataclass(slots=True, frozen=True)
class RegionText:
    """Text found inside a screen region and its PDF-space bounding box."""

    text: str
    bounding_box: BoundingBox
    items: tuple[TextItem, ...] = ()


# ---------------------------------------------------------------------------
# Figures
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class FigureMetadata:
    image_name: str
    color_space: int
    has_alpha: bool
    data_length: int


@dataclass(slots=True, frozen=True)
class ExtractedFigure:
    """An RGBA raster reconstructed from an image object.

    ``x``/``y`` use a top-left origin in PDF units at scale 1.
    """

    id: str
    page_number: int
    rgba: bytes = field(repr=False)
    width: int
    height: int
    x: float
    y: float
    extraction_method: str
    metadata: FigureMetadata

    def to_png(self) -> bytes:
        """Encode the raster as PNG bytes."""
        image = Image.frombytes("RGBA", (self.width, self.height), self.rgba)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.to_png()).decode("ascii")
        return f"data:image/png;base64,{encoded}"


@dataclass(slots=True, frozen=True)
class ImageDetail:
    name: str
    width: int
    height: int
    kind: int
    has_alpha: bool
    data_length: int


@dataclass(slots=True, frozen=True)
class ExtractionDiagnostics:
    """Per-page figure extraction counters.

    ``extracted_images`` counts resolved images with non-zero dimensions;
    ``filtered_images`` counts the ones that passed the retention filter and
    were converted to RGBA. An image that passes the filter but fails
    conversion is not counted as filtered, so it shows up in
    ``rejected_images`` and its error is listed in ``errors``.
    """

    page_number: int
    total_operators: int = 0
    image_operators: int = 0
    extracted_images: int = 0
    filtered_images: int = 0
    errors: tuple[str, ...] = ()
    processing_time_ms: float = 0.0
    image_details: tuple[ImageDetail, ...] = ()

    @property
    def rejected_images(self) -> int:
        return self.extracted_images - self.filtered_images


@dataclass(slots=True, frozen=True)
class FigureExtractionResult:
    figures: tuple[ExtractedFigure, ...]
    diagnostics: ExtractionDiagnostics


@dataclass(slots=True, frozen=True)
class DocumentFigures:
    figures: tuple[ExtractedFigure, ...]
    diagnostics: tuple[ExtractionDiagnostics, ...]


# ---------------------------------------------------------------------------
# Chunks and search
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ChunkOverlap:
    prev: int
    next: int


@dataclass(slots=True, frozen=True)
class SemanticChunk:
    """Sentence-aligned chunk of the document text.

    ``char_start``/``char_end`` form a half-open range into the document
    text (page texts joined by the page separator).
    """

    id: str
    text: str
    page_start: int
    page_end: int
    char_start: int
    char_end: int
    overlap: ChunkOverlap
    sentence_count: int


@dataclass(slots=True, frozen=True)
class SearchResult:
    page: int
    matched_text: str
    context: str
    position: int
    bounding_box: BoundingBox | None


@dataclass(slots=True, frozen=True)
class SubChunk:
    index: int
    text: str
    char_start: int
    char_end: int
    text_items: tuple[TextItem, ...]


@dataclass(slots=True, frozen=True)
class PageChunk:
    """A page's text placed in document-wide char coordinates."""

    page: int
    text: str
    char_start: int
    char_end: int
    text_items: tuple[TextItem, ...]
    sub_chunks: tuple[SubChunk, ...] | None = None


@dataclass(slots=True, frozen=True)
class PdfProcessingResult:
    version: str
    processed_at: str
    total_pages: int
    page_chunks: tuple[PageChunk, ...]
    chunking_config: dict[str, Any]


@dataclass(slots=True, frozen=True)
class ChunkMatch:
    chunk: PageChunk
    match_index: int
    match_length: int
    confidence: float = 1.0


@dataclass(slots=True, frozen=True)
class ProcessingReport:
    """Partial-result summary for a document-level pass."""

    total_pages: int
    processed_pages: int
    errors: tuple[str, ...] = ()

    def summary(self) -> str:
        return (
            f"{self.processed_pages} of {self.total_pages} pages processed, "
            f"{len(self.errors)} errors"
        )
