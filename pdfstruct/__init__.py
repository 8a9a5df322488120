"""Structural extraction and indexing for PDF documents."""

from importlib.metadata import PackageNotFoundError, version

from pdfstruct._chunking import (
    build_page_chunks,
    create_semantic_chunks,
    get_chunks_for_section,
)
from pdfstruct._exceptions import (
    DocumentOpenError,
    ImageConversionFailure,
    ImageResolutionFailure,
    InvariantViolation,
    PageReadFailure,
    PdfStructError,
)
from pdfstruct._geometry import pdf_to_screen, screen_to_pdf
from pdfstruct._loader import open_pdf
from pdfstruct._options import (
    ChunkingOptions,
    ChunkSearchOptions,
    FigureFilterOptions,
    PageChunkingOptions,
)
from pdfstruct._region import find_text_in_region
from pdfstruct._search import (
    get_text_items_in_range,
    search_document,
    search_page_chunks,
)
from pdfstruct._session import DocumentSession
from pdfstruct._store import SessionStore
from pdfstruct._text import extract_document_page_text, extract_page_text
from pdfstruct._types import (
    BoundingBox,
    ChunkMatch,
    DocumentFigures,
    ExtractedFigure,
    ExtractionDiagnostics,
    PageChunk,
    PageTextResult,
    PdfProcessingResult,
    ProcessingReport,
    RegionText,
    SearchResult,
    SemanticChunk,
    SubChunk,
    TextItem,
)
from pdfstruct.figures import (
    extract_all_figures,
    extract_figures_from_page,
    generate_diagnostic_summary,
)

try:
    __version__ = version("pdfstruct")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "BoundingBox",
    "ChunkMatch",
    "ChunkSearchOptions",
    "ChunkingOptions",
    "DocumentFigures",
    "DocumentOpenError",
    "DocumentSession",
    "ExtractedFigure",
    "ExtractionDiagnostics",
    "FigureFilterOptions",
    "ImageConversionFailure",
    "ImageResolutionFailure",
    "InvariantViolation",
    "PageChunk",
    "PageChunkingOptions",
    "PageReadFailure",
    "PageTextResult",
    "PdfProcessingResult",
    "PdfStructError",
    "ProcessingReport",
    "RegionText",
    "SearchResult",
    "SemanticChunk",
    "SessionStore",
    "SubChunk",
    "TextItem",
    "build_page_chunks",
    "create_semantic_chunks",
    "extract_all_figures",
    "extract_document_page_text",
    "extract_figures_from_page",
    "extract_page_text",
    "find_text_in_region",
    "generate_diagnostic_summary",
    "get_chunks_for_section",
    "get_text_items_in_range",
    "open_pdf",
    "pdf_to_screen",
    "screen_to_pdf",
    "search_document",
    "search_page_chunks",
]
