"""Figure extraction from PDF image operators."""

from __future__ import annotations

from pdfstruct.figures._diagnostics import generate_diagnostic_summary
from pdfstruct.figures._extractor import extract_all_figures, extract_figures_from_page
from pdfstruct.figures._raster import to_rgba

__all__ = [
    "extract_all_figures",
    "extract_figures_from_page",
    "generate_diagnostic_summary",
    "to_rgba",
]
