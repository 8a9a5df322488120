"""Human-readable summaries of figure extraction diagnostics."""

from __future__ import annotations

from typing import Sequence

from pdfstruct._types import ExtractionDiagnostics

_RULE = "-" * 40


def generate_diagnostic_summary(diagnostics: Sequence[ExtractionDiagnostics]) -> str:
    """Summarize per-page diagnostics across a document.

    Rates fall back to zero when there is nothing to divide by.
    """
    total_pages = len(diagnostics)
    total_operators = sum(d.total_operators for d in diagnostics)
    image_operators = sum(d.image_operators for d in diagnostics)
    extracted = sum(d.extracted_images for d in diagnostics)
    filtered = sum(d.filtered_images for d in diagnostics)
    total_time_ms = sum(d.processing_time_ms for d in diagnostics)
    errors = sum(len(d.errors) for d in diagnostics)

    avg_ms = total_time_ms / total_pages if total_pages else 0.0
    extraction_rate = filtered / image_operators * 100 if image_operators else 0.0
    pages_per_minute = (
        total_pages / (total_time_ms / 1000) * 60 if total_time_ms > 0 else 0.0
    )

    lines = [
        "Figure Extraction Summary",
        _RULE,
        f"Pages processed:     {total_pages}",
        f"Total operators:     {total_operators:,}",
        f"Image operators:     {image_operators}",
        f"Images extracted:    {extracted}",
        f"Images filtered:     {filtered}",
        f"Total time:          {total_time_ms:.0f}ms (avg {avg_ms:.0f}ms/page)",
        f"Errors:              {errors}",
        "",
        f"Extraction rate:     {extraction_rate:.1f}%",
        f"Performance:         {pages_per_minute:.1f} pages/min",
        _RULE,
    ]
    return "\n".join(lines)
