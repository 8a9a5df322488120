"""Tests for the figure extraction summary report."""

from __future__ import annotations

from inline_snapshot import snapshot

from pdfstruct._types import ExtractionDiagnostics
from pdfstruct.figures import generate_diagnostic_summary


def test_summary_aggregates_pages() -> None:
    diagnostics = [
        ExtractionDiagnostics(
            page_number=1,
            total_operators=1200,
            image_operators=3,
            extracted_images=2,
            filtered_images=1,
            errors=("Error processing operator 7: missing",),
            processing_time_ms=120.0,
        ),
        ExtractionDiagnostics(
            page_number=2,
            total_operators=34,
            image_operators=1,
            extracted_images=1,
            filtered_images=1,
            processing_time_ms=80.0,
        ),
    ]

    assert generate_diagnostic_summary(diagnostics).splitlines() == snapshot(
        [
            "Figure Extraction Summary",
            "----------------------------------------",
            "Pages processed:     2",
            "Total operators:     1,234",
            "Image operators:     4",
            "Images extracted:    3",
            "Images filtered:     2",
            "Total time:          200ms (avg 100ms/page)",
            "Errors:              1",
            "",
            "Extraction rate:     50.0%",
            "Performance:         600.0 pages/min",
            "----------------------------------------",
        ]
    )


def test_summary_of_nothing_has_zero_rates() -> None:
    summary = generate_diagnostic_summary([])

    assert "Pages processed:     0" in summary
    assert "Total time:          0ms (avg 0ms/page)" in summary
    assert "Extraction rate:     0.0%" in summary
    assert "Performance:         0.0 pages/min" in summary


def test_summary_with_no_image_operators() -> None:
    summary = generate_diagnostic_summary(
        [ExtractionDiagnostics(page_number=1, total_operators=10)]
    )

    assert "Extraction rate:     0.0%" in summary
