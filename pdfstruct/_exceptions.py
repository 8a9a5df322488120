"""Exception taxonomy for pdfstruct."""

from __future__ import annotations


class PdfStructError(Exception):
    """Base class for all pdfstruct errors."""


class DocumentOpenError(PdfStructError):
    """Raised when the supplied bytes cannot be opened as a PDF document.

    This is the only hard, caller-visible failure: page and image problems are
    recorded in diagnostics instead of being raised.
    """


class PageReadFailure(PdfStructError):
    """Page content (text or operator list) could not be read."""

    def __init__(self, page_number: int, reason: str) -> None:
        super().__init__(f"Page {page_number}: {reason}")
        self.page_number = page_number
        self.reason = reason


class ImageResolutionFailure(PdfStructError):
    """A named image could not be resolved by either lookup path."""

    def __init__(self, name: str, reason: str = "not found in object cache") -> None:
        super().__init__(f"Image {name!r} could not be resolved: {reason}")
        self.name = name


class ImageConversionFailure(PdfStructError):
    """Image samples could not be turned into an RGBA raster."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Error converting image {name}: {reason}")
        self.name = name
        self.reason = reason


class InvariantViolation(PdfStructError):
    """An internal algorithm invariant does not hold."""
