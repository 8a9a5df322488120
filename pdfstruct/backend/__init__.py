"""pdfminer.six implementation of the document handle protocols."""

from __future__ import annotations

from pdfstruct.backend._images import decode_image, unpack_samples
from pdfstruct.backend._pdfminer import (
    PdfMinerDocument,
    PdfMinerObjectCache,
    PdfMinerPage,
)

__all__ = [
    "PdfMinerDocument",
    "PdfMinerObjectCache",
    "PdfMinerPage",
    "decode_image",
    "unpack_samples",
]
