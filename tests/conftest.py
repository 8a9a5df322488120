from __future__ import annotations

import base64
from typing import Iterator

import pytest

from pdfstruct._store import clear_store
from pdfstruct._types import PageTextResult
from tests.helpers.fake_document import text_page
from tests.helpers.pdf_builder import (
    ImageSpec,
    PageSpec,
    TextLine,
    build_pdf,
    rgb_pixels,
)


@pytest.fixture(autouse=True)
def _reset_default_store() -> Iterator[None]:
    yield
    clear_store()


@pytest.fixture
def hello_pages() -> list[PageTextResult]:
    return [text_page(1, "Hello world,"), text_page(2, "hello again.")]


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """Two pages: text plus a 100x80 RGB image and a 10x10 image on page 1."""
    return build_pdf(
        [
            PageSpec(
                lines=(TextLine(72, 700, "Hello world,"),),
                images=(
                    ImageSpec(
                        name="Im1",
                        width=100,
                        height=80,
                        data=rgb_pixels(100, 80, (200, 30, 30)),
                        matrix=(100, 0, 0, 80, 72, 500),
                    ),
                    ImageSpec(
                        name="Im2",
                        width=10,
                        height=10,
                        data=rgb_pixels(10, 10, (0, 0, 255)),
                        matrix=(10, 0, 0, 10, 300, 300),
                    ),
                ),
            ),
            PageSpec(lines=(TextLine(72, 700, "hello again."),)),
        ]
    )


@pytest.fixture
def sample_pdf_base64(sample_pdf_bytes: bytes) -> str:
    return base64.b64encode(sample_pdf_bytes).decode("ascii")
