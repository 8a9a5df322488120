"""Figure extraction from page operator lists."""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass, field
from numbers import Real

from pdfstruct._config import FIGURE_EXTRACTION_METHOD, FIGURE_ID_PREFIX
from pdfstruct._exceptions import (
    ImageConversionFailure,
    ImageResolutionFailure,
    PageReadFailure,
)
from pdfstruct._options import FigureFilterOptions
from pdfstruct._types import (
    DocumentFigures,
    DocumentHandle,
    ExtractedFigure,
    ExtractionDiagnostics,
    FigureExtractionResult,
    FigureMetadata,
    ImageDetail,
    ImageObject,
    ObjectCache,
    OperatorCode,
    OperatorList,
    PageHandle,
    ProgressCallback,
)
from pdfstruct.figures._raster import to_rgba

logger = logging.getLogger(__name__)

_PLACEMENT_CODES = (OperatorCode.TRANSFORM, OperatorCode.SET_TEXT_MATRIX)


@dataclass(slots=True)
class _PageTally:
    page_number: int
    total_operators: int = 0
    image_operators: int = 0
    extracted_images: int = 0
    filtered_images: int = 0
    errors: list[str] = field(default_factory=list)
    image_details: list[ImageDetail] = field(default_factory=list)
    figures: list[ExtractedFigure] = field(default_factory=list)

    def finish(self, started: float) -> FigureExtractionResult:
        diagnostics = ExtractionDiagnostics(
            page_number=self.page_number,
            total_operators=self.total_operators,
            image_operators=self.image_operators,
            extracted_images=self.extracted_images,
            filtered_images=self.filtered_images,
            errors=tuple(self.errors),
            processing_time_ms=(time.perf_counter() - started) * 1000,
            image_details=tuple(self.image_details),
        )
        return FigureExtractionResult(figures=tuple(self.figures), diagnostics=diagnostics)


def _resolve_image(objs: ObjectCache, name: str) -> ImageObject:
    try:
        return objs.get(name)
    except KeyError:
        image = objs.peek(name)
        if image is None:
            raise ImageResolutionFailure(name) from None
        return image


def _is_figure(image: ImageObject, options: FigureFilterOptions) -> bool:
    if image.width < options.min_dimension or image.height < options.min_dimension:
        return False
    aspect_ratio = image.width / image.height
    if not options.min_aspect_ratio <= aspect_ratio <= options.max_aspect_ratio:
        return False
    return bool(image.data)


def _find_placement(
    operators: OperatorList,
    index: int,
    lookback: int,
    viewport_height: float,
    image_height: int,
) -> tuple[float, float]:
    """Top-left position from the nearest preceding matrix-setting operator."""
    for j in range(index - 1, max(0, index - lookback) - 1, -1):
        if operators.codes[j] not in _PLACEMENT_CODES:
            continue
        args = operators.args[j]
        if len(args) < 6 or not all(isinstance(value, Real) for value in args[:6]):
            continue
        tx, ty = float(args[4]), float(args[5])
        return tx, viewport_height - ty - image_height
    return 0.0, 0.0


def _collect_image(
    tally: _PageTally,
    page: PageHandle,
    operators: OperatorList,
    index: int,
    viewport_height: float,
    options: FigureFilterOptions,
) -> None:
    args = operators.args[index]
    name = args[0] if args else None
    if not isinstance(name, str) or not name:
        tally.errors.append(f"No image name at operator {index}")
        return

    try:
        image = _resolve_image(page.objs, name)
    except (ImageResolutionFailure, ImageConversionFailure) as exc:
        logger.debug("Page %d: skipping image %s: %s", tally.page_number, name, exc)
        tally.errors.append(f"Error processing operator {index}: {exc}")
        return

    if image.width <= 0 or image.height <= 0:
        logger.debug("Page %d: image %s has no area", tally.page_number, name)
        return

    tally.extracted_images += 1
    tally.image_details.append(
        ImageDetail(
            name=name,
            width=image.width,
            height=image.height,
            kind=image.kind,
            has_alpha=image.has_alpha,
            data_length=len(image.data),
        )
    )

    if not _is_figure(image, options):
        return

    try:
        rgba = to_rgba(image, name)
    except ImageConversionFailure as exc:
        tally.errors.append(str(exc))
        return

    tally.filtered_images += 1
    x, y = _find_placement(
        operators, index, options.transform_lookback, viewport_height, image.height
    )
    tally.figures.append(
        ExtractedFigure(
            id=f"{FIGURE_ID_PREFIX}-{tally.page_number}-{len(tally.figures) + 1}",
            page_number=tally.page_number,
            rgba=rgba,
            width=image.width,
            height=image.height,
            x=x,
            y=y,
            extraction_method=FIGURE_EXTRACTION_METHOD,
            metadata=FigureMetadata(
                image_name=name,
                color_space=image.kind,
                has_alpha=image.has_alpha,
                data_length=len(image.data),
            ),
        )
    )


def extract_figures_from_page(
    page: PageHandle,
    page_number: int,
    options: FigureFilterOptions | None = None,
) -> FigureExtractionResult:
    """Reconstruct raster figures from the image operators of one page.

    Failures are recorded in the returned diagnostics; a single image never
    aborts the page and an unreadable operator list yields an empty result.
    """
    options = options or FigureFilterOptions()
    started = time.perf_counter()
    tally = _PageTally(page_number=page_number)

    try:
        operators = page.get_operator_list()
    except PageReadFailure as exc:
        logger.warning("Page %d: operator list unavailable: %s", page_number, exc)
        tally.errors.append(f"Page processing error: {exc}")
        return tally.finish(started)

    tally.total_operators = len(operators)
    viewport_height = page.get_viewport(1.0).height

    for index, code in enumerate(operators.codes):
        match code:
            case (
                OperatorCode.PAINT_IMAGE_XOBJECT
                | OperatorCode.PAINT_INLINE_IMAGE_XOBJECT
                | OperatorCode.PAINT_IMAGE_MASK_XOBJECT
            ):
                tally.image_operators += 1
                _collect_image(tally, page, operators, index, viewport_height, options)
            case _:
                continue

    return tally.finish(started)


def _extract_document_page(
    document: DocumentHandle,
    page_number: int,
    options: FigureFilterOptions | None,
) -> FigureExtractionResult:
    try:
        page = document.get_page(page_number)
    except PageReadFailure as exc:
        logger.warning("Skipping figures on page %d: %s", page_number, exc)
        return FigureExtractionResult(
            figures=(),
            diagnostics=ExtractionDiagnostics(
                page_number=page_number,
                errors=(f"Page processing error: {exc}",),
            ),
        )
    return extract_figures_from_page(page, page_number, options)


async def extract_all_figures(
    document: DocumentHandle,
    *,
    options: FigureFilterOptions | None = None,
    on_progress: ProgressCallback | None = None,
) -> DocumentFigures:
    """Extract figures from every page, one page at a time.

    ``on_progress(current, total)`` is called after each completed page.
    """
    loop = asyncio.get_running_loop()
    total = document.num_pages
    figures: list[ExtractedFigure] = []
    diagnostics: list[ExtractionDiagnostics] = []

    for page_number in range(1, total + 1):
        result = await loop.run_in_executor(
            None,
            functools.partial(_extract_document_page, document, page_number, options),
        )
        figures.extend(result.figures)
        diagnostics.append(result.diagnostics)

        if on_progress is not None:
            on_progress(page_number, total)

        logger.debug(
            "Page %d: found %d figures in %.1fms",
            page_number,
            len(result.figures),
            result.diagnostics.processing_time_ms,
        )

    return DocumentFigures(figures=tuple(figures), diagnostics=tuple(diagnostics))
