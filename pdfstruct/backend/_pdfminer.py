"""Document handle implementation backed by pdfminer.six."""

from __future__ import annotations

import io
import logging
import threading
from typing import Any, Iterator, Sequence

from pdfminer.converter import PDFPageAggregator
from pdfminer.layout import LAParams, LTChar, LTContainer, LTTextLine
from pdfminer.pdfdocument import PDFDocument
from pdfminer.pdfinterp import PDFContentParser, PDFPageInterpreter, PDFResourceManager
from pdfminer.pdfpage import PDFPage
from pdfminer.pdfparser import PDFParser
from pdfminer.pdftypes import PDFStream, resolve1
from pdfminer.psparser import (
    PSEOF,
    PSException,
    PSKeyword,
    PSLiteral,
    keyword_name,
    literal_name,
)

from pdfstruct._config import MAX_FORM_XOBJECT_DEPTH
from pdfstruct._exceptions import DocumentOpenError, PageReadFailure
from pdfstruct._types import (
    IDENTITY_MATRIX,
    ImageObject,
    OperatorCode,
    OperatorList,
    RawTextItem,
    Viewport,
)
from pdfstruct.backend._images import decode_image, is_image_mask

logger = logging.getLogger(__name__)

_OPERATOR_CODES: dict[str, OperatorCode] = {
    "q": OperatorCode.SAVE,
    "Q": OperatorCode.RESTORE,
    "cm": OperatorCode.TRANSFORM,
    "BT": OperatorCode.BEGIN_TEXT,
    "ET": OperatorCode.END_TEXT,
    "Tf": OperatorCode.SET_FONT,
    "Tm": OperatorCode.SET_TEXT_MATRIX,
    "Td": OperatorCode.MOVE_TEXT,
    "TD": OperatorCode.MOVE_TEXT,
    "T*": OperatorCode.MOVE_TEXT,
    "Tj": OperatorCode.SHOW_TEXT,
    "TJ": OperatorCode.SHOW_TEXT,
    "'": OperatorCode.SHOW_TEXT,
    '"': OperatorCode.SHOW_TEXT,
}


def _as_dict(value: Any) -> dict[str, Any]:
    resolved = resolve1(value)
    return resolved if isinstance(resolved, dict) else {}


def _subtype(stream: PDFStream) -> str:
    value = resolve1(stream.get("Subtype"))
    return literal_name(value) if isinstance(value, PSLiteral) else ""


def _lookup_xobject(resources: dict[str, Any], name: str) -> PDFStream | None:
    obj = resolve1(_as_dict(resources.get("XObject")).get(name))
    return obj if isinstance(obj, PDFStream) else None


def _convert_operand(value: Any) -> Any:
    if isinstance(value, PSLiteral):
        return literal_name(value)
    if isinstance(value, PSKeyword):
        return keyword_name(value)
    if isinstance(value, list):
        return [_convert_operand(item) for item in value]
    return value


def _numbers(value: Any, default: Sequence[float]) -> tuple[float, ...]:
    value = resolve1(value)
    if not isinstance(value, list):
        return tuple(default)
    return tuple(float(resolve1(item)) for item in value)


def _tokenize(streams: Sequence[Any]) -> Iterator[tuple[str, list[Any]]]:
    """Yield ``(operator, operands)`` pairs from content streams."""
    parser = PDFContentParser(list(streams))
    operands: list[Any] = []
    while True:
        try:
            _pos, obj = parser.nextobject()
        except PSEOF:
            return
        if isinstance(obj, PSKeyword):
            yield keyword_name(obj), operands
            operands = []
        else:
            operands.append(obj)


class PdfMinerObjectCache:
    """Image lookup for one page.

    ``get`` resolves names against the page's XObject resources. Images that
    are not addressable that way (inline images and images nested in form
    XObjects) are registered in the object table while the operator list is
    built and are reachable through ``peek``.

    Decoding reads the document's shared file stream, so it runs under the
    document lock.
    """

    def __init__(self, resources: dict[str, Any], lock: threading.Lock) -> None:
        self._resources = resources
        self._lock = lock
        self._table: dict[str, tuple[PDFStream, dict[str, Any]]] = {}
        self._decoded: dict[str, ImageObject] = {}

    def register(self, name: str, stream: PDFStream, resources: dict[str, Any]) -> None:
        self._table[name] = (stream, resources)

    def get(self, name: str) -> ImageObject:
        with self._lock:
            if name in self._decoded:
                return self._decoded[name]
            stream = _lookup_xobject(self._resources, name)
            if stream is None or _subtype(stream) != "Image":
                raise KeyError(name)
            return self._decode(name, stream, self._resources)

    def peek(self, name: str) -> ImageObject | None:
        with self._lock:
            if name in self._decoded:
                return self._decoded[name]
            entry = self._table.get(name)
            if entry is None:
                return None
            stream, resources = entry
            return self._decode(name, stream, resources)

    def _decode(
        self, name: str, stream: PDFStream, resources: dict[str, Any]
    ) -> ImageObject:
        image = decode_image(stream, name, resources)
        self._decoded[name] = image
        return image


class _OperatorListBuilder:
    def __init__(self, page_number: int, objs: PdfMinerObjectCache) -> None:
        self._page_number = page_number
        self._objs = objs
        self._codes: list[int] = []
        self._args: list[tuple[Any, ...]] = []
        self._inline_count = 0
        self._active_forms: set[int] = set()

    def build(self, streams: Sequence[Any], resources: dict[str, Any]) -> OperatorList:
        self._walk(streams, resources, prefix="", depth=0)
        return OperatorList(codes=tuple(self._codes), args=tuple(self._args))

    def _emit(self, code: OperatorCode, args: Sequence[Any]) -> None:
        self._codes.append(int(code))
        self._args.append(tuple(args))

    def _walk(
        self,
        streams: Sequence[Any],
        resources: dict[str, Any],
        *,
        prefix: str,
        depth: int,
    ) -> None:
        for operator, operands in _tokenize(streams):
            match operator:
                case "Do":
                    self._paint_xobject(operands, resources, prefix, depth)
                case "EI":
                    self._paint_inline_image(operands, resources)
                case _:
                    code = _OPERATOR_CODES.get(operator, OperatorCode.OTHER)
                    self._emit(code, [_convert_operand(value) for value in operands])

    def _paint_xobject(
        self,
        operands: list[Any],
        resources: dict[str, Any],
        prefix: str,
        depth: int,
    ) -> None:
        name = _convert_operand(operands[-1]) if operands else ""
        if not isinstance(name, str):
            name = str(name)
        xobject = _lookup_xobject(resources, name)

        if xobject is not None and _subtype(xobject) == "Form":
            self._paint_form(name, xobject, resources, prefix, depth)
            return

        qualified = f"{prefix}{name}"
        if prefix and xobject is not None:
            self._objs.register(qualified, xobject, resources)

        # Unknown names are still reported so the failure shows up downstream.
        code = (
            OperatorCode.PAINT_IMAGE_MASK_XOBJECT
            if xobject is not None and is_image_mask(xobject)
            else OperatorCode.PAINT_IMAGE_XOBJECT
        )
        self._emit(code, [qualified])

    def _paint_form(
        self,
        name: str,
        form: PDFStream,
        resources: dict[str, Any],
        prefix: str,
        depth: int,
    ) -> None:
        key = form.objid if form.objid is not None else id(form)
        if depth >= MAX_FORM_XOBJECT_DEPTH or key in self._active_forms:
            logger.debug(
                "Page %d: not expanding form %s%s (depth %d)",
                self._page_number,
                prefix,
                name,
                depth,
            )
            self._emit(OperatorCode.OTHER, [name])
            return

        matrix = _numbers(form.get("Matrix"), IDENTITY_MATRIX)
        bbox = _numbers(form.get("BBox"), ())
        form_resources = _as_dict(form.get("Resources")) or resources

        self._emit(OperatorCode.PAINT_FORM_XOBJECT_BEGIN, [matrix, bbox])
        self._active_forms.add(key)
        try:
            self._walk(
                [form], form_resources, prefix=f"{prefix}{name}/", depth=depth + 1
            )
        finally:
            self._active_forms.discard(key)
        self._emit(OperatorCode.PAINT_FORM_XOBJECT_END, [])

    def _paint_inline_image(
        self,
        operands: list[Any],
        resources: dict[str, Any],
    ) -> None:
        stream = operands[-1] if operands else None
        if not isinstance(stream, PDFStream):
            self._emit(OperatorCode.OTHER, [])
            return

        name = f"inline_{self._inline_count}"
        self._inline_count += 1
        self._objs.register(name, stream, resources)
        code = (
            OperatorCode.PAINT_IMAGE_MASK_XOBJECT
            if is_image_mask(stream)
            else OperatorCode.PAINT_INLINE_IMAGE_XOBJECT
        )
        self._emit(code, [name])


def _iter_text_lines(container: LTContainer) -> Iterator[LTTextLine]:
    for element in container:
        if isinstance(element, LTTextLine):
            yield element
        elif isinstance(element, LTContainer):
            yield from _iter_text_lines(element)


def _first_char(line: LTTextLine) -> LTChar | None:
    for element in line:
        if isinstance(element, LTChar):
            return element
    return None


class PdfMinerPage:
    """One page of a :class:`PdfMinerDocument`."""

    def __init__(
        self,
        page: PDFPage,
        page_number: int,
        resource_manager: PDFResourceManager,
        lock: threading.Lock,
    ) -> None:
        self._page = page
        self._page_number = page_number
        self._resource_manager = resource_manager
        self._lock = lock
        self._resources = _as_dict(page.resources)
        self._operators: OperatorList | None = None
        self.objs = PdfMinerObjectCache(self._resources, lock)

    @property
    def page_number(self) -> int:
        return self._page_number

    def get_viewport(self, scale: float) -> Viewport:
        x0, y0, x1, y1 = (float(value) for value in self._page.mediabox)
        return Viewport(
            width=(x1 - x0) * scale,
            height=(y1 - y0) * scale,
            scale=scale,
            transform=(scale, 0.0, 0.0, -scale, -x0 * scale, y1 * scale),
        )

    def get_text_content(self) -> list[RawTextItem]:
        device = PDFPageAggregator(
            self._resource_manager, laparams=LAParams(all_texts=True)
        )
        interpreter = PDFPageInterpreter(self._resource_manager, device)
        try:
            with self._lock:
                interpreter.process_page(self._page)
        except (PSException, ValueError, TypeError) as exc:
            raise PageReadFailure(
                self._page_number, f"text layout failed: {exc}"
            ) from exc
        finally:
            device.close()

        items: list[RawTextItem] = []
        for line in _iter_text_lines(device.get_result()):
            first = _first_char(line)
            size = float(first.size) if first is not None else float(line.height)
            items.append(
                RawTextItem(
                    string=line.get_text(),
                    transform=(size, 0.0, 0.0, size, float(line.x0), float(line.y0)),
                    width=float(line.width),
                    height=float(line.height),
                    font_name=first.fontname if first is not None else "",
                )
            )
        return items

    def get_operator_list(self) -> OperatorList:
        with self._lock:
            if self._operators is None:
                builder = _OperatorListBuilder(self._page_number, self.objs)
                try:
                    self._operators = builder.build(
                        self._page.contents, self._resources
                    )
                except (PSException, ValueError, TypeError) as exc:
                    raise PageReadFailure(
                        self._page_number, f"content stream parse failed: {exc}"
                    ) from exc
            return self._operators


class PdfMinerDocument:
    """An opened PDF document.

    pdfminer resolves objects lazily from a single file stream, so every
    page, text and image read takes one document-wide lock. Handles may be
    used from several threads, but reads run one at a time.

    Raises
    ------
    DocumentOpenError
        If ``pdf_bytes`` cannot be parsed or contains no pages.
    """

    def __init__(self, pdf_bytes: bytes) -> None:
        self._stream = io.BytesIO(pdf_bytes)
        try:
            parser = PDFParser(self._stream)
            self._document = PDFDocument(parser)
            self._pages = list(PDFPage.create_pages(self._document))
        except (PSException, ValueError, TypeError, KeyError) as exc:
            self._stream.close()
            raise DocumentOpenError(f"Could not open PDF: {exc}") from exc

        if not self._pages:
            self._stream.close()
            raise DocumentOpenError("Could not open PDF: document has no pages")

        self._lock = threading.Lock()
        self._resource_manager = PDFResourceManager(caching=True)
        self._handles: dict[int, PdfMinerPage] = {}

    @property
    def num_pages(self) -> int:
        return len(self._pages)

    def get_page(self, page_number: int) -> PdfMinerPage:
        if page_number < 1 or page_number > len(self._pages):
            raise PageReadFailure(
                page_number,
                f"page out of range (document has {len(self._pages)} pages)",
            )
        with self._lock:
            handle = self._handles.get(page_number)
            if handle is None:
                handle = PdfMinerPage(
                    self._pages[page_number - 1],
                    page_number,
                    self._resource_manager,
                    self._lock,
                )
                self._handles[page_number] = handle
            return handle

    def close(self) -> None:
        with self._lock:
            self._handles.clear()
            self._stream.close()
