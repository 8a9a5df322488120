"""Loading PDFs from base64 content or URLs into document sessions."""

from __future__ import annotations

import asyncio
import base64
import functools
import hashlib
import logging
from urllib.parse import urlparse

import httpx

from pdfstruct._config import DEFAULT_RENDER_SCALE, DOWNLOAD_TIMEOUT_SECONDS
from pdfstruct._session import DocumentSession
from pdfstruct._store import (
    get_session,
    get_session_by_source,
    register_session_source,
    store_session,
)
from pdfstruct.backend import PdfMinerDocument

logger = logging.getLogger(__name__)


async def _load_pdf_bytes(
    content: str | None,
    url: str | None,
) -> bytes:
    """Load bytes from base64 content or a remote URL.

    Caller must ensure exactly one of `content` or `url` is provided.
    """
    if content is not None:
        return base64.b64decode(content)

    parsed_url = urlparse(url)
    if parsed_url.scheme not in ("http", "https"):
        raise ValueError(
            f"Unsupported URL scheme: {parsed_url.scheme!r}. "
            "Only http and https are supported."
        )

    async with httpx.AsyncClient(
        follow_redirects=True, timeout=DOWNLOAD_TIMEOUT_SECONDS
    ) as client:
        response = await client.get(url)  # type: ignore[arg-type]
        response.raise_for_status()
        return response.content


def _reusable(session: DocumentSession | None, scale: float) -> bool:
    return session is not None and not session.closed and session.scale == scale


async def open_pdf(
    content: str | None = None,
    url: str | None = None,
    *,
    filename: str = "document.pdf",
    scale: float = DEFAULT_RENDER_SCALE,
    use_cache: bool = False,
) -> DocumentSession:
    """
    Open a PDF and return a session over it.

    Parameters
    ----------
    content
        Base64-encoded PDF content (mutually exclusive with `url`).
    url
        http(s) URL to download the PDF from (mutually exclusive with `content`).
    filename
        Display name recorded on the session.
    scale
        Render scale for screen-space coordinates (region queries, search
        bounding boxes).
    use_cache
        Reuse and register sessions in the default session store, keyed by the
        SHA-256 of the PDF bytes and aliased by URL.

    Returns
    -------
    DocumentSession
        Session whose ``doc_id`` is the SHA-256 hex digest of the PDF bytes.

    Raises
    ------
    ValueError
        If both or neither of `content` and `url` are provided, or the URL
        scheme is not http(s).
    DocumentOpenError
        If the bytes are not a readable PDF.
    """
    if (content is None) == (url is None):
        msg = "Exactly one of 'content' or 'url' must be provided"
        raise ValueError(msg)

    if use_cache and url:
        hit = get_session_by_source(url)
        if _reusable(hit, scale):
            return hit  # type: ignore[return-value]

    pdf_bytes = await _load_pdf_bytes(content, url)
    doc_id = hashlib.sha256(pdf_bytes).hexdigest()

    if use_cache:
        hit = get_session(doc_id)
        if _reusable(hit, scale):
            if url:
                register_session_source(doc_id, url)
            return hit  # type: ignore[return-value]

    loop = asyncio.get_running_loop()
    document = await loop.run_in_executor(
        None,
        functools.partial(PdfMinerDocument, pdf_bytes),
    )
    session = DocumentSession(document, doc_id=doc_id, filename=filename, scale=scale)
    logger.debug(
        "Opened %s: %d pages (doc_id=%s)", filename, session.num_pages, doc_id[:12]
    )

    if use_cache:
        store_session(session, source=url)
    return session
