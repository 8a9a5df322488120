"""In-memory store of open document sessions."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass

from pdfstruct._config import (
    DEFAULT_SESSION_CACHE_MAX_ENTRIES,
    DEFAULT_SESSION_CACHE_TTL_SECONDS,
)
from pdfstruct._session import DocumentSession

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _CacheEntry:
    session: DocumentSession
    expires_at: float
    sources: set[str]


class SessionStore:
    """Thread-safe LRU cache of sessions keyed by ``doc_id``.

    Sessions that are evicted, expire, are replaced or cleared get closed.
    """

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_SESSION_CACHE_MAX_ENTRIES,
        ttl_seconds: int = DEFAULT_SESSION_CACHE_TTL_SECONDS,
    ) -> None:
        self._cache: OrderedDict[str, _CacheEntry] = OrderedDict()
        self._source_map: dict[str, str] = {}
        self._lock = threading.Lock()
        self._max_entries = max(1, int(max_entries))
        self._ttl = max(1, int(ttl_seconds))

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def clear(self) -> None:
        """Close and remove all sessions."""
        with self._lock:
            entries = list(self._cache.values())
            self._cache.clear()
            self._source_map.clear()
        for entry in entries:
            entry.session.close()

    def store(
        self,
        session: DocumentSession,
        *,
        source: str | None = None,
    ) -> DocumentSession:
        """Store ``session`` under its ``doc_id`` and return it."""
        key = session.doc_id
        now = time.monotonic()
        stale: list[DocumentSession] = []

        with self._lock:
            stale.extend(self._prune_expired(now))

            existing = self._cache.pop(key, None)
            if existing is not None:
                self._cleanup_entry(key, existing)
                if existing.session is not session:
                    stale.append(existing.session)

            sources: set[str] = set()
            if source:
                source_value = source.strip()
                if source_value:
                    sources.add(source_value)
                    self._source_map[source_value] = key

            self._cache[key] = _CacheEntry(
                session=session,
                expires_at=now + self._ttl,
                sources=sources,
            )

            while len(self._cache) > self._max_entries:
                evicted_key, evicted_entry = self._cache.popitem(last=False)
                self._cleanup_entry(evicted_key, evicted_entry)
                stale.append(evicted_entry.session)
                logger.debug("Evicted session %s", evicted_key)

        for old in stale:
            old.close()
        return session

    def register_source(self, key: str, source: str) -> None:
        """Register an additional source alias for a stored session."""
        source_value = source.strip()
        if not source_value:
            return

        now = time.monotonic()
        with self._lock:
            stale = self._prune_expired(now)
            entry = self._cache.get(key)
            if entry is not None:
                entry.sources.add(source_value)
                self._source_map[source_value] = key
        for old in stale:
            old.close()

    def get(self, key: str) -> DocumentSession | None:
        """Return the session stored under ``key``, or ``None``."""
        now = time.monotonic()
        with self._lock:
            stale = self._prune_expired(now)
            entry = self._cache.get(key)
            if entry is not None:
                self._cache.move_to_end(key)
        for old in stale:
            old.close()
        return entry.session if entry is not None else None

    def get_by_source(self, source: str) -> DocumentSession | None:
        """Resolve a session by source alias."""
        source_value = source.strip()
        if not source_value:
            return None

        with self._lock:
            doc_id = self._source_map.get(source_value)
        if doc_id is None:
            return None

        session = self.get(doc_id)
        if session is None:
            with self._lock:
                self._source_map.pop(source_value, None)
        return session

    def remove(self, key: str) -> bool:
        """Close and drop the session stored under ``key``."""
        with self._lock:
            entry = self._cache.pop(key, None)
            if entry is not None:
                self._cleanup_entry(key, entry)
        if entry is None:
            return False
        entry.session.close()
        return True

    def _cleanup_entry(self, doc_id: str, entry: _CacheEntry) -> None:
        for source in entry.sources:
            if self._source_map.get(source) == doc_id:
                self._source_map.pop(source, None)

    def _prune_expired(self, now: float) -> list[DocumentSession]:
        expired = [
            doc_id for doc_id, entry in self._cache.items() if entry.expires_at <= now
        ]
        sessions: list[DocumentSession] = []
        for doc_id in expired:
            entry = self._cache.pop(doc_id, None)
            if entry is not None:
                self._cleanup_entry(doc_id, entry)
                sessions.append(entry.session)
        return sessions


_default_store = SessionStore()


def configure_cache(*, max_entries: int, ttl_seconds: int) -> None:
    """Replace the default store with one using new limits (mainly for tests)."""
    global _default_store
    _default_store.clear()
    _default_store = SessionStore(max_entries=max_entries, ttl_seconds=ttl_seconds)


def clear_store() -> None:
    """Close and remove every session in the default store."""
    _default_store.clear()


def store_session(
    session: DocumentSession,
    *,
    source: str | None = None,
) -> DocumentSession:
    """Store a session in the default store."""
    return _default_store.store(session, source=source)


def register_session_source(key: str, source: str) -> None:
    """Register a source alias in the default store."""
    _default_store.register_source(key, source)


def get_session(key: str) -> DocumentSession | None:
    """Retrieve from the default store by ``doc_id``."""
    return _default_store.get(key)


def get_session_by_source(source: str) -> DocumentSession | None:
    """Resolve from the default store by source alias."""
    return _default_store.get_by_source(source)
