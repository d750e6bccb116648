"""In-flight-or-completed cache for registry fetches.

Entries are keyed by request URL and hold the asyncio task performing the
fetch, so concurrent callers share one request. Completed entries (success
or failure) stay until cleared; cancelled fetches are evicted so a later
run can try again.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class CacheEntry:
    """A single shared fetch."""

    task: "asyncio.Future[Any]"
    waiters: int = 0

    @property
    def failed(self) -> bool:
        return self.task.done() and not self.task.cancelled() and self.task.exception() is not None


class PackumentCache:
    """Request-deduplicating cache shared by registry clients.

    Create one per process (or per test) and hand it to every
    ``RegistryClient`` that should share fetched metadata.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, url: str) -> Optional[CacheEntry]:
        """Get the entry for a URL, pending or completed."""
        return self._entries.get(url)

    def set_if_absent(self, url: str, task: "asyncio.Future[Any]") -> CacheEntry:
        """Insert ``task`` unless an entry exists; return the entry in effect.

        Check and insert happen without yielding to the event loop, which
        makes this atomic for every coroutine on that loop.
        """
        entry = self._entries.get(url)
        if entry is None:
            entry = CacheEntry(task=task)
            self._entries[url] = entry
        return entry

    def discard(self, url: str, task: "asyncio.Future[Any]") -> None:
        """Remove the entry for ``url`` only if it still holds ``task``."""
        entry = self._entries.get(url)
        if entry is not None and entry.task is task:
            del self._entries[url]

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        pending = sum(1 for e in self._entries.values() if not e.task.done())
        failed = sum(1 for e in self._entries.values() if e.failed)
        return {
            "total_entries": len(self._entries),
            "pending_entries": pending,
            "failed_entries": failed,
            "completed_entries": len(self._entries) - pending - failed,
        }
