"""Holds the current OpenSpec snapshot and publishes refreshes.

Each refresh builds a complete new OpenSpecData and swaps the reference in
one assignment, so readers see either the old snapshot or the new one,
never a mix. Refreshes are serialized with a lock: overlapping filesystem
events queue up and the latest completed pass is what readers see.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from .core import FileChangeEvent, OpenSpecData, ParseResult, SearchResult
from .parser import parse_openspec_async
from .search import search_openspec

logger = logging.getLogger(__name__)

Subscriber = Callable[[FileChangeEvent, OpenSpecData], Awaitable[None]]


class SnapshotStore:
    """Current model for one OpenSpec root plus change subscribers."""

    def __init__(self, openspec_path: Path):
        self.openspec_path = Path(openspec_path)
        self._data: Optional[OpenSpecData] = None
        self._errors: list[str] = []
        self._warnings: list[str] = []
        self._lock = asyncio.Lock()
        self._subscribers: list[Subscriber] = []

    @property
    def data(self) -> Optional[OpenSpecData]:
        return self._data

    @property
    def errors(self) -> list[str]:
        return list(self._errors)

    @property
    def warnings(self) -> list[str]:
        return list(self._warnings)

    async def refresh(self) -> ParseResult[OpenSpecData]:
        """Re-read the whole tree and publish it if the parse succeeded.

        A failed pass keeps the previous snapshot.
        """
        async with self._lock:
            result = await parse_openspec_async(self.openspec_path)

            self._errors = list(result.errors)
            self._warnings = list(result.warnings)
            if result.data is not None:
                self._data = result.data
            else:
                logger.error("Failed to parse OpenSpec directory %s: %s", self.openspec_path, result.errors)

            for warning in result.warnings:
                logger.warning("%s", warning)

        return result

    async def handle_event(self, event: FileChangeEvent) -> None:
        """Refresh after a filesystem event and notify subscribers."""
        result = await self.refresh()
        if result.data is None:
            return

        for subscriber in list(self._subscribers):
            try:
                await subscriber(event, result.data)
            except Exception:
                logger.exception("Subscriber failed for %s event", event.affected_entity)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a coroutine called after each event-driven refresh.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def search(self, query: str) -> list[SearchResult]:
        if self._data is None:
            return []
        return search_openspec(self._data, query)
