"""Bounded pool for fetching and extracting linked documents."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from ...core.exceptions import ConfigurationError
from ...core.settings import DEFAULT_DOWNLOAD_THREADS

T = TypeVar("T")

MAX_WORKERS = 16


class LinkScheduler:
    """Limits how many linked documents are processed at once.

    A slot covers fetching and extracting one document. Callers release it
    before following the links of the extracted rows, so nested following
    cannot exhaust the pool. One scheduler may be shared by several parsers
    and reused across event loops; each loop gets its own semaphore.
    """

    def __init__(self, max_workers: int = DEFAULT_DOWNLOAD_THREADS) -> None:
        if not 1 <= max_workers <= MAX_WORKERS:
            raise ConfigurationError(f"max_workers must be between 1 and {MAX_WORKERS}, got {max_workers}")
        self.max_workers = max_workers
        self._semaphore: asyncio.Semaphore | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._active = 0

    @property
    def active(self) -> int:
        return self._active

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self._bound():
            self._active += 1
            try:
                yield
            finally:
                self._active -= 1

    def _bound(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        if self._semaphore is None or loop is not self._loop:
            self._semaphore = asyncio.Semaphore(self.max_workers)
            self._loop = loop
        return self._semaphore

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Await ``fn()`` while holding a slot."""
        async with self.slot():
            return await fn()
