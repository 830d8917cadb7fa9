"""Per-host request pacing and throttling hooks.

Architecture:
    Every request (pages and followed links) acquires the limiter for its
    host first. A per-host ``asyncio.Lock`` serializes acquisitions so two
    requests to the same host are always at least ``wait_time(host)`` apart,
    while different hosts never wait on each other. Locks belong to the event
    loop that created them, so a new loop gets fresh locks while the recorded
    request times and wait times carry over.

    Response hooks receive every response together with the limiter and may
    adjust the wait time of the responding host. ``throttle_on_status`` is the
    default hook.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Iterable

from ...core.settings import DEFAULT_REMOTE_INTERVAL
from ...io.protocols import FetchResponse, parse_retry_after

logger = logging.getLogger(__name__)

THROTTLE_STATUSES = (429, 503)


class RateLimiter:
    """Minimum interval between two requests to the same host."""

    def __init__(
        self,
        interval: float = DEFAULT_REMOTE_INTERVAL,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval < 0:
            raise ValueError(f"interval must be >= 0, got {interval}")
        self.interval = interval
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wait: dict[str, float] = {}
        self._last: dict[str, float] = {}

    def _lock(self, host: str) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if loop is not self._loop:
            self._locks = {}
            self._loop = loop
        lock = self._locks.get(host)
        if lock is None:
            lock = self._locks[host] = asyncio.Lock()
        return lock

    async def acquire(self, host: str) -> None:
        """Wait until a request to ``host`` may be sent."""
        async with self._lock(host):
            last = self._last.get(host)
            if last is not None:
                while True:
                    remaining = self.wait_time(host) - (self._clock() - last)
                    if remaining <= 0:
                        break
                    await asyncio.sleep(remaining)
            self._last[host] = self._clock()

    def wait_time(self, host: str) -> float:
        return self._wait.get(host, self.interval)

    def set_wait_time(self, host: str, seconds: float) -> None:
        self._wait[host] = max(seconds, 0.0)

    def increase_wait_time(self, host: str, amount: float) -> float:
        wait = self.wait_time(host) + max(amount, 0.0)
        self._wait[host] = wait
        return wait

    def decrease_wait_time(self, host: str, amount: float) -> float:
        """Shorten the wait for ``host``, never below the base interval."""
        wait = max(self.wait_time(host) - max(amount, 0.0), self.interval)
        self._wait[host] = wait
        return wait

    def reset(self, host: str | None = None) -> None:
        if host is None:
            self._wait.clear()
            self._last.clear()
        else:
            self._wait.pop(host, None)
            self._last.pop(host, None)


ResponseHook = Callable[[FetchResponse, RateLimiter], Awaitable[None] | None]


def throttle_on_status(response: FetchResponse, rate_limiter: RateLimiter) -> None:
    """Double the wait on 429/503 (at least ``Retry-After``), relax it on success."""
    host = response.host
    current = rate_limiter.wait_time(host)
    if response.status in THROTTLE_STATUSES:
        wait = rate_limiter.increase_wait_time(host, max(current, DEFAULT_REMOTE_INTERVAL))
        retry_after = parse_retry_after(response.headers.get("Retry-After"))
        if retry_after is not None and retry_after > wait:
            rate_limiter.set_wait_time(host, retry_after)
            wait = retry_after
        logger.warning(
            "host_throttled",
            extra={"host": host, "status": response.status, "wait_time": wait},
        )
    elif response.ok and current > rate_limiter.interval:
        rate_limiter.decrease_wait_time(host, (current - rate_limiter.interval) / 2)


async def run_response_hooks(
    hooks: Iterable[ResponseHook], response: FetchResponse, rate_limiter: RateLimiter
) -> None:
    for hook in hooks:
        outcome = hook(response, rate_limiter)
        if inspect.isawaitable(outcome):
            await outcome
