"""HTTP fetcher backed by aiohttp."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import urljoin

import aiohttp

from ..core.exceptions import FetchError
from .protocols import FetchRequest, FetchResponse, parse_retry_after

logger = logging.getLogger(__name__)

_THROTTLE_STATUSES = (418, 429)


class HTTPFetcher:
    """Async HTTP fetcher.

    Throttling responses (418/429) are retried up to ``max_retries`` times,
    waiting for ``Retry-After`` seconds (or ``retry_fallback`` when the header
    is missing). The final response is returned whatever its status; callers
    decide whether it is an error.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        max_retries: int = 2,
        retry_fallback: float = 1.0,
        encoding: str = "utf-8",
    ) -> None:
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers = dict(headers or {})
        self.max_retries = max_retries
        self.retry_fallback = retry_fallback
        self.encoding = encoding
        self._session: aiohttp.ClientSession | None = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=self.headers)
        return self._session

    async def fetch(self, request: FetchRequest) -> FetchResponse:
        """Fetch ``request`` and return the response body and metadata.

        Raises:
            FetchError: If the request could not be sent or timed out.
        """
        try:
            return await self._fetch(request)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"Request to {request.url} failed: {e}", url=request.url) from e

    async def _fetch(self, request: FetchRequest) -> FetchResponse:
        attempt = 0
        while True:
            async with self.session.request(
                request.method,
                request.url,
                params=request.params or None,
                headers=request.headers or None,
                cookies=request.cookies or None,
                data=request.data,
            ) as response:
                if response.status in _THROTTLE_STATUSES and attempt < self.max_retries:
                    delay = parse_retry_after(response.headers.get("Retry-After"))
                    if delay is None:
                        delay = self.retry_fallback
                    attempt += 1
                    logger.warning(
                        "http_throttled",
                        extra={
                            "url": request.url,
                            "status": response.status,
                            "retry_in": delay,
                            "attempt": attempt,
                        },
                    )
                    await asyncio.sleep(delay)
                    continue

                content = await response.read()
                return FetchResponse(
                    url=str(getattr(response, "url", request.url)),
                    content=content,
                    status=response.status,
                    headers=dict(response.headers),
                    cookies=_cookie_values(response.cookies),
                    encoding=response.charset or self.encoding,
                )

    async def probe(self, url: str) -> bool:
        """Return True when a HEAD request to ``url`` succeeds."""
        try:
            async with self.session.head(url, allow_redirects=True) as response:
                return response.status < 400
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("http_probe_failed", extra={"url": url, "error": str(e)})
            return False

    def resolve(self, base: str | None, link: str) -> str:
        if not base:
            return link
        return urljoin(base, link)

    async def close(self) -> None:
        """Close session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> HTTPFetcher:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _cookie_values(cookies: Any) -> dict[str, str]:
    if not cookies:
        return {}
    return {name: getattr(morsel, "value", morsel) for name, morsel in cookies.items()}
