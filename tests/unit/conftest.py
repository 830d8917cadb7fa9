"""Shared fixtures for unit tests.

Documents are JSON objects mapping entity names to lists of rows, so tests can
describe whole sites as plain dicts.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import urljoin

import pytest

from harvest.records import FetchRequest, FetchResponse


def page(entities: Mapping[str, Sequence[Sequence[Any]]]) -> bytes:
    """Encode a document holding ``entities``."""
    return json.dumps({name: [list(row) for row in rows] for name, rows in entities.items()}).encode()


class FakeFetcher:
    """In-memory fetcher keyed by full URL, recording every call."""

    def __init__(
        self,
        documents: Mapping[str, bytes] | None = None,
        *,
        delay: float = 0.0,
        statuses: Mapping[str, int] | None = None,
        cookies: Mapping[str, Mapping[str, str]] | None = None,
    ) -> None:
        self.documents = dict(documents or {})
        self.delay = delay
        self.statuses = dict(statuses or {})
        self.cookies = dict(cookies or {})
        self.requests: list[FetchRequest] = []
        self.probed: list[str] = []
        self.started: list[tuple[str, float]] = []
        self.active = 0
        self.max_active = 0

    async def fetch(self, request: FetchRequest) -> FetchResponse:
        url = request.full_url
        self.requests.append(request)
        self.started.append((url, time.monotonic()))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            status = self.statuses.get(url, 200 if url in self.documents else 404)
            return FetchResponse(
                url=url,
                content=self.documents.get(url, b""),
                status=status,
                cookies=dict(self.cookies.get(url, {})),
            )
        finally:
            self.active -= 1

    async def probe(self, url: str) -> bool:
        self.probed.append(url)
        return url in self.documents

    def resolve(self, base: str | None, link: str) -> str:
        return urljoin(base or "", link)

    @property
    def urls(self) -> list[str]:
        return [request.full_url for request in self.requests]


class JSONExtractor:
    """Extractor reading documents produced by ``page``."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    def extract(self, response, plans):
        self.calls.append((response.url, tuple(plan.name for plan in plans)))
        data = json.loads(response.text) if response.content else {}
        return {plan.name: data.get(plan.name, []) for plan in plans}


@pytest.fixture
def extractor() -> JSONExtractor:
    return JSONExtractor()


@pytest.fixture
def make_page():
    return page


@pytest.fixture
def make_fetcher():
    return FakeFetcher
