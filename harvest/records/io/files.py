"""Fetcher for documents stored on the local filesystem."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from urllib.parse import unquote, urlsplit

from .protocols import FetchRequest, FetchResponse

logger = logging.getLogger(__name__)


class FileFetcher:
    """Reads previously downloaded documents from disk.

    Missing files are reported as 404 responses so that the same error
    policies apply as for remote documents.
    """

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    async def fetch(self, request: FetchRequest) -> FetchResponse:
        path = to_path(request.url)
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            logger.debug("file_not_found", extra={"path": str(path)})
            return FetchResponse(url=str(path), content=b"", status=404, encoding=self.encoding)
        return FetchResponse(url=str(path), content=content, status=200, encoding=self.encoding)

    async def probe(self, url: str) -> bool:
        return to_path(url).is_file()

    def resolve(self, base: str | None, link: str) -> str:
        if urlsplit(link).scheme in ("http", "https"):
            return link
        target = to_path(link)
        if target.is_absolute() or not base:
            return str(target)
        base_path = to_path(base)
        base_dir = base_path if base_path.is_dir() else base_path.parent
        return str(base_dir / target)

    @staticmethod
    def list_pages(directory: Path) -> list[str]:
        """List the documents of ``directory`` in name order, skipping hidden files."""
        return [
            str(path)
            for path in sorted(directory.iterdir())
            if path.is_file() and not path.name.startswith(".")
        ]

    async def close(self) -> None:
        return None


def to_path(location: str) -> Path:
    """Convert a plain path or ``file://`` URL to a Path."""
    parts = urlsplit(location)
    if parts.scheme == "file":
        return Path(unquote(parts.path))
    return Path(location)
