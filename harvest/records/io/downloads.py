"""Persistence of fetched documents under a download directory."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path, PurePosixPath

from ..core.settings import ParserSettings
from ..utils.filenames import FileNamePattern, with_extension
from .protocols import FetchResponse

logger = logging.getLogger(__name__)


class DownloadStore:
    """Writes documents using the page and follower file-name patterns.

    Names are relative to ``directory``; the name of a page (without its
    extension) is what ``{parent}`` expands to for documents reached from it.
    """

    def __init__(self, settings: ParserSettings) -> None:
        if settings.download_directory is None:
            raise ValueError("DownloadStore requires settings.download_directory")
        self.directory = Path(settings.download_directory)
        self.page_pattern = FileNamePattern(settings.file_name_pattern)
        self.follower_pattern = FileNamePattern(settings.follower_file_name_pattern)
        self.extension = settings.default_file_extension
        self.overwrite = settings.download_overwriting_enabled
        self.batch_id = settings.batch_id
        self.parse_date = settings.parse_date or datetime.now()

    def file_name(
        self,
        url: str,
        *,
        page: int,
        parent: str | None = None,
        follower: int | None = None,
    ) -> str:
        """Render the relative file name for a document."""
        pattern = self.page_pattern if parent is None else self.follower_pattern
        rendered = pattern.render(
            page=page,
            date=self.parse_date,
            url=url,
            parent=parent,
            batch=self.batch_id,
            follower=follower,
        )
        rendered = rendered.replace("\\", "/").lstrip("/")
        if not rendered:
            rendered = f"file_{page}"
        return with_extension(rendered, self.extension)

    async def save(
        self,
        response: FetchResponse,
        *,
        page: int,
        parent: str | None = None,
        follower: int | None = None,
    ) -> str:
        """Persist ``response`` and return its name without extension."""
        name = self.file_name(response.url, page=page, parent=parent, follower=follower)
        target = self.directory / name
        written = await asyncio.to_thread(self._write, target, response.content)
        logger.debug(
            "document_saved" if written else "document_kept",
            extra={"url": response.url, "path": str(target)},
        )
        return str(PurePosixPath(name).with_suffix(""))

    def _write(self, target: Path, content: bytes) -> bool:
        if target.exists() and not self.overwrite:
            return False
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return True
