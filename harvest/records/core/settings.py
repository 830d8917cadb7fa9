"""Parser-wide configuration.

``ParserSettings`` is the global layer of the settings chain. Entities and
link followers may override ``nesting``, ``ignore_following_errors`` and
``empty_value``; everything else applies to the whole parse.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import Nesting

DEFAULT_DOWNLOAD_THREADS = 4
DEFAULT_REMOTE_INTERVAL = 0.015  # seconds between two requests to one host


class ParserSettings(BaseModel):
    """Global parser configuration (immutable).

    Use ``model_copy(update={...})`` to derive variants.
    """

    download_threads: int = Field(
        default=DEFAULT_DOWNLOAD_THREADS,
        ge=1,
        le=16,
        description="Number of link documents fetched and extracted concurrently",
    )
    remote_interval: float = Field(
        default=DEFAULT_REMOTE_INTERVAL,
        ge=0,
        description="Minimum interval in seconds between requests to the same host",
    )
    nesting: Nesting = Field(default=Nesting.LINK, description="Default nesting policy")
    ignore_following_errors: bool = Field(
        default=True, description="Keep rows whose links cannot be followed"
    )
    keep_unmatched_rows: bool = Field(
        default=True,
        description="Keep JOIN parent rows without child rows, null-filling child fields",
    )
    empty_value: str | None = Field(default=None, description="Value used for missing fields")
    request_timeout: float = Field(default=30.0, gt=0)
    text_encoding: str = Field(default="utf-8", min_length=1)

    download_directory: Path | None = Field(
        default=None, description="Directory where fetched documents are persisted"
    )
    file_name_pattern: str = Field(default="file_{page}", min_length=1)
    follower_file_name_pattern: str = Field(default="{parent}/file_{follower}", min_length=1)
    default_file_extension: str = Field(default="html")
    download_overwriting_enabled: bool = True
    batch_id: str | None = None
    parse_date: datetime | None = None

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("default_file_extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        """Store the extension without a leading dot."""
        return v.lstrip(".")

    @property
    def downloads_enabled(self) -> bool:
        return self.download_directory is not None
