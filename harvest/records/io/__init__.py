"""I/O layer: collaborator protocols, reference fetchers and download storage."""

from .downloads import DownloadStore
from .files import FileFetcher
from .http import HTTPFetcher
from .protocols import (
    Extractor,
    Fetcher,
    FetchRequest,
    FetchResponse,
    RecordFilter,
    Row,
    request_host,
)

__all__ = [
    "Fetcher",
    "Extractor",
    "RecordFilter",
    "FetchRequest",
    "FetchResponse",
    "Row",
    "request_host",
    "HTTPFetcher",
    "FileFetcher",
    "DownloadStore",
]
