"""Structured logging for pagination."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def log_page_started(*, page_number: int, url: str | None) -> None:
    logger.debug("page_started", extra={"page_number": page_number, "url": url})


def log_page_completed(
    *,
    page_number: int,
    url: str | None,
    rows: int,
    latency_ms: float | None = None,
) -> None:
    """Log completion of a page.

    Args:
        page_number: One-based number of the page
        url: URL of the page
        rows: Rows published for all entities of the page
        latency_ms: Time spent fetching and processing the page
    """
    logger.info(
        "page_completed",
        extra={"page_number": page_number, "url": url, "rows": rows, "latency_ms": latency_ms},
    )


def log_pagination_stopped(*, reason: str, page_count: int) -> None:
    logger.info("pagination_stopped", extra={"reason": reason, "page_count": page_count})


def log_probe_failed(*, url: str) -> None:
    logger.warning("pagination_probe_failed", extra={"url": url})
