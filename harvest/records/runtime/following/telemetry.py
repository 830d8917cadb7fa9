"""Structured logging for link following."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def log_link_followed(
    *,
    entity: str,
    field: str,
    url: str,
    rows: int,
    depth: int,
    latency_ms: float | None = None,
) -> None:
    """Log a linked document that was fetched and extracted.

    Args:
        entity: Entity owning the link field
        field: Link field name
        url: URL of the linked document
        rows: Rows extracted for the follower itself
        depth: Nesting depth of the document
        latency_ms: Time spent fetching and extracting
    """
    logger.debug(
        "link_followed",
        extra={
            "entity": entity,
            "field": field,
            "url": url,
            "rows": rows,
            "depth": depth,
            "latency_ms": latency_ms,
        },
    )


def log_link_failed(
    *,
    entity: str,
    field: str,
    url: str,
    error_type: str,
    error_message: str,
    ignored: bool,
) -> None:
    logger.log(
        logging.WARNING if ignored else logging.ERROR,
        "link_failed",
        extra={
            "entity": entity,
            "field": field,
            "url": url,
            "error_type": error_type,
            "error_message": error_message,
            "ignored": ignored,
        },
    )


def log_link_skipped(*, entity: str, field: str, reason: str) -> None:
    logger.debug("link_skipped", extra={"entity": entity, "field": field, "reason": reason})


def log_row_aborted(*, entity: str, row_index: int, error_message: str) -> None:
    logger.error(
        "row_aborted",
        extra={"entity": entity, "row_index": row_index, "error_message": error_message},
    )
