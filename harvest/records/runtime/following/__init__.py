"""Concurrent link following."""

from .coordinator import FollowOutcome, LinkFollowingCoordinator, RowOutcome, output_headers
from .rate_limiter import RateLimiter, ResponseHook, run_response_hooks, throttle_on_status
from .scheduler import LinkScheduler
from .tasks import LinkContext, LinkTask

__all__ = [
    "LinkFollowingCoordinator",
    "RowOutcome",
    "FollowOutcome",
    "output_headers",
    "RateLimiter",
    "ResponseHook",
    "throttle_on_status",
    "run_response_hooks",
    "LinkScheduler",
    "LinkTask",
    "LinkContext",
]
