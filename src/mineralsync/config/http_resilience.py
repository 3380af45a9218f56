"""Retry, throttling and timeout settings for outbound HTTP."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from collections.abc import Mapping

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD"})
RETRYABLE_STATUSES = frozenset(
    {
        HTTPStatus.TOO_MANY_REQUESTS,
        HTTPStatus.INTERNAL_SERVER_ERROR,
        HTTPStatus.BAD_GATEWAY,
        HTTPStatus.SERVICE_UNAVAILABLE,
        HTTPStatus.GATEWAY_TIMEOUT,
    }
)
TRANSIENT_EXCEPTIONS: tuple[type[httpx.HTTPError], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Retry schedule for a single request.

    ``total`` counts retries after the first attempt. The wait before retry ``n`` is
    ``backoff_factor * 2 ** (n - 1)`` plus up to ``backoff_jitter`` seconds, capped at
    ``max_backoff_wait``. A ``Retry-After`` header replaces the computed wait when
    ``respect_retry_after_header`` is set.
    """

    total: int = 3
    backoff_factor: float = 0.5
    backoff_jitter: float = 1.0
    max_backoff_wait: float = 60.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = IDEMPOTENT_METHODS
    status_forcelist: frozenset[int] = RETRYABLE_STATUSES
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = TRANSIENT_EXCEPTIONS

    def attempts_for(self, method: str) -> int:
        return self.total + 1 if method.upper() in self.allowed_methods else 1


@dataclass(slots=True, frozen=True)
class RateLimit:
    """Token bucket of ``requests`` per ``period_seconds``."""

    requests: int
    period_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.requests < 1 or self.period_seconds <= 0:
            raise ValueError(f"invalid rate limit {self.requests}/{self.period_seconds}s")

    @classmethod
    def per_minute(cls, requests: int) -> RateLimit:
        return cls(requests=requests, period_seconds=60.0)


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    default_headers: Mapping[str, str] | None = None
