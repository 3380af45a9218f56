"""Tunable parameters for the sync engine."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_REQUESTS_PER_MINUTE = 30
DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0
DEFAULT_BATCH_SIZE = 100
DEFAULT_RANGE_SPAN = 10_000
DEFAULT_SAMPLE_SIZE = 1_000
DEFAULT_REFRESH_LIMIT = 500
DEFAULT_MAX_REPORTED_ERRORS = 50


@dataclass(slots=True, frozen=True, kw_only=True)
class SyncPolicy:
    """Limits applied to every sync operation.

    ``requests_per_minute`` sizes the engine's token bucket; the reference source
    rejects clients that exceed it. ``batch_size`` only controls how often progress
    is logged, since every id is committed on its own.
    """

    requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    batch_size: int = DEFAULT_BATCH_SIZE
    default_range_span: int = DEFAULT_RANGE_SPAN
    default_sample_size: int = DEFAULT_SAMPLE_SIZE
    refresh_limit: int = DEFAULT_REFRESH_LIMIT
    max_reported_errors: int = DEFAULT_MAX_REPORTED_ERRORS

    def __post_init__(self) -> None:
        for name in (
            "requests_per_minute",
            "batch_size",
            "default_range_span",
            "default_sample_size",
            "refresh_limit",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be positive")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be positive")
        if self.max_reported_errors < 0:
            raise ValueError("max_reported_errors must not be negative")
