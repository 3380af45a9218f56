"""Sync and matching policies, with optional environment overrides."""

from __future__ import annotations

from mineralsync.domain.reconciliation.policy import (
    DEFAULT_FUZZY_THRESHOLD,
    DEFAULT_REVIEW_THRESHOLD,
    MatchPolicy,
)
from mineralsync.domain.sync.policy import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_REQUESTS_PER_MINUTE,
    SyncPolicy,
)

from .env import env_float, env_int
from .errors import ConfigurationError


def get_sync_policy() -> SyncPolicy:
    try:
        return SyncPolicy(
            requests_per_minute=env_int(
                "MINERALSYNC_REQUESTS_PER_MINUTE", DEFAULT_REQUESTS_PER_MINUTE
            ),
            fetch_timeout_seconds=env_float(
                "MINERALSYNC_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT_SECONDS
            ),
            batch_size=env_int("MINERALSYNC_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        )
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def get_match_policy() -> MatchPolicy:
    try:
        return MatchPolicy(
            fuzzy_threshold=env_float("MINERALSYNC_FUZZY_THRESHOLD", DEFAULT_FUZZY_THRESHOLD),
            review_threshold=env_float("MINERALSYNC_REVIEW_THRESHOLD", DEFAULT_REVIEW_THRESHOLD),
        )
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
