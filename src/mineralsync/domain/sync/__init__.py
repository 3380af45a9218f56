"""Incremental synchronisation of the reference mirror."""

from __future__ import annotations

from .contracts import CancellationToken, SyncError, SyncErrorKind, SyncOutcome, SyncResult
from .engine import SyncEngine
from .hashing import SALIENT_FIELDS, changed_fields, content_hash, salient_fields
from .policy import SyncPolicy

__all__ = [
    "SALIENT_FIELDS",
    "CancellationToken",
    "SyncEngine",
    "SyncError",
    "SyncErrorKind",
    "SyncOutcome",
    "SyncPolicy",
    "SyncResult",
    "changed_fields",
    "content_hash",
    "salient_fields",
]
