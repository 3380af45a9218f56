"""Error taxonomy shared by the reconciliation and sync components."""

from __future__ import annotations


class MineralSyncError(RuntimeError):
    """Base class for domain-level failures."""


class TransientFetchError(MineralSyncError):
    """A single fetch failed for a reason that may go away on a later pass.

    Covers network hiccups, rate-limit responses and server errors. The sync engine
    records it against the id and moves on; it is never retried within one pass.
    """

    def __init__(self, message: str, *, reference_id: int | None = None) -> None:
        super().__init__(message)
        self.reference_id = reference_id


class ReferenceNotFound(MineralSyncError):  # noqa: N818
    """The reference source has no record for the requested id.

    This is a signal rather than a failure: it drives deletion detection.
    """

    def __init__(self, reference_id: int) -> None:
        super().__init__(f"Reference record {reference_id} not found")
        self.reference_id = reference_id


class RecordValidationError(MineralSyncError, ValueError):
    """An external record is malformed and has to be skipped."""


class StorageError(MineralSyncError):
    """Writing one item to the local mirror failed."""


class FatalConnectionError(MineralSyncError):
    """A collaborator cannot be reached at all; the whole operation is aborted."""


class SourceUnavailableError(FatalConnectionError):
    """The reference source cannot be reached or refuses our credentials."""


class StorageUnavailableError(FatalConnectionError):
    """The local mirror cannot be opened."""


class SyncAlreadyRunningError(MineralSyncError):
    """Another sync operation already holds the engine's job slot."""
