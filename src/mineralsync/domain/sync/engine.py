"""Incremental synchronisation of the local mirror with the reference source.

One engine instance is one logical worker: ids are fetched sequentially, spaced
evenly by a token bucket sized from ``SyncPolicy.requests_per_minute``, each fetch is bounded by
``SyncPolicy.fetch_timeout_seconds`` and every id is committed in its own unit of
work, so cancelling or failing half way keeps the progress made so far.

Per-id state machine::

    absent -> new -> (unchanged | updated)* -> deleted -> new ...

A not-found answer from the source is the deletion signal; transient fetch and
storage failures are recorded against the id and the pass continues. Failing to
open the source or the mirror at all aborts the operation.
"""

from __future__ import annotations

import asyncio
import threading
from contextlib import contextmanager
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, TypeAlias, TypeVar

from aiolimiter import AsyncLimiter

from mineralsync.domain.errors import (
    ReferenceNotFound,
    StorageError,
    StorageUnavailableError,
    SyncAlreadyRunningError,
    TransientFetchError,
)
from mineralsync.domain.model import ChangeKind, ChangeRecord
from mineralsync.domain.reconciliation.classification import (
    is_incomplete,
    is_placeholder,
    with_placeholder,
)

from .contracts import SyncError, SyncErrorKind, SyncOutcome, SyncResult
from .hashing import SALIENT_FIELDS, changed_fields, content_hash
from .policy import SyncPolicy

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from contextlib import AbstractAsyncContextManager

    from mineralsync.domain.model import ReferenceRecord
    from mineralsync.domain.ports import (
        MirrorRepositories,
        MirrorUnitOfWorkFactory,
        ReferenceRepository,
        ReferenceSource,
        ReferenceSourceFactory,
    )

    from .contracts import CancellationToken

    Clock: TypeAlias = Callable[[], datetime]
    LimiterFactory: TypeAlias = Callable[[], AbstractAsyncContextManager[None]]

log = getLogger(__name__)

_T = TypeVar("_T")


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def pacing_limiter(requests_per_minute: int) -> AsyncLimiter:
    """A bucket holding one token, refilled every ``60 / requests_per_minute`` seconds.

    Must be created inside the event loop that uses it.
    """

    return AsyncLimiter(1, 60.0 / requests_per_minute)


class SyncEngine:
    """Keep the local mirror in step with the reference source.

    The public methods are synchronous and return a complete ``SyncResult`` even
    when individual ids failed; ``*_async`` variants exist for callers that already
    run an event loop. Only one operation may run per engine at a time.
    """

    def __init__(
        self,
        *,
        source_factory: ReferenceSourceFactory,
        unit_of_work_factory: MirrorUnitOfWorkFactory,
        policy: SyncPolicy | None = None,
        limiter_factory: LimiterFactory | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.policy = policy or SyncPolicy()
        self._source_factory = source_factory
        self._uow_factory = unit_of_work_factory
        self._limiter_factory = limiter_factory or self._default_limiter
        self._clock = clock or utc_now
        self._slot = threading.Lock()

    def _default_limiter(self) -> AsyncLimiter:
        return pacing_limiter(self.policy.requests_per_minute)

    @property
    def is_running(self) -> bool:
        return self._slot.locked()

    # Synchronous job surface ------------------------------------------------

    def sync_range(
        self,
        start_id: int | None = None,
        end_id: int | None = None,
        *,
        batch_size: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> SyncResult:
        """Visit every id in ``[start_id, end_id]`` in ascending order.

        ``start_id=None`` resumes after the highest mirrored id and ``end_id=None``
        covers ``policy.default_range_span`` ids from the start.
        """

        return asyncio.run(
            self.sync_range_async(start_id, end_id, batch_size=batch_size, cancel=cancel)
        )

    def sync_new(
        self,
        *,
        span: int | None = None,
        batch_size: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> SyncResult:
        """Scan the ids after the current maximum for newly published records."""

        return asyncio.run(self.sync_new_async(span=span, batch_size=batch_size, cancel=cancel))

    def validate_sample(
        self,
        sample_size: int | None = None,
        *,
        older_than: datetime | None = None,
        cancel: CancellationToken | None = None,
    ) -> SyncResult:
        """Re-check the least recently synced records, oldest first."""

        return asyncio.run(
            self.validate_sample_async(sample_size, older_than=older_than, cancel=cancel)
        )

    def refresh_incomplete(
        self,
        limit: int | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> SyncResult:
        """Re-fetch records whose classification lacks its fourth level."""

        return asyncio.run(self.refresh_incomplete_async(limit, cancel=cancel))

    # Async variants ---------------------------------------------------------

    async def sync_range_async(
        self,
        start_id: int | None = None,
        end_id: int | None = None,
        *,
        batch_size: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> SyncResult:
        with self._job_slot("sync_range"):
            if start_id is None:
                start_id = self._read(lambda repos: repos.references.max_id()) + 1
            if end_id is None:
                end_id = start_id + self.policy.default_range_span - 1
            if start_id < 1 or end_id < start_id:
                raise ValueError(f"Invalid id range {start_id}-{end_id}")

            log.info("Starting range sync from %d to %d", start_id, end_id)
            result = self._new_result("sync_range")
            await self._run(range(start_id, end_id + 1), result, batch_size, cancel)
            return result

    async def sync_new_async(
        self,
        *,
        span: int | None = None,
        batch_size: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> SyncResult:
        with self._job_slot("sync_new"):
            start_id = self._read(lambda repos: repos.references.max_id()) + 1
            end_id = start_id + (span or self.policy.default_range_span) - 1
            log.info("Checking for new records from %d to %d", start_id, end_id)
            result = self._new_result("sync_new")
            await self._run(range(start_id, end_id + 1), result, batch_size, cancel)
            return result

    async def validate_sample_async(
        self,
        sample_size: int | None = None,
        *,
        older_than: datetime | None = None,
        cancel: CancellationToken | None = None,
    ) -> SyncResult:
        with self._job_slot("validate_sample"):
            limit = sample_size or self.policy.default_sample_size
            sample = self._read(
                lambda repos: repos.references.sample_by_staleness(limit, older_than=older_than)
            )
            ids = [record.reference_id for record in sample]
            log.info("Validating %d existing records for changes", len(ids))
            result = self._new_result("validate_sample")
            await self._run(ids, result, None, cancel)
            return result

    async def refresh_incomplete_async(
        self,
        limit: int | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> SyncResult:
        with self._job_slot("refresh_incomplete"):
            effective_limit = limit or self.policy.refresh_limit
            incomplete = self._read(lambda repos: repos.references.find_incomplete(effective_limit))
            ids = [record.reference_id for record in incomplete]
            log.info("Refreshing %d records with an incomplete classification", len(ids))
            result = self._new_result("refresh_incomplete")
            await self._run(ids, result, None, cancel)
            return result

    # Internals --------------------------------------------------------------

    @contextmanager
    def _job_slot(self, operation: str) -> Iterator[None]:
        if not self._slot.acquire(blocking=False):
            raise SyncAlreadyRunningError(
                f"Cannot start {operation}: another sync operation is running"
            )
        try:
            yield
        finally:
            self._slot.release()

    def _new_result(self, operation: str) -> SyncResult:
        return SyncResult(operation=operation, max_reported_errors=self.policy.max_reported_errors)

    def _read(self, query: Callable[[MirrorRepositories], _T]) -> _T:
        try:
            with self._uow_factory() as uow:
                return query(uow.repositories)
        except StorageError as exc:
            raise StorageUnavailableError(f"Cannot read the local mirror: {exc}") from exc

    async def _run(
        self,
        ids: Sequence[int],
        result: SyncResult,
        batch_size: int | None,
        cancel: CancellationToken | None,
    ) -> None:
        progress_every = batch_size or self.policy.batch_size
        # A fresh bucket per operation: each sync call may run on its own event loop.
        limiter = self._limiter_factory()
        async with self._source_factory() as source:
            for index, reference_id in enumerate(ids, start=1):
                if cancel is not None and cancel.cancelled:
                    result.cancelled = True
                    log.info("%s cancelled after %d ids", result.operation, result.checked)
                    break
                await self._visit(source, limiter, reference_id, result)
                if index % progress_every == 0:
                    log.info(
                        "Progress: %d checked, %d new, %d updated, %d deleted, %d errors",
                        result.checked,
                        result.new,
                        result.updated,
                        result.deleted,
                        result.error_count,
                    )

        log.info(
            "Finished %s: checked=%d, new=%d, updated=%d, deleted=%d, repaired=%d, errors=%d",
            result.operation,
            result.checked,
            result.new,
            result.updated,
            result.deleted,
            result.repaired,
            result.error_count,
        )

    async def _visit(
        self,
        source: ReferenceSource,
        limiter: AbstractAsyncContextManager[None],
        reference_id: int,
        result: SyncResult,
    ) -> None:
        try:
            fetched = await self._fetch(source, limiter, reference_id)
        except TransientFetchError as exc:
            timed_out = isinstance(exc.__cause__, TimeoutError)
            kind = SyncErrorKind.TIMEOUT if timed_out else SyncErrorKind.FETCH
            log.warning("Fetching reference %d failed: %s", reference_id, exc)
            result.record_error(SyncError(reference_id=reference_id, kind=kind, message=str(exc)))
            return

        try:
            outcome = self._apply(reference_id, fetched)
        except StorageError as exc:
            log.warning("Storing reference %d failed: %s", reference_id, exc)
            result.record_error(
                SyncError(reference_id=reference_id, kind=SyncErrorKind.STORAGE, message=str(exc))
            )
            return
        if outcome is not SyncOutcome.UNCHANGED and outcome is not SyncOutcome.ABSENT:
            log.debug("Reference %d: %s", reference_id, outcome)
        result.record(outcome)

    async def _fetch(
        self,
        source: ReferenceSource,
        limiter: AbstractAsyncContextManager[None],
        reference_id: int,
    ) -> ReferenceRecord | None:
        timeout = self.policy.fetch_timeout_seconds
        async with limiter:
            try:
                async with asyncio.timeout(timeout):
                    record = await source.fetch_by_id(reference_id)
            except ReferenceNotFound:
                return None
            except TimeoutError as exc:
                raise TransientFetchError(
                    f"Fetch timed out after {timeout:g}s", reference_id=reference_id
                ) from exc

        if record.reference_id != reference_id:
            log.info(
                "Reference %d now resolves to %d; treating it as deleted",
                reference_id,
                record.reference_id,
            )
            return None
        return record

    def _apply(self, reference_id: int, fetched: ReferenceRecord | None) -> SyncOutcome:
        now = self._clock()
        with self._uow_factory() as uow:
            references = uow.repositories.references
            local = references.get_by_id(reference_id)
            if fetched is None:
                outcome = _apply_missing(references, local, now)
            else:
                outcome = _apply_found(references, local, _prepare(fetched, now), now)
            uow.commit()
        return outcome


def _prepare(fetched: ReferenceRecord, now: datetime) -> ReferenceRecord:
    fetched.classification = with_placeholder(fetched.classification)
    fetched.content_hash = content_hash(fetched)
    fetched.last_synced_at = now
    fetched.deleted_at = None
    return fetched


def _apply_missing(
    references: ReferenceRepository,
    local: ReferenceRecord | None,
    now: datetime,
) -> SyncOutcome:
    if local is None:
        return SyncOutcome.ABSENT
    local.last_synced_at = now
    if local.is_deleted:
        references.upsert(local)
        return SyncOutcome.ABSENT
    local.deleted_at = now
    references.upsert(local)
    references.append_change(
        ChangeRecord(
            reference_id=local.reference_id, change_kind=ChangeKind.DELETED, detected_at=now
        )
    )
    return SyncOutcome.DELETED


def _apply_found(
    references: ReferenceRepository,
    local: ReferenceRecord | None,
    candidate: ReferenceRecord,
    now: datetime,
) -> SyncOutcome:
    if local is None:
        references.upsert(candidate)
        references.append_change(
            ChangeRecord(
                reference_id=candidate.reference_id, change_kind=ChangeKind.NEW, detected_at=now
            )
        )
        return SyncOutcome.NEW

    if local.is_deleted:
        _overwrite(local, candidate)
        local.deleted_at = None
        references.upsert(local)
        references.append_change(
            ChangeRecord(
                reference_id=local.reference_id, change_kind=ChangeKind.NEW, detected_at=now
            )
        )
        return SyncOutcome.NEW

    fields: tuple[str, ...] = ()
    if local.content_hash != candidate.content_hash:
        fields = changed_fields(local, candidate)
    if not fields:
        local.content_hash = candidate.content_hash
        local.last_synced_at = now
        references.upsert(local)
        return SyncOutcome.UNCHANGED

    placeholder_repair = (
        fields == ("classification_4",)
        and is_incomplete(local)
        and is_placeholder(candidate.classification.fourth)
    )
    _overwrite(local, candidate)
    references.upsert(local)
    if placeholder_repair:
        return SyncOutcome.REPAIRED
    references.append_change(
        ChangeRecord(
            reference_id=local.reference_id,
            change_kind=ChangeKind.UPDATED,
            detected_at=now,
            changed_fields=fields,
        )
    )
    return SyncOutcome.UPDATED


def _overwrite(target: ReferenceRecord, source: ReferenceRecord) -> None:
    for name in SALIENT_FIELDS:
        setattr(target, name, getattr(source, name))
    target.content_hash = source.content_hash
    target.last_synced_at = source.last_synced_at
