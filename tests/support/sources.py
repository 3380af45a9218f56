from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from mineralsync.domain.errors import ReferenceNotFound

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable
    from contextlib import AbstractAsyncContextManager

    from mineralsync.domain.model import ReferenceRecord


@dataclass
class FakeReferenceSource:
    """Scriptable reference source; every fetch returns a fresh copy like a real API."""

    records: dict[int, ReferenceRecord] = field(default_factory=dict)
    failures: dict[int, Exception] = field(default_factory=dict)
    delays: dict[int, float] = field(default_factory=dict)
    redirects: dict[int, int] = field(default_factory=dict)
    open_error: Exception | None = None
    before_fetch: Callable[[int], Awaitable[None]] | None = None
    calls: list[int] = field(default_factory=list)
    opened: int = 0

    def put(self, *records: ReferenceRecord) -> None:
        for record in records:
            self.records[record.reference_id] = record

    def remove(self, reference_id: int) -> None:
        del self.records[reference_id]

    async def fetch_by_id(self, reference_id: int) -> ReferenceRecord:
        self.calls.append(reference_id)
        if self.before_fetch is not None:
            await self.before_fetch(reference_id)
        if reference_id in self.delays:
            await asyncio.sleep(self.delays[reference_id])
        if reference_id in self.failures:
            raise self.failures[reference_id]
        target = self.redirects.get(reference_id, reference_id)
        record = self.records.get(target)
        if record is None:
            raise ReferenceNotFound(reference_id)
        return replace(record)

    async def search_by_name(
        self,
        query: str,
        *,
        page: int = 1,
        page_size: int = 20,
    ) -> list[ReferenceRecord]:
        hits = [
            replace(record)
            for record in self.records.values()
            if query.lower() in record.canonical_name.lower()
        ]
        start = (page - 1) * page_size
        return hits[start : start + page_size]

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[FakeReferenceSource]:
        if self.open_error is not None:
            raise self.open_error
        self.opened += 1
        yield self

    def factory(self) -> AbstractAsyncContextManager[FakeReferenceSource]:
        return self._session()
