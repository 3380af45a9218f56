"""Ports for reading from the reference source."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Protocol, TypeAlias, runtime_checkable

if TYPE_CHECKING:
    from mineralsync.domain.model import ReferenceRecord


@runtime_checkable
class ReferenceSource(Protocol):
    """Read access to the authoritative reference database.

    Implementations must raise ``ReferenceNotFound`` for an id the source does not
    know and ``TransientFetchError`` for failures that may succeed later; the sync
    engine treats the two very differently.
    """

    async def fetch_by_id(self, reference_id: int) -> ReferenceRecord: ...

    async def search_by_name(
        self,
        query: str,
        *,
        page: int = 1,
        page_size: int = 20,
    ) -> list[ReferenceRecord]: ...


ReferenceSourceFactory: TypeAlias = Callable[[], AbstractAsyncContextManager[ReferenceSource]]
