"""Transaction boundary ports for the mirror."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeAlias, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from mineralsync.domain.ports.persistence import ReferenceLookup, ReferenceRepository


@runtime_checkable
class RepositoryCollection(Protocol):
    """Repositories that share one transaction."""


TRepositories = TypeVar("TRepositories", bound=RepositoryCollection, covariant=True)


@runtime_checkable
class UnitOfWork(Protocol[TRepositories]):
    """Context manager that commits or rolls back a repository collection.

    Leaving the block without ``commit`` discards pending writes.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class MirrorRepositories(RepositoryCollection):
    """Repositories over the local reference mirror."""

    references: ReferenceRepository
    lookup: ReferenceLookup


MirrorUnitOfWork: TypeAlias = UnitOfWork[MirrorRepositories]
MirrorUnitOfWorkFactory: TypeAlias = Callable[[], MirrorUnitOfWork]
