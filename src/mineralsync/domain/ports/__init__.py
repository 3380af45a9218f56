"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import ReferenceSource, ReferenceSourceFactory
from .persistence import MirrorStats, ReferenceLookup, ReferenceRepository
from .unit_of_work import (
    MirrorRepositories,
    MirrorUnitOfWork,
    MirrorUnitOfWorkFactory,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "MirrorRepositories",
    "MirrorStats",
    "MirrorUnitOfWork",
    "MirrorUnitOfWorkFactory",
    "ReferenceLookup",
    "ReferenceRepository",
    "ReferenceSource",
    "ReferenceSourceFactory",
    "RepositoryCollection",
    "UnitOfWork",
]
