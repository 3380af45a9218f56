"""SQLAlchemy adapter for the local reference mirror."""

from __future__ import annotations

from .mappings import LookupKeyKind, mapper_registry, start_mappers
from .repositories import SqlAlchemyReferenceLookup, SqlAlchemyReferenceRepository
from .unit_of_work import MirrorDatabase, SqlAlchemyMirrorUnitOfWork, StartupError, startup

__all__ = [
    "LookupKeyKind",
    "MirrorDatabase",
    "SqlAlchemyMirrorUnitOfWork",
    "SqlAlchemyReferenceLookup",
    "SqlAlchemyReferenceRepository",
    "StartupError",
    "mapper_registry",
    "start_mappers",
]
