"""SQLAlchemy-backed units of work for the reference mirror."""

from __future__ import annotations

from abc import ABC, abstractmethod
from logging import getLogger
from typing import TYPE_CHECKING, Generic, Literal, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from mineralsync.adapters.sqlalchemy.mappings import start_mappers
from mineralsync.adapters.sqlalchemy.migrations import upgrade_head
from mineralsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyReferenceLookup,
    SqlAlchemyReferenceRepository,
)
from mineralsync.config import get_database_config
from mineralsync.domain.errors import StorageError, StorageUnavailableError
from mineralsync.domain.ports import MirrorRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)

TRepositories = TypeVar("TRepositories", bound=RepositoryCollection)


class StartupError(RuntimeError):
    """Raised when a unit of work is used outside its ``with`` block."""


class BaseSqlAlchemyUnitOfWork(ABC, Generic[TRepositories]):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    Database errors leave the unit of work as ``StorageError`` after the session
    has been rolled back.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        if self._session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = self.session_factory()
        self._repositories = self._build_repositories(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        if isinstance(exc_value, SQLAlchemyError):
            raise StorageError(f"Mirror storage failed: {exc_value}") from exc_value
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageError(f"Commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session


class SqlAlchemyMirrorUnitOfWork(BaseSqlAlchemyUnitOfWork[MirrorRepositories]):
    """Unit of work over the mirrored reference records."""

    def _build_repositories(self, session: Session) -> MirrorRepositories:
        return MirrorRepositories(
            references=SqlAlchemyReferenceRepository(session),
            lookup=SqlAlchemyReferenceLookup(session),
        )


class MirrorDatabase:
    """An initialised mirror database; hands out units of work bound to it."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory: sessionmaker[Session] = sessionmaker(
            bind=engine, expire_on_commit=False
        )

    def unit_of_work(self) -> SqlAlchemyMirrorUnitOfWork:
        return SqlAlchemyMirrorUnitOfWork(self.session_factory)

    def dispose(self) -> None:
        self.engine.dispose()


def startup(*, engine: Engine | None = None, database_uri: str | None = None) -> MirrorDatabase:
    """Connect, configure mappers and bring the schema up to date.

    Raises ``StorageUnavailableError`` when the database cannot be opened or
    migrated.
    """

    start_mappers()
    try:
        if engine is not None:
            resolved_engine = engine
        elif database_uri is not None:
            resolved_engine = create_engine(database_uri)
        else:
            database = get_database_config()
            resolved_engine = create_engine(database.uri, echo=database.echo)
        upgrade_head(engine=resolved_engine)
    except SQLAlchemyError as exc:
        raise StorageUnavailableError(f"Cannot open the mirror database: {exc}") from exc
    log.info("Mirror database ready at %s", resolved_engine.url.render_as_string())
    return MirrorDatabase(resolved_engine)


if TYPE_CHECKING:
    from mineralsync.domain.ports import MirrorUnitOfWork

    _uow_check: MirrorUnitOfWork = SqlAlchemyMirrorUnitOfWork(sessionmaker())
