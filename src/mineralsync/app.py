"""Application wiring: default adapters behind the sync engine and reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from mineralsync.adapters.erocks import parse_external_row
from mineralsync.adapters.mindat import mindat_source_factory
from mineralsync.adapters.sqlalchemy import startup
from mineralsync.config import (
    configure_logging,
    get_match_policy,
    get_mindat_config,
    get_sync_policy,
)
from mineralsync.domain.reconciliation import (
    Matcher,
    ReconciledRow,
    ReconciliationReport,
    build_update,
    external_key_index,
    find_unlisted_references,
    reconcile_rows,
)
from mineralsync.domain.sync import SyncEngine

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from mineralsync.adapters.sqlalchemy import MirrorDatabase
    from mineralsync.domain.model import ReferenceRecord
    from mineralsync.domain.ports import MirrorStats, ReferenceSourceFactory
    from mineralsync.domain.sync import SyncPolicy

log = getLogger(__name__)


def load_environment() -> None:
    """Read a local ``.env`` file into the process environment and set up job logging."""

    load_dotenv()
    configure_logging()


def open_mirror(database_uri: str | None = None) -> MirrorDatabase:
    load_environment()
    return startup(database_uri=database_uri)


def build_sync_engine(
    *,
    database: MirrorDatabase | None = None,
    source_factory: ReferenceSourceFactory | None = None,
    policy: SyncPolicy | None = None,
) -> SyncEngine:
    """Sync engine over the configured Mindat account and mirror database."""

    load_environment()
    effective_database = database or open_mirror()
    effective_source = source_factory or mindat_source_factory(get_mindat_config())
    effective_policy = policy or get_sync_policy()
    log.info(
        "Sync engine ready: %d requests/min, %.0fs fetch timeout",
        effective_policy.requests_per_minute,
        effective_policy.fetch_timeout_seconds,
    )
    return SyncEngine(
        source_factory=effective_source,
        unit_of_work_factory=effective_database.unit_of_work,
        policy=effective_policy,
    )


def mirror_stats(database: MirrorDatabase) -> MirrorStats:
    with database.unit_of_work() as uow:
        return uow.repositories.references.stats()


@dataclass(slots=True, kw_only=True)
class ReconciliationRun:
    """Everything one pass over the external dataset produced."""

    report: ReconciliationReport
    updates: list[ReconciledRow] = field(default_factory=list)
    unlisted: list[ReferenceRecord] = field(default_factory=list)


def reconcile_erocks_rows(
    rows: Iterable[Mapping[str, str | None]],
    *,
    database: MirrorDatabase,
    matcher: Matcher | None = None,
) -> ReconciliationRun:
    """Match raw e-Rocks rows against the mirror and project updates for matched rows."""

    active_matcher = matcher or Matcher(policy=get_match_policy())
    with database.unit_of_work() as uow:
        lookup = uow.repositories.lookup
        report = reconcile_rows(rows, lookup, parse=parse_external_row, matcher=active_matcher)
        keys = external_key_index(report.results)
        updates = [build_update(result, lookup, keys) for result in report.results]
        unlisted = find_unlisted_references(report, lookup)

    log.info(
        "e-Rocks reconciliation: %d updates, %d approved references not listed",
        sum(1 for result in report.results if result.reference is not None),
        len(unlisted),
    )
    return ReconciliationRun(report=report, updates=updates, unlisted=unlisted)
