"""Application orchestration entry points."""

from __future__ import annotations

import json
import time
from logging import getLogger
from typing import TYPE_CHECKING

from liftmatch.adapters.results_feed import read_result_rows
from liftmatch.adapters.sport80 import build_sport80_sources
from liftmatch.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from liftmatch.config import get_division_catalog, get_resolution_config, get_storage_config
from liftmatch.domain.ingest import IngestReport, RowReport, ingest_results
from liftmatch.domain.resolution import (
    DisambiguationGuards,
    DivisionVerifier,
    IdentityResolver,
    MemberHistoryVerifier,
    OutcomeCode,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date
    from pathlib import Path

    from liftmatch.config import DivisionCatalog, ResolutionConfig
    from liftmatch.domain.ingest import ResolverFactory, ResultRow, UnitOfWorkFactory
    from liftmatch.domain.model import Lifter
    from liftmatch.domain.ports.sources import DivisionRankingSource, MemberHistorySource
    from liftmatch.domain.ports.unit_of_work import ResolutionRepositories
    from liftmatch.domain.resolution.resolver import SleepFn

log = getLogger(__name__)


def build_resolver_factory(
    *,
    ranking_source: DivisionRankingSource,
    member_source: MemberHistorySource,
    catalog: DivisionCatalog,
    config: ResolutionConfig,
    sleep: SleepFn = time.sleep,
) -> ResolverFactory:
    """Bind the verifier chain once; each row gets a resolver over its own repositories."""

    guards = DisambiguationGuards(config)
    verifiers = (
        DivisionVerifier(ranking_source, catalog, config),
        MemberHistoryVerifier(member_source, config),
    )

    def factory(repositories: ResolutionRepositories) -> IdentityResolver:
        return IdentityResolver(
            store=repositories,
            verifiers=verifiers,
            guards=guards,
            config=config,
            sleep=sleep,
        )

    return factory


def _default_resolver_factory() -> ResolverFactory:
    ranking_source, member_source = build_sport80_sources()
    return build_resolver_factory(
        ranking_source=ranking_source,
        member_source=member_source,
        catalog=get_division_catalog(),
        config=get_resolution_config(),
    )


def _ensure_started() -> None:
    if not is_started():
        startup()


def ingest_result_sheet(
    path: Path,
    *,
    meet_id: str,
    meet_name: str | None = None,
    meet_date: date | None = None,
    reprocess_path: Path | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    resolver_factory: ResolverFactory | None = None,
) -> IngestReport:
    """Resolve every lifter on a result sheet and store its results."""

    if unit_of_work_factory is None:
        _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyUnitOfWork
    effective_resolver = resolver_factory or _default_resolver_factory()

    feed = read_result_rows(path, meet_id=meet_id, meet_name=meet_name, meet_date=meet_date)
    log.info("Starting ingest of %s: meet=%s, rows=%d", path, meet_id, len(feed.rows))

    report = ingest_results(
        feed.rows,
        unit_of_work_factory=effective_uow,
        resolver_factory=effective_resolver,
    )
    for error in feed.errors:
        log.warning("%s line %d skipped: %s", path, error.line, error.message)
        report.rows.append(
            RowReport(index=error.line, name="", code=OutcomeCode.INVALID_ROW, reason=error.message)
        )

    if report.failed:
        queue = reprocess_path or get_storage_config().reprocess_path()
        write_reprocess_queue(report.failed, queue)
        log.warning("Queued %d row(s) for reprocessing in %s", len(report.failed), queue)

    log.info("Finished ingest of %s: %s", path, report.summary())
    return report


def write_reprocess_queue(rows: Iterable[ResultRow], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        for row in rows:
            handle.write(json.dumps(row.as_record(), sort_keys=True) + "\n")


def audit_same_name_lifters(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[tuple[str, list[Lifter]]]:
    """Groups of lifters sharing a name, for operators reviewing disambiguation."""

    if unit_of_work_factory is None:
        _ensure_started()
    with (unit_of_work_factory or SqlAlchemyUnitOfWork)() as uow:
        return [
            (name, list(lifters)) for name, lifters in uow.repositories.lifters.same_name_groups()
        ]
