from __future__ import annotations

import json
from datetime import date
from typing import TYPE_CHECKING

from liftmatch.app import audit_same_name_lifters, build_resolver_factory, ingest_result_sheet
from liftmatch.domain.model import Lifter
from liftmatch.domain.ports.sources import AthleteSummary
from liftmatch.domain.resolution import IdentityResolver, OutcomeCode
from tests.helpers.fakes import FakeMemberSource, FakeRankingSource

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from liftmatch.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
    from liftmatch.config import DivisionCatalog, ResolutionConfig
    from liftmatch.domain.ingest import ResolverFactory
    from liftmatch.domain.ports.unit_of_work import ResolutionRepositories
    from liftmatch.domain.resolution import ResolutionOutcome, ResultContext

SHEET = (
    "Lifter,Age Category,Weight Class,Body Weight (Kg),Total\n"
    "SMITH Jane,Open Women's,63kg,61.5,170\n"
    "Mary Lee,Open Women's,63kg,58,150\n"
    ",Open Women's,63kg,58,150\n"
)


def _resolver_factory(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> ResolverFactory:
    ranking = FakeRankingSource()
    ranking.add(201, date(2024, 3, 1), AthleteSummary(name="Jane Smith", stable_id="1234", club="Iron Club"))
    return build_resolver_factory(
        ranking_source=ranking,
        member_source=FakeMemberSource(),
        catalog=division_catalog,
        config=resolution_config,
        sleep=lambda _seconds: None,
    )


def test_ingest_result_sheet_stores_rows(
    tmp_path: Path,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    sheet = tmp_path / "results.csv"
    sheet.write_text(SHEET, encoding="utf-8")
    queue = tmp_path / "queue.jsonl"

    report = ingest_result_sheet(
        sheet,
        meet_id="6120",
        meet_name="Spring Open",
        meet_date=date(2024, 3, 1),
        reprocess_path=queue,
        unit_of_work_factory=sqlite_unit_of_work,
        resolver_factory=_resolver_factory(resolution_config, division_catalog),
    )

    assert report.counts[OutcomeCode.CREATED_NEW] == 2
    assert report.counts[OutcomeCode.INVALID_ROW] == 1
    assert not queue.exists()
    with sqlite_unit_of_work() as uow:
        [jane] = uow.repositories.lifters.get_by_name("Jane Smith")
        assert jane.stable_id == "1234"
        assert uow.repositories.results.in_division(
            [jane.lifter_id or 0], meet_id="6120", age_category="Open Women's", weight_class="63kg"
        )[0].club_name == "Iron Club"


def test_ingest_result_sheet_queues_failed_rows(
    tmp_path: Path,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    sheet = tmp_path / "results.csv"
    sheet.write_text(SHEET, encoding="utf-8")
    queue = tmp_path / "queue.jsonl"
    working = _resolver_factory(resolution_config, division_catalog)

    def flaky_factory(repositories: ResolutionRepositories) -> IdentityResolver:
        resolver = working(repositories)
        original = resolver.resolve

        def resolve(context: ResultContext) -> ResolutionOutcome:
            if context.name == "Mary Lee":
                raise RuntimeError("source exploded")
            return original(context)

        resolver.resolve = resolve  # type: ignore[method-assign]
        return resolver

    report = ingest_result_sheet(
        sheet,
        meet_id="6120",
        meet_name="Spring Open",
        meet_date=date(2024, 3, 1),
        reprocess_path=queue,
        unit_of_work_factory=sqlite_unit_of_work,
        resolver_factory=flaky_factory,
    )

    assert report.counts[OutcomeCode.ROW_FAILED] == 1
    [record] = [json.loads(line) for line in queue.read_text(encoding="utf-8").splitlines()]
    assert record["name"] == "Mary Lee"
    assert record["meet_date"] == "2024-03-01"


def test_audit_same_name_lifters(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.lifters.add(Lifter(normalized_name="Jane Smith", stable_id="555"))
        uow.repositories.lifters.add(Lifter(normalized_name="JANE SMITH"))
        uow.repositories.lifters.add(Lifter(normalized_name="Mary Lee"))
        uow.commit()

    groups = audit_same_name_lifters(unit_of_work_factory=sqlite_unit_of_work)

    assert [(name, len(lifters)) for name, lifters in groups] == [("Jane Smith", 2)]
