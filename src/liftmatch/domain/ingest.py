"""Batch ingestion of meet result rows."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from liftmatch.domain.model import RESULT_ENRICHABLE_FIELDS, MeetResult
from liftmatch.domain.ports.persistence import DuplicateResultError, StoreError
from liftmatch.domain.resolution import OutcomeCode, ResultContext
from liftmatch.domain.resolution.guards import merge_missing

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date

    from liftmatch.domain.ports.unit_of_work import ResolutionRepositories, ResolutionUnitOfWork
    from liftmatch.domain.resolution import IdentityResolver, ResolutionOutcome

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], ResolutionUnitOfWork]
type ResolverFactory = Callable[[ResolutionRepositories], IdentityResolver]


@dataclass(frozen=True, slots=True, kw_only=True)
class ResultRow:
    """One athlete's line from a meet result sheet."""

    name: str
    meet_id: str
    meet_date: date
    age_category: str
    weight_class: str
    meet_name: str | None = None
    bodyweight_kg: float | None = None
    snatch_lift_1: float | None = None
    snatch_lift_2: float | None = None
    snatch_lift_3: float | None = None
    clean_jerk_lift_1: float | None = None
    clean_jerk_lift_2: float | None = None
    clean_jerk_lift_3: float | None = None
    best_snatch: float | None = None
    best_clean_jerk: float | None = None
    total: float | None = None
    stable_id: str | None = None
    membership_number: str | None = None
    club_name: str | None = None
    gender: str | None = None

    def context(self) -> ResultContext:
        return ResultContext(
            name=self.name,
            meet_id=self.meet_id,
            meet_name=self.meet_name,
            meet_date=self.meet_date,
            age_category=self.age_category,
            weight_class=self.weight_class,
            bodyweight_kg=self.bodyweight_kg,
            total_kg=self.total,
            stable_id=self.stable_id,
            membership_number=self.membership_number,
        )

    def to_result(self, outcome: ResolutionOutcome) -> MeetResult:
        lifter_id = outcome.lifter.lifter_id
        if lifter_id is None:
            raise StoreError(f"Resolved lifter for {self.name!r} has no id")
        result = MeetResult(
            lifter_id=lifter_id,
            lifter_name=outcome.lifter.normalized_name,
            meet_id=self.meet_id,
            meet_name=self.meet_name,
            meet_date=self.meet_date,
            age_category=self.age_category,
            weight_class=self.weight_class,
            bodyweight_kg=self.bodyweight_kg,
            snatch_lift_1=self.snatch_lift_1,
            snatch_lift_2=self.snatch_lift_2,
            snatch_lift_3=self.snatch_lift_3,
            clean_jerk_lift_1=self.clean_jerk_lift_1,
            clean_jerk_lift_2=self.clean_jerk_lift_2,
            clean_jerk_lift_3=self.clean_jerk_lift_3,
            best_snatch=self.best_snatch,
            best_clean_jerk=self.best_clean_jerk,
            total=self.total,
            club_name=self.club_name,
            gender=self.gender,
        )
        merge_missing(result, outcome.result_enrichment, RESULT_ENRICHABLE_FIELDS)
        return result

    def as_record(self) -> dict[str, object]:
        record = asdict(self)
        record["meet_date"] = self.meet_date.isoformat()
        return record


@dataclass(slots=True, kw_only=True)
class RowReport:
    index: int
    name: str
    code: OutcomeCode
    lifter_id: int | None = None
    result_id: int | None = None
    conflicts: list[str] = field(default_factory=list)
    reason: str | None = None


@dataclass(slots=True)
class IngestReport:
    rows: list[RowReport] = field(default_factory=list)
    failed: list[ResultRow] = field(default_factory=list)

    @property
    def counts(self) -> Counter[OutcomeCode]:
        return Counter(row.code for row in self.rows)

    @property
    def integrity_conflicts(self) -> int:
        return sum(1 for row in self.rows if row.conflicts)

    def summary(self) -> str:
        parts = [f"{code}={count}" for code, count in sorted(self.counts.items())]
        parts.append(f"integrity-conflict={self.integrity_conflicts}")
        return ", ".join(parts)


def ordered_rows(rows: Iterable[ResultRow]) -> list[tuple[int, ResultRow]]:
    """Rows in ascending meet-date order, keeping sheet order for ties."""

    return sorted(enumerate(rows), key=lambda item: (item[1].meet_date, item[0]))


def ingest_results(
    rows: Iterable[ResultRow],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    resolver_factory: ResolverFactory,
) -> IngestReport:
    """Resolve and store each row in its own unit of work.

    Earlier meets are processed first so that member ids learnt from them narrow
    the ambiguity of later rows. A failure only aborts its own row: the unit of work
    is rolled back and the row is returned in :attr:`IngestReport.failed` for
    reprocessing.
    """

    report = IngestReport()
    for index, row in ordered_rows(rows):
        try:
            row_report = _ingest_row(index, row, unit_of_work_factory, resolver_factory)
        except StoreError as exc:
            log.exception("Store write failed for row %d (%s)", index, row.name)
            row_report = RowReport(
                index=index, name=row.name, code=OutcomeCode.STORE_FAILED, reason=str(exc)
            )
            report.failed.append(row)
        except Exception as exc:
            log.exception("Could not ingest row %d (%s)", index, row.name)
            row_report = RowReport(
                index=index, name=row.name, code=OutcomeCode.ROW_FAILED, reason=str(exc)
            )
            report.failed.append(row)
        report.rows.append(row_report)

    log.info("Ingested %d rows: %s", len(report.rows), report.summary())
    return report


def _ingest_row(
    index: int,
    row: ResultRow,
    unit_of_work_factory: UnitOfWorkFactory,
    resolver_factory: ResolverFactory,
) -> RowReport:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        outcome = resolver_factory(repositories).resolve(row.context())
        row_report = RowReport(
            index=index,
            name=row.name,
            code=outcome.code,
            lifter_id=outcome.lifter.lifter_id,
            conflicts=list(outcome.conflicts),
        )
        try:
            stored = repositories.results.add(row.to_result(outcome))
        except DuplicateResultError as exc:
            log.info("Skipping duplicate result for %s: %s", row.name, exc)
            row_report.code = OutcomeCode.SKIPPED_DUPLICATE
            row_report.reason = str(exc)
        else:
            row_report.result_id = stored.result_id
        uow.commit()
    return row_report
