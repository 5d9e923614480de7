"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.attributes import set_committed_value

from liftmatch.adapters.sqlalchemy.mappings import lifter_table, meet_result_table
from liftmatch.domain.model import (
    LIFTER_ENRICHABLE_FIELDS,
    RESULT_ENRICHABLE_FIELDS,
    Lifter,
    MeetResult,
)
from liftmatch.domain.names import name_key
from liftmatch.domain.ports.persistence import (
    DuplicateResultError,
    RecordedBodyweight,
    StableIdConflictError,
    StoreError,
)
from liftmatch.domain.resolution.guards import merge_missing

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping
    from datetime import date

    from sqlalchemy.orm import Session

_LIFTER_PLAIN_FIELDS = tuple(name for name in LIFTER_ENRICHABLE_FIELDS if name != "stable_id")


def _flush(session: Session, what: str) -> None:
    try:
        session.flush()
    except IntegrityError as exc:
        raise StoreError(f"Store rejected {what}: {exc.orig}") from exc


class SqlAlchemyLifterRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, lifter: Lifter) -> Lifter:
        if lifter.stable_id is not None:
            owner = self._owner_of(lifter.stable_id)
            if owner is not None:
                raise StableIdConflictError(lifter.stable_id, owner_id=owner)
        self.session.add(lifter)
        _flush(self.session, f"lifter {lifter.normalized_name!r}")
        return lifter

    def get(self, lifter_id: int) -> Lifter | None:
        return self.session.get(Lifter, lifter_id)

    def get_by_stable_id(self, stable_id: str) -> list[Lifter]:
        stmt = (
            select(Lifter)
            .where(lifter_table.c.stable_id == stable_id)
            .order_by(lifter_table.c.lifter_id)
        )
        return list(self.session.execute(stmt).scalars())

    def get_by_name(self, normalized_name: str) -> list[Lifter]:
        stmt = (
            select(Lifter)
            .where(lifter_table.c.name_key == name_key(normalized_name))
            .order_by(lifter_table.c.lifter_id)
        )
        return list(self.session.execute(stmt).scalars())

    def update_fields(self, lifter_id: int, values: Mapping[str, object]) -> dict[str, object]:
        lifter = self.get(lifter_id)
        if lifter is None:
            raise StoreError(f"Lifter {lifter_id} does not exist")

        applied: dict[str, object] = {}
        stable_id = values.get("stable_id")
        if isinstance(stable_id, str) and stable_id and lifter.stable_id is None:
            self._compare_and_set_stable_id(lifter, stable_id)
            applied["stable_id"] = stable_id
        applied.update(merge_missing(lifter, values, _LIFTER_PLAIN_FIELDS))
        return applied

    def same_name_groups(self) -> list[tuple[str, list[Lifter]]]:
        shared = (
            select(lifter_table.c.name_key)
            .group_by(lifter_table.c.name_key)
            .having(func.count() > 1)
            .order_by(lifter_table.c.name_key)
        )
        groups: list[tuple[str, list[Lifter]]] = []
        for key in self.session.execute(shared).scalars():
            stmt = (
                select(Lifter)
                .where(lifter_table.c.name_key == key)
                .order_by(lifter_table.c.lifter_id)
            )
            lifters = list(self.session.execute(stmt).scalars())
            groups.append((lifters[0].normalized_name, lifters))
        return groups

    def _compare_and_set_stable_id(self, lifter: Lifter, stable_id: str) -> None:
        owner = self._owner_of(stable_id)
        if owner is not None and owner != lifter.lifter_id:
            raise StableIdConflictError(stable_id, owner_id=owner)
        stmt = (
            update(lifter_table)
            .where(lifter_table.c.lifter_id == lifter.lifter_id)
            .where(lifter_table.c.stable_id.is_(None))
            .values(stable_id=stable_id)
        )
        try:
            result = self.session.execute(stmt)
        except IntegrityError as exc:
            raise StableIdConflictError(stable_id) from exc
        if result.rowcount != 1:
            # Someone else filled the column between our read and the update.
            self.session.refresh(lifter, ["stable_id"])
            raise StableIdConflictError(stable_id, owner_id=lifter.lifter_id)
        set_committed_value(lifter, "stable_id", stable_id)

    def _owner_of(self, stable_id: str) -> int | None:
        stmt = select(lifter_table.c.lifter_id).where(lifter_table.c.stable_id == stable_id).limit(1)
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyMeetResultRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, result: MeetResult) -> MeetResult:
        stmt = (
            select(meet_result_table.c.result_id)
            .where(meet_result_table.c.meet_id == result.meet_id)
            .where(meet_result_table.c.lifter_id == result.lifter_id)
            .where(meet_result_table.c.age_category == result.age_category)
            .where(meet_result_table.c.weight_class == result.weight_class)
            .limit(1)
        )
        existing = self.session.execute(stmt).scalar_one_or_none()
        if existing is not None:
            raise DuplicateResultError(
                f"lifter {result.lifter_id} already has result {existing} in meet "
                f"{result.meet_id} {result.age_category} {result.weight_class}"
            )
        self.session.add(result)
        _flush(self.session, f"result for lifter {result.lifter_id}")
        return result

    def update_fields(self, result_id: int, values: Mapping[str, object]) -> dict[str, object]:
        result = self.session.get(MeetResult, result_id)
        if result is None:
            raise StoreError(f"Result {result_id} does not exist")
        return merge_missing(result, values, RESULT_ENRICHABLE_FIELDS)

    def in_division(
        self,
        lifter_ids: Collection[int],
        *,
        meet_id: str,
        age_category: str,
        weight_class: str,
    ) -> list[MeetResult]:
        if not lifter_ids:
            return []
        stmt = (
            select(MeetResult)
            .where(meet_result_table.c.lifter_id.in_(list(lifter_ids)))
            .where(meet_result_table.c.meet_id == meet_id)
            .where(meet_result_table.c.age_category == age_category)
            .where(meet_result_table.c.weight_class == weight_class)
            .order_by(meet_result_table.c.result_id)
        )
        return list(self.session.execute(stmt).scalars())

    def bodyweights_for(self, lifter_ids: Collection[int]) -> list[RecordedBodyweight]:
        if not lifter_ids:
            return []
        stmt = (
            select(
                meet_result_table.c.lifter_id,
                meet_result_table.c.bodyweight_kg,
                meet_result_table.c.age_category,
            )
            .where(meet_result_table.c.lifter_id.in_(list(lifter_ids)))
            .where(meet_result_table.c.bodyweight_kg.is_not(None))
        )
        return [
            RecordedBodyweight(
                lifter_id=row.lifter_id,
                bodyweight_kg=row.bodyweight_kg,
                age_category=row.age_category,
            )
            for row in self.session.execute(stmt)
        ]

    def find_in_division_window(
        self,
        name_keys: Collection[str],
        *,
        date_from: date,
        date_to: date,
        age_category: str,
        weight_class: str,
    ) -> list[MeetResult]:
        if not name_keys:
            return []
        stmt = (
            select(MeetResult)
            .join(lifter_table, lifter_table.c.lifter_id == meet_result_table.c.lifter_id)
            .where(lifter_table.c.name_key.in_(list(name_keys)))
            .where(meet_result_table.c.meet_date.between(date_from, date_to))
            .where(meet_result_table.c.age_category == age_category)
            .where(meet_result_table.c.weight_class == weight_class)
            .order_by(meet_result_table.c.result_id)
        )
        return list(self.session.execute(stmt).scalars())
