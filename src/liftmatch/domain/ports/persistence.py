"""Ports for the lifter roster and its results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping, Sequence
    from datetime import date

    from liftmatch.domain.model import Lifter, MeetResult


class StoreError(RuntimeError):
    """Raised when the persistent store rejects or fails a write."""


class StableIdConflictError(StoreError):
    """Raised when a write would give a second lifter an already-owned stable id."""

    def __init__(self, stable_id: str, *, owner_id: int | None = None) -> None:
        owner = f" (owned by lifter {owner_id})" if owner_id is not None else ""
        super().__init__(f"Stable id {stable_id} is already assigned{owner}")
        self.stable_id = stable_id
        self.owner_id = owner_id


class DuplicateResultError(StoreError):
    """Raised when the lifter already has a result in that meet division."""


@dataclass(frozen=True, slots=True)
class RecordedBodyweight:
    lifter_id: int
    bodyweight_kg: float
    age_category: str | None


@runtime_checkable
class LifterRepository(Protocol):
    """Persistence contract for lifters.

    ``update_fields`` only ever fills null columns. Assigning ``stable_id`` is a
    compare-and-set that raises :class:`StableIdConflictError` when another lifter
    already holds the value.
    """

    def add(self, lifter: Lifter) -> Lifter: ...

    def get(self, lifter_id: int) -> Lifter | None: ...

    def get_by_stable_id(self, stable_id: str) -> Sequence[Lifter]: ...

    def get_by_name(self, normalized_name: str) -> Sequence[Lifter]: ...

    def update_fields(self, lifter_id: int, values: Mapping[str, object]) -> dict[str, object]: ...

    def same_name_groups(self) -> Sequence[tuple[str, Sequence[Lifter]]]: ...


@runtime_checkable
class MeetResultRepository(Protocol):
    """Persistence contract for meet results."""

    def add(self, result: MeetResult) -> MeetResult: ...

    def update_fields(self, result_id: int, values: Mapping[str, object]) -> dict[str, object]: ...

    def in_division(
        self,
        lifter_ids: Collection[int],
        *,
        meet_id: str,
        age_category: str,
        weight_class: str,
    ) -> Sequence[MeetResult]: ...

    def bodyweights_for(self, lifter_ids: Collection[int]) -> Sequence[RecordedBodyweight]: ...

    def find_in_division_window(
        self,
        name_keys: Collection[str],
        *,
        date_from: date,
        date_to: date,
        age_category: str,
        weight_class: str,
    ) -> Sequence[MeetResult]: ...
