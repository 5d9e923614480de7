"""Persistent roster entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from liftmatch.domain.names import name_key as make_name_key

if TYPE_CHECKING:
    from datetime import date

# Fields a resolution may fill in, never overwrite.
LIFTER_ENRICHABLE_FIELDS: Final[tuple[str, ...]] = (
    "stable_id",
    "membership_number",
    "country_code",
    "country_name",
    "birth_year",
    "gender",
)
RESULT_ENRICHABLE_FIELDS: Final[tuple[str, ...]] = (
    "club_name",
    "national_rank",
    "competition_age",
    "gender",
    "region",
)


@dataclass(eq=False, kw_only=True)
class Lifter:
    """Resolved athlete identity.

    ``normalized_name`` is not unique; ``stable_id`` (the ranking site's member id)
    is unique whenever it is set.
    """

    normalized_name: str
    lifter_id: int | None = None
    stable_id: str | None = None
    membership_number: str | None = None
    country_code: str | None = None
    country_name: str | None = None
    birth_year: int | None = None
    gender: str | None = None
    name_key: str = field(init=False, default="")

    def __post_init__(self) -> None:
        self.name_key = make_name_key(self.normalized_name)

    def __repr__(self) -> str:
        return f"Lifter(id={self.lifter_id!r}, name={self.normalized_name!r}, stable_id={self.stable_id!r})"


@dataclass(eq=False, kw_only=True)
class MeetResult:
    """One athlete's performance in one division of one meet."""

    lifter_id: int
    lifter_name: str
    meet_id: str
    meet_date: date
    age_category: str
    weight_class: str
    result_id: int | None = None
    meet_name: str | None = None
    bodyweight_kg: float | None = None
    # Attempts keep the sheet's sign convention: negative means a missed lift.
    snatch_lift_1: float | None = None
    snatch_lift_2: float | None = None
    snatch_lift_3: float | None = None
    clean_jerk_lift_1: float | None = None
    clean_jerk_lift_2: float | None = None
    clean_jerk_lift_3: float | None = None
    best_snatch: float | None = None
    best_clean_jerk: float | None = None
    total: float | None = None
    club_name: str | None = None
    national_rank: int | None = None
    competition_age: int | None = None
    gender: str | None = None
    region: str | None = None
