"""Read meet result sheets exported from the ranking site."""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from datetime import date
from logging import getLogger
from typing import TYPE_CHECKING, Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from liftmatch.adapters.sport80.translator import parse_site_date
from liftmatch.domain.ingest import ResultRow

if TYPE_CHECKING:
    from pathlib import Path

log = getLogger(__name__)


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _site_date(value: object) -> object:
    value = _blank_to_none(value)
    if isinstance(value, str):
        parsed = parse_site_date(value)
        if parsed is None:
            raise ValueError(f"unreadable date {value!r}")
        return parsed
    return value


Text = Annotated[str | None, BeforeValidator(_blank_to_none)]
Kilograms = Annotated[float | None, BeforeValidator(_blank_to_none)]
SheetDate = Annotated[date | None, BeforeValidator(_site_date)]


class SheetRow(BaseModel):
    """One CSV line, keyed by the sheet's column headers."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)

    lifter: str = Field(alias="Lifter", min_length=1)
    meet: Text = Field(default=None, alias="Meet")
    meet_date: SheetDate = Field(default=None, alias="Date")
    age_category: str = Field(alias="Age Category", min_length=1)
    weight_class: str = Field(alias="Weight Class", min_length=1)
    bodyweight_kg: Kilograms = Field(default=None, alias="Body Weight (Kg)")
    snatch_lift_1: Kilograms = Field(default=None, alias="Snatch Lift 1")
    snatch_lift_2: Kilograms = Field(default=None, alias="Snatch Lift 2")
    snatch_lift_3: Kilograms = Field(default=None, alias="Snatch Lift 3")
    clean_jerk_lift_1: Kilograms = Field(default=None, alias="C&J Lift 1")
    clean_jerk_lift_2: Kilograms = Field(default=None, alias="C&J Lift 2")
    clean_jerk_lift_3: Kilograms = Field(default=None, alias="C&J Lift 3")
    best_snatch: Kilograms = Field(default=None, alias="Best Snatch")
    best_clean_jerk: Kilograms = Field(default=None, alias="Best C&J")
    total: Kilograms = Field(default=None, alias="Total")
    membership_number: Text = Field(default=None, alias="Membership Number")
    member_id: Text = Field(default=None, alias="Member Id")
    club: Text = Field(default=None, alias="Club")
    gender: Text = Field(default=None, alias="Gender")


@dataclass(slots=True)
class FeedError:
    line: int
    message: str


@dataclass(slots=True)
class FeedReadResult:
    rows: list[ResultRow] = field(default_factory=list)
    errors: list[FeedError] = field(default_factory=list)


def read_result_rows(
    path: Path,
    *,
    meet_id: str,
    meet_name: str | None = None,
    meet_date: date | None = None,
) -> FeedReadResult:
    """Parse ``path`` into result rows; unreadable lines are reported, not raised.

    ``meet_name`` and ``meet_date`` fill in for sheets that lack the ``Meet`` or
    ``Date`` columns.
    """

    result = FeedReadResult()
    with path.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        # Line 1 is the header.
        for line, record in enumerate(reader, start=2):
            try:
                sheet = SheetRow.model_validate(record)
            except ValidationError as exc:
                result.errors.append(FeedError(line=line, message=_first_error(exc)))
                continue
            row_date = sheet.meet_date or meet_date
            if row_date is None:
                result.errors.append(FeedError(line=line, message="no meet date"))
                continue
            result.rows.append(
                ResultRow(
                    name=sheet.lifter,
                    meet_id=meet_id,
                    meet_name=sheet.meet or meet_name,
                    meet_date=row_date,
                    age_category=sheet.age_category,
                    weight_class=sheet.weight_class,
                    bodyweight_kg=sheet.bodyweight_kg,
                    snatch_lift_1=sheet.snatch_lift_1,
                    snatch_lift_2=sheet.snatch_lift_2,
                    snatch_lift_3=sheet.snatch_lift_3,
                    clean_jerk_lift_1=sheet.clean_jerk_lift_1,
                    clean_jerk_lift_2=sheet.clean_jerk_lift_2,
                    clean_jerk_lift_3=sheet.clean_jerk_lift_3,
                    best_snatch=sheet.best_snatch,
                    best_clean_jerk=sheet.best_clean_jerk,
                    total=sheet.total,
                    stable_id=sheet.member_id,
                    membership_number=sheet.membership_number,
                    club_name=sheet.club,
                    gender=sheet.gender,
                )
            )
    if result.errors:
        log.warning("%s: %d unreadable line(s)", path, len(result.errors))
    return result


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error["loc"])
    return f"{location}: {error['msg']}"
