"""Translate Sport80 payload rows into source port values."""

from __future__ import annotations

from datetime import date, datetime
from logging import getLogger

from liftmatch.domain.ports.sources import AthleteSummary, HistoryEntry

from .schema import HistoryRow, RankingRow

log = getLogger(__name__)

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d %b %Y", "%B %d, %Y")


def parse_site_date(value: str) -> date | None:
    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()  # noqa: DTZ007
        except ValueError:
            continue
    return None


def athlete_from_ranking(row: RankingRow) -> AthleteSummary:
    return AthleteSummary(
        name=row.lifter_name,
        stable_id=row.member_id,
        club=row.club,
        age=row.lifter_age,
        rank=row.rank,
        gender=row.gender,
        region=row.wso,
        membership_number=row.membership_number,
        total_kg=row.total,
    )


def history_entry_from_row(row: HistoryRow) -> HistoryEntry | None:
    meet_date = parse_site_date(row.date)
    if meet_date is None:
        log.warning("Dropping history entry %r with unreadable date %r", row.meet_name, row.date)
        return None
    return HistoryEntry(
        meet_name=row.meet_name,
        meet_date=meet_date,
        bodyweight_kg=row.body_weight_kg,
        total_kg=row.total,
        age_category=row.age_category,
        weight_class=row.weight_class,
    )
