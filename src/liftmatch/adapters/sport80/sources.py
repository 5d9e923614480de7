"""Sport80-backed implementations of the ranking and member history sources."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from liftmatch.domain.names import name_key, normalize_name

from .translator import athlete_from_ranking, history_entry_from_row

if TYPE_CHECKING:
    from datetime import date

    from liftmatch.domain.ports.sources import AthleteSummary, HistoryEntry

    from .client import Sport80Client

log = getLogger(__name__)


class Sport80RankingSource:
    def __init__(self, client: Sport80Client) -> None:
        self._client = client

    def query(self, division_code: int, date_from: date, date_to: date) -> list[AthleteSummary]:
        rows = self._client.fetch_rankings(division_code, date_from, date_to)
        return [athlete_from_ranking(row) for row in rows]


class Sport80MemberSource:
    def __init__(self, client: Sport80Client) -> None:
        self._client = client

    def get_history(self, stable_id: str) -> list[HistoryEntry]:
        entries = (history_entry_from_row(row) for row in self._client.fetch_member_history(stable_id))
        return [entry for entry in entries if entry is not None]

    def search_by_name(self, name: str) -> str | None:
        """Member id of the first result whose name matches exactly, ignoring case."""

        wanted = name_key(normalize_name(name))
        for row in self._client.search_members(name):
            if row.member_id and name_key(normalize_name(row.name)) == wanted:
                return row.member_id
        log.debug("No exact member match for %r", name)
        return None
