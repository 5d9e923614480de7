"""Ports for the external ranking-site data sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import date


class SourceError(RuntimeError):
    """Base class for data source failures."""


class SourceUnavailableError(SourceError):
    """Raised on timeouts or network failures that survived transport retries."""


class ResultSetTooLargeError(SourceError):
    """Raised when a ranking query is oversized or degraded and should be narrowed."""


@dataclass(frozen=True, slots=True, kw_only=True)
class AthleteSummary:
    name: str
    stable_id: str | None = None
    club: str | None = None
    age: int | None = None
    rank: int | None = None
    gender: str | None = None
    region: str | None = None
    membership_number: str | None = None
    total_kg: float | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class HistoryEntry:
    meet_name: str
    meet_date: date
    bodyweight_kg: float | None = None
    total_kg: float | None = None
    age_category: str | None = None
    weight_class: str | None = None


@runtime_checkable
class DivisionRankingSource(Protocol):
    def query(self, division_code: int, date_from: date, date_to: date) -> list[AthleteSummary]:
        """Return every athlete ranked in the division for the inclusive date window.

        Raises :class:`ResultSetTooLargeError` rather than returning a truncated list.
        """
        ...


@runtime_checkable
class MemberHistorySource(Protocol):
    def get_history(self, stable_id: str) -> list[HistoryEntry]: ...

    def search_by_name(self, name: str) -> str | None: ...
