"""Value types exchanged between the resolver and its verifiers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date

    from liftmatch.domain.model import Lifter
    from liftmatch.domain.ports.unit_of_work import ResolutionRepositories

    from .trace import ResolutionTrace


class Tier(StrEnum):
    DIVISION = "tier1-division"
    MEMBER_HISTORY = "tier2-member-history"


class VerificationStatus(StrEnum):
    VERIFIED = "verified"
    NOT_FOUND = "not-found"
    PERFORMANCE_MISMATCH = "performance-mismatch"
    SKIPPED = "skipped"
    INCONCLUSIVE = "inconclusive"


class OutcomeCode(StrEnum):
    """Per-row codes reported to operators after a batch run."""

    RESOLVED_BY_STABLE_ID = "resolved-by-stable-id"
    RESOLVED_BY_NAME = "resolved-by-name"
    RESOLVED_BY_PENDING_CANDIDATE = "resolved-by-pending-candidate"
    RESOLVED_BY_TIER1 = "resolved-by-tier1"
    RESOLVED_BY_TIER2 = "resolved-by-tier2"
    CREATED_NEW = "created-new"
    CREATED_NEW_EXTREME_SPLIT = "created-new-extreme-split"
    SKIPPED_DUPLICATE = "skipped-duplicate"
    STORE_FAILED = "store-failed"
    ROW_FAILED = "row-failed"
    INVALID_ROW = "invalid-row"


TIER_OUTCOME_CODES: dict[Tier, OutcomeCode] = {
    Tier.DIVISION: OutcomeCode.RESOLVED_BY_TIER1,
    Tier.MEMBER_HISTORY: OutcomeCode.RESOLVED_BY_TIER2,
}


@dataclass(frozen=True, slots=True, kw_only=True)
class ResultContext:
    """Everything known about the row whose lifter is being resolved."""

    name: str
    meet_id: str
    meet_name: str | None = None
    meet_date: date | None = None
    age_category: str | None = None
    weight_class: str | None = None
    bodyweight_kg: float | None = None
    total_kg: float | None = None
    stable_id: str | None = None
    membership_number: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class VerificationOutcome:
    tier: Tier
    status: VerificationStatus
    matched_candidate_id: int | None = None
    extracted_attributes: Mapping[str, object] = field(default_factory=dict)
    reason: str = ""

    @property
    def verified(self) -> bool:
        return self.status is VerificationStatus.VERIFIED


@dataclass(slots=True, kw_only=True)
class VerificationRequest:
    context: ResultContext
    candidates: tuple[Lifter, ...]
    store: ResolutionRepositories
    trace: ResolutionTrace
    # Candidates already hold results in this meet division; rankings cannot split them.
    same_division_collision: bool = False
    # Candidates whose own recorded bodyweights mark them as a different athlete.
    excluded_candidate_ids: frozenset[int] = frozenset()

    @property
    def eligible_candidates(self) -> tuple[Lifter, ...]:
        return tuple(c for c in self.candidates if c.lifter_id not in self.excluded_candidate_ids)


@runtime_checkable
class Verifier(Protocol):
    """One tier of the verification chain."""

    tier: Tier
    # Whether the tier can collect attributes for a brand-new lifter.
    harvests: bool

    def verify(self, request: VerificationRequest) -> VerificationOutcome: ...


@dataclass(slots=True, kw_only=True)
class ResolutionOutcome:
    lifter: Lifter
    code: OutcomeCode
    created: bool
    trace: ResolutionTrace
    result_enrichment: dict[str, object] = field(default_factory=dict)
    conflicts: list[str] = field(default_factory=list)

    @property
    def integrity_conflict(self) -> bool:
        return bool(self.conflicts)
