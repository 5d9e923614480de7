"""Tier 2: confirm a candidate through the athlete's own competition history."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from liftmatch.domain.ports.persistence import StableIdConflictError

from .contracts import Tier, VerificationOutcome, VerificationStatus
from .errors import MissingContextError

if TYPE_CHECKING:
    from datetime import date

    from liftmatch.config.resolution import ResolutionConfig
    from liftmatch.domain.model import Lifter
    from liftmatch.domain.ports.sources import HistoryEntry, MemberHistorySource

    from .contracts import VerificationRequest

log = getLogger(__name__)


def _same_meet_name(first: str, second: str) -> bool:
    return " ".join(first.split()).casefold() == " ".join(second.split()).casefold()


class MemberHistoryVerifier:
    tier = Tier.MEMBER_HISTORY
    harvests = False

    def __init__(self, source: MemberHistorySource, config: ResolutionConfig) -> None:
        self._source = source
        self._config = config

    def check(
        self,
        stable_id: str,
        *,
        meet_name: str,
        meet_date: date,
        expected_bodyweight_kg: float | None = None,
        expected_total_kg: float | None = None,
    ) -> VerificationOutcome:
        """Look for the meet in one member's history and compare the recorded performance."""

        history = self._source.get_history(stable_id)
        entry = self._find_entry(history, meet_name, meet_date)
        if entry is None:
            return VerificationOutcome(
                tier=self.tier,
                status=VerificationStatus.NOT_FOUND,
                reason=f"member {stable_id} has no entry for {meet_name!r} near {meet_date}",
            )

        mismatches = self._performance_mismatches(entry, expected_bodyweight_kg, expected_total_kg)
        if mismatches:
            reason = f"member {stable_id}: " + "; ".join(mismatches)
            log.info("Performance mismatch for %s", reason)
            return VerificationOutcome(
                tier=self.tier,
                status=VerificationStatus.PERFORMANCE_MISMATCH,
                reason=reason,
            )
        return VerificationOutcome(
            tier=self.tier,
            status=VerificationStatus.VERIFIED,
            extracted_attributes={"stable_id": stable_id},
            reason=f"member {stable_id} competed at {entry.meet_name} on {entry.meet_date}",
        )

    def verify(self, request: VerificationRequest) -> VerificationOutcome:
        context = request.context
        meet_name, meet_date = context.meet_name, context.meet_date
        if not meet_name or meet_date is None:
            missing = tuple(
                name
                for name, value in (("meet_name", meet_name), ("meet_date", meet_date))
                if not value
            )
            raise MissingContextError(self.tier, missing)

        for lifter_id in sorted(request.excluded_candidate_ids):
            request.trace.step(self.tier, "skipped implausible candidate", lifter_id=lifter_id)

        saw_mismatch = False
        for candidate in request.eligible_candidates:
            stable_id = candidate.stable_id or self._discover(candidate, request)
            if stable_id is None:
                request.trace.step(self.tier, "no member id", lifter_id=candidate.lifter_id)
                continue
            outcome = self.check(
                stable_id,
                meet_name=meet_name,
                meet_date=meet_date,
                expected_bodyweight_kg=context.bodyweight_kg,
                expected_total_kg=context.total_kg,
            )
            request.trace.step(
                self.tier,
                outcome.status,
                lifter_id=candidate.lifter_id,
                stable_id=stable_id,
                reason=outcome.reason,
            )
            if outcome.verified:
                return VerificationOutcome(
                    tier=self.tier,
                    status=VerificationStatus.VERIFIED,
                    matched_candidate_id=candidate.lifter_id,
                    extracted_attributes=outcome.extracted_attributes,
                    reason=outcome.reason,
                )
            saw_mismatch = saw_mismatch or outcome.status is VerificationStatus.PERFORMANCE_MISMATCH

        return VerificationOutcome(
            tier=self.tier,
            status=(
                VerificationStatus.PERFORMANCE_MISMATCH
                if saw_mismatch
                else VerificationStatus.NOT_FOUND
            ),
            reason="no candidate history confirmed the meet",
        )

    def _discover(self, candidate: Lifter, request: VerificationRequest) -> str | None:
        """Find a member id for a candidate that has none and keep it on the candidate.

        The id is stored even when the history check that follows fails: knowing
        who the candidate is does not depend on this row being theirs.
        """

        stable_id = self._source.search_by_name(candidate.normalized_name)
        if stable_id is None or candidate.lifter_id is None:
            return None
        try:
            request.store.lifters.update_fields(candidate.lifter_id, {"stable_id": stable_id})
        except StableIdConflictError as exc:
            request.trace.step(self.tier, "discovered id taken", lifter_id=candidate.lifter_id)
            log.info("Discovered member id not usable for lifter %s: %s", candidate.lifter_id, exc)
            return None
        candidate.stable_id = stable_id
        request.trace.step(self.tier, "discovered member id", lifter_id=candidate.lifter_id, stable_id=stable_id)
        return stable_id

    def _find_entry(
        self,
        history: list[HistoryEntry],
        meet_name: str,
        meet_date: date,
    ) -> HistoryEntry | None:
        tolerance = self._config.history_date_tolerance
        matches = [
            entry
            for entry in history
            if _same_meet_name(entry.meet_name, meet_name)
            and abs(entry.meet_date - meet_date) <= tolerance
        ]
        if not matches:
            return None
        return min(matches, key=lambda entry: abs(entry.meet_date - meet_date))

    def _performance_mismatches(
        self,
        entry: HistoryEntry,
        expected_bodyweight_kg: float | None,
        expected_total_kg: float | None,
    ) -> list[str]:
        mismatches: list[str] = []
        if expected_bodyweight_kg is not None and entry.bodyweight_kg is not None:
            delta = abs(entry.bodyweight_kg - expected_bodyweight_kg)
            if delta > self._config.bodyweight_tolerance_kg:
                mismatches.append(f"bodyweight off by {delta:.1f} kg")
        if expected_total_kg is not None and entry.total_kg is not None:
            delta = abs(entry.total_kg - expected_total_kg)
            if delta > self._config.total_tolerance_kg:
                mismatches.append(f"total off by {delta:.1f} kg")
        return mismatches
