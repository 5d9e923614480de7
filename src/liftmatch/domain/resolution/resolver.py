"""Identity resolution orchestrator.

A row moves through ``STABLE_ID_LOOKUP -> NAME_LOOKUP -> {ZERO, ONE, MANY}`` and ends
either RESOLVED onto an existing lifter or in CREATE_NEW. Verification tiers are an
ordered list of :class:`~liftmatch.domain.resolution.contracts.Verifier` strategies;
whenever the evidence runs out the resolver creates a new lifter instead of guessing
between existing ones.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

from liftmatch.domain.model import LIFTER_ENRICHABLE_FIELDS, RESULT_ENRICHABLE_FIELDS, Lifter
from liftmatch.domain.names import normalize_name
from liftmatch.domain.ports.persistence import StableIdConflictError
from liftmatch.domain.ports.sources import SourceError, SourceUnavailableError

from .contracts import (
    TIER_OUTCOME_CODES,
    OutcomeCode,
    ResolutionOutcome,
    VerificationOutcome,
    VerificationRequest,
    VerificationStatus,
)
from .errors import MissingContextError, ResolutionError
from .guards import merge_missing
from .lookup import CandidateLookup
from .trace import ResolutionTrace

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from liftmatch.config.resolution import ResolutionConfig
    from liftmatch.domain.model import MeetResult
    from liftmatch.domain.ports.unit_of_work import ResolutionRepositories

    from .contracts import ResultContext, Verifier
    from .guards import DisambiguationGuards, ExtremeDifference

log = getLogger(__name__)

type SleepFn = Callable[[float], None]


@dataclass(slots=True)
class _State:
    context: ResultContext
    trace: ResolutionTrace
    conflicts: list[str] = field(default_factory=list)
    lifter_attributes: dict[str, object] = field(default_factory=dict)
    result_enrichment: dict[str, object] = field(default_factory=dict)

    def absorb(self, attributes: Mapping[str, object]) -> None:
        for name, value in attributes.items():
            if value is None:
                continue
            if name in LIFTER_ENRICHABLE_FIELDS:
                self.lifter_attributes.setdefault(name, value)
            if name in RESULT_ENRICHABLE_FIELDS:
                self.result_enrichment.setdefault(name, value)

    def conflict(self, message: str) -> None:
        log.warning("Integrity conflict for %s: %s", self.context.name, message)
        self.trace.step("conflict", message)
        self.conflicts.append(message)


class IdentityResolver:
    def __init__(
        self,
        *,
        store: ResolutionRepositories,
        verifiers: Sequence[Verifier],
        guards: DisambiguationGuards,
        config: ResolutionConfig,
        lookup: CandidateLookup | None = None,
        sleep: SleepFn = time.sleep,
    ) -> None:
        self._store = store
        self._verifiers = tuple(verifiers)
        self._guards = guards
        self._config = config
        self._lookup = lookup or CandidateLookup(store.lifters)
        self._sleep = sleep

    def resolve(self, context: ResultContext) -> ResolutionOutcome:
        name = normalize_name(context.name)
        if not name:
            raise ResolutionError(f"Cannot resolve a blank lifter name (meet {context.meet_id})")
        context = replace(context, name=name)
        state = _State(context=context, trace=ResolutionTrace(name=name))
        state.trace.step("start", "resolving", meet_id=context.meet_id, stable_id=context.stable_id)

        if context.stable_id:
            match = self._lookup.find_by_stable_id(context.stable_id, name)
            for message in match.conflicts:
                state.conflict(message)
            if match.lifter is not None:
                return self._resolved(state, match.lifter, OutcomeCode.RESOLVED_BY_STABLE_ID)
            if match.owned_elsewhere:
                state.trace.step("stable-id", "supplied id unusable, continuing by name")
                state.context = replace(context, stable_id=None)

        candidates = tuple(self._lookup.find_by_name(name))
        state.trace.step(
            "name",
            f"{len(candidates)} candidate(s)",
            lifter_ids=[candidate.lifter_id for candidate in candidates],
        )
        if not candidates:
            return self._resolve_zero(state)
        if len(candidates) == 1:
            return self._resolve_one(state, candidates[0])
        return self._resolve_many(state, candidates)

    # Candidate-count branches -------------------------------------------------

    def _resolve_zero(self, state: _State) -> ResolutionOutcome:
        harvested = self._harvest(state, ())
        if harvested is not None:
            state.absorb(harvested.extracted_attributes)
        return self._create(state, OutcomeCode.CREATED_NEW, "no lifter with this name")

    def _resolve_one(self, state: _State, candidate: Lifter) -> ResolutionOutcome:
        context = state.context
        if context.stable_id and candidate.stable_id and candidate.stable_id != context.stable_id:
            return self._create(
                state,
                OutcomeCode.CREATED_NEW,
                f"sole candidate holds member id {candidate.stable_id}, row has {context.stable_id}",
            )

        existing = self._division_results(state, (candidate,))
        if self._guards.replayed_result(context, existing) is not None:
            state.trace.step("one", "row already stored for candidate")
            return self._resolved(state, candidate, OutcomeCode.RESOLVED_BY_NAME)

        recorded = self._store.results.bodyweights_for([_id(candidate)])
        extreme = self._guards.extreme_difference(context, recorded)
        if not existing and extreme is None:
            if context.stable_id and candidate.stable_id is None:
                self._assign_stable_id(state, candidate, context.stable_id)
                return self._resolved(state, candidate, OutcomeCode.RESOLVED_BY_NAME)
            code = OutcomeCode.RESOLVED_BY_NAME
            if candidate.stable_id is None and self._config.enrich_single_candidates:
                harvested = self._harvest(state, (candidate,))
                if harvested is not None and harvested.matched_candidate_id == candidate.lifter_id:
                    self._apply_verified(state, candidate, harvested)
                    code = OutcomeCode.RESOLVED_BY_TIER1
            return self._resolved(state, candidate, code)

        state.trace.step(
            "one",
            "verification required",
            same_division=bool(existing),
            extreme=extreme.describe() if extreme else None,
        )
        return self._verify_chain(
            state,
            (candidate,),
            same_division=bool(existing),
            extreme=extreme,
            excluded=self._guards.implausible_candidates(context, recorded),
        )

    def _resolve_many(self, state: _State, candidates: tuple[Lifter, ...]) -> ResolutionOutcome:
        context = state.context
        if context.stable_id:
            for candidate in candidates:
                if candidate.stable_id == context.stable_id:
                    return self._resolved(state, candidate, OutcomeCode.RESOLVED_BY_STABLE_ID)

        existing = self._division_results(state, candidates)
        replayed = self._guards.replayed_result(context, existing)
        if replayed is not None:
            owner = next(c for c in candidates if c.lifter_id == replayed.lifter_id)
            state.trace.step("many", "row already stored for candidate", lifter_id=owner.lifter_id)
            return self._resolved(state, owner, OutcomeCode.RESOLVED_BY_NAME)

        recorded = self._store.results.bodyweights_for([_id(c) for c in candidates])
        implausible = self._guards.implausible_candidates(context, recorded)
        if context.stable_id:
            pending = self._guards.pending_candidate(candidates)
            busy = {result.lifter_id for result in existing} | implausible
            if (
                pending is not None
                and pending.lifter_id not in busy
                and self._assign_stable_id(state, pending, context.stable_id)
            ):
                return self._resolved(state, pending, OutcomeCode.RESOLVED_BY_PENDING_CANDIDATE)

        extreme = self._guards.extreme_difference(context, recorded)
        return self._verify_chain(
            state,
            candidates,
            same_division=bool(existing),
            extreme=extreme,
            excluded=implausible,
        )

    # Verification ---------------------------------------------------------------

    def _verify_chain(
        self,
        state: _State,
        candidates: tuple[Lifter, ...],
        *,
        same_division: bool,
        extreme: ExtremeDifference | None,
        excluded: frozenset[int],
    ) -> ResolutionOutcome:
        if excluded:
            state.trace.step("guard", "candidates ruled out by bodyweight", lifter_ids=sorted(excluded))
        request = self._request(state, candidates, same_division=same_division, excluded=excluded)
        for verifier in self._verifiers:
            outcome = self._run_tier(verifier, request)
            if outcome.verified and outcome.matched_candidate_id is not None:
                matched = next(c for c in candidates if c.lifter_id == outcome.matched_candidate_id)
                self._apply_verified(state, matched, outcome)
                return self._resolved(state, matched, TIER_OUTCOME_CODES[verifier.tier])
            # Attributes of an unmatched ranking row still describe the row's athlete.
            state.absorb(outcome.extracted_attributes)

        if extreme is not None:
            log.info("Extreme-difference split for %s: %s", state.context.name, extreme.describe())
            return self._create(state, OutcomeCode.CREATED_NEW_EXTREME_SPLIT, extreme.describe())
        return self._create(state, OutcomeCode.CREATED_NEW, "no tier confirmed a candidate")

    def _harvest(self, state: _State, candidates: tuple[Lifter, ...]) -> VerificationOutcome | None:
        request = self._request(state, candidates, same_division=False)
        for verifier in self._verifiers:
            if not verifier.harvests:
                continue
            outcome = self._run_tier(verifier, request)
            if outcome.verified:
                return outcome
        return None

    def _run_tier(self, verifier: Verifier, request: VerificationRequest) -> VerificationOutcome:
        """Run one tier, retrying transient source failures with exponential backoff."""

        attempts = max(1, self._config.tier_retry_attempts)
        for attempt in range(1, attempts + 1):
            try:
                outcome = verifier.verify(request)
            except MissingContextError as exc:
                request.trace.step(verifier.tier, "skipped", reason=str(exc))
                return VerificationOutcome(
                    tier=verifier.tier, status=VerificationStatus.SKIPPED, reason=str(exc)
                )
            except SourceUnavailableError as exc:
                log.warning(
                    "%s unavailable for %s (attempt %d/%d): %s",
                    verifier.tier,
                    request.context.name,
                    attempt,
                    attempts,
                    exc,
                )
                request.trace.step(verifier.tier, "source unavailable", attempt=attempt)
                if attempt < attempts:
                    self._sleep(self._config.tier_retry_backoff_seconds * 2 ** (attempt - 1))
                continue
            except SourceError as exc:
                log.warning("%s failed for %s: %s", verifier.tier, request.context.name, exc)
                request.trace.step(verifier.tier, "source error", reason=str(exc))
                break
            request.trace.step(verifier.tier, outcome.status, reason=outcome.reason)
            return outcome
        return VerificationOutcome(
            tier=verifier.tier,
            status=VerificationStatus.INCONCLUSIVE,
            reason="source unavailable",
        )

    def _request(
        self,
        state: _State,
        candidates: tuple[Lifter, ...],
        *,
        same_division: bool,
        excluded: frozenset[int] = frozenset(),
    ) -> VerificationRequest:
        return VerificationRequest(
            context=state.context,
            candidates=candidates,
            store=self._store,
            trace=state.trace,
            same_division_collision=same_division,
            excluded_candidate_ids=excluded,
        )

    # Store effects --------------------------------------------------------------

    def _division_results(
        self,
        state: _State,
        candidates: tuple[Lifter, ...],
    ) -> Sequence[MeetResult]:
        """Results the candidates already hold in this row's meet division."""

        context = state.context
        if context.age_category is None or context.weight_class is None:
            return ()
        return self._store.results.in_division(
            [_id(candidate) for candidate in candidates],
            meet_id=context.meet_id,
            age_category=context.age_category,
            weight_class=context.weight_class,
        )

    def _apply_verified(self, state: _State, lifter: Lifter, outcome: VerificationOutcome) -> None:
        attributes = dict(outcome.extracted_attributes)
        stable_id = attributes.pop("stable_id", None)
        if isinstance(stable_id, str) and lifter.stable_id is None:
            self._assign_stable_id(state, lifter, stable_id)
        lifter_values = {
            name: value for name, value in attributes.items() if name in LIFTER_ENRICHABLE_FIELDS
        }
        if lifter_values:
            self._store.lifters.update_fields(_id(lifter), lifter_values)
        state.absorb({name: attributes[name] for name in RESULT_ENRICHABLE_FIELDS if name in attributes})

    def _assign_stable_id(self, state: _State, lifter: Lifter, stable_id: str) -> bool:
        try:
            self._store.lifters.update_fields(_id(lifter), {"stable_id": stable_id})
        except StableIdConflictError as exc:
            state.conflict(f"could not give lifter {lifter.lifter_id} {exc}")
            return False
        lifter.stable_id = stable_id
        state.trace.step("stable-id", "assigned", lifter_id=lifter.lifter_id, stable_id=stable_id)
        return True

    def _resolved(self, state: _State, lifter: Lifter, code: OutcomeCode) -> ResolutionOutcome:
        if state.context.membership_number:
            self._store.lifters.update_fields(
                _id(lifter), {"membership_number": state.context.membership_number}
            )
        state.trace.finish(code)
        log.info("Resolved %s to lifter %s (%s)", state.context.name, lifter.lifter_id, code)
        return ResolutionOutcome(
            lifter=lifter,
            code=code,
            created=False,
            trace=state.trace,
            result_enrichment=state.result_enrichment,
            conflicts=state.conflicts,
        )

    def _create(self, state: _State, code: OutcomeCode, reason: str) -> ResolutionOutcome:
        context = state.context
        attributes = {
            name: value
            for name, value in state.lifter_attributes.items()
            if name in LIFTER_ENRICHABLE_FIELDS
        }
        if context.stable_id:
            attributes["stable_id"] = context.stable_id
        if context.membership_number:
            attributes["membership_number"] = context.membership_number

        stable_id = attributes.get("stable_id")
        if isinstance(stable_id, str) and self._store.lifters.get_by_stable_id(stable_id):
            state.conflict(f"harvested member id {stable_id} already belongs to another lifter")
            attributes.pop("stable_id")

        try:
            lifter = self._store.lifters.add(self._new_lifter(context.name, attributes))
        except StableIdConflictError as exc:
            state.conflict(str(exc))
            attributes.pop("stable_id", None)
            lifter = self._store.lifters.add(self._new_lifter(context.name, attributes))

        state.trace.step("create", reason, lifter_id=lifter.lifter_id)
        state.trace.finish(code)
        log.info("Created lifter %s for %s (%s: %s)", lifter.lifter_id, context.name, code, reason)
        return ResolutionOutcome(
            lifter=lifter,
            code=code,
            created=True,
            trace=state.trace,
            result_enrichment=state.result_enrichment,
            conflicts=state.conflicts,
        )

    @staticmethod
    def _new_lifter(name: str, attributes: Mapping[str, object]) -> Lifter:
        lifter = Lifter(normalized_name=name)
        merge_missing(lifter, attributes, LIFTER_ENRICHABLE_FIELDS)
        return lifter


def _id(lifter: Lifter) -> int:
    if lifter.lifter_id is None:
        raise ResolutionError(f"Lifter {lifter.normalized_name!r} has not been stored")
    return lifter.lifter_id
