"""Tier 1: cross-check a name against division ranking listings.

The ranking site lists every athlete ranked in a division over a date window. A row
naming the athlete yields the site's member id plus club, age and rank, which both
identifies the athlete and enriches the result being imported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from liftmatch.config.divisions import division_name
from liftmatch.domain.model import RESULT_ENRICHABLE_FIELDS
from liftmatch.domain.names import name_key, normalize_name
from liftmatch.domain.ports.persistence import StableIdConflictError
from liftmatch.domain.ports.sources import ResultSetTooLargeError

from .contracts import Tier, VerificationOutcome, VerificationStatus
from .errors import MissingContextError

if TYPE_CHECKING:
    from datetime import date

    from liftmatch.config.divisions import DivisionCatalog
    from liftmatch.config.resolution import ResolutionConfig
    from liftmatch.domain.model import Lifter
    from liftmatch.domain.ports.sources import AthleteSummary, DivisionRankingSource
    from liftmatch.domain.ports.unit_of_work import ResolutionRepositories

    from .contracts import VerificationRequest
    from .trace import ResolutionTrace

log = getLogger(__name__)

_ONE_DAY = timedelta(days=1)


@dataclass(slots=True)
class _Sweep:
    athletes: list[AthleteSummary] = field(default_factory=list)
    degraded: bool = False

    def has(self, key: str) -> bool:
        return any(_key_of(athlete) == key for athlete in self.athletes)

    def merged(self, other: _Sweep) -> _Sweep:
        seen = {(_key_of(athlete), athlete.stable_id) for athlete in self.athletes}
        athletes = list(self.athletes)
        for athlete in other.athletes:
            marker = (_key_of(athlete), athlete.stable_id)
            if marker not in seen:
                seen.add(marker)
                athletes.append(athlete)
        return _Sweep(athletes=athletes, degraded=self.degraded or other.degraded)


def _key_of(athlete: AthleteSummary) -> str:
    return name_key(normalize_name(athlete.name))


def summary_attributes(athlete: AthleteSummary) -> dict[str, object]:
    """Lifter and result fields carried by one ranking row."""

    attributes: dict[str, object] = {
        "stable_id": athlete.stable_id,
        "membership_number": athlete.membership_number,
        "gender": athlete.gender,
        "club_name": athlete.club,
        "competition_age": athlete.age,
        "national_rank": athlete.rank,
        "region": athlete.region,
    }
    return {name: value for name, value in attributes.items() if value is not None}


class DivisionVerifier:
    tier = Tier.DIVISION
    harvests = True

    def __init__(
        self,
        source: DivisionRankingSource,
        catalog: DivisionCatalog,
        config: ResolutionConfig,
    ) -> None:
        self._source = source
        self._catalog = catalog
        self._config = config

    def division_codes(self, age_category: str, weight_class: str, meet_date: date) -> list[int]:
        """Codes to try, the variant in force on ``meet_date`` first."""

        name = division_name(age_category, weight_class)
        active = self._catalog.active_code(name)
        inactive = self._catalog.inactive_code(name)
        ordered = (
            (active, inactive)
            if meet_date >= self._config.active_division_cutover
            else (inactive, active)
        )
        return [code for code in ordered if code is not None]

    def verify(self, request: VerificationRequest) -> VerificationOutcome:
        context = request.context
        if request.same_division_collision:
            return VerificationOutcome(
                tier=self.tier,
                status=VerificationStatus.SKIPPED,
                reason="candidates already ranked in this division",
            )
        meet_date = context.meet_date
        age_category, weight_class = context.age_category, context.weight_class
        if meet_date is None or age_category is None or weight_class is None:
            missing = tuple(
                name
                for name, value in (
                    ("meet_date", meet_date),
                    ("age_category", age_category),
                    ("weight_class", weight_class),
                )
                if value is None
            )
            raise MissingContextError(self.tier, missing)

        codes = self.division_codes(age_category, weight_class, meet_date)
        if not codes:
            name = division_name(age_category, weight_class)
            request.trace.step(self.tier, "no division code", division=name)
            return VerificationOutcome(
                tier=self.tier,
                status=VerificationStatus.NOT_FOUND,
                reason=f"no division code for {name!r}",
            )

        target = name_key(normalize_name(context.name))
        date_from = meet_date - self._config.division_window
        date_to = meet_date + self._config.division_window

        sweep = _Sweep()
        degraded = False
        for code in codes:
            sweep = self.sweep(code, date_from, date_to, target=target, trace=request.trace)
            degraded = degraded or sweep.degraded
            if sweep.has(target):
                break
            request.trace.step(self.tier, "name not ranked", code=code, rows=len(sweep.athletes))

        self._enrich_neighbours(
            sweep,
            target,
            request.store,
            date_from=date_from,
            date_to=date_to,
            age_category=age_category,
            weight_class=weight_class,
        )

        matches = [athlete for athlete in sweep.athletes if _key_of(athlete) == target]
        if not matches:
            # A degraded window under either code may have hidden the name.
            status = VerificationStatus.INCONCLUSIVE if degraded else VerificationStatus.NOT_FOUND
            return VerificationOutcome(tier=self.tier, status=status, reason="name not ranked")
        return self._decide(matches, request)

    def sweep(
        self,
        code: int,
        date_from: date,
        date_to: date,
        *,
        target: str,
        trace: ResolutionTrace,
        depth: int = 0,
    ) -> _Sweep:
        """Query one window, halving it while the source reports it as oversized.

        The earlier half is searched first and the later half is skipped once the
        target name turns up, so the earliest occurrence wins.
        """

        try:
            athletes = self._source.query(code, date_from, date_to)
        except ResultSetTooLargeError:
            span = date_to - date_from
            if depth >= self._config.max_bisect_depth or span <= self._config.min_bisect_window:
                log.warning(
                    "Ranking window %s..%s for division %s still degraded at depth %d",
                    date_from,
                    date_to,
                    code,
                    depth,
                )
                trace.step(self.tier, "window degraded", code=code, depth=depth)
                return _Sweep(degraded=True)
            midpoint = date_from + timedelta(days=span.days // 2)
            trace.step(
                self.tier,
                "bisecting",
                code=code,
                date_from=str(date_from),
                date_to=str(date_to),
                depth=depth + 1,
            )
            earlier = self.sweep(code, date_from, midpoint, target=target, trace=trace, depth=depth + 1)
            if earlier.has(target):
                return earlier
            later = self.sweep(
                code, midpoint + _ONE_DAY, date_to, target=target, trace=trace, depth=depth + 1
            )
            return earlier.merged(later)
        trace.step(self.tier, "queried", code=code, rows=len(athletes), depth=depth)
        return _Sweep(athletes=list(athletes))

    def _decide(self, matches: list[AthleteSummary], request: VerificationRequest) -> VerificationOutcome:
        context = request.context
        if len(matches) > 1 and context.total_kg is not None:
            by_total = [
                athlete
                for athlete in matches
                if athlete.total_kg is not None
                and abs(athlete.total_kg - context.total_kg) <= self._config.total_tolerance_kg
            ]
            matches = by_total or matches

        stable_ids = {athlete.stable_id for athlete in matches if athlete.stable_id}
        if len(stable_ids) > 1:
            request.trace.step(self.tier, "ambiguous ranking rows", stable_ids=sorted(stable_ids))
            return VerificationOutcome(
                tier=self.tier,
                status=VerificationStatus.NOT_FOUND,
                reason=f"{len(stable_ids)} ranked athletes share the name",
            )

        attributes = summary_attributes(matches[0])
        harvested = next(iter(stable_ids), None)
        if harvested is not None:
            attributes["stable_id"] = harvested

        if not request.candidates:
            request.trace.step(self.tier, "attributes harvested", **attributes)
            return VerificationOutcome(
                tier=self.tier,
                status=VerificationStatus.VERIFIED,
                extracted_attributes=attributes,
                reason="harvested for new lifter",
            )

        matched = self._match_candidate(harvested, request)
        if matched is None:
            return VerificationOutcome(
                tier=self.tier,
                status=VerificationStatus.NOT_FOUND,
                extracted_attributes=attributes,
                reason="ranked athlete matches no candidate",
            )
        return VerificationOutcome(
            tier=self.tier,
            status=VerificationStatus.VERIFIED,
            matched_candidate_id=matched.lifter_id,
            extracted_attributes=attributes,
            reason=f"member id {harvested} matched",
        )

    def _match_candidate(
        self,
        stable_id: str | None,
        request: VerificationRequest,
    ) -> Lifter | None:
        if stable_id is None:
            return None
        for candidate in request.candidates:
            if candidate.stable_id == stable_id:
                # Held by a lifter whose bodyweights rule this row out.
                if candidate.lifter_id in request.excluded_candidate_ids:
                    return None
                return candidate
        pending = [c for c in request.eligible_candidates if c.stable_id is None]
        if len(pending) != 1:
            return None
        # The id may already belong to a same-named lifter outside this candidate list.
        if request.store.lifters.get_by_stable_id(stable_id):
            return None
        return pending[0]

    def _enrich_neighbours(
        self,
        sweep: _Sweep,
        target: str,
        store: ResolutionRepositories,
        *,
        date_from: date,
        date_to: date,
        age_category: str,
        weight_class: str,
    ) -> None:
        """Fill missing fields on other athletes' results found in the same sweep."""

        by_key: dict[str, AthleteSummary] = {}
        for athlete in sweep.athletes:
            key = _key_of(athlete)
            if key != target:
                by_key.setdefault(key, athlete)
        if not by_key:
            return

        existing = store.results.find_in_division_window(
            list(by_key),
            date_from=date_from,
            date_to=date_to,
            age_category=age_category,
            weight_class=weight_class,
        )
        filled = 0
        for result in existing:
            athlete = by_key.get(name_key(result.lifter_name))
            if athlete is None or result.result_id is None:
                continue
            attributes = summary_attributes(athlete)
            result_values = {name: attributes[name] for name in RESULT_ENRICHABLE_FIELDS if name in attributes}
            if result_values and store.results.update_fields(result.result_id, result_values):
                filled += 1
            if athlete.stable_id:
                self._link_stable_id(result.lifter_id, result.lifter_name, athlete.stable_id, store)
        if filled:
            log.info("Enriched %d neighbouring results from division sweep", filled)

    def _link_stable_id(
        self,
        lifter_id: int,
        lifter_name: str,
        stable_id: str,
        store: ResolutionRepositories,
    ) -> None:
        # Only when the name is unambiguous in the roster.
        if len(store.lifters.get_by_name(lifter_name)) != 1:
            return
        lifter = store.lifters.get(lifter_id)
        if lifter is None or lifter.stable_id is not None:
            return
        try:
            store.lifters.update_fields(lifter_id, {"stable_id": stable_id})
        except StableIdConflictError as exc:
            log.info("Skipped linking neighbour %s: %s", lifter_name, exc)
