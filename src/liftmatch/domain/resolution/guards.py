"""Named safety rules applied when verification alone cannot decide."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from liftmatch.domain.model import AgeClass, age_class_of

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from liftmatch.config.resolution import ResolutionConfig
    from liftmatch.domain.model import Lifter, MeetResult
    from liftmatch.domain.ports.persistence import RecordedBodyweight

    from .contracts import ResultContext

log = getLogger(__name__)

_BOUNDARY_PAIRS: frozenset[frozenset[AgeClass]] = frozenset(
    {
        frozenset({AgeClass.YOUTH, AgeClass.SENIOR}),
        frozenset({AgeClass.JUNIOR, AgeClass.SENIOR}),
    }
)


def merge_missing(
    target: object,
    values: Mapping[str, object],
    fields: Iterable[str],
) -> dict[str, object]:
    """Copy ``values`` onto ``target`` for the listed fields that are still ``None``.

    Populated fields are never touched and ``None`` values are ignored, so applying
    the same map twice leaves the target exactly as applying it once. Returns the
    fields that were actually written.
    """

    applied: dict[str, object] = {}
    for name in fields:
        value = values.get(name)
        if value is None or value == "":
            continue
        if getattr(target, name) is not None:
            continue
        setattr(target, name, value)
        applied[name] = value
    return applied


def crosses_age_boundary(first: str | None, second: str | None) -> bool:
    return frozenset({age_class_of(first), age_class_of(second)}) in _BOUNDARY_PAIRS


@dataclass(frozen=True, slots=True)
class ExtremeDifference:
    lifter_id: int
    delta_kg: float
    crosses_boundary: bool

    def describe(self) -> str:
        boundary = ", across an age-class boundary" if self.crosses_boundary else ""
        return f"bodyweight differs by {self.delta_kg:.1f} kg from lifter {self.lifter_id}{boundary}"


class DisambiguationGuards:
    def __init__(self, config: ResolutionConfig) -> None:
        self._config = config

    def extreme_difference(
        self,
        context: ResultContext,
        recorded: Iterable[RecordedBodyweight],
    ) -> ExtremeDifference | None:
        """Find a recorded bodyweight implausibly far from the row's own.

        A delta of at least the extreme threshold counts when the age classes also
        straddle a youth/junior-to-senior boundary; at the decisive threshold it
        counts on its own.
        """

        if context.bodyweight_kg is None:
            return None
        strongest: ExtremeDifference | None = None
        for entry in recorded:
            delta = abs(context.bodyweight_kg - entry.bodyweight_kg)
            if delta < self._config.extreme_bodyweight_delta_kg:
                continue
            boundary = crosses_age_boundary(context.age_category, entry.age_category)
            if not boundary and delta < self._config.decisive_bodyweight_delta_kg:
                continue
            if strongest is None or delta > strongest.delta_kg:
                strongest = ExtremeDifference(
                    lifter_id=entry.lifter_id,
                    delta_kg=delta,
                    crosses_boundary=boundary,
                )
        return strongest

    def implausible_candidates(
        self,
        context: ResultContext,
        recorded: Iterable[RecordedBodyweight],
    ) -> frozenset[int]:
        """Lifters whose own recorded bodyweights trip :meth:`extreme_difference`.

        Verifiers must not attach the row, or a member id found by name, to these.
        """

        by_lifter: dict[int, list[RecordedBodyweight]] = {}
        for entry in recorded:
            by_lifter.setdefault(entry.lifter_id, []).append(entry)
        return frozenset(
            lifter_id
            for lifter_id, entries in by_lifter.items()
            if self.extreme_difference(context, entries) is not None
        )

    def replayed_result(
        self,
        context: ResultContext,
        existing: Iterable[MeetResult],
    ) -> MeetResult | None:
        """The stored result this row repeats exactly, when a sheet is imported twice."""

        for result in existing:
            if result.lifter_name.casefold() != context.name.casefold():
                continue
            if result.bodyweight_kg != context.bodyweight_kg or result.total != context.total_kg:
                continue
            return result
        return None

    def pending_candidate(self, candidates: Iterable[Lifter]) -> Lifter | None:
        """The only candidate still lacking a stable id, if there is exactly one."""

        pending = [candidate for candidate in candidates if candidate.stable_id is None]
        return pending[0] if len(pending) == 1 else None
