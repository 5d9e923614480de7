"""Candidate lookup against the lifter roster."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from liftmatch.domain.names import name_key, normalize_name

if TYPE_CHECKING:
    from liftmatch.domain.model import Lifter
    from liftmatch.domain.ports.persistence import LifterRepository

log = getLogger(__name__)


@dataclass(slots=True)
class StableIdMatch:
    """Result of a stable-id lookup.

    ``lifter`` is set only when the id resolves to exactly one usable lifter.
    ``owned_elsewhere`` means the id belongs to some lifter(s) that could not be
    corroborated by name, so it must not be handed to anybody else.
    """

    lifter: Lifter | None = None
    owned_elsewhere: bool = False
    conflicts: list[str] = field(default_factory=list)


class CandidateLookup:
    def __init__(self, lifters: LifterRepository) -> None:
        self._lifters = lifters

    def find_by_stable_id(self, stable_id: str, name: str) -> StableIdMatch:
        owners = list(self._lifters.get_by_stable_id(stable_id))
        if not owners:
            return StableIdMatch()

        key = name_key(normalize_name(name))
        same_name = [lifter for lifter in owners if lifter.name_key == key]

        if len(owners) == 1:
            if same_name:
                return StableIdMatch(lifter=owners[0])
            message = (
                f"stable id {stable_id} belongs to {owners[0].normalized_name!r} "
                f"(lifter {owners[0].lifter_id}), not {name!r}"
            )
            log.warning("Integrity conflict: %s", message)
            return StableIdMatch(owned_elsewhere=True, conflicts=[message])

        ids = sorted(lifter.lifter_id or 0 for lifter in owners)
        message = f"stable id {stable_id} is held by {len(owners)} lifters {ids}"
        log.warning("Integrity conflict: %s", message)
        if len(same_name) == 1:
            return StableIdMatch(lifter=same_name[0], conflicts=[message])
        return StableIdMatch(owned_elsewhere=True, conflicts=[message])

    def find_by_name(self, name: str) -> list[Lifter]:
        """Lifters whose canonical name matches ``name`` case-insensitively, oldest first."""

        normalized = normalize_name(name)
        if not normalized:
            return []
        candidates = list(self._lifters.get_by_name(normalized))
        candidates.sort(key=lambda lifter: lifter.lifter_id or 0)
        return candidates
