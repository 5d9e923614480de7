"""Tunable thresholds for lifter identity resolution."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from .env import env_float, env_int

ACTIVE_DIVISION_CUTOVER = date(2025, 6, 1)


@dataclass(frozen=True, slots=True)
class ResolutionConfig:
    # Tier 2 (member history) tolerances.
    history_date_tolerance: timedelta = timedelta(days=5)
    bodyweight_tolerance_kg: float = 2.0
    total_tolerance_kg: float = 5.0

    # Tier 1 (division rankings).
    division_window: timedelta = timedelta(days=5)
    active_division_cutover: date = ACTIVE_DIVISION_CUTOVER
    min_bisect_window: timedelta = timedelta(days=1)
    max_bisect_depth: int = 3

    # Extreme-difference guard.
    extreme_bodyweight_delta_kg: float = 40.0
    decisive_bodyweight_delta_kg: float = 50.0

    # TransientIO handling at the tier boundary.
    tier_retry_attempts: int = 2
    tier_retry_backoff_seconds: float = 1.0

    # Harvest Tier 1 attributes for an unambiguous single candidate lacking a stable id.
    enrich_single_candidates: bool = True


def get_resolution_config() -> ResolutionConfig:
    return ResolutionConfig(
        history_date_tolerance=timedelta(days=env_int("LIFTMATCH_HISTORY_DATE_TOLERANCE_DAYS", 5)),
        bodyweight_tolerance_kg=env_float("LIFTMATCH_BODYWEIGHT_TOLERANCE_KG", 2.0),
        total_tolerance_kg=env_float("LIFTMATCH_TOTAL_TOLERANCE_KG", 5.0),
        division_window=timedelta(days=env_int("LIFTMATCH_DIVISION_WINDOW_DAYS", 5)),
        tier_retry_attempts=env_int("LIFTMATCH_TIER_RETRY_ATTEMPTS", 2),
        tier_retry_backoff_seconds=env_float("LIFTMATCH_TIER_RETRY_BACKOFF_SECONDS", 1.0),
    )
