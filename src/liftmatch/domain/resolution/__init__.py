"""Tiered lifter identity resolution."""

from __future__ import annotations

from .contracts import (
    OutcomeCode,
    ResolutionOutcome,
    ResultContext,
    Tier,
    VerificationOutcome,
    VerificationRequest,
    VerificationStatus,
    Verifier,
)
from .divisions import DivisionVerifier
from .errors import MissingContextError, ResolutionError
from .guards import DisambiguationGuards, merge_missing
from .history import MemberHistoryVerifier
from .lookup import CandidateLookup
from .resolver import IdentityResolver
from .trace import ResolutionTrace

__all__ = [
    "CandidateLookup",
    "DisambiguationGuards",
    "DivisionVerifier",
    "IdentityResolver",
    "MemberHistoryVerifier",
    "MissingContextError",
    "OutcomeCode",
    "ResolutionError",
    "ResolutionOutcome",
    "ResolutionTrace",
    "ResultContext",
    "Tier",
    "VerificationOutcome",
    "VerificationRequest",
    "VerificationStatus",
    "Verifier",
    "merge_missing",
]
