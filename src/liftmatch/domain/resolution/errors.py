"""Errors raised inside the resolution pipeline."""

from __future__ import annotations


class ResolutionError(RuntimeError):
    """Base class for resolution failures."""


class MissingContextError(ResolutionError):
    """Raised by a verifier when the row lacks the fields that tier needs."""

    def __init__(self, tier: str, missing: tuple[str, ...]) -> None:
        super().__init__(f"{tier} needs {', '.join(missing)}")
        self.tier = tier
        self.missing = missing
