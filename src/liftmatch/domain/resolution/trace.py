"""Structured per-resolution audit trail."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TraceStep:
    step: str
    message: str
    elapsed_ms: float
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ResolutionTrace:
    """Ordered record of every decision taken while resolving one row.

    Steps are mirrored to the module logger at DEBUG, prefixed with the session id so
    that interleaved rows can be told apart in a batch log.
    """

    name: str
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    steps: list[TraceStep] = field(default_factory=list)
    strategy: str | None = None
    _started: float = field(default_factory=time.perf_counter, repr=False)

    def step(self, step: str, message: str, **data: Any) -> None:
        elapsed = (time.perf_counter() - self._started) * 1000
        self.steps.append(TraceStep(step=step, message=message, elapsed_ms=elapsed, data=data))
        log.debug("[%s] %s %s: %s %s", self.session_id, self.name, step, message, data or "")

    def finish(self, strategy: str) -> None:
        self.strategy = strategy
        self.step("finish", strategy)

    def step_names(self) -> list[str]:
        return [entry.step for entry in self.steps]
