"""Transaction boundary a single result row is processed inside."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from liftmatch.domain.ports.persistence import LifterRepository, MeetResultRepository


@dataclass(slots=True)
class ResolutionRepositories:
    """Repositories a single result row is resolved and stored against."""

    lifters: LifterRepository
    results: MeetResultRepository


@runtime_checkable
class ResolutionUnitOfWork(Protocol):
    """One row's resolution and result write, committed or discarded together.

    Leaving the ``with`` block on an exception rolls back; a clean exit without
    :meth:`commit` discards the work as well.
    """

    @property
    def repositories(self) -> ResolutionRepositories: ...

    def __enter__(self) -> ResolutionUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
