"""SQLAlchemy adapter package for liftmatch."""

from __future__ import annotations

from .mappings import create_all_tables, lifter_table, mapper_registry, meet_result_table, start_mappers
from .repositories import SqlAlchemyLifterRepository, SqlAlchemyMeetResultRepository
from .unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyLifterRepository",
    "SqlAlchemyMeetResultRepository",
    "SqlAlchemyUnitOfWork",
    "create_all_tables",
    "lifter_table",
    "mapper_registry",
    "meet_result_table",
    "shutdown",
    "start_mappers",
    "startup",
]
