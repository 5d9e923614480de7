from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import inspect

from liftmatch.adapters.sqlalchemy import start_mappers
from liftmatch.adapters.sqlalchemy.mappings import mapper_registry

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def test_start_mappers_is_idempotent(sqlite_engine: Engine) -> None:
    del sqlite_engine
    mapped = len(mapper_registry.mappers)

    start_mappers()
    start_mappers()

    assert len(mapper_registry.mappers) == mapped == 2


def test_schema_enforces_identity_constraints(sqlite_engine: Engine) -> None:
    inspector = inspect(sqlite_engine)

    lifter_uniques = {tuple(item["column_names"]) for item in inspector.get_unique_constraints("lifter")}
    result_uniques = {
        item["name"]: tuple(item["column_names"])
        for item in inspector.get_unique_constraints("meet_result")
    }
    result_indexes = {item["name"] for item in inspector.get_indexes("meet_result")}

    assert ("stable_id",) in lifter_uniques
    assert result_uniques["uq_meet_result_division_entry"] == (
        "meet_id",
        "lifter_id",
        "age_category",
        "weight_class",
    )
    assert "ix_meet_result_division_window" in result_indexes
