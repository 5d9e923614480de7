"""SQLAlchemy mapping metadata for the lifter roster."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    UniqueConstraint,
    orm,
)
from sqlalchemy.orm import configure_mappers

from liftmatch.domain.model import Lifter, MeetResult

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

lifter_table = Table(
    "lifter",
    mapper_registry.metadata,
    Column("lifter_id", Integer, primary_key=True, autoincrement=True),
    Column("normalized_name", String(255), nullable=False),
    Column("name_key", String(255), nullable=False, index=True),
    Column("stable_id", String(32), nullable=True, unique=True),
    Column("membership_number", String(32), nullable=True),
    Column("country_code", String(3), nullable=True),
    Column("country_name", String(128), nullable=True),
    Column("birth_year", Integer, nullable=True),
    Column("gender", String(16), nullable=True),
)

meet_result_table = Table(
    "meet_result",
    mapper_registry.metadata,
    Column("result_id", Integer, primary_key=True, autoincrement=True),
    Column("lifter_id", Integer, ForeignKey("lifter.lifter_id"), nullable=False, index=True),
    Column("lifter_name", String(255), nullable=False),
    Column("meet_id", String(64), nullable=False),
    Column("meet_name", String(255), nullable=True),
    Column("meet_date", Date, nullable=False),
    Column("age_category", String(64), nullable=False),
    Column("weight_class", String(32), nullable=False),
    Column("bodyweight_kg", Float, nullable=True),
    Column("snatch_lift_1", Float, nullable=True),
    Column("snatch_lift_2", Float, nullable=True),
    Column("snatch_lift_3", Float, nullable=True),
    Column("clean_jerk_lift_1", Float, nullable=True),
    Column("clean_jerk_lift_2", Float, nullable=True),
    Column("clean_jerk_lift_3", Float, nullable=True),
    Column("best_snatch", Float, nullable=True),
    Column("best_clean_jerk", Float, nullable=True),
    Column("total", Float, nullable=True),
    Column("club_name", String(255), nullable=True),
    Column("national_rank", Integer, nullable=True),
    Column("competition_age", Integer, nullable=True),
    Column("gender", String(16), nullable=True),
    Column("region", String(128), nullable=True),
    UniqueConstraint(
        "meet_id",
        "lifter_id",
        "age_category",
        "weight_class",
        name="uq_meet_result_division_entry",
    ),
    Index("ix_meet_result_division_window", "age_category", "weight_class", "meet_date"),
)


def start_mappers() -> orm.registry:
    """Map the domain dataclasses onto their tables (idempotent)."""

    if mapper_registry.mappers:
        return mapper_registry

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(Lifter, lifter_table)
    mapper_registry.map_imperatively(MeetResult, meet_result_table)
    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
