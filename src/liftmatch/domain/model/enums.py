"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class AgeClass(StrEnum):
    """Coarse age grouping derived from a division's age-category label."""

    YOUTH = "youth"
    JUNIOR = "junior"
    SENIOR = "senior"
    MASTERS = "masters"
    UNKNOWN = "unknown"


def age_class_of(age_category: str | None) -> AgeClass:
    """Classify labels such as ``"Open Women's"`` or ``"Men's 13 Under Age Group"``."""

    if not age_category:
        return AgeClass.UNKNOWN
    label = age_category.casefold()
    if "youth" in label or "age group" in label or "under" in label:
        return AgeClass.YOUTH
    if "junior" in label:
        return AgeClass.JUNIOR
    if "master" in label:
        return AgeClass.MASTERS
    if "senior" in label or "open" in label:
        return AgeClass.SENIOR
    return AgeClass.UNKNOWN
