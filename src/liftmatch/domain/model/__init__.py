"""Domain model for the lifter roster."""

from __future__ import annotations

from .entity import LIFTER_ENRICHABLE_FIELDS, RESULT_ENRICHABLE_FIELDS, Lifter, MeetResult
from .enums import AgeClass, age_class_of

__all__ = [
    "LIFTER_ENRICHABLE_FIELDS",
    "RESULT_ENRICHABLE_FIELDS",
    "AgeClass",
    "Lifter",
    "MeetResult",
    "age_class_of",
]
