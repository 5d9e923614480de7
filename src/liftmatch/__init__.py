"""Lifter identity resolution for weightlifting competition results."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("liftmatch")
except PackageNotFoundError:  # pragma: no cover - source checkout without install
    __version__ = "0.0.0"
