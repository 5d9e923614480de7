"""Division code catalog for the ranking site.

The site identifies each age-category/weight-class division by a numeric code. When
the site renamed its divisions, the superseded ones were kept under an
``"(Inactive) "`` prefix, so a name can map to two codes depending on the meet date.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

INACTIVE_PREFIX = "(Inactive) "


def division_name(age_category: str, weight_class: str) -> str:
    return f"{age_category.strip()} {weight_class.strip()}"


@dataclass(frozen=True, slots=True)
class DivisionCatalog:
    """Read-only ``division name -> code`` lookup."""

    codes: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "codes", MappingProxyType(dict(self.codes)))

    def active_code(self, name: str) -> int | None:
        return self.codes.get(name)

    def inactive_code(self, name: str) -> int | None:
        return self.codes.get(INACTIVE_PREFIX + name)

    def __len__(self) -> int:
        return len(self.codes)


def load_division_catalog(path: Path) -> DivisionCatalog:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Cannot read division codes from {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Division codes file {path} is not valid JSON") from exc

    raw_codes = payload.get("division_codes") if isinstance(payload, dict) else None
    if not isinstance(raw_codes, dict):
        raise ConfigurationError(f"{path} has no 'division_codes' object")

    codes: dict[str, int] = {}
    for name, code in raw_codes.items():
        try:
            codes[str(name)] = int(code)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Division {name!r} has non-numeric code {code!r}") from exc
    return DivisionCatalog(codes=codes)


def get_division_catalog() -> DivisionCatalog:
    raw_path = os.getenv("LIFTMATCH_DIVISION_CODES_PATH")
    if not raw_path:
        raise MissingConfigurationError(
            "Missing configuration for: LIFTMATCH_DIVISION_CODES_PATH"
        )
    return load_division_catalog(Path(raw_path).expanduser())
