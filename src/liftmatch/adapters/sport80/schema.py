"""Sport80 JSON payload schemas."""

from __future__ import annotations

import logging
from typing import Annotated, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

log = logging.getLogger(__name__)


def _blank_to_none(value: object) -> object:
    # Table cells arrive as strings; "", "-" and "N/A" mean "not recorded".
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or stripped in {"-", "N/A"}:
            return None
        return stripped
    return value


def _text(value: object) -> object:
    value = _blank_to_none(value)
    if isinstance(value, int):
        return str(value)
    return value


OptionalText = Annotated[str | None, BeforeValidator(_text)]
OptionalInt = Annotated[int | None, BeforeValidator(_blank_to_none)]
OptionalFloat = Annotated[float | None, BeforeValidator(_blank_to_none)]


class Sport80BaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "Sport80 %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class RankingRow(Sport80BaseModel):
    lifter_name: str
    member_id: OptionalText = None
    membership_number: OptionalText = None
    rank: OptionalInt = None
    club: OptionalText = None
    lifter_age: OptionalInt = None
    gender: OptionalText = None
    wso: OptionalText = None
    total: OptionalFloat = None


class HistoryRow(Sport80BaseModel):
    meet_name: str
    date: str
    body_weight_kg: OptionalFloat = None
    total: OptionalFloat = None
    age_category: OptionalText = None
    weight_class: OptionalText = None


class MemberSearchRow(Sport80BaseModel):
    member_id: OptionalText = None
    name: str


class PageMeta(Sport80BaseModel):
    page: int = 0
    last_page: int = 0
    total: int | None = None

    @property
    def has_more(self) -> bool:
        return self.page < self.last_page


class RankingPage(PageMeta):
    data: list[RankingRow] = Field(default_factory=list)


class HistoryPage(PageMeta):
    data: list[HistoryRow] = Field(default_factory=list)


class MemberSearchPage(PageMeta):
    data: list[MemberSearchRow] = Field(default_factory=list)
