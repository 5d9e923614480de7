"""Sport80 ranking-site adapter."""

from __future__ import annotations

from liftmatch.config.sport80 import Sport80Config, get_sport80_config

from .client import Sport80APIError, Sport80Client, encode_filters
from .sources import Sport80MemberSource, Sport80RankingSource


def build_sport80_sources(
    config: Sport80Config | None = None,
) -> tuple[Sport80RankingSource, Sport80MemberSource]:
    """Ranking and member sources sharing one client configuration."""

    client = Sport80Client(config=config or get_sport80_config())
    return Sport80RankingSource(client), Sport80MemberSource(client)


__all__ = [
    "Sport80APIError",
    "Sport80Client",
    "Sport80MemberSource",
    "Sport80RankingSource",
    "build_sport80_sources",
    "encode_filters",
]
