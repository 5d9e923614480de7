"""Sport80 ranking-site configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import env_float, env_int
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_SPORT80_BASE_URL = "https://usaweightlifting.sport80.com"
DEFAULT_RANKINGS_PATH = "/api/public/rankings/table/data"
DEFAULT_MEMBER_HISTORY_PATH = "/api/public/rankings/member/{member_id}/data"
DEFAULT_MEMBER_SEARCH_PATH = "/api/public/rankings/members/search"
# Rankings change as meets are uploaded; a cached page older than this is refetched.
DEFAULT_CACHE_TTL_SECONDS = 6 * 60 * 60.0


@dataclass(frozen=True, slots=True)
class Sport80Config:
    resilience: ResilienceConfig
    rankings_path: str = DEFAULT_RANKINGS_PATH
    member_history_path: str = DEFAULT_MEMBER_HISTORY_PATH
    member_search_path: str = DEFAULT_MEMBER_SEARCH_PATH
    page_size: int = 100
    # Windows reporting more rows than this are treated as degraded and bisected.
    max_ranking_rows: int = 1000


def is_listing_payload(payload: object) -> bool:
    """True for bodies shaped like a listing; the site also answers 200 with error objects."""

    return isinstance(payload, dict) and isinstance(payload.get("data"), list)


def _cache_config() -> CacheConfig | None:
    mode = (os.getenv("SPORT80_HTTP_CACHE") or "memory").strip().lower()
    ttl = env_float("SPORT80_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS)
    match mode:
        case "off":
            return None
        case "memory" | "sqlite":
            return CacheConfig(backend=mode, ttl_seconds=ttl, should_cache=is_listing_payload)
        case _:
            raise ConfigurationError(
                f"SPORT80_HTTP_CACHE must be one of off, memory, sqlite; got {mode!r}"
            )


def get_sport80_config() -> Sport80Config:
    base_url = os.getenv("SPORT80_BASE_URL") or DEFAULT_SPORT80_BASE_URL
    resilience = ResilienceConfig(
        name="sport80",
        base_url=base_url,
        timeout_seconds=env_float("SPORT80_TIMEOUT_SECONDS", 30.0),
        # The site keeps server-side pagination state; stay well below its throttle.
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        retry=RetryPolicy(total=env_int("SPORT80_RETRIES", 3)),
        cache=_cache_config(),
        default_headers={"Accept": "application/json", "User-Agent": "liftmatch"},
    )
    return Sport80Config(
        resilience=resilience,
        page_size=env_int("SPORT80_PAGE_SIZE", 100),
        max_ranking_rows=env_int("SPORT80_MAX_RANKING_ROWS", 1000),
    )
