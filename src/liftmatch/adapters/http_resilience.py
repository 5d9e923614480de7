"""Rate-limited, retrying and caching async HTTP client.

Retries happen in the transport (``httpx-retries``), throttling around each request
(``aiolimiter``) and response caching in a ``hishel`` client wrapped around both.
"""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from liftmatch.config.storage import get_storage_config

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._client import UseClientDefault
    from httpx._types import HeaderTypes, QueryParamTypes, TimeoutTypes, URLTypes

    from liftmatch.config.http_resilience import (
        CacheConfig,
        ResilienceConfig,
        RetryPolicy,
        ShouldCacheHook,
    )

log = getLogger(__name__)


class RequestOptions(TypedDict, total=False):
    params: QueryParamTypes | None
    headers: HeaderTypes | None
    timeout: TimeoutTypes | UseClientDefault


class AsyncClientOptions(TypedDict, total=False):
    base_url: str
    timeout: TimeoutTypes
    headers: HeaderTypes
    transport: httpx.AsyncBaseTransport


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        backoff_jitter=policy.backoff_jitter,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


def _client_options(config: ResilienceConfig) -> AsyncClientOptions:
    options: AsyncClientOptions = {
        "timeout": config.timeout_seconds,
        "transport": RetryTransport(retry=build_retry(config.retry)),
    }
    if config.base_url is not None:
        options["base_url"] = config.base_url
    if config.default_headers:
        options["headers"] = dict(config.default_headers)
    return options


class ResilientClient:
    """Read-only client for one upstream site, used as an async context manager."""

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )
        options = _client_options(config)
        storage, policy = _build_cache_components(config.cache)
        if storage is None:
            self._client = httpx.AsyncClient(**options)
        else:
            self._client = AsyncCacheClient(**options, storage=storage, policy=policy)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: URLTypes, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        if self._limiter is None:
            response = await self._client.get(url, **kwargs)
        else:
            async with self._limiter:
                response = await self._client.get(url, **kwargs)
        log.debug("%s GET %s -> %s", self.config.name, response.request.url, response.status_code)
        return response


class _PayloadCacheFilter(BaseFilter[HishelCacheResponse]):
    """Lets a JSON predicate veto caching of a response body."""

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if body is None:
            return True
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return False
        return bool(self._predicate(payload))


def _build_cache_components(
    config: CacheConfig | None,
) -> tuple[AsyncSqliteStorage | None, FilterPolicy | None]:
    if config is None or not config.enabled:
        return None, None

    match config.backend:
        case "sqlite":
            database_path = config.sqlite_path or str(get_storage_config().http_cache_path())
        case "memory":
            database_path = ":memory:"
        case _:
            raise ValueError(f"Unsupported cache backend: {config.backend}")

    storage = AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=config.ttl_seconds,
        refresh_ttl_on_access=config.refresh_ttl_on_access,
    )
    policy = (
        FilterPolicy(response_filters=[_PayloadCacheFilter(config.should_cache)])
        if config.should_cache is not None
        else None
    )
    return storage, policy
