"""Shared fixtures for Sport80 adapter tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from liftmatch.adapters.http_resilience import ResilientClient
from liftmatch.adapters.sport80 import Sport80Client
from liftmatch.config import ResilienceConfig, Sport80Config

if TYPE_CHECKING:
    from collections.abc import Callable

type Handler = Callable[[httpx.Request], httpx.Response]

BASE_URL = "https://sport80.test"


@pytest.fixture
def sport80_config() -> Sport80Config:
    return Sport80Config(
        resilience=ResilienceConfig(name="sport80-test", base_url=BASE_URL, cache=None),
        page_size=2,
        max_ranking_rows=10,
    )


@pytest.fixture
def make_client(sport80_config: Sport80Config) -> Callable[[Handler], Sport80Client]:
    def build(handler: Handler) -> Sport80Client:
        async def async_handler(request: httpx.Request) -> httpx.Response:
            return handler(request)

        def factory(resilience: ResilienceConfig) -> ResilientClient:
            client = ResilientClient(resilience)
            client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
                base_url=BASE_URL,
                transport=httpx.MockTransport(async_handler),
            )
            return client

        return Sport80Client(config=sport80_config, client_factory=factory)

    return build
