"""Sport80 ranking-site API client."""

from __future__ import annotations

import asyncio
import base64
import json
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from liftmatch.adapters.http_resilience import ResilientClient
from liftmatch.domain.ports.sources import (
    ResultSetTooLargeError,
    SourceError,
    SourceUnavailableError,
)

from .schema import HistoryPage, HistoryRow, MemberSearchPage, MemberSearchRow, RankingPage, RankingRow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import date

    from liftmatch.config.http_resilience import ResilienceConfig
    from liftmatch.config.sport80 import Sport80Config

log = getLogger(__name__)

# Guards against a server that keeps reporting another page forever.
_MAX_PAGES = 200


class Sport80APIError(SourceError):
    """Raised when Sport80 answers with an unexpected status or payload."""


def encode_filters(filters: dict[str, object]) -> str:
    """Encode a filter object the way the site's ``filters`` query parameter expects."""

    raw = json.dumps(filters, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


class Sport80Client:
    """Low-level HTTP client for the Sport80 public ranking endpoints."""

    def __init__(
        self,
        *,
        config: Sport80Config,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def fetch_rankings(self, division_code: int, date_from: date, date_to: date) -> list[RankingRow]:
        return asyncio.run(self._fetch_rankings_async(division_code, date_from, date_to))

    def fetch_member_history(self, member_id: str) -> list[HistoryRow]:
        return asyncio.run(self._fetch_member_history_async(member_id))

    def search_members(self, name: str) -> list[MemberSearchRow]:
        return asyncio.run(self._search_members_async(name))

    async def _fetch_rankings_async(
        self,
        division_code: int,
        date_from: date,
        date_to: date,
    ) -> list[RankingRow]:
        filters = encode_filters(
            {
                "date_range_start": date_from.isoformat(),
                "date_range_end": date_to.isoformat(),
                "weight_class": division_code,
            }
        )
        label = f"division {division_code} {date_from}..{date_to}"
        rows: list[RankingRow] = []
        async with self._client_factory(self._resilience) as client:
            for page_number in range(_MAX_PAGES):
                params = {"filters": filters, "p": str(page_number), "l": str(self._config.page_size)}
                try:
                    payload = await self._get_json(client, self._config.rankings_path, params)
                except (httpx.TimeoutException, httpx.HTTPStatusError) as exc:
                    if isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code < 500:
                        raise Sport80APIError(f"Rankings request for {label} failed: {exc}") from exc
                    # The site times out or errors instead of paging very large listings.
                    raise ResultSetTooLargeError(f"Rankings for {label} degraded: {exc}") from exc
                page = self._validate(RankingPage, payload, label)
                if page.total is not None and page.total > self._config.max_ranking_rows:
                    raise ResultSetTooLargeError(f"Rankings for {label} report {page.total} rows")
                rows.extend(page.data)
                if not page.has_more or not page.data:
                    break
        log.debug("Fetched %d ranking rows for %s", len(rows), label)
        return rows

    async def _fetch_member_history_async(self, member_id: str) -> list[HistoryRow]:
        path = self._config.member_history_path.format(member_id=member_id)
        label = f"member {member_id}"
        rows: list[HistoryRow] = []
        async with self._client_factory(self._resilience) as client:
            for page_number in range(_MAX_PAGES):
                params = {"p": str(page_number), "l": str(self._config.page_size)}
                try:
                    payload = await self._get_json(client, path, params)
                except httpx.HTTPStatusError as exc:
                    if exc.response.status_code == httpx.codes.NOT_FOUND:
                        log.info("No history published for %s", label)
                        return []
                    raise self._translate_status(exc, label) from exc
                except httpx.TimeoutException as exc:
                    raise SourceUnavailableError(f"History for {label} timed out") from exc
                page = self._validate(HistoryPage, payload, label)
                rows.extend(page.data)
                if not page.has_more or not page.data:
                    break
        return rows

    async def _search_members_async(self, name: str) -> list[MemberSearchRow]:
        label = f"member search {name!r}"
        async with self._client_factory(self._resilience) as client:
            try:
                payload = await self._get_json(client, self._config.member_search_path, {"q": name})
            except httpx.HTTPStatusError as exc:
                raise self._translate_status(exc, label) from exc
            except httpx.TimeoutException as exc:
                raise SourceUnavailableError(f"{label} timed out") from exc
        return self._validate(MemberSearchPage, payload, label).data

    async def _get_json(
        self,
        client: ResilientClient,
        path: str,
        params: dict[str, str],
    ) -> dict[str, object]:
        if self._resilience.base_url is None:
            raise Sport80APIError("Missing Sport80 base_url in resilience configuration")
        try:
            response = await client.get(path, params=params)
        except httpx.TimeoutException:
            raise
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(f"Sport80 unreachable: {exc}") from exc
        response.raise_for_status()

        try:
            payload = response.json()
        except ValueError as exc:
            # Maintenance and error pages come back as HTML with status 200.
            content_type = response.headers.get("content-type", "unknown")
            raise Sport80APIError(f"Sport80 answered {path} with non-JSON {content_type}") from exc
        if not isinstance(payload, dict):
            raise Sport80APIError(f"Unexpected Sport80 payload for {path}")
        return payload

    @staticmethod
    def _translate_status(exc: httpx.HTTPStatusError, label: str) -> SourceError:
        if exc.response.status_code >= httpx.codes.INTERNAL_SERVER_ERROR:
            return SourceUnavailableError(f"{label} failed with {exc.response.status_code}")
        return Sport80APIError(f"{label} failed with {exc.response.status_code}")

    @staticmethod
    def _validate[TPage: (RankingPage, HistoryPage, MemberSearchPage)](
        model: type[TPage],
        payload: dict[str, object],
        label: str,
    ) -> TPage:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise Sport80APIError(f"Malformed Sport80 payload for {label}: {exc}") from exc
