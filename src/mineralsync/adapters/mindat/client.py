"""Mindat API client."""

from __future__ import annotations

from dataclasses import replace
from http import HTTPStatus
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from mineralsync.adapters.http_resilience import ResilientClient
from mineralsync.domain.errors import (
    ReferenceNotFound,
    SourceUnavailableError,
    TransientFetchError,
)

from .schema import MindatMineral, MindatMineralPage

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from mineralsync.config.http_resilience import ResilienceConfig
    from mineralsync.config.mindat import MindatConfig

log = getLogger(__name__)

MINERALS_PATH = "/minerals/"

_AUTH_FAILURES = frozenset({HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN})


class MindatAPIError(TransientFetchError):
    """Raised when the Mindat API returns an unexpected response."""


class MindatClient:
    """Async client for the Mindat minerals endpoints.

    Used as an async context manager; the underlying HTTP client lives for the
    duration of the ``async with`` block.
    """

    def __init__(
        self,
        *,
        config: MindatConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        headers = {
            **(config.resilience.default_headers or {}),
            "Authorization": config.authorization_header(),
        }
        self._resilience = replace(config.resilience, default_headers=headers)
        self._client_factory = client_factory or ResilientClient
        self._http: ResilientClient | None = None

    async def __aenter__(self) -> MindatClient:
        if self._resilience.base_url is None:
            raise SourceUnavailableError("Missing Mindat base_url in resilience configuration")
        self._http = self._client_factory(self._resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def fetch_mineral(self, mineral_id: int) -> MindatMineral:
        response = await self._get(f"{MINERALS_PATH}{mineral_id}/", reference_id=mineral_id)
        if response.status_code == HTTPStatus.NOT_FOUND:
            raise ReferenceNotFound(mineral_id)
        self._raise_for_status(response, reference_id=mineral_id)
        try:
            return MindatMineral.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise MindatAPIError(
                f"Unexpected Mindat payload for mineral {mineral_id}: {exc}",
                reference_id=mineral_id,
            ) from exc

    async def search_minerals(
        self,
        *,
        name: str | None = None,
        page: int = 1,
        page_size: int = 20,
        ordering: str | None = None,
    ) -> MindatMineralPage:
        params: dict[str, str] = {"page": str(page), "page_size": str(page_size)}
        if name:
            params["name"] = name
        if ordering:
            params["ordering"] = ordering
        response = await self._get(MINERALS_PATH, params=params)
        self._raise_for_status(response)
        try:
            return MindatMineralPage.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise MindatAPIError(f"Unexpected Mindat search payload: {exc}") from exc

    async def verify_credentials(self) -> None:
        """Issue a one-row search; any failure means the source is unusable."""

        try:
            await self.search_minerals(page_size=1)
        except TransientFetchError as exc:
            raise SourceUnavailableError(f"Cannot reach the Mindat API: {exc}") from exc

    async def _get(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        reference_id: int | None = None,
    ) -> httpx.Response:
        if self._http is None:
            raise SourceUnavailableError("Mindat client used outside of its context")
        try:
            return await self._http.get(path, params=params)
        except httpx.HTTPError as exc:
            log.debug("Mindat request %s failed: %s", path, exc)
            raise TransientFetchError(
                f"Mindat request failed: {exc.__class__.__name__}: {exc}",
                reference_id=reference_id,
            ) from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response, *, reference_id: int | None = None) -> None:
        if response.status_code in _AUTH_FAILURES:
            raise SourceUnavailableError(
                f"Mindat rejected our credentials: {response.status_code} {response.reason_phrase}"
            )
        if response.is_error:
            raise TransientFetchError(
                f"Mindat API error: {response.status_code} {response.reason_phrase}",
                reference_id=reference_id,
            )
