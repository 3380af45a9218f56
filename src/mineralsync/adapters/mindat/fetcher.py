"""Mindat-backed implementation of the reference source port."""

from __future__ import annotations

from contextlib import asynccontextmanager
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from .client import MindatClient
from .translator import translate_mineral

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from mineralsync.adapters.http_resilience import ResilientClient
    from mineralsync.config.http_resilience import ResilienceConfig
    from mineralsync.config.mindat import MindatConfig
    from mineralsync.domain.model import ReferenceRecord
    from mineralsync.domain.ports import ReferenceSourceFactory

log = getLogger(__name__)


class MindatReferenceSource:
    """Read mirror records from the Mindat API."""

    def __init__(self, client: MindatClient) -> None:
        self._client = client

    async def fetch_by_id(self, reference_id: int) -> ReferenceRecord:
        payload = await self._client.fetch_mineral(reference_id)
        return translate_mineral(payload)

    async def search_by_name(
        self,
        query: str,
        *,
        page: int = 1,
        page_size: int = 20,
    ) -> list[ReferenceRecord]:
        result = await self._client.search_minerals(name=query, page=page, page_size=page_size)
        return [translate_mineral(payload) for payload in result.results]


@asynccontextmanager
async def open_mindat_source(
    config: MindatConfig,
    *,
    client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    verify: bool = True,
) -> AsyncIterator[MindatReferenceSource]:
    """Open a Mindat session, checking credentials first unless ``verify`` is false."""

    async with MindatClient(config=config, client_factory=client_factory) as client:
        if verify:
            await client.verify_credentials()
            log.debug("Mindat credentials verified")
        yield MindatReferenceSource(client)


def mindat_source_factory(
    config: MindatConfig,
    *,
    client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    verify: bool = True,
) -> ReferenceSourceFactory:
    return partial(open_mindat_source, config, client_factory=client_factory, verify=verify)
