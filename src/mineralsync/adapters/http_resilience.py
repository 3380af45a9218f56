"""httpx client with tenacity retries and an aiolimiter token-bucket rate limit."""

from __future__ import annotations

import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import httpx
from aiolimiter import AsyncLimiter
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from mineralsync.config.http_resilience import ResilienceConfig, RetryPolicy


def backoff_wait(policy: RetryPolicy) -> Callable[[RetryCallState], float]:
    """Exponential backoff with jitter, honouring ``Retry-After`` when allowed."""

    def wait(state: RetryCallState) -> float:
        outcome = state.outcome
        if (
            policy.respect_retry_after_header
            and outcome is not None
            and not outcome.failed
            and isinstance(outcome.result(), httpx.Response)
        ):
            retry_after = _retry_after_seconds(outcome.result())
            if retry_after is not None:
                return min(retry_after, policy.max_backoff_wait)
        delay = policy.backoff_factor * (2 ** max(state.attempt_number - 1, 0))
        if policy.backoff_jitter:
            delay += random.uniform(0, policy.backoff_jitter)  # noqa: S311
        return min(delay, policy.max_backoff_wait)

    return wait


def build_retrying(policy: RetryPolicy, method: str) -> AsyncRetrying:
    """Retry loop for one request; methods outside ``allowed_methods`` get one attempt."""

    return AsyncRetrying(
        stop=stop_after_attempt(policy.attempts_for(method)),
        wait=backoff_wait(policy),
        retry=(
            retry_if_exception_type(policy.retry_on_exceptions)
            | retry_if_result(
                lambda response: response.status_code in policy.status_forcelist
            )
        ),
        # Out of attempts: hand back the last response, or re-raise the last error.
        retry_error_callback=_last_outcome,
    )


def _last_outcome(state: RetryCallState) -> httpx.Response:
    if state.outcome is None:
        raise RuntimeError("Retry loop stopped before any attempt completed")
    return state.outcome.result()


def _retry_after_seconds(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


class ResilientClient:
    """Async HTTP client configured from a ``ResilienceConfig``.

    ``transport`` replaces the network transport, which is how tests plug in
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.config = config
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.requests, config.ratelimit.period_seconds)
            if config.ratelimit
            else None
        )

        merged_headers = {**(config.default_headers or {}), **(headers or {})}

        self._client = httpx.AsyncClient(
            base_url=config.base_url or "",
            timeout=config.timeout_seconds,
            headers=merged_headers,
            transport=transport,
        )

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

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        async def do_request() -> httpx.Response:
            return await self._send(
                lambda: self._client.request(method, url, params=params, json=json)
            )

        retrying = build_retrying(self.config.retry, method)
        return await retrying(do_request)

    async def get(self, url: str, *, params: Mapping[str, Any] | None = None) -> httpx.Response:
        return await self.request("GET", url, params=params)

    async def _send(self, func: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        if self._limiter is None:
            return await func()
        async with self._limiter:
            return await func()
