"""Mindat API configuration values."""

from __future__ import annotations

import base64
from dataclasses import dataclass

from .env import env_int, optional_env_var
from .errors import MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_MINDAT_BASE_URL = "https://api.mindat.org"
DEFAULT_MINDAT_REQUESTS_PER_MINUTE = 30

_API_KEY = "MINDAT_API_KEY"
_BASIC_HINT = "or MINDAT_USERNAME and MINDAT_PASSWORD"


@dataclass(frozen=True, slots=True)
class MindatConfig:
    resilience: ResilienceConfig
    api_key: str | None = None
    username: str | None = None
    password: str | None = None

    def authorization_header(self) -> str:
        """Token auth when an API key is configured, Basic auth otherwise."""

        if self.api_key:
            return f"Token {self.api_key}"
        if self.username and self.password:
            credentials = f"{self.username}:{self.password}".encode()
            return f"Basic {base64.b64encode(credentials).decode('ascii')}"
        raise MissingConfigurationError(_API_KEY, hint=_BASIC_HINT)


def get_mindat_config() -> MindatConfig:
    api_key = optional_env_var(_API_KEY)
    username = optional_env_var("MINDAT_USERNAME")
    password = optional_env_var("MINDAT_PASSWORD")
    if api_key is None and (username is None or password is None):
        raise MissingConfigurationError(_API_KEY, hint=_BASIC_HINT)

    requests_per_minute = env_int(
        "MINERALSYNC_REQUESTS_PER_MINUTE", DEFAULT_MINDAT_REQUESTS_PER_MINUTE
    )
    resilience = ResilienceConfig(
        name="mindat",
        base_url=optional_env_var("MINDAT_BASE_URL") or DEFAULT_MINDAT_BASE_URL,
        ratelimit=RateLimit.per_minute(requests_per_minute),
        retry=RetryPolicy(total=2),
        default_headers={"Accept": "application/json"},
    )

    return MindatConfig(
        resilience=resilience,
        api_key=api_key,
        username=username,
        password=password,
    )
