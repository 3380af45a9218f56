"""Errors raised while reading settings from the environment."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A setting is present but cannot be used."""


class MissingConfigurationError(ConfigurationError):
    """One or more required settings are unset or blank."""

    def __init__(self, *names: str, hint: str | None = None) -> None:
        self.names = tuple(sorted(names))
        message = f"Missing configuration for: {', '.join(self.names)}"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)
