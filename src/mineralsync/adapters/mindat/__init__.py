"""Mindat reference source adapter."""

from __future__ import annotations

from .client import MindatAPIError, MindatClient
from .fetcher import MindatReferenceSource, mindat_source_factory, open_mindat_source
from .translator import translate_mineral

__all__ = [
    "MindatAPIError",
    "MindatClient",
    "MindatReferenceSource",
    "mindat_source_factory",
    "open_mindat_source",
    "translate_mineral",
]
