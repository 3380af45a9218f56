"""Shared fixtures for Mindat adapter tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from mineralsync.adapters.mindat.schema import MindatMineral
from mineralsync.config.http_resilience import ResilienceConfig, RetryPolicy
from mineralsync.config.mindat import MindatConfig

MindatPayload = dict[str, object]
FIXTURES = Path(__file__).resolve().parents[2] / "data" / "mindat"


def _load_mineral_payloads() -> list[MindatPayload]:
    path = FIXTURES / "minerals.jsonl"
    payloads: list[MindatPayload] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        payloads.append(json.loads(line))
    return payloads


@pytest.fixture
def mineral_payloads() -> list[MindatPayload]:
    return _load_mineral_payloads()


@pytest.fixture
def mineral_payloads_by_id(mineral_payloads: list[MindatPayload]) -> dict[int, MindatPayload]:
    return {int(str(payload["id"])): payload for payload in mineral_payloads}


@pytest.fixture
def minerals(mineral_payloads: list[MindatPayload]) -> dict[str, MindatMineral]:
    parsed = [MindatMineral.model_validate(payload) for payload in mineral_payloads]
    return {mineral.name: mineral for mineral in parsed}


@pytest.fixture
def mindat_config() -> MindatConfig:
    return MindatConfig(
        resilience=ResilienceConfig(
            name="mindat",
            base_url="https://api.mindat.test",
            retry=RetryPolicy(total=0),
        ),
        api_key="test-key",
    )
