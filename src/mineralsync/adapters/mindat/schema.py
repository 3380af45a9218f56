"""Mindat API response schemas for mineral records."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

log = logging.getLogger(__name__)


class MindatBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "Mindat %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class MindatMineral(MindatBaseModel):
    id: int
    name: str
    ima_formula: str | None = None
    mindat_formula: str | None = Field(
        default=None, validation_alias=AliasChoices("mindat_formula", "formula")
    )
    ima_status: list[str] = Field(default_factory=list)
    entrytype_text: str | None = None
    crystal_system: str | None = Field(
        default=None, validation_alias=AliasChoices("csystem", "crystal_system")
    )
    hardness_min: float | None = Field(
        default=None, validation_alias=AliasChoices("hmin", "hardness_min", "mohs_hardness_min")
    )
    hardness_max: float | None = Field(
        default=None, validation_alias=AliasChoices("hmax", "hardness_max", "mohs_hardness_max")
    )
    colour: str | None = None
    streak: str | None = None
    strunz10ed1: str | None = None
    strunz10ed2: str | None = None
    strunz10ed3: str | None = None
    strunz10ed4: str | None = None
    varietyof: int | None = None
    groupid: int | None = None
    synid: int | None = None
    polytypeof: str | None = None

    @field_validator("ima_status", mode="before")
    @classmethod
    def _status_list(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator(
        "strunz10ed1", "strunz10ed2", "strunz10ed3", "strunz10ed4", "polytypeof", mode="before"
    )
    @classmethod
    def _stringify(cls, value: object) -> object:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return _blank_to_none(value)

    @field_validator(
        "ima_formula",
        "mindat_formula",
        "entrytype_text",
        "crystal_system",
        "colour",
        "streak",
        "hardness_min",
        "hardness_max",
        "varietyof",
        "groupid",
        "synid",
        mode="before",
    )
    @classmethod
    def _blank(cls, value: object) -> object:
        return _blank_to_none(value)


class MindatMineralPage(MindatBaseModel):
    count: int | None = None
    next: str | None = None
    previous: str | None = None
    results: list[MindatMineral] = Field(default_factory=list)
