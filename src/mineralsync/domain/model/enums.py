"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ChangeKind(StrEnum):
    """Kind of change detected for a mirrored reference record."""

    NEW = "new"
    UPDATED = "updated"
    DELETED = "deleted"


class RecordClass(StrEnum):
    """Values of the external dataset's class column that take part in reconciliation."""

    MINERAL = "mineral"
    MINERAL_GROUP = "mineral group"
    MINERAL_SUPERGROUP = "mineral supergroup"
