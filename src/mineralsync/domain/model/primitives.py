"""Small value objects shared by the domain records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

CLASSIFICATION_DEPTH = 4


def _clean_part(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True)
class ClassificationParts:
    """The four ordered Strunz classification levels; any of them may be absent."""

    first: str | None = None
    second: str | None = None
    third: str | None = None
    fourth: str | None = None

    @classmethod
    def from_sequence(cls, parts: Sequence[str | None]) -> ClassificationParts:
        """Build from up to four parts, padding missing trailing levels with ``None``."""

        values = [_clean_part(part) for part in parts[:CLASSIFICATION_DEPTH]]
        values.extend([None] * (CLASSIFICATION_DEPTH - len(values)))
        return cls(*values)

    def as_tuple(self) -> tuple[str | None, str | None, str | None, str | None]:
        return (self.first, self.second, self.third, self.fourth)

    def __composite_values__(self) -> tuple[str | None, str | None, str | None, str | None]:
        """For SQLAlchemy composite columns (adapter-side convenience)."""
        return self.as_tuple()
