"""Domain model for the mineral reference mirror and the external dataset."""

from __future__ import annotations

from .enums import ChangeKind, RecordClass
from .primitives import CLASSIFICATION_DEPTH, ClassificationParts
from .records import ChangeRecord, ExternalRecord, ReferenceRecord

__all__ = [
    "CLASSIFICATION_DEPTH",
    "ChangeKind",
    "ChangeRecord",
    "ClassificationParts",
    "ExternalRecord",
    "RecordClass",
    "ReferenceRecord",
]
