from __future__ import annotations

from mineralsync.domain.model import ExternalRecord


def test_parent_name_prefers_variety_over_synonym() -> None:
    record = ExternalRecord(title="Amethyst", variety_of_name=" Quartz ", synonym_of_name="Silica")

    assert record.parent_name == "Quartz"
    assert record.search_name == "Quartz"


def test_blank_variety_falls_back_to_synonym_then_title() -> None:
    synonym = ExternalRecord(title="Rock crystal", variety_of_name="  ", synonym_of_name="Quartz")
    plain = ExternalRecord(title=" Grossular ")

    assert synonym.parent_name == "Quartz"
    assert plain.parent_name is None
    assert plain.search_name == "Grossular"
