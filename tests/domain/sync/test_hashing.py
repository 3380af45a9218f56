from __future__ import annotations

from mineralsync.domain.sync import changed_fields, content_hash, salient_fields
from tests.support.mirror import make_reference


def test_hash_ignores_bookkeeping_and_surrounding_whitespace() -> None:
    base = make_reference(3337, "Quartz", ima_formula="SiO2", classification=("4", "D", "A", "05"))
    padded = make_reference(
        3337, " Quartz ", ima_formula="SiO2  ", classification=("4", "D", "A", "05")
    )
    padded.content_hash = "stale"

    assert content_hash(base) == content_hash(padded)


def test_hash_is_a_sha256_hex_digest() -> None:
    digest = content_hash(make_reference(1, "Abelsonite"))

    assert len(digest) == 64
    assert int(digest, 16) >= 0


def test_blank_strings_hash_like_missing_values() -> None:
    assert content_hash(make_reference(1, "Abelsonite", colour="  ")) == content_hash(
        make_reference(1, "Abelsonite")
    )


def test_classification_is_flattened_per_level() -> None:
    fields = salient_fields(make_reference(1, "Ankerite", classification=("5", "B", "E", "05")))

    assert fields["classification_1"] == "5"
    assert fields["classification_4"] == "05"
    assert "classification" not in fields


def test_changed_fields_are_sorted_names() -> None:
    before = make_reference(
        1, "Ankerite", colour="White", classification=("5", "B", "E", None), hardness_min=3.5
    )
    after = make_reference(
        1, "Ankerite", colour="Brown", classification=("5", "B", "E", "05"), hardness_min=3.5
    )

    assert changed_fields(before, after) == ("classification_4", "colour")
    assert changed_fields(before, before) == ()
    assert content_hash(before) != content_hash(after)
