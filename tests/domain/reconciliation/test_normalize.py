from __future__ import annotations

import pytest

from mineralsync.domain.reconciliation.normalize import (
    name_key,
    name_variants,
    normalize_formula,
    normalize_name,
)


@pytest.mark.parametrize(
    "raw",
    ["Přibramite", "Huanghoite-(Nd)", "  Quartz Group ", "Ca₃Al₂(SiO₄)₃", "", "ÆØÅ 123"],
)
def test_normalize_name_is_idempotent(raw: str) -> None:
    once = normalize_name(raw)

    assert normalize_name(once) == once


def test_normalize_name_drops_diacritics_case_and_punctuation() -> None:
    assert normalize_name("Přibramite") == normalize_name("Pribramite") == "pribramite"
    assert normalize_name("Huanghoite-(Nd)") == "huanghoitend"


def test_normalize_name_handles_missing_input() -> None:
    assert normalize_name(None) == ""
    assert normalize_name("   ") == ""


def test_name_variants_are_ordered_primary_first() -> None:
    assert name_variants("Huanghoite-(Nd)") == ("huanghoitend", "huanghoite")
    assert name_variants("Amphibole Supergroup") == ("amphibolesupergroup", "amphibole")
    assert name_variants("Garnet Group") == ("garnetgroup", "garnet")


def test_name_variants_keep_distinct_stems_as_separate_candidates() -> None:
    variants = name_variants("Bastnäsite-(La)")

    assert variants[0] == "bastnasitela"
    assert "bastnasite" in variants
    assert len(set(variants)) == len(variants)


def test_name_variants_of_blank_name_are_empty() -> None:
    assert name_variants("") == ()
    assert name_variants(None) == ()


def test_name_key_collapses_whitespace_and_case() -> None:
    assert name_key("  Quartz   Group ") == "quartz group"
    assert name_key(None) == ""


def test_normalize_formula_maps_presentational_glyphs() -> None:
    assert normalize_formula("Ca₃Al₂(SiO₄)₃") == normalize_formula("Ca3Al2(SiO4)3")
    assert normalize_formula("CuSO₄·5H₂O") == "CuSO4.5H2O"
    assert normalize_formula("CuSO4•5H2O") == "CuSO4.5H2O"


def test_normalize_formula_strips_markup_and_entities() -> None:
    html_formula = "Ca<sub>3</sub>Al<sub>2</sub>(SiO<sub>4</sub>)<sub>3</sub>"

    assert normalize_formula(html_formula) == "Ca3Al2(SiO4)3"
    assert normalize_formula("Fe&lt;sup&gt;3+&lt;/sup&gt;") == "Fe3+"
    assert normalize_formula("Fe³⁺ O") == "Fe3+O"


def test_normalize_formula_preserves_element_case() -> None:
    assert normalize_formula("Co") != normalize_formula("CO")
    assert normalize_formula(None) == ""
