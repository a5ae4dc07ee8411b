from __future__ import annotations

from quotest.matching import (
    MATCH_EXACT,
    MATCH_SUBSTRING,
    MATCH_TOKENS,
    ExactNameMatcher,
    HeuristicNameMatcher,
    normalize_name,
)


def test_normalize_collapses_whitespace():
    assert normalize_name("  MDF   18mm ") == "mdf 18mm"


def test_spacing_variants_match_without_exact():
    found = HeuristicNameMatcher().match("MDF 18mm", ["Edge tape", "mdf 18 mm"])
    assert found is not None
    assert found.index == 1
    assert found.strategy != MATCH_EXACT
    assert ExactNameMatcher().match("MDF 18mm", ["mdf 18 mm"]) is None


def test_exact_match_preferred():
    found = HeuristicNameMatcher().match("Hinge", ["Hinge soft close", "hinge"])
    assert found.index == 1
    assert found.strategy == MATCH_EXACT


def test_substring_match():
    found = HeuristicNameMatcher().match("Walnut veneer", ["Oak veneer", "walnut veneer sheet 2mm"])
    assert found.strategy == MATCH_SUBSTRING
    assert found.index == 1


def test_token_overlap_match():
    found = HeuristicNameMatcher().match("Oak plywood board", ["board of oak"])
    assert found is not None
    assert found.strategy == MATCH_TOKENS


def test_short_names_do_not_match():
    matcher = HeuristicNameMatcher()
    assert matcher.match("ab", ["abc screws"]) is None
    assert matcher.match("Glue", ["Screws", "Sandpaper"]) is None
