"""Tests for the regex fallback detectors."""

import re

from novelmate.names.heuristics import (
    HeuristicDetector,
    JapaneseDetector,
    KoreanDetector,
    detect_with_heuristics,
    get_detector,
    register_detector,
)


def test_korean_name_with_title():
    originals = [c.original_text for c in detect_with_heuristics("박민수씨가 왔다.", "ko")]
    assert "박민수씨" in originals


def test_korean_spaced_pair():
    originals = [c.original_text for c in KoreanDetector().detect("김 철수")]
    assert "김 철수" in originals


def test_japanese_name_with_honorific():
    originals = [c.original_text for c in detect_with_heuristics("田中さんは来た。", "ja")]
    assert "田中さん" in originals


def test_candidates_are_untyped():
    candidates = detect_with_heuristics("박민수씨", "ko")
    assert candidates
    assert all(c.type == "unknown" for c in candidates)
    assert all(c.suggested_translation == "" for c in candidates)


def test_no_matches_in_latin_text():
    assert detect_with_heuristics("Nothing to see here.", "ko") == []


def test_unknown_language_returns_empty():
    assert detect_with_heuristics("박민수씨", "zh") == []


def test_empty_text():
    assert detect_with_heuristics("", "ja") == []


def test_default_detectors_registered():
    assert isinstance(get_detector("ko"), KoreanDetector)
    assert isinstance(get_detector("ja"), JapaneseDetector)


def test_register_custom_detector():
    class LatinCapsDetector(HeuristicDetector):
        language = "xx"
        patterns = [re.compile(r"[A-Z][a-z]+")]

    register_detector(LatinCapsDetector())
    originals = [c.original_text for c in detect_with_heuristics("hello Bob and Ann", "xx")]
    assert originals == ["Bob", "Ann"]
