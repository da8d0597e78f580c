# tests/test_fuzzy_matcher.py

import time

import pytest

from src.domain.models import MatchCandidate, fold_case
from src.infrastructure.fuzzy_matcher import DEFAULT_MAX_CANDIDATES, SequenceMatcherStrategy


def test_exact_match_scores_zero():
    candidates = SequenceMatcherStrategy().find("Hello World", "world", 0.0)
    assert candidates == [MatchCandidate(6, 10, 0.0)]


def test_typo_found_within_threshold():
    candidates = SequenceMatcherStrategy().find("The quick brown fox", "quikc", 0.4)

    assert candidates
    best = min(candidates, key=lambda c: c.score)
    assert 0.0 < best.score <= 0.4
    assert best.char_start <= 8 and best.char_end >= 4


def test_typo_rejected_at_zero_fuzziness():
    assert SequenceMatcherStrategy().find("The quick brown fox", "quikc", 0.0) == []


def test_unrelated_text_returns_nothing():
    assert SequenceMatcherStrategy().find("abcdef", "xyz", 0.2) == []


def test_empty_inputs():
    matcher = SequenceMatcherStrategy()
    assert matcher.find("", "query", 0.5) == []
    assert matcher.find("text", "", 0.5) == []


def test_non_overlapping_candidates_in_text_order_up_to_cap():
    candidates = SequenceMatcherStrategy(max_candidates=3).find("cat cat cat cat", "cat", 0.0)
    assert [(c.char_start, c.char_end) for c in candidates] == [(0, 2), (4, 6), (8, 10)]


def test_threshold_scale_maps_fuzziness():
    matcher = SequenceMatcherStrategy(threshold_scale=0.5)
    assert matcher.threshold_for(0.6) == pytest.approx(0.3)
    assert SequenceMatcherStrategy(threshold_scale=4).threshold_for(0.5) == 1.0


def test_fold_case_keeps_length():
    assert fold_case("İstanbul HELLO") == "İstanbul hello"
    assert len(fold_case("ßİẞ")) == 3


def test_candidates_after_expanding_character_line_up_with_original():
    text = "İstanbul Hello"
    candidates = SequenceMatcherStrategy().find(text, "HELLO", 0.0)

    assert [text[c.char_start:c.char_end + 1] for c in candidates] == ["Hello"]


def test_page_sized_text_at_loosest_fuzziness_stays_fast():
    page = ("Enzymes improve dough strength and volume in industrial baking. " * 50)[:3120]

    started = time.perf_counter()
    candidates = SequenceMatcherStrategy().find(page, "a fairly long query phrase", 1.0)
    elapsed = time.perf_counter() - started

    assert 0 < len(candidates) <= DEFAULT_MAX_CANDIDATES
    assert elapsed < 5.0
