import pytest

from misminer.rules import BasicCachedRule
from misminer.scoring import LaplaceAccuracy
from misminer.view import BitInstancesView

TARGETS = 0b0000011111


def test_baseline():
    view = BitInstancesView.from_range(TARGETS, 0, 10)
    assert LaplaceAccuracy.baseline(view) == pytest.approx(0.5)
    assert LaplaceAccuracy.baseline(BitInstancesView(TARGETS, 0)) == 0.0


def test_score_formula():
    view = BitInstancesView.from_range(TARGETS, 0, 10)
    scorer = LaplaceAccuracy(k=4, rule_penalty=0.1)
    rule = BasicCachedRule(0b0000001111, "r")  # 4 rows, all targets
    expected = (4 + 4 * 0.5) / (4 + 4) - 2 * 0.1
    assert scorer.score(rule, 2, view) == pytest.approx(expected)


def test_empty_rule_scores_baseline():
    view = BitInstancesView.from_range(TARGETS, 0, 10)
    scorer = LaplaceAccuracy(k=20, rule_penalty=0.5)
    empty = BasicCachedRule.empty_rule(10)
    assert scorer.score(empty, 0, view) == pytest.approx(0.5)
    # no rows covered: only the smoothing term is left
    nothing = BasicCachedRule(0, "none")
    assert scorer.score(nothing, 0, view) == pytest.approx(0.5)


def test_score_non_increasing_in_length():
    view = BitInstancesView.from_range(TARGETS, 0, 10)
    scorer = LaplaceAccuracy(k=3, rule_penalty=0.05)
    rule = BasicCachedRule(0b0000100111, "r")
    scores = [scorer.score(rule, size, view) for size in range(6)]
    assert all(a >= b for a, b in zip(scores, scores[1:]))


def test_zero_k_with_empty_cover_falls_back_to_baseline():
    view = BitInstancesView.from_range(TARGETS, 0, 10)
    scorer = LaplaceAccuracy(k=0, rule_penalty=0.0)
    assert scorer.score(BasicCachedRule(0, "none"), 1, view) == pytest.approx(0.5)
    assert scorer.score(BasicCachedRule(0b11, "r"), 1, view) == pytest.approx(1.0)
