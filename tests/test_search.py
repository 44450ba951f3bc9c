import pytest

from misminer.errors import MiningCancelled
from misminer.rules import BasicCachedRule
from misminer.scoring import LaplaceAccuracy
from misminer.search import RuleEval, beam_search
from misminer.view import BitInstancesView

N = 10
TARGETS = 0b0000011111  # rows 0-4


def _search(rules, beams=1, k=2.0, penalty=0.0, **kwargs):
    view = BitInstancesView.from_range(TARGETS, 0, N)
    scorer = LaplaceAccuracy(k, penalty)
    return beam_search(view, rules, scorer.baseline(view), scorer, N, beams=beams, **kwargs)


def test_no_candidates_returns_empty_conjunction():
    assert len(_search([])) == 0


def test_single_useless_candidate_returns_empty():
    # same target rate as the whole view
    useless = BasicCachedRule(0b0001100011, "useless")
    assert len(_search([useless])) == 0


def test_single_useful_candidate_is_returned():
    good = BasicCachedRule(0b0000001111, "good")
    conj = _search([good])
    assert list(conj) == [good]
    assert conj.covered == good.covered


def test_finds_two_clause_conjunction():
    a = BasicCachedRule(0b0011111111, "a")  # rows 0-7
    b = BasicCachedRule(0b1100011111, "b")  # rows 0-4, 8, 9
    for beams in (1, 3):
        conj = _search([a, b], beams=beams, penalty=0.001)
        assert sorted(str(r) for r in conj) == ["a", "b"]
        assert conj.covered == TARGETS


def test_penalty_stops_growth():
    a = BasicCachedRule(0b0011111111, "a")
    b = BasicCachedRule(0b1100011111, "b")
    conj = _search([a, b], penalty=0.5)
    assert len(conj) == 0


def test_converging_beams_do_not_duplicate():
    # a AND b and b AND a are the same conjunction: only one may occupy the beam
    a = BasicCachedRule(0b0011111111, "a")
    b = BasicCachedRule(0b1100011111, "b")
    c = BasicCachedRule(0b0000000001, "c")
    conj = _search([a, b, c], beams=4, penalty=0.001)
    assert conj.covered == TARGETS
    assert len(conj) == 2


def test_reconstruct_conjunction_keeps_order():
    a = BasicCachedRule(0b0011111111, "a")
    b = BasicCachedRule(0b1100011111, "b")
    root = RuleEval(BasicCachedRule.empty_rule(N), -1, None, 0.0)
    first = RuleEval(a, 0, root, 0.1)
    second = RuleEval(b, 1, first, 0.2)
    assert second.size == 2
    assert second.key == frozenset({0, 1})
    assert [str(r) for r in second.reconstruct_conjunction(N)] == ["a", "b"]


def test_stop_check_cancels():
    good = BasicCachedRule(0b0000001111, "good")
    with pytest.raises(MiningCancelled):
        _search([good], should_stop=lambda: True)
