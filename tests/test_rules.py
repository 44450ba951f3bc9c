import numpy as np
import pytest

from misminer.data import Attribute, Dataset, popcount
from misminer.errors import ConfigError
from misminer.rules import (
    BasicCachedRule,
    CachedRuleConjunction,
    CachedRuleDisjunction,
    equals_rule,
    greater_or_equal_rule,
    greater_than_rule,
    not_equals_rule,
    smaller_or_equal_rule,
    smaller_than_rule,
)

NAN = float("nan")


def _toy() -> Dataset:
    x = [1.0, 2.0, 3.0, 4.0, 5.0, NAN, 2.0, 3.5]
    color = [0, 1, 2, 0, 1, 2, NAN, 0]
    attributes = [Attribute("x"), Attribute("color", ("blue", "green", "red"))]
    return Dataset(np.column_stack([x, color]), attributes)


def _bits(rows):
    out = 0
    for i in rows:
        out |= 1 << i
    return out


def test_leaf_rules_match_linear_scan():
    ds = _toy()
    cases = [
        (equals_rule, lambda a, b: a == b),
        (not_equals_rule, lambda a, b: a != b),
        (smaller_than_rule, lambda a, b: a < b),
        (smaller_or_equal_rule, lambda a, b: a <= b),
        (greater_than_rule, lambda a, b: a > b),
        (greater_or_equal_rule, lambda a, b: a >= b),
    ]
    for factory, test in cases:
        for j in range(ds.num_attributes):
            vals = (0.0, 1.0, 2.0, 3.0) if not ds.attributes[j].is_nominal else (0.0, 1.0, 2.0)
            for val in vals:
                rule = factory(ds, j, val)
                expected = [i for i in range(ds.n) if test(float(ds.values[i, j]), val)]
                assert rule.covered == _bits(expected)
                assert popcount(rule.covered) == len(expected)


def test_nominal_value_outside_labels_is_rejected():
    ds = _toy()
    with pytest.raises(ConfigError, match="color"):
        equals_rule(ds, 1, 3.0)
    with pytest.raises(ConfigError):
        not_equals_rule(ds, 1, 0.5)
    with pytest.raises(ConfigError):
        greater_than_rule(ds, 1, -1.0)


def test_missing_values_only_satisfy_not_equals():
    ds = _toy()
    assert not (equals_rule(ds, 0, NAN).covered >> 5) & 1
    assert (not_equals_rule(ds, 0, 3.0).covered >> 5) & 1
    assert not (smaller_than_rule(ds, 0, 10.0).covered >> 5) & 1
    assert not (greater_or_equal_rule(ds, 0, -10.0).covered >> 5) & 1


def test_descriptions():
    ds = _toy()
    assert str(equals_rule(ds, 1, 2.0)) == "(color == red)"
    assert str(not_equals_rule(ds, 1, 0.0)) == "(color != blue)"
    assert str(smaller_than_rule(ds, 0, 3.0)) == "(x < 3.000)"
    assert str(greater_or_equal_rule(ds, 0, 2.5)) == "(x >= 2.500)"
    assert str(BasicCachedRule.empty_rule(ds.n)) == "true"
    assert BasicCachedRule.empty_rule(ds.n).covered == (1 << ds.n) - 1


def test_conjunction_and_disjunction_in_any_order():
    ds = _toy()
    a = smaller_than_rule(ds, 0, 4.0)
    b = equals_rule(ds, 1, 0.0)
    c = not_equals_rule(ds, 1, 1.0)
    for order in ([a, b, c], [c, a, b], [b, c, a]):
        conj = CachedRuleConjunction(ds.n)
        disj = CachedRuleDisjunction(ds.n)
        for r in order:
            conj.add(r)
            disj.add(r)
        assert conj.covered == a.covered & b.covered & c.covered
        assert disj.covered == a.covered | b.covered | c.covered


def test_empty_sets_cover_identity():
    assert CachedRuleConjunction(5).covered == 0b11111
    assert CachedRuleDisjunction(5).covered == 0


def test_remove_then_insert_restores_cover():
    ds = _toy()
    rules = [smaller_than_rule(ds, 0, 4.0), equals_rule(ds, 1, 0.0), greater_than_rule(ds, 0, 1.0)]
    for cls in (CachedRuleConjunction, CachedRuleDisjunction):
        rs = cls(ds.n)
        for r in rules:
            rs.add(r)
        before = rs.covered
        for i in range(len(rules)):
            removed = rs.remove(i)
            assert removed is rules[i]
            rs.insert(i, removed)
            assert rs.covered == before
            assert list(rs) == rules


def test_remove_recomputes_cover():
    ds = _toy()
    a = smaller_than_rule(ds, 0, 4.0)
    b = equals_rule(ds, 1, 0.0)
    conj = CachedRuleConjunction(ds.n)
    conj.add(a)
    conj.add(b)
    conj.remove(1)
    assert conj.covered == a.covered
    conj.remove(0)
    assert conj.covered == (1 << ds.n) - 1


def test_swap_and_reverse_keep_cover():
    ds = _toy()
    a = smaller_than_rule(ds, 0, 4.0)
    b = equals_rule(ds, 1, 0.0)
    conj = CachedRuleConjunction(ds.n)
    conj.add(a)
    conj.add(b)
    cov = conj.covered
    conj.swap(0, 1)
    assert conj[0] is b and conj[1] is a
    assert conj.covered == cov
    conj.reverse()
    assert list(conj) == [a, b]
    assert conj.covered == cov


def test_rule_set_description():
    ds = _toy()
    a = smaller_than_rule(ds, 0, 4.0)
    b = equals_rule(ds, 1, 0.0)
    conj = CachedRuleConjunction(ds.n)
    assert str(conj) == "(empty)"
    conj.add(a)
    assert str(conj) == "(x < 4.000)"
    conj.add(b)
    assert str(conj) == "((x < 4.000)\n\tAND (color == blue))"
    disj = CachedRuleDisjunction(ds.n)
    disj.add(conj)
    disj.add(b)
    assert str(disj) == "(((x < 4.000)\n\tAND (color == blue))\n\tOR (color == blue))"


def test_copy_is_independent():
    ds = _toy()
    conj = CachedRuleConjunction(ds.n)
    conj.add(smaller_than_rule(ds, 0, 4.0))
    other = conj.copy()
    other.add(equals_rule(ds, 1, 0.0))
    assert len(conj) == 1
    assert len(other) == 2
    assert conj.covered != other.covered
