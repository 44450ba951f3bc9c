# misminer/rules.py
# Predicates over dataset rows with their coverage cached as big-int bitsets.
# Leaf rules test one attribute; rule sets combine other rules with AND / OR.

import operator
from typing import Callable, Generic, Iterator, List, Protocol, TypeVar

import numpy as np

from .data import Dataset, all_bits, bits_from_mask


class CachedRule(Protocol):
    """Anything exposing `covered`: bit i set iff the rule holds for row i."""

    @property
    def covered(self) -> int:
        ...


# -----------------------
# Leaf rules
# -----------------------
class BasicCachedRule:
    """Rule on a single column; coverage is computed once, on construction."""

    def __init__(self, covered: int, description: str):
        self._covered = covered
        self.description = description

    @property
    def covered(self) -> int:
        return self._covered

    def __str__(self) -> str:
        return self.description

    def __repr__(self) -> str:
        return f"BasicCachedRule({self.description!r})"

    @classmethod
    def empty_rule(cls, n: int) -> "BasicCachedRule":
        """Rule that is true for every row."""
        return cls(all_bits(n), "true")

    @classmethod
    def compare(cls, ds: Dataset, att_index: int, op: str, val: float) -> "BasicCachedRule":
        """Scan column att_index once, setting bit i iff `row[att] op val`."""
        test = _OPERATORS[op]
        col = ds.column(att_index)
        with np.errstate(invalid="ignore"):
            mask = test(col, val)
        att = ds.attributes[att_index]
        return cls(bits_from_mask(mask), f"({att.name} {op} {att.format_value(val)})")


_OPERATORS: dict = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def equals_rule(ds: Dataset, att_index: int, val: float) -> BasicCachedRule:
    return BasicCachedRule.compare(ds, att_index, "==", val)


def not_equals_rule(ds: Dataset, att_index: int, val: float) -> BasicCachedRule:
    return BasicCachedRule.compare(ds, att_index, "!=", val)


def greater_than_rule(ds: Dataset, att_index: int, val: float) -> BasicCachedRule:
    return BasicCachedRule.compare(ds, att_index, ">", val)


def smaller_than_rule(ds: Dataset, att_index: int, val: float) -> BasicCachedRule:
    return BasicCachedRule.compare(ds, att_index, "<", val)


def smaller_or_equal_rule(ds: Dataset, att_index: int, val: float) -> BasicCachedRule:
    return BasicCachedRule.compare(ds, att_index, "<=", val)


def greater_or_equal_rule(ds: Dataset, att_index: int, val: float) -> BasicCachedRule:
    return BasicCachedRule.compare(ds, att_index, ">=", val)


# -----------------------
# Rule sets
# -----------------------
T = TypeVar("T", bound=CachedRule)


class CachedRuleSet(Generic[T]):
    """
    Ordered rules combined by `modifier`. `covered` always equals the
    combination of the current children: appending folds one bitset in,
    removing recomputes from scratch, reordering changes nothing.
    """

    modifier = ""
    combine: Callable[[int, int], int]

    def __init__(self, n: int):
        self.n = n
        self.rules: List[T] = []
        self._covered = self._identity()

    def _identity(self) -> int:
        raise NotImplementedError

    @property
    def covered(self) -> int:
        return self._covered

    def add(self, rule: T) -> None:
        self._covered = self.combine(self._covered, rule.covered)
        self.rules.append(rule)

    def insert(self, index: int, rule: T) -> None:
        # Exact for both combinators when the existing cover is exact.
        self._covered = self.combine(self._covered, rule.covered)
        self.rules.insert(index, rule)

    def remove(self, index: int) -> T:
        r = self.rules.pop(index)
        self._recalculate_covered()
        return r

    def swap(self, i: int, j: int) -> None:
        self.rules[i], self.rules[j] = self.rules[j], self.rules[i]

    def reverse(self) -> None:
        self.rules.reverse()

    def copy(self) -> "CachedRuleSet[T]":
        other = type(self)(self.n)
        other.rules = list(self.rules)
        other._covered = self._covered
        return other

    def _recalculate_covered(self) -> None:
        cov = self._identity()
        for r in self.rules:
            cov = self.combine(cov, r.covered)
        self._covered = cov

    def __len__(self) -> int:
        return len(self.rules)

    def __getitem__(self, index: int) -> T:
        return self.rules[index]

    def __iter__(self) -> Iterator[T]:
        return iter(self.rules)

    def __str__(self) -> str:
        if not self.rules:
            return "(empty)"
        body = f"\n\t{self.modifier} ".join(str(r) for r in self.rules)
        if len(self.rules) > 1:
            return f"({body})"
        return body


class CachedRuleConjunction(CachedRuleSet[T]):
    modifier = "AND"
    combine = staticmethod(operator.and_)

    def _identity(self) -> int:
        return all_bits(self.n)


class CachedRuleDisjunction(CachedRuleSet[T]):
    modifier = "OR"
    combine = staticmethod(operator.or_)

    def _identity(self) -> int:
        return 0
