# misminer/view.py
# Working subset of rows paired with a fixed target bitset.

from typing import NamedTuple

from .data import popcount, range_bits
from .rules import CachedRule


class RuleEvaluation(NamedTuple):
    covered: int
    targets_covered: int


class BitInstancesView:
    """
    Rows currently in play (`covered`) plus the rows of interest (`targets`).
    Views never modify `targets`, so copies share it.
    """

    def __init__(self, targets: int, covered: int):
        self.targets = targets
        self.covered = covered

    @classmethod
    def from_range(cls, targets: int, start: int, stop: int) -> "BitInstancesView":
        """View over rows start..stop-1."""
        return cls(targets, range_bits(start, stop))

    def filter_by_rule(self, rule: CachedRule) -> None:
        """Drop every row the rule does not cover."""
        self.covered &= rule.covered

    def remove_covered_targets(self, rule: CachedRule) -> None:
        """Drop the targets the rule covers; non-targets stay."""
        self.covered &= ~(self.targets & rule.covered)

    def evaluate_rule(self, rule: CachedRule) -> RuleEvaluation:
        both = self.covered & rule.covered
        return RuleEvaluation(popcount(both), popcount(both & self.targets))

    def num_targets(self) -> int:
        return popcount(self.covered & self.targets)

    def size(self) -> int:
        return popcount(self.covered)

    def copy(self) -> "BitInstancesView":
        return BitInstancesView(self.targets, self.covered)
