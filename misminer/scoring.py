# misminer/scoring.py
# Regularized Laplace accuracy used to rank rules and conjunctions.

from typing import Optional

from .rules import CachedRule, CachedRuleSet
from .view import BitInstancesView


class LaplaceAccuracy:
    """
    score = (targets_covered + k * baseline) / (covered + k) - size * rule_penalty

    Rules covering few rows are pulled toward the view's baseline target rate,
    and every predicate in a conjunction costs `rule_penalty`.
    """

    def __init__(self, k: float = 20.0, rule_penalty: float = 0.01):
        self.k = k
        self.rule_penalty = rule_penalty

    @staticmethod
    def baseline(view: BitInstancesView) -> float:
        size = view.size()
        if size == 0:
            return 0.0
        return view.num_targets() / size

    def score(self, rule: CachedRule, size: int, view: BitInstancesView,
              baseline: Optional[float] = None) -> float:
        if baseline is None:
            baseline = self.baseline(view)
        ev = view.evaluate_rule(rule)
        denom = ev.covered + self.k
        if denom == 0:
            smoothed = baseline
        else:
            smoothed = (ev.targets_covered + self.k * baseline) / denom
        return smoothed - size * self.rule_penalty

    def score_set(self, rule_set: CachedRuleSet, view: BitInstancesView,
                  baseline: Optional[float] = None) -> float:
        return self.score(rule_set, len(rule_set), view, baseline)
