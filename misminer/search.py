# misminer/search.py
# Beam search for the best-scoring conjunction of candidate rules.

import heapq
from itertools import count
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from .errors import MiningCancelled
from .rules import BasicCachedRule, CachedRule, CachedRuleConjunction
from .scoring import LaplaceAccuracy
from .view import BitInstancesView


class RuleEval:
    """
    Node of a conjunction grown one rule at a time; links point back toward
    the empty root. `view` is the parent's view filtered by `rule`, filled
    in once the node survives a round.
    """

    __slots__ = ("rule", "index", "prev", "score", "size", "key", "view")

    def __init__(self, rule: CachedRule, index: int, prev: Optional["RuleEval"],
                 score: float, view: Optional[BitInstancesView] = None):
        self.rule = rule
        self.index = index  # position in the candidate list, -1 for the root
        self.prev = prev
        self.score = score
        self.view = view
        if prev is None:
            self.size = 0
            self.key: FrozenSet[int] = frozenset()
        else:
            self.size = prev.size + 1
            self.key = prev.key | {index}

    def reconstruct_conjunction(self, n: int) -> CachedRuleConjunction:
        conj = CachedRuleConjunction(n)
        node = self
        while node.prev is not None:
            conj.add(node.rule)
            node = node.prev
        conj.reverse()
        return conj


HeapEntry = Tuple[float, int, RuleEval]


def beam_search(
    view: BitInstancesView,
    rules: Sequence[CachedRule],
    baseline: float,
    scorer: LaplaceAccuracy,
    n: int,
    beams: int = 4,
    should_stop: Optional[Callable[[], bool]] = None,
    verbose: bool = False,
) -> CachedRuleConjunction:
    """
    Grow `beams` conjunctions in parallel from the empty rule. Each round
    every active beam is extended by every candidate it does not already
    contain; the best `beams` extensions seen (old or new) become the next
    beams. A beam whose node survived from an earlier round has already been
    expanded and is marked done. Stops when every beam is done and returns the
    best conjunction found (empty if no extension beats the empty rule).

    Ties keep the earlier entry: heap entries carry an insertion counter.
    """
    empty_rule = BasicCachedRule.empty_rule(n)
    root = RuleEval(empty_rule, -1, None, scorer.score(empty_rule, 0, view, baseline), view.copy())

    seq = count()
    heap: List[HeapEntry] = [(root.score, next(seq), root) for _ in range(beams)]
    in_beam: Dict[FrozenSet[int], int] = {root.key: beams}

    # only one copy of the root needs expanding
    current: List[RuleEval] = [root] * beams
    done = [True] * beams
    done[0] = False

    rounds = 0
    all_done = False
    while not all_done:
        if should_stop is not None and should_stop():
            raise MiningCancelled("beam search cancelled")
        rounds += 1
        for b in range(beams):
            if done[b]:
                continue
            node = current[b]
            for idx, rule in enumerate(rules):
                if idx in node.key:
                    continue
                new_score = scorer.score(rule, node.size + 1, node.view, baseline)
                if new_score <= heap[0][0]:
                    continue
                key = node.key | {idx}
                if in_beam.get(key):
                    continue
                evicted = heapq.heapreplace(heap, (new_score, next(seq), RuleEval(rule, idx, node, new_score)))
                in_beam[evicted[2].key] -= 1
                in_beam[key] = in_beam.get(key, 0) + 1

        current = [entry[2] for entry in heap]
        all_done = True
        for b, node in enumerate(current):
            if node.view is None:
                node.view = node.prev.view.copy()
                node.view.filter_by_rule(node.rule)
                done[b] = False
                all_done = False
            else:
                done[b] = True

    best = max(heap, key=lambda e: (e[0], -e[1]))[2]
    if verbose:
        print(f"[beam] rounds={rounds} best size={best.size} score={best.score:.4f}")
    return best.reconstruct_conjunction(n)
