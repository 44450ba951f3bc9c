# misminer/miner.py
# Mine a disjunction of rule conjunctions describing where a classifier struggles.
# Sequential covering: find the best conjunction, optionally prune it on held-out
# rows, explain away the targets it covers and repeat.

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import VALIDATION_SIZE, MinerConfig
from .data import Dataset, bits_from_mask, mask_from_bits, remove_column
from .errors import ConfigError, MiningCancelled
from .generator import generate_rules
from .predictions import cross_val_votes, find_targets
from .report import analysis_summary, rule_details
from .rules import BasicCachedRule, CachedRule, CachedRuleConjunction, CachedRuleDisjunction
from .scoring import LaplaceAccuracy
from .search import beam_search
from .view import BitInstancesView


# -----------------------
# Pruning / ordering
# -----------------------
def prune_rule(
    view: BitInstancesView,
    rule: CachedRuleConjunction,
    baseline: float,
    scorer: LaplaceAccuracy,
    verbose: bool = False,
) -> CachedRuleConjunction:
    """
    Backward elimination in place: each pass tries dropping every clause and
    commits the drop with the best score, as long as that score is not below
    the best seen so far. Stops when nothing helps or the rule is empty.
    """
    best_score = scorer.score_set(rule, view, baseline)
    while len(rule) > 0:
        best_remove = None
        for i in range(len(rule)):
            removed = rule.remove(i)
            new_score = scorer.score_set(rule, view, baseline)
            if best_score <= new_score:
                best_score = new_score
                best_remove = i
            rule.insert(i, removed)
        if best_remove is None:
            break
        dropped = rule.remove(best_remove)
        if verbose:
            print(f"[prune] dropped {dropped} -> score={best_score:.4f} size={len(rule)}")
    return rule


def sort_rules(rules: CachedRuleDisjunction, view: BitInstancesView,
               scorer: LaplaceAccuracy) -> CachedRuleDisjunction:
    """New disjunction with the same conjunctions, best score on view first (stable)."""
    baseline = scorer.baseline(view)
    scores = [scorer.score_set(r, view, baseline) for r in rules]
    order = sorted(range(len(scores)), key=lambda i: -scores[i])
    out = CachedRuleDisjunction(rules.n)
    for i in order:
        out.add(rules[i])
    return out


# -----------------------
# Rule-set miner
# -----------------------
def mine_data(
    n: int,
    targets: int,
    rules: Sequence[CachedRule],
    config: MinerConfig,
    verbose: bool = False,
    should_stop: Optional[Callable[[], bool]] = None,
) -> CachedRuleDisjunction:
    """
    Find conjunctions of `rules` covering rows dense in `targets` (a bitset
    over n rows). With config.prune the first 30% of rows are held out to
    prune each conjunction and the search runs on the rest. The result is
    ordered by score over all n rows.
    """
    scorer = LaplaceAccuracy(config.k, config.rule_penalty)
    validation_view: Optional[BitInstancesView] = None
    validation_baseline = 0.0
    if config.prune:
        validation_size = int(n * VALIDATION_SIZE)
        validation_view = BitInstancesView.from_range(targets, 0, validation_size)
        train_view = BitInstancesView.from_range(targets, validation_size, n)
        validation_baseline = scorer.baseline(validation_view)
    else:
        train_view = BitInstancesView.from_range(targets, 0, n)

    rule_set: CachedRuleDisjunction = CachedRuleDisjunction(n)
    while True:
        if should_stop is not None and should_stop():
            raise MiningCancelled(f"mining cancelled after {len(rule_set)} rules")
        train_baseline = scorer.baseline(train_view)
        new_rule = beam_search(
            train_view, rules, train_baseline, scorer, n,
            beams=config.beams, should_stop=should_stop, verbose=verbose,
        )
        if verbose:
            print(f"[mine] learned {new_rule}")
        if validation_view is not None:
            prune_rule(validation_view, new_rule, validation_baseline, scorer, verbose=verbose)
            if verbose:
                print(f"[mine] pruned to {new_rule}")
        if len(new_rule) == 0:
            if verbose:
                print("[mine] stop: no rule beats the empty rule")
            break
        rule_set.add(new_rule)
        train_view.remove_covered_targets(new_rule)
        if verbose:
            print(f"[mine] rule {len(rule_set)} added, {train_view.num_targets()} targets left")
        if train_view.num_targets() == 0:
            break
        if config.max_rules > 0 and len(rule_set) >= config.max_rules:
            break

    return sort_rules(rule_set, BitInstancesView.from_range(targets, 0, n), scorer)


def mark_dataset(ds: Dataset, rules: CachedRuleDisjunction, targets) -> pd.DataFrame:
    """
    Decoded data plus a True/False column per rule and a final 'Was Target'
    column. A rule named like an earlier column gets a ' #2', ' #3', ... suffix.
    """
    df = ds.to_frame()
    values = ["True", "False"]
    taken = set(df.columns) | {"Was Target"}
    for r in rules:
        name = str(r)
        suffix = 2
        while name in taken:
            name = f"{r} #{suffix}"
            suffix += 1
        taken.add(name)
        mask = mask_from_bits(r.covered, ds.n)
        df[name] = pd.Categorical(np.where(mask, "True", "False"), categories=values)
    df["Was Target"] = pd.Categorical(
        np.where(np.asarray(targets, dtype=bool), "True", "False"), categories=values
    )
    return df


# -----------------------
# End to end
# -----------------------
@dataclass
class AnalysisResult:
    dataset: Dataset  # shuffled copy the rules index into
    votes: np.ndarray
    targets: np.ndarray
    candidates: List[BasicCachedRule]
    rules: CachedRuleDisjunction
    summary: str
    details: List[str] = field(default_factory=list)


def analyze(
    ds: Dataset,
    classifier,
    config: MinerConfig,
    id_index: Optional[int] = None,
    verbose: bool = False,
    should_stop: Optional[Callable[[], bool]] = None,
) -> AnalysisResult:
    """
    Cross-validate `classifier` (a scikit-learn estimator), mark rows it gets
    wrong too often as targets and mine rules describing them.
    """
    att = ds.class_attribute
    if att is None:
        raise ConfigError("dataset needs a class attribute")
    if not att.is_nominal:
        raise ConfigError(f"class attribute '{att.name}' must be nominal")
    if id_index is not None and id_index == ds.class_index:
        raise ConfigError("class attribute and id attribute cannot be the same")

    rng = np.random.default_rng(config.seed)
    data = ds.shuffled(rng)

    pred_data = data if id_index is None else remove_column(data, id_index)
    votes = cross_val_votes(
        pred_data, classifier, config.cv_folds, config.classification_iterations,
        seed=config.seed, n_jobs=config.n_jobs, verbose=verbose,
    )
    targets = find_targets(votes, data.class_values(), config.cutoff)
    if verbose:
        print(f"[analyze] {int(targets.sum())} of {data.n} rows are targets")

    candidates = generate_rules(
        data, targets, id_index=id_index, use_class=config.use_class,
        quantiles=config.quantiles, verbose=verbose,
    )
    rules = mine_data(
        data.n, bits_from_mask(targets), candidates, config,
        verbose=verbose, should_stop=should_stop,
    )

    scorer = LaplaceAccuracy(config.k, config.rule_penalty)
    summary = analysis_summary(data, votes, targets, len(candidates), rules, scorer)
    details = [
        rule_details(data, votes, targets, r, i + 1, scorer, id_index=id_index)
        for i, r in enumerate(rules)
    ]
    return AnalysisResult(data, votes, targets, candidates, rules, summary, details)
