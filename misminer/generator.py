# misminer/generator.py
# Candidate predicates: equality tests for categorical-like attributes and
# threshold tests for numeric ones, similar to the splits a decision tree considers.

from typing import List, Optional, Sequence, Set

import numpy as np

from .config import USE_QUANTILES
from .data import Dataset
from .rules import (
    BasicCachedRule,
    equals_rule,
    greater_or_equal_rule,
    not_equals_rule,
    smaller_than_rule,
)


def unique_values(col: np.ndarray, max_count: int) -> Set[float]:
    """Distinct non-missing values of col, stopping once max_count are seen."""
    seen: Set[float] = set()
    for v in col:
        if np.isnan(v):
            continue
        seen.add(float(v))
        if len(seen) == max_count:
            break
    return seen


def categorical_rules(ds: Dataset, j: int, values: Sequence[float]) -> List[BasicCachedRule]:
    """== per value, plus != per value when there are more than two values."""
    out: List[BasicCachedRule] = []
    if len(values) < 2:
        return out
    for v in values:
        out.append(equals_rule(ds, j, v))
        # with exactly two values != v is just == on the other value
        if len(values) > 2:
            out.append(not_equals_rule(ds, j, v))
    return out


def quantile_rules(ds: Dataset, j: int, quantiles: int) -> List[BasicCachedRule]:
    """>= / < pairs at quantiles+2 evenly spaced positions of the sorted column."""
    col = ds.column(j)
    ordered = np.sort(col[~np.isnan(col)])
    n = len(ordered)
    out: List[BasicCachedRule] = []
    prev = ordered[0]
    for q in range(1, quantiles + 2):
        quantile = ordered[(n * q) // (quantiles + 2)]
        if quantile != prev:
            out.append(greater_or_equal_rule(ds, j, quantile))
            out.append(smaller_than_rule(ds, j, quantile))
        prev = quantile
    return out


def boundary_values(values: np.ndarray, targets: np.ndarray) -> List[float]:
    """
    Values v where a split `< v` / `>= v` separates two runs of equal values
    that are not both pure with the same label. A run is pure when all of its
    rows are targets or all are non-targets. The minimum is never returned.
    """
    order = np.argsort(values, kind="stable")
    vals = values[order]
    flags = targets[order]

    out: List[float] = []
    prev_status: Optional[bool] = None
    prev_val = None
    i = 0
    n = len(vals)
    while i < n:
        v = vals[i]
        stop = i
        while stop < n and vals[stop] == v:
            stop += 1
        run = flags[i:stop]
        status: Optional[bool] = bool(run[0]) if bool(run.all()) or not bool(run.any()) else None
        if prev_val is not None and (status is None or prev_status is None or status != prev_status):
            out.append(float(v))
        prev_status = status
        prev_val = v
        i = stop
    return out


def boundary_rules(ds: Dataset, j: int, targets: np.ndarray) -> List[BasicCachedRule]:
    col = ds.column(j)
    present = ~np.isnan(col)
    out: List[BasicCachedRule] = []
    for v in boundary_values(col[present], targets[present]):
        out.append(smaller_than_rule(ds, j, v))
        out.append(greater_or_equal_rule(ds, j, v))
    return out


def generate_rules(
    ds: Dataset,
    targets,
    id_index: Optional[int] = None,
    use_class: bool = True,
    quantiles: int = 20,
    verbose: bool = False,
) -> List[BasicCachedRule]:
    """
    Build the candidate rules for every attribute except the id attribute
    (and the class attribute unless use_class).
    """
    targets = np.asarray(targets, dtype=bool)
    rules: List[BasicCachedRule] = []
    for j, att in enumerate(ds.attributes):
        if j == id_index or (not use_class and j == ds.class_index):
            continue
        before = len(rules)
        if att.is_nominal:
            rules.extend(categorical_rules(ds, j, sorted(unique_values(ds.column(j), att.num_values))))
        else:
            seen = unique_values(ds.column(j), USE_QUANTILES)
            if len(seen) <= 3:
                rules.extend(categorical_rules(ds, j, sorted(seen)))
            elif quantiles > 0 and len(seen) >= USE_QUANTILES:
                rules.extend(quantile_rules(ds, j, quantiles))
            else:
                rules.extend(boundary_rules(ds, j, targets))
        if verbose:
            print(f"[rules] {att.name}: {len(rules) - before} candidates")
    if verbose:
        print(f"[rules] generated {len(rules)} candidate rules")
    return rules
