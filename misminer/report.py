# misminer/report.py
# Plain-text reports for mined rules.

from typing import List, Optional, Sequence

import numpy as np

from .data import Dataset, all_bits, bits_from_mask, mask_from_bits, popcount
from .predictions import vote_confusion_matrix
from .rules import BasicCachedRule, CachedRule, CachedRuleConjunction, CachedRuleDisjunction
from .scoring import LaplaceAccuracy
from .view import BitInstancesView

ID_LINE_LENGTH = 110
MAX_EXAMPLES_TO_PRINT = 10
MAX_ATTRIBUTES_TO_PRINT = 40
MAX_IDS_TO_PRINT = 200


def _fmt_cell(v) -> str:
    if isinstance(v, str):
        return v
    v = float(v)
    return f"{int(v)}" if v == int(v) else f"{v:.3f}"


def format_matrix(labels: Sequence[str], matrix, min_width: int = 1,
                  max_width: int = 12, pad: int = 2) -> str:
    """Square matrix with labelled rows and columns, columns aligned and cells truncated to max_width."""
    cells: List[List[str]] = [[""] + [str(lab) for lab in labels]]
    for lab, row in zip(labels, np.asarray(matrix)):
        cells.append([str(lab)] + [_fmt_cell(v) for v in row])
    widths = []
    for c in range(len(cells[0])):
        w = max(len(r[c]) for r in cells)
        widths.append(min(max(w, min_width), max_width))
    sep = " " * pad
    lines = []
    for r in cells:
        lines.append(sep.join(cell[:w].ljust(w) for cell, w in zip(r, widths)).rstrip())
    return "\n".join(lines) + "\n"


def rule_report(rule: CachedRule, size: int, view: BitInstancesView, scorer: LaplaceAccuracy) -> str:
    ev = view.evaluate_rule(rule)
    acc = ev.targets_covered / ev.covered if ev.covered else 0.0
    return (
        f"Covered: {ev.covered}\tTargets: {ev.targets_covered}\t"
        f"Accuracy: {acc:.3f}\tScored: {scorer.score(rule, size, view):.3f}"
    )


def rule_breakdown(rule: CachedRuleConjunction, view: BitInstancesView, scorer: LaplaceAccuracy) -> str:
    """Stats of the empty rule, then after adding each clause in turn."""
    n = rule.n
    parts = [f"Baseline (empty rule):\nStats: {rule_report(BasicCachedRule.empty_rule(n), 0, view, scorer)}\n"]
    partial = CachedRuleConjunction(n)
    for clause in rule:
        partial.add(clause)
        parts.append(f"Added: {clause}\nNew stats: {rule_report(partial, len(partial), view, scorer)}\n")
    return "\n".join(parts)


def format_ids(ds: Dataset, id_index: int, covered: int) -> str:
    """Comma-separated ids of the covered rows, wrapped at ID_LINE_LENGTH."""
    if popcount(covered) > MAX_IDS_TO_PRINT:
        return "Too many IDs to print\n"
    att = ds.attributes[id_index]
    lines: List[str] = []
    line = ""
    for i in np.flatnonzero(mask_from_bits(covered, ds.n)):
        s = att.value_str(ds.values[i, id_index])
        if not line:
            line = s
        elif len(line) + 2 + len(s) > ID_LINE_LENGTH:
            lines.append(line)
            line = s
        else:
            line += ", " + s
    if line:
        lines.append(line)
    return "\n".join(lines) + "\n"


def format_examples(ds: Dataset, covered: int) -> Optional[str]:
    """Up to MAX_EXAMPLES_TO_PRINT covered rows as an aligned table; None if the data is too wide."""
    if ds.num_attributes > MAX_ATTRIBUTES_TO_PRINT:
        return None
    widths = []
    for att in ds.attributes:
        w = len(att.name)
        if att.is_nominal:
            w = max([w] + [len(v) for v in att.values])
        else:
            w = max(w, 6)
        widths.append(w)
    header = "  ".join(att.name.ljust(w) for att, w in zip(ds.attributes, widths))
    rows = [header.rstrip()]
    for i in np.flatnonzero(mask_from_bits(covered, ds.n))[:MAX_EXAMPLES_TO_PRINT]:
        vals = [att.value_str(ds.values[i, j]) for j, att in enumerate(ds.attributes)]
        rows.append("  ".join(v.ljust(w) for v, w in zip(vals, widths)).rstrip())
    return "\n".join(rows) + "\n"


def rule_confusion_matrix(ds: Dataset, votes: np.ndarray, rule: CachedRule) -> str:
    """Confusion matrix restricted to the rows the rule covers."""
    idx = np.flatnonzero(mask_from_bits(rule.covered, ds.n))
    att = ds.class_attribute
    cm = vote_confusion_matrix(ds.class_values()[idx], votes[idx], att.num_values)
    return format_matrix(att.values, cm)


def analysis_summary(ds: Dataset, votes: np.ndarray, targets: np.ndarray, num_candidates: int,
                     rules: CachedRuleDisjunction, scorer: LaplaceAccuracy) -> str:
    everything = BitInstancesView(bits_from_mask(targets), all_bits(ds.n))
    errors = int(np.count_nonzero(targets))
    accuracy = 1.0 - errors / len(targets) if len(targets) else 0.0
    att = ds.class_attribute
    parts = [
        f"Classifier made: {errors} mistakes\naccuracy: {accuracy:.3f}\n",
        "=== Confusion Matrix ===\n",
        format_matrix(att.values, vote_confusion_matrix(ds.class_values(), votes, att.num_values)),
        f"\nGenerated: {num_candidates} potential rules.\n",
        "Final Rules:\n\n",
    ]
    for i, r in enumerate(rules):
        parts.append(f"Rule: {i}\n{r}\n{rule_report(r, len(r), everything, scorer)}\n\n")
    return "".join(parts)


def rule_details(ds: Dataset, votes: np.ndarray, targets: np.ndarray, rule: CachedRuleConjunction,
                 number: int, scorer: LaplaceAccuracy, id_index: Optional[int] = None) -> str:
    """Stats, confusion matrix, clause break-down, ids and example rows for one mined rule."""
    everything = BitInstancesView(bits_from_mask(targets), all_bits(ds.n))
    parts = [
        f"Rule {number}:\n{rule}\n\n",
        f"Stats:\n{rule_report(rule, len(rule), everything, scorer)}\n\n",
        "Confusion Matrix:\n",
        rule_confusion_matrix(ds, votes, rule),
        "\nBreak down:\n\n",
        rule_breakdown(rule, everything, scorer),
        "\n",
    ]
    if id_index is not None:
        parts.append("Instances ids:\n" + format_ids(ds, id_index, rule.covered) + "\n")
    examples = format_examples(ds, rule.covered)
    if examples is not None:
        parts.append("Examples:\n" + examples)
    return "".join(parts)
