# misminer/config.py
# Knobs for prediction generation, rule generation and the rule search.

from dataclasses import dataclass, asdict
from typing import Any, Dict

from .errors import ConfigError

# Share of the (shuffled) rows held out to prune rules against.
VALIDATION_SIZE = 0.30

# Distinct values a numeric attribute needs before quantile rules are used.
USE_QUANTILES = 8


@dataclass
class MinerConfig:
    cv_folds: int = 4
    classification_iterations: int = 1
    cutoff: float = 0.80  # a row is a target if votes for its class / all votes < cutoff
    max_rules: int = 10  # <= 0: keep mining until the targets run out
    k: float = 20.0  # Laplace smoothing, higher favours broader rules
    rule_penalty: float = 0.01  # charged per predicate in a conjunction
    beams: int = 4
    quantiles: int = 20  # <= 0: split numeric attributes at every useful point
    use_class: bool = True
    prune: bool = True
    seed: int = 0
    n_jobs: int = 1

    def __post_init__(self):
        if self.cv_folds < 2:
            raise ConfigError(f"cv_folds must be at least 2, got {self.cv_folds}")
        if self.classification_iterations < 1:
            raise ConfigError(
                f"classification_iterations must be at least 1, got {self.classification_iterations}"
            )
        if not (0.0 < self.cutoff <= 1.0):
            raise ConfigError(f"cutoff must be in (0, 1], got {self.cutoff}")
        if self.k < 0:
            raise ConfigError(f"k must be >= 0, got {self.k}")
        if self.rule_penalty < 0:
            raise ConfigError(f"rule_penalty must be >= 0, got {self.rule_penalty}")
        if self.beams < 1:
            raise ConfigError(f"beams must be at least 1, got {self.beams}")

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
