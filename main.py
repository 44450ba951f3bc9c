import argparse
import sys

from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.naive_bayes import GaussianNB
from sklearn.neighbors import KNeighborsClassifier
from sklearn.tree import DecisionTreeClassifier

from misminer.config import MinerConfig
from misminer.data import load_csv
from misminer.miner import analyze, mark_dataset


def build_classifier(name: str, seed: int):
    if name == "tree":
        return DecisionTreeClassifier(random_state=seed)
    if name == "forest":
        return RandomForestClassifier(n_estimators=100, random_state=seed)
    if name == "nb":
        return GaussianNB()
    if name == "knn":
        return KNeighborsClassifier(n_neighbors=5)
    if name == "logreg":
        return LogisticRegression(max_iter=1000)
    raise ValueError(f"Unknown classifier: {name}")


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Mine rules describing where a classifier makes mistakes.")
    ap.add_argument("--data", type=str, required=True, help="CSV file, one row per instance.")
    ap.add_argument("--class_attr", type=str, default="last", help="'first', 'last', a column name or index.")
    ap.add_argument("--id_attr", type=str, default=None, help="Column excluded from prediction and rules.")
    ap.add_argument("--classifier", type=str, default="tree", choices=["tree", "forest", "nb", "knn", "logreg"])

    # Prediction generation
    ap.add_argument("--cv_folds", type=int, default=4)
    ap.add_argument("--iterations", type=int, default=1, help="Repeated cross-validation runs.")
    ap.add_argument("--cutoff", type=float, default=0.80,
                    help="A row is a target if its share of correct votes is below this.")
    ap.add_argument("--jobs", type=int, default=1, help="Parallel fits during cross validation.")

    # Rule search
    ap.add_argument("--max_rules", type=int, default=10,
                    help="<= 0 keeps mining until no target is left, it does not stop after one rule.")
    ap.add_argument("--k", type=float, default=20.0, help="Laplace smoothing; higher favours broader rules.")
    ap.add_argument("--rule_penalty", type=float, default=0.01)
    ap.add_argument("--beams", type=int, default=4)
    ap.add_argument("--quantiles", type=int, default=20, help="<= 0 splits numeric attributes at every useful point.")
    ap.add_argument("--no_class", action="store_true", help="Do not build rules on the class attribute.")
    ap.add_argument("--no_prune", action="store_true", help="Do not hold out rows to prune rules.")
    ap.add_argument("--seed", type=int, default=0)

    # Output
    ap.add_argument("--rules_only", action="store_true", help="Print the summary without per-rule details.")
    ap.add_argument("--out", type=str, default=None, help="Write the data with rule / target columns here.")
    ap.add_argument("--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        config = MinerConfig(
            cv_folds=args.cv_folds,
            classification_iterations=args.iterations,
            cutoff=args.cutoff,
            max_rules=args.max_rules,
            k=args.k,
            rule_penalty=args.rule_penalty,
            beams=args.beams,
            quantiles=args.quantiles,
            use_class=not args.no_class,
            prune=not args.no_prune,
            seed=args.seed,
            n_jobs=args.jobs,
        )
        ds = load_csv(args.data, class_attr=args.class_attr)
        id_index = ds.attribute_index(args.id_attr) if args.id_attr is not None else None
        print(f"[load] file={args.data}, rows={ds.n}, attributes={ds.num_attributes}, "
              f"class={ds.class_attribute.name}")
        if args.verbose:
            print(f"[config] {config.as_dict()}")

        result = analyze(ds, build_classifier(args.classifier, args.seed), config,
                         id_index=id_index, verbose=args.verbose)
    except ValueError as e:
        print(f"[error] {e}", file=sys.stderr)
        return 2

    print(result.summary)
    if not args.rules_only:
        for text in result.details:
            print(text)

    if args.out:
        mark_dataset(result.dataset, result.rules, result.targets).to_csv(args.out, index=False)
        print(f"[out] wrote {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
