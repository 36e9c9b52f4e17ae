"""
Basic usage example for FreqBoost.

This example demonstrates:
1. Simulating a claims portfolio with a known frequency structure
2. Fitting and pruning a single Poisson regression tree
3. Stepping through six boosting rounds by hand
4. Choosing the number of rounds by cross-validation
"""

import numpy as np
from sklearn.model_selection import train_test_split

from freqboost import (
    ClaimsDataset,
    PoissonBoostingOrchestrator,
    PoissonTreeLearner,
    simulate_claims,
    complexity_path,
    prune_sequence,
    cross_validate_rounds,
    best_n_rounds,
    evaluate_frequency
)

FEATURES = ['gender', 'age', 'split', 'sport']


def demonstrate_single_tree(frame):
    """Fit a Poisson tree and prune it back one weakest link at a time."""

    print("=" * 60)
    print("POISSON REGRESSION TREE AND PRUNING")
    print("=" * 60)

    X = frame[FEATURES]
    counts = frame['claims'].to_numpy()
    exposure = frame['exposure'].to_numpy()

    tree = PoissonTreeLearner(max_depth=3, min_samples_split=50)
    tree.fit(X, counts, exposure)
    print(f"1. Depth-3 tree: {tree.n_leaves_} leaves")
    print(f"   Leaf frequencies: {np.round(np.sort(tree.get_leaf_rates()), 4)}")

    print("\n2. CP table of the depth-4 tree:")
    tree_params = {'max_depth': 4, 'min_samples_split': 2}
    cp_table = complexity_path(X, counts, exposure, tree_params=tree_params)
    print(cp_table.to_string(index=False))

    print("\n3. Pruning step by step:")
    for step, pruned in enumerate(prune_sequence(X, counts, exposure, steps=4,
                                                 tree_params=tree_params)):
        print(f"   Step {step}: {pruned.n_leaves_} leaves")


def demonstrate_boosting(train, test):
    """Run six boosting rounds by hand and evaluate on held-out policies."""

    print("\n" + "=" * 60)
    print("SEQUENTIAL POISSON BOOSTING")
    print("=" * 60)

    model = PoissonBoostingOrchestrator(verbose=2)
    model.init(train)

    for _ in range(6):
        model.run_round(train, PoissonTreeLearner(max_depth=3, min_samples_split=50))

    expected = model.predict(test.features, test.exposure)
    metrics = evaluate_frequency(test.counts, expected, test.exposure)

    print(f"\n   Test deviance per unit exposure: {metrics['deviance']:.5f}")
    print(f"   Deviance improvement over flat rate: {metrics['deviance_improvement']:.4f}")
    print(f"   Gini: {metrics['gini']:.4f}")
    print(f"   Claims observed / predicted: {metrics['total_actual']:.0f} / {metrics['total_predicted']:.1f}")

    return model


def demonstrate_round_selection(train):
    """Pick the number of rounds from out-of-fold deviance."""

    print("\n" + "=" * 60)
    print("CROSS-VALIDATING THE NUMBER OF ROUNDS")
    print("=" * 60)

    cv_table = cross_validate_rounds(
        train, PoissonTreeLearner(max_depth=3, min_samples_split=50),
        max_rounds=10, n_splits=5, random_state=42, verbose=1
    )
    print(cv_table[['mean_deviance', 'std_deviance']].to_string())
    print(f"\n   Best number of rounds: {best_n_rounds(cv_table)}")


if __name__ == "__main__":
    print("FreqBoost Library - Basic Usage Examples")
    print("========================================")

    frame = simulate_claims(n_samples=100_000, exposure='uniform', random_state=123)
    train_frame, test_frame = train_test_split(frame, test_size=0.3, random_state=42)

    train = ClaimsDataset.from_frame(train_frame, 'claims', 'exposure', FEATURES)
    test = ClaimsDataset.from_frame(test_frame, 'claims', 'exposure', FEATURES)

    demonstrate_single_tree(train_frame)
    demonstrate_boosting(train, test)
    demonstrate_round_selection(train)
