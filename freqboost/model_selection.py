"""
K-fold cross-validation sweeps for Poisson boosting and Poisson trees.

Both sweeps score folds by out-of-fold Poisson deviance; neither chooses a
model on its own. The caller reads the table and picks the number of rounds
or the complexity parameter.
"""

import numpy as np
import pandas as pd
from typing import Optional, Sequence, Dict, Any
from sklearn.model_selection import KFold

from .core import PoissonBoostingOrchestrator, WeakLearnerFactory
from .dataset import ClaimsDataset
from .metrics import exposed_poisson_deviance
from .pruning import full_tree


def _folds(dataset: ClaimsDataset, n_splits: int, random_state: Optional[int]):
    if n_splits < 2:
        raise ValueError("n_splits must be at least 2")
    kfold = KFold(n_splits=n_splits, shuffle=True, random_state=random_state)
    for train_indices, val_indices in kfold.split(np.arange(len(dataset))):
        yield dataset.subset(train_indices), dataset.subset(val_indices)


def cross_validate_rounds(dataset: ClaimsDataset, weak_learner_factory: WeakLearnerFactory,
                          max_rounds: int, n_splits: int = 5,
                          random_state: Optional[int] = None,
                          verbose: int = 0) -> pd.DataFrame:
    """
    Out-of-fold deviance after each boosting round.

    Args:
        dataset: Full dataset
        weak_learner_factory: See PoissonBoostingOrchestrator.run_round
        max_rounds: Rounds fitted per fold
        n_splits: Number of folds
        random_state: Seed for the fold shuffle
        verbose: Verbosity level

    Returns:
        DataFrame indexed by `n_rounds` (1..max_rounds) with one column per
        fold ('fold_1', ...) holding deviance per unit exposure, plus
        'mean_deviance' and 'std_deviance'
    """
    if max_rounds < 1:
        raise ValueError("max_rounds must be a positive integer")

    results = {}
    for fold, (train, val) in enumerate(_folds(dataset, n_splits, random_state)):
        if verbose >= 1:
            print(f"  Fold {fold + 1}/{n_splits}")

        model = PoissonBoostingOrchestrator(verbose=max(verbose - 1, 0))
        model.fit(train, weak_learner_factory, n_rounds=max_rounds)

        results[f'fold_{fold + 1}'] = [
            exposed_poisson_deviance(val.counts, expected, val.exposure) / val.total_exposure
            for expected in model.staged_predict(val.features, val.exposure)
        ]

    table = pd.DataFrame(results, index=pd.RangeIndex(1, max_rounds + 1, name='n_rounds'))
    fold_columns = list(results)
    table['mean_deviance'] = table[fold_columns].mean(axis=1)
    table['std_deviance'] = table[fold_columns].std(axis=1)

    return table


def best_n_rounds(cv_table: pd.DataFrame) -> int:
    """Number of rounds with the lowest mean out-of-fold deviance."""
    return int(cv_table['mean_deviance'].idxmin())


def cross_validate_cp(dataset: ClaimsDataset, cp_values: Sequence[float],
                      n_splits: int = 5,
                      tree_params: Optional[Dict[str, Any]] = None,
                      random_state: Optional[int] = None,
                      verbose: int = 0) -> pd.DataFrame:
    """
    Cross-validated relative error of pruned Poisson trees.

    For each fold the full tree is grown on the training part, pruned at each
    cp (relative to the fold's root impurity) and scored on the held-out part.
    The error is relative to the held-out deviance of the root (flat rate)
    model, as in rpart's xerror column.
    Leaf rates must be shrunk (`shrink > 0`) so every held-out policy gets a
    positive expected count.

    Returns:
        DataFrame with columns 'cp', 'xerror', 'xstd' (standard error across
        folds) and 'n_leaves' (mean over folds), one row per cp
    """
    cp_values = np.asarray(cp_values, dtype=np.float64)
    if np.any(cp_values < 0):
        raise ValueError("cp values must be non-negative")
    if (tree_params or {}).get('shrink', 1.0) <= 0:
        raise ValueError("shrink must be positive: unshrunk leaves predict zero "
                         "claims and held-out claims there have infinite deviance")

    n_cp = len(cp_values)
    model_deviance = np.zeros((n_splits, n_cp))
    root_deviance = np.zeros(n_splits)
    n_leaves = np.zeros((n_splits, n_cp))

    for fold, (train, val) in enumerate(_folds(dataset, n_splits, random_state)):
        if verbose >= 1:
            print(f"  Fold {fold + 1}/{n_splits}")

        base = full_tree(tree_params)
        path = base.cost_complexity_pruning_path(train.features, train.counts, train.exposure)
        root_impurity = path.impurities[-1]

        root_rate = train.total_count / train.total_exposure
        root_deviance[fold] = exposed_poisson_deviance(val.counts, val.exposure * root_rate, val.exposure)

        for i, cp in enumerate(cp_values):
            learner = full_tree(tree_params).set_params(ccp_alpha=cp * root_impurity)
            learner.fit(train.features, train.counts, train.exposure)
            expected = val.exposure * learner.predict(val.features)

            model_deviance[fold, i] = exposed_poisson_deviance(val.counts, expected, val.exposure)
            n_leaves[fold, i] = learner.n_leaves_

    relative = model_deviance / root_deviance[:, np.newaxis]

    return pd.DataFrame({
        'cp': cp_values,
        'xerror': model_deviance.sum(axis=0) / root_deviance.sum(),
        'xstd': relative.std(axis=0, ddof=1) / np.sqrt(n_splits),
        'n_leaves': n_leaves.mean(axis=0)
    })
