"""
Cost-complexity pruning of Poisson regression trees.

The pruning path comes from scikit-learn. This module arranges it as a CP
table (complexity relative to the root deviance, as rpart reports it) and
prunes a full tree back one weakest link at a time.
"""

import numpy as np
import pandas as pd
from typing import Optional, List, Dict, Any

from .learners import PoissonTreeLearner


def full_tree(tree_params: Optional[Dict[str, Any]] = None) -> PoissonTreeLearner:
    """Unfitted, unpruned Poisson tree; `tree_params` override the defaults."""
    params = {'max_depth': None, 'min_samples_split': 2}
    params.update(tree_params or {})
    params['ccp_alpha'] = 0.0
    return PoissonTreeLearner(**params)


def complexity_path(X, counts: np.ndarray, exposure: np.ndarray,
                    tree_params: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
    """
    CP table of a Poisson tree.

    Args:
        X: Features
        counts: Claim counts
        exposure: Exposure per policy
        tree_params: PoissonTreeLearner parameters for the full tree
                     (default: unlimited depth, min_samples_split=2)

    Returns:
        DataFrame ordered from the full tree to the root, with columns
        - 'ccp_alpha': effective alpha at which the subtree is reached
        - 'cp': ccp_alpha relative to the root impurity
        - 'impurity': total leaf impurity of the subtree
        - 'n_leaves': number of leaves of the subtree
    """
    base = full_tree(tree_params)
    path = base.cost_complexity_pruning_path(X, counts, exposure)

    root_impurity = path.impurities[-1]
    if root_impurity > 0:
        cp = path.ccp_alphas / root_impurity
    else:
        cp = np.zeros_like(path.ccp_alphas)

    n_leaves = []
    for alpha in path.ccp_alphas:
        learner = base.set_params(ccp_alpha=alpha).fit(X, counts, exposure)
        n_leaves.append(learner.n_leaves_)

    return pd.DataFrame({
        'ccp_alpha': path.ccp_alphas,
        'cp': cp,
        'impurity': path.impurities,
        'n_leaves': n_leaves
    })


def prune_to_cp(X, counts: np.ndarray, exposure: np.ndarray, cp: float,
                tree_params: Optional[Dict[str, Any]] = None) -> PoissonTreeLearner:
    """Fit a Poisson tree pruned at relative complexity `cp`."""
    if cp < 0:
        raise ValueError("cp must be non-negative")

    base = full_tree(tree_params)
    path = base.cost_complexity_pruning_path(X, counts, exposure)
    alpha = cp * path.impurities[-1]

    return base.set_params(ccp_alpha=alpha).fit(X, counts, exposure)


def prune_sequence(X, counts: np.ndarray, exposure: np.ndarray, steps: int,
                   tree_params: Optional[Dict[str, Any]] = None) -> List[PoissonTreeLearner]:
    """
    Prune the full tree step by step.

    Step k prunes at the k-th smallest non-zero alpha of the pruning path, so
    each tree is the previous one with its weakest link collapsed. Stops early
    when the root is reached.

    Returns:
        Fitted trees, full tree first, with non-increasing leaf counts
    """
    if steps < 0:
        raise ValueError("steps must be non-negative")

    base = full_tree(tree_params)
    path = base.cost_complexity_pruning_path(X, counts, exposure)

    trees = [full_tree(tree_params).fit(X, counts, exposure)]
    for alpha in path.ccp_alphas[1:steps + 1]:
        pruned = full_tree(tree_params).set_params(ccp_alpha=alpha)
        trees.append(pruned.fit(X, counts, exposure))

    return trees
