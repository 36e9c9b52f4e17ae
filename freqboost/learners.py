"""
Weak learners for Poisson boosting.

A weak learner is fitted on (features, counts, offset), where the offset is
the working exposure exp(score) * exposure, and predicts a non-negative
multiplicative correction to that offset. Tree induction itself is delegated
to scikit-learn.
"""

import numpy as np
import pandas as pd
from typing import Optional, Tuple, List
from abc import ABC, abstractmethod
from sklearn.base import BaseEstimator
from sklearn.tree import DecisionTreeRegressor

from .exceptions import DegenerateInputError, UnfittedModelError


class BaseWeakLearner(BaseEstimator, ABC):
    """Base class for weak learners used by the boosting orchestrator."""

    @abstractmethod
    def fit(self, X, counts: np.ndarray, offset: np.ndarray) -> 'BaseWeakLearner':
        """Fit on claim counts with a multiplicative offset (zero offsets allowed)."""
        pass

    @abstractmethod
    def predict(self, X) -> np.ndarray:
        """Predict one non-negative multiplicative factor per row."""
        pass


def _validate_counts_offset(counts: np.ndarray, offset: np.ndarray,
                            n_samples: int) -> Tuple[np.ndarray, np.ndarray]:
    """Validate count and offset arrays."""
    counts = np.asarray(counts, dtype=np.float64)
    offset = np.asarray(offset, dtype=np.float64)

    if counts.ndim != 1 or offset.ndim != 1:
        raise ValueError("counts and offset must be 1-dimensional")
    if len(counts) != n_samples or len(offset) != n_samples:
        raise ValueError("X, counts and offset must have same number of samples")
    if np.any(counts < 0):
        raise ValueError("counts must be non-negative")
    if not np.all(np.isfinite(offset)) or np.any(offset < 0):
        raise ValueError("offset must be finite and non-negative")

    return counts, offset


class ConstantLearner(BaseWeakLearner):
    """
    Predicts the same multiplicative factor for every row.

    With value=1.0 a round leaves the score unchanged; useful as a baseline
    and as a stand-in learner in tests.
    """

    def __init__(self, value: float = 1.0):
        self.value = value

    def fit(self, X, counts: np.ndarray, offset: np.ndarray) -> 'ConstantLearner':
        _validate_counts_offset(counts, offset, len(X))
        self.is_fitted_ = True
        return self

    def predict(self, X) -> np.ndarray:
        return np.full(len(X), float(self.value))


class PoissonTreeLearner(BaseWeakLearner):
    """
    Poisson regression tree fitted against a working exposure.

    The tree is grown by scikit-learn on the claim rate counts / offset with
    the offset as sample weight, which is the Poisson deviance with a
    log-offset: every leaf estimates sum(counts) / sum(offset). Leaf rates are
    then shrunk towards the root rate with a Gamma prior, as rpart's poisson
    method does, so a claim-free leaf still predicts a positive factor:

        alpha = 1 / shrink**2
        beta = alpha / root_rate
        leaf_rate = (alpha + sum(counts)) / (beta + sum(offset))

    shrink=0 disables shrinkage and keeps the raw leaf rates.
    """

    def __init__(self,
                 max_depth: Optional[int] = 3,
                 min_samples_split: int = 50,
                 min_samples_leaf: int = 1,
                 ccp_alpha: float = 0.0,
                 shrink: float = 1.0,
                 random_state: Optional[int] = None):
        """
        Args:
            max_depth: Maximum tree depth (root has depth 0)
            min_samples_split: Minimum observations in a node to attempt a split
            min_samples_leaf: Minimum observations in a leaf
            ccp_alpha: Cost-complexity pruning strength
            shrink: Coefficient of variation of the Gamma prior on leaf rates
            random_state: Seed for scikit-learn's feature permutation
        """
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.ccp_alpha = ccp_alpha
        self.shrink = shrink
        self.random_state = random_state

    def fit(self, X, counts: np.ndarray, offset: np.ndarray) -> 'PoissonTreeLearner':
        """
        Fit the tree.

        Args:
            X: Features, DataFrame (categoricals are one-hot encoded) or 2-D array
            counts: Observed claim counts
            offset: Working exposure; rows with zero offset carry no weight
        """
        X_encoded, counts_used, offset, rate = self._prepare(X, counts, offset)
        self.root_rate_ = np.sum(counts_used) / np.sum(offset)

        self.estimator_ = self._make_tree(self.ccp_alpha)
        self.estimator_.fit(X_encoded, rate, sample_weight=offset)

        self.leaf_rates_ = self._compute_leaf_rates(X_encoded, counts_used, offset)

        return self

    def predict(self, X) -> np.ndarray:
        """Predict the multiplicative factor of the leaf each row falls in."""
        if not hasattr(self, 'estimator_'):
            raise UnfittedModelError("PoissonTreeLearner must be fitted before predict")

        X_encoded = self._encode(X, fit=False)
        leaves = self.estimator_.apply(X_encoded)
        return self.leaf_rates_[leaves]

    def cost_complexity_pruning_path(self, X, counts: np.ndarray, offset: np.ndarray):
        """
        Minimal cost-complexity pruning path of the unpruned Poisson tree.

        Returns scikit-learn's Bunch with `ccp_alphas` (increasing, starting at
        the full tree) and `impurities` (total leaf impurity per subtree).
        """
        X_encoded, _, offset, rate = self._prepare(X, counts, offset)
        return self._make_tree(0.0).cost_complexity_pruning_path(
            X_encoded, rate, sample_weight=offset
        )

    def _prepare(self, X, counts: np.ndarray, offset: np.ndarray):
        """Encode features and turn (counts, offset) into rate targets and weights."""
        X_encoded = self._encode(X, fit=True)
        counts, offset = _validate_counts_offset(counts, offset, len(X_encoded))

        positive = offset > 0
        counts_used = np.where(positive, counts, 0.0)
        total_count = np.sum(counts_used)
        total_offset = np.sum(offset)

        if total_count <= 0 or total_offset <= 0:
            raise DegenerateInputError(
                f"Cannot fit a Poisson tree with total count {total_count} "
                f"and total offset {total_offset}"
            )

        rate = np.zeros(len(counts))
        rate[positive] = counts[positive] / offset[positive]

        return X_encoded, counts_used, offset, rate

    def _make_tree(self, ccp_alpha: float) -> DecisionTreeRegressor:
        return DecisionTreeRegressor(
            criterion='poisson',
            max_depth=self.max_depth,
            min_samples_split=self.min_samples_split,
            min_samples_leaf=self.min_samples_leaf,
            ccp_alpha=ccp_alpha,
            random_state=self.random_state
        )

    @property
    def n_leaves_(self) -> int:
        return int(self.estimator_.get_n_leaves())

    @property
    def depth_(self) -> int:
        return int(self.estimator_.get_depth())

    def _compute_leaf_rates(self, X_encoded: np.ndarray, counts: np.ndarray,
                            offset: np.ndarray) -> np.ndarray:
        """Per-node claim rate, indexed by scikit-learn node id."""
        n_nodes = self.estimator_.tree_.node_count
        leaves = self.estimator_.apply(X_encoded)

        leaf_counts = np.bincount(leaves, weights=counts, minlength=n_nodes)
        leaf_offset = np.bincount(leaves, weights=offset, minlength=n_nodes)

        if self.shrink > 0:
            alpha = 1.0 / self.shrink ** 2
            beta = alpha / self.root_rate_
            rates = (alpha + leaf_counts) / (beta + leaf_offset)
        else:
            rates = np.full(n_nodes, self.root_rate_)
            has_offset = leaf_offset > 0
            rates[has_offset] = leaf_counts[has_offset] / leaf_offset[has_offset]

        is_leaf = self.estimator_.tree_.children_left == -1
        rates[~is_leaf] = np.nan
        return rates

    def _encode(self, X, fit: bool) -> np.ndarray:
        """One-hot encode categorical DataFrame columns; pass arrays through."""
        if isinstance(X, pd.DataFrame):
            encoded = pd.get_dummies(X, dtype=np.float64)
            if fit:
                self.feature_names_: List[str] = list(encoded.columns)
            else:
                encoded = encoded.reindex(columns=self.feature_names_, fill_value=0.0)
            return encoded.to_numpy(dtype=np.float64)

        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2:
            raise ValueError("X must be 2-dimensional")
        if fit:
            self.feature_names_ = [f'feature_{i}' for i in range(X.shape[1])]
        elif X.shape[1] != len(self.feature_names_):
            raise ValueError(f"X has {X.shape[1]} features, expected {len(self.feature_names_)}")
        return X

    def get_leaf_rates(self) -> np.ndarray:
        """Get all leaf rates of the fitted tree."""
        return self.leaf_rates_[~np.isnan(self.leaf_rates_)]
