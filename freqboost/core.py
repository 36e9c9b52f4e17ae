"""
PoissonBoostingOrchestrator: sequential Poisson boosting for claim frequency.

Each round turns the current log-scale score into a working exposure,
fits a weak learner that explains the deviation of the observed counts from
that exposure, and adds the log of its multiplicative prediction to the
score. The final frequency is the initial rate times the product of all
rounds' multiplicative predictions.
"""

import numpy as np
from typing import Optional, Union, List, Dict, Any, Callable, Iterator
from dataclasses import dataclass
from sklearn.base import clone

from .dataset import ClaimsDataset, Features
from .exceptions import DegenerateInputError, InvalidPredictionError, UnfittedModelError
from .learners import BaseWeakLearner
from .metrics import exposed_poisson_deviance

WeakLearnerFactory = Union[BaseWeakLearner, Callable[..., Any]]


@dataclass
class BoostingRound:
    """One completed boosting round."""
    index: int
    learner: Any
    update: np.ndarray
    deviance: float


class PoissonBoostingOrchestrator:
    """
    Sequential boosting of multiplicative weak learners on a count response.

    The orchestrator owns the score: it is initialised by `init`, changed only
    by `run_round`, and never exposed for writing. Rounds run strictly in order
    because each working offset depends on every previous round.
    """

    def __init__(self, verbose: int = 0):
        """
        Args:
            verbose: Verbosity level (0=silent, 1=progress, 2=detailed)
        """
        self.verbose = verbose

        # Fitted attributes
        self.initial_score_: Optional[float] = None
        self.score_: Optional[np.ndarray] = None
        self.rounds_: List[BoostingRound] = []
        self.n_observations_: int = 0
        self.train_deviances_: List[float] = []
        self.val_deviances_: List[float] = []

    @property
    def n_rounds_(self) -> int:
        return len(self.rounds_)

    def init(self, dataset: ClaimsDataset) -> 'PoissonBoostingOrchestrator':
        """
        Initialise the score with the portfolio log-frequency.

        score_i = log(total_count / total_exposure) for every observation.

        Raises:
            DegenerateInputError: total count or total exposure is zero
        """
        self.initial_score_ = None
        self.score_ = None
        self.n_observations_ = 0
        self.rounds_ = []
        self.train_deviances_ = []
        self.val_deviances_ = []

        total_count = dataset.total_count
        total_exposure = dataset.total_exposure

        if total_exposure <= 0:
            raise DegenerateInputError("Total exposure is zero; cannot initialise score")
        if total_count <= 0:
            raise DegenerateInputError("Total claim count is zero; log-frequency is undefined")

        self.initial_score_ = float(np.log(total_count / total_exposure))
        self.score_ = np.full(len(dataset), self.initial_score_)
        self.n_observations_ = len(dataset)

        if self.verbose >= 1:
            print(f"Initial frequency: {total_count / total_exposure:.6f} "
                  f"({int(total_count)} claims / {total_exposure:.2f} exposure)")

        return self

    def run_round(self, dataset: ClaimsDataset,
                  weak_learner_factory: WeakLearnerFactory) -> BoostingRound:
        """
        Fit one weak learner against the current working exposure.

        Args:
            dataset: The dataset passed to `init`
            weak_learner_factory: Either an unfitted BaseWeakLearner, cloned and
                fitted each round, or a callable (features, counts, offset) that
                returns a fitted learner

        Returns:
            The recorded round

        Raises:
            UnfittedModelError: `init` has not been called
            InvalidPredictionError: the learner predicted a factor <= 0;
                the score is left unchanged and no round is recorded
        """
        if self.score_ is None:
            raise UnfittedModelError("init must be called before run_round")
        if len(dataset) != len(self.score_):
            raise ValueError(f"dataset has {len(dataset)} observations, expected {len(self.score_)}")

        round_index = self.n_rounds_ + 1
        if self.verbose >= 1:
            print(f"Round {round_index}")

        offset = dataset.exposure * np.exp(self.score_)

        learner = self._fit_weak_learner(weak_learner_factory, dataset.features,
                                         dataset.counts, offset)

        predictions = self._validate_predictions(learner.predict(dataset.features), len(dataset))
        if np.any(predictions <= 0):
            n_bad = int(np.sum(predictions <= 0))
            raise InvalidPredictionError(
                f"Weak learner in round {round_index} returned {n_bad} non-positive predictions"
            )

        update = np.log(predictions)
        deviance = exposed_poisson_deviance(
            dataset.counts, dataset.exposure * np.exp(self.score_ + update), dataset.exposure
        )

        self.score_ += update
        self.train_deviances_.append(deviance)

        boosting_round = BoostingRound(
            index=round_index,
            learner=learner,
            update=update,
            deviance=deviance
        )
        self.rounds_.append(boosting_round)

        if self.verbose >= 2:
            print(f"  Train deviance: {deviance:.6f}")

        return boosting_round

    def fit(self, dataset: ClaimsDataset, weak_learner_factory: WeakLearnerFactory,
            n_rounds: int,
            validation: Optional[ClaimsDataset] = None) -> 'PoissonBoostingOrchestrator':
        """
        Initialise and run `n_rounds` boosting rounds.

        Args:
            dataset: Training dataset
            weak_learner_factory: See `run_round`
            n_rounds: Number of rounds, chosen by the caller
            validation: Optional held-out dataset; its Poisson deviance after each
                round is stored in `val_deviances_`
        """
        if n_rounds < 1:
            raise ValueError("n_rounds must be a positive integer")

        self.init(dataset)

        for _ in range(n_rounds):
            self.run_round(dataset, weak_learner_factory)

        if validation is not None:
            for expected in self.staged_predict(validation.features, validation.exposure):
                self.val_deviances_.append(
                    exposed_poisson_deviance(validation.counts, expected, validation.exposure)
                )

            if self.verbose >= 2:
                print(f"  Val deviance per round: {np.round(self.val_deviances_, 6).tolist()}")

        return self

    def predict(self, query_features: Features, query_exposure: Optional[np.ndarray] = None,
                method: str = 'log_sum') -> np.ndarray:
        """
        Predict expected claim counts (frequency times exposure).

        Args:
            query_features: Feature rows, not necessarily from the training data
            query_exposure: Exposure per row; unit exposure (pure frequency) if None
            method: 'log_sum' computes exposure * exp(init + sum(log pred_r));
                    'product' computes exposure * exp(init) * prod(pred_r).
                    Both agree up to floating point; 'log_sum' does not underflow.

        Raises:
            UnfittedModelError: no round has completed
        """
        self._check_fitted()
        exposure = self._validate_exposure(query_exposure, len(query_features))

        if method == 'log_sum':
            return exposure * np.exp(self.decision_function(query_features))
        elif method == 'product':
            product = np.ones(len(query_features))
            for boosting_round in self.rounds_:
                product *= self._round_predictions(boosting_round, query_features)
            return exposure * np.exp(self.initial_score_) * product
        else:
            raise ValueError(f"Unknown prediction method: {method}")

    def decision_function(self, query_features: Features) -> np.ndarray:
        """Return the log-scale score init + sum(log pred_r) for query rows."""
        self._check_fitted()

        scores = np.full(len(query_features), self.initial_score_)
        with np.errstate(divide='ignore'):
            for boosting_round in self.rounds_:
                scores += np.log(self._round_predictions(boosting_round, query_features))

        return scores

    def staged_predict(self, query_features: Features,
                       query_exposure: Optional[np.ndarray] = None) -> Iterator[np.ndarray]:
        """Yield predictions after rounds 1, 2, ..., M."""
        self._check_fitted()
        exposure = self._validate_exposure(query_exposure, len(query_features))

        scores = np.full(len(query_features), self.initial_score_)
        with np.errstate(divide='ignore'):
            for boosting_round in self.rounds_:
                scores = scores + np.log(self._round_predictions(boosting_round, query_features))
                yield exposure * np.exp(scores)

    def _fit_weak_learner(self, factory: WeakLearnerFactory, features: Features,
                          counts: np.ndarray, offset: np.ndarray) -> Any:
        """Fit a fresh learner from a prototype or a fitting callable."""
        if isinstance(factory, BaseWeakLearner):
            return clone(factory).fit(features, counts, offset)
        elif callable(factory):
            return factory(features, counts, offset)
        else:
            raise TypeError("weak_learner_factory must be a BaseWeakLearner or a callable")

    def _round_predictions(self, boosting_round: BoostingRound, query_features: Features) -> np.ndarray:
        predictions = self._validate_predictions(
            boosting_round.learner.predict(query_features), len(query_features)
        )
        return np.maximum(predictions, 0.0)

    def _validate_predictions(self, predictions, n_samples: int) -> np.ndarray:
        """Validate weak learner output."""
        predictions = np.asarray(predictions, dtype=np.float64).ravel()

        if len(predictions) != n_samples:
            raise InvalidPredictionError(
                f"Weak learner returned {len(predictions)} predictions for {n_samples} rows"
            )
        if not np.all(np.isfinite(predictions)):
            raise InvalidPredictionError("Weak learner returned non-finite predictions")

        return predictions

    def _validate_exposure(self, exposure: Optional[np.ndarray], n_samples: int) -> np.ndarray:
        """Validate query exposure, defaulting to unit exposure."""
        if exposure is None:
            return np.ones(n_samples)

        exposure = np.asarray(exposure, dtype=np.float64)
        if exposure.ndim != 1:
            raise ValueError("exposure must be 1-dimensional")
        if len(exposure) != n_samples:
            raise ValueError("features and exposure must have same number of samples")
        if np.any(exposure < 0):
            raise ValueError("exposure must be non-negative")

        return exposure

    def _check_fitted(self):
        if not self.rounds_:
            raise UnfittedModelError("At least one boosting round must complete before predict")

    def get_params(self) -> Dict[str, Any]:
        """Get model parameters."""
        return {
            'verbose': self.verbose
        }
