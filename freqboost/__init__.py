"""
FreqBoost: sequential Poisson boosting for insurance claim frequency.

A boosting orchestrator that composes multiplicative weak learners fitted
against a working exposure offset, with:
- Poisson regression-tree weak learners (scikit-learn)
- Cost-complexity pruning and CP tables
- Cross-validation sweeps over rounds and pruning strength
- Poisson deviance evaluation
- A synthetic claims portfolio for experiments
"""

__version__ = "0.1.0"

# Core orchestrator
from .core import PoissonBoostingOrchestrator, BoostingRound

# Data
from .dataset import ClaimsDataset
from .simulation import simulate_claims, true_frequency

# Weak learners
from .learners import BaseWeakLearner, PoissonTreeLearner, ConstantLearner

# Errors
from .exceptions import (
    FreqBoostError,
    DegenerateInputError,
    InvalidPredictionError,
    UnfittedModelError
)

# Pruning and model selection
from .pruning import full_tree, complexity_path, prune_to_cp, prune_sequence
from .model_selection import cross_validate_rounds, cross_validate_cp, best_n_rounds

# Metrics
from .metrics import (
    poisson_deviance,
    exposed_poisson_deviance,
    mean_poisson_deviance,
    deviance_improvement,
    lorenz_curve,
    evaluate_frequency
)

__all__ = [
    # Core components
    'PoissonBoostingOrchestrator',
    'BoostingRound',
    'ClaimsDataset',

    # Weak learners
    'BaseWeakLearner',
    'PoissonTreeLearner',
    'ConstantLearner',

    # Errors
    'FreqBoostError',
    'DegenerateInputError',
    'InvalidPredictionError',
    'UnfittedModelError',

    # Pruning and model selection
    'full_tree',
    'complexity_path',
    'prune_to_cp',
    'prune_sequence',
    'cross_validate_rounds',
    'cross_validate_cp',
    'best_n_rounds',

    # Simulation
    'simulate_claims',
    'true_frequency',

    # Metrics
    'poisson_deviance',
    'exposed_poisson_deviance',
    'mean_poisson_deviance',
    'deviance_improvement',
    'lorenz_curve',
    'evaluate_frequency'
]
