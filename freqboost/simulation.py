"""
Synthetic motor-style claims portfolio with a known multiplicative frequency.

Covariates: gender, age, an uninformative 'split' flag and a 'sport' flag.
The true frequency is

    0.1 * (1 + 0.1 * [male])
        * (1 + 0.4 * [18 <= age < 30] + 0.2 * [30 <= age < 45])
        * (1 + 0.15 * [sport])

so a well-fitted model should ignore 'split' and recover the age bands.
"""

import numpy as np
import pandas as pd
from typing import Optional
import warnings

BASE_FREQUENCY = 0.1
MIN_AGE = 18
MAX_AGE = 65


def true_frequency(frame: pd.DataFrame) -> np.ndarray:
    """Expected claims per unit exposure for each policy in `frame`."""
    age = frame['age'].to_numpy()
    male = (frame['gender'] == 'male').to_numpy()
    sport = (frame['sport'] == 'yes').to_numpy()

    age_effect = 1 + 0.4 * ((age >= 18) & (age < 30)) + 0.2 * ((age >= 30) & (age < 45))

    return BASE_FREQUENCY * (1 + 0.1 * male) * age_effect * (1 + 0.15 * sport)


def simulate_claims(n_samples: int = 500_000,
                    exposure: str = 'unit',
                    random_state: Optional[int] = 123) -> pd.DataFrame:
    """
    Simulate a claims portfolio.

    Args:
        n_samples: Number of policies
        exposure: 'unit' for one year at risk per policy, 'uniform' for
                  exposures drawn uniformly in (0, 1]
        random_state: Seed for reproducibility

    Returns:
        DataFrame with columns claims, gender, age, split, sport, exposure
        and true_frequency
    """
    if n_samples < 1:
        raise ValueError("n_samples must be positive")

    rng = np.random.default_rng(random_state)

    frame = pd.DataFrame({
        'gender': rng.choice(['female', 'male'], size=n_samples),
        'age': rng.integers(MIN_AGE, MAX_AGE + 1, size=n_samples),
        'split': rng.choice(['yes', 'no'], size=n_samples),
        'sport': rng.choice(['yes', 'no'], size=n_samples),
    })

    if exposure == 'unit':
        frame['exposure'] = 1.0
    elif exposure == 'uniform':
        frame['exposure'] = 1.0 - rng.uniform(0.0, 1.0, size=n_samples)
    else:
        raise ValueError(f"Unknown exposure scheme: {exposure}")

    frame['true_frequency'] = true_frequency(frame)
    frame.insert(0, 'claims', rng.poisson(frame['exposure'] * frame['true_frequency']))

    if frame['claims'].sum() == 0:
        warnings.warn(f"Simulated portfolio of {n_samples} policies has no claims")

    return frame
