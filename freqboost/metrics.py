"""
Deviance-based evaluation of claim-frequency models.

All functions take observed claim counts and expected claim counts
(frequency times exposure), so models fitted with different exposure
handling are compared on the same scale.
"""

import numpy as np
from typing import Optional, Dict
from scipy.special import xlogy
from sklearn.metrics import auc
from sklearn.metrics import mean_poisson_deviance as _sklearn_mean_poisson_deviance
import warnings


def _validate_counts_expected(counts: np.ndarray, expected: np.ndarray):
    counts = np.asarray(counts, dtype=np.float64)
    expected = np.asarray(expected, dtype=np.float64)

    if counts.shape != expected.shape:
        raise ValueError("counts and expected must have the same shape")
    if np.any(counts < 0):
        raise ValueError("counts must be non-negative")
    if np.any(expected < 0):
        raise ValueError("expected must be non-negative")
    if np.any((expected == 0) & (counts > 0)):
        raise ValueError("expected is zero where claims were observed; deviance is infinite")

    return counts, expected


def poisson_deviance(counts: np.ndarray, expected: np.ndarray,
                     sample_weight: Optional[np.ndarray] = None) -> float:
    """
    Total Poisson deviance.

    D = 2 * sum(w * (y * log(y / mu) - (y - mu)))

    with the convention 0 * log(0) = 0.

    Args:
        counts: Observed claim counts y
        expected: Expected claim counts mu; zero only where y is zero
        sample_weight: Optional weights w

    Returns:
        Total deviance (0 for a perfect fit)
    """
    counts, expected = _validate_counts_expected(counts, expected)

    unit_deviance = 2 * (xlogy(counts, counts) - xlogy(counts, expected) - (counts - expected))
    if sample_weight is not None:
        unit_deviance = unit_deviance * np.asarray(sample_weight, dtype=np.float64)

    return float(np.sum(unit_deviance))


def exposed_poisson_deviance(counts: np.ndarray, expected: np.ndarray,
                             exposure: np.ndarray) -> float:
    """
    Total Poisson deviance over policies with positive exposure.

    Policies without exposure have zero expected claims whatever the model,
    so claims recorded against them carry no information about the fit.
    """
    counts = np.asarray(counts, dtype=np.float64)
    expected = np.asarray(expected, dtype=np.float64)
    exposure = np.asarray(exposure, dtype=np.float64)

    if exposure.shape != counts.shape:
        raise ValueError("counts and exposure must have the same shape")

    at_risk = exposure > 0
    return poisson_deviance(counts[at_risk], expected[at_risk])


def mean_poisson_deviance(counts: np.ndarray, expected: np.ndarray) -> float:
    """Mean Poisson deviance per observation."""
    counts, expected = _validate_counts_expected(counts, expected)

    if np.all(expected > 0):
        return float(_sklearn_mean_poisson_deviance(counts, expected))

    return poisson_deviance(counts, expected) / len(counts)


def deviance_improvement(counts: np.ndarray, expected: np.ndarray,
                         exposure: np.ndarray) -> float:
    """
    Relative deviance reduction against the homogeneous model.

    The homogeneous model predicts exposure * total_count / total_exposure for
    every policy. Returns 1 - D(model) / D(homogeneous): 0 means no better than
    a flat rate, 1 means a perfect fit.
    """
    counts, expected = _validate_counts_expected(counts, expected)
    exposure = np.asarray(exposure, dtype=np.float64)

    if np.sum(exposure) <= 0:
        raise ValueError("Total exposure must be positive")

    flat_rate = np.sum(counts) / np.sum(exposure)
    null_deviance = poisson_deviance(counts, exposure * flat_rate)

    if null_deviance == 0:
        warnings.warn("Homogeneous model has zero deviance")
        return 0.0

    return 1.0 - poisson_deviance(counts, expected) / null_deviance


def lorenz_curve(counts: np.ndarray, expected: np.ndarray, exposure: np.ndarray):
    """
    Cumulative share of exposure vs cumulative share of claims, ordering
    policies from lowest to highest predicted frequency.
    """
    counts = np.asarray(counts, dtype=np.float64)
    expected = np.asarray(expected, dtype=np.float64)
    exposure = np.asarray(exposure, dtype=np.float64)

    frequency = np.divide(expected, exposure, out=np.zeros_like(expected), where=exposure > 0)
    ranking = np.argsort(frequency, kind='stable')

    cumulative_claims = np.concatenate([[0.0], np.cumsum(counts[ranking])])
    cumulative_exposure = np.concatenate([[0.0], np.cumsum(exposure[ranking])])

    if cumulative_claims[-1] > 0:
        cumulative_claims /= cumulative_claims[-1]
    else:
        warnings.warn("No claims in counts; Lorenz curve is flat")
    cumulative_exposure /= cumulative_exposure[-1]

    return cumulative_exposure, cumulative_claims


def evaluate_frequency(counts: np.ndarray, expected: np.ndarray,
                       exposure: np.ndarray) -> Dict[str, float]:
    """
    Evaluate predicted claim counts.

    Args:
        counts: Observed claim counts
        expected: Predicted claim counts (frequency * exposure)
        exposure: Exposure per policy

    Returns:
        Dictionary with:
        - 'deviance': Poisson deviance per unit exposure
        - 'mean_deviance': Poisson deviance per policy
        - 'deviance_improvement': Reduction against a flat rate
        - 'gini': Gini index of the Lorenz curve (0=random ranking)
        - 'mae': Mean absolute error of claim counts
        - 'total_actual': Observed number of claims
        - 'total_predicted': Predicted number of claims
    """
    counts, expected = _validate_counts_expected(counts, expected)
    exposure = np.asarray(exposure, dtype=np.float64)

    if len(exposure) != len(counts):
        raise ValueError("counts and exposure must have same number of samples")

    total_exposure = np.sum(exposure)
    if total_exposure <= 0:
        raise ValueError("Total exposure must be positive")

    cumulative_exposure, cumulative_claims = lorenz_curve(counts, expected, exposure)

    return {
        'deviance': poisson_deviance(counts, expected) / total_exposure,
        'mean_deviance': mean_poisson_deviance(counts, expected),
        'deviance_improvement': deviance_improvement(counts, expected, exposure),
        'gini': 1 - 2 * auc(cumulative_exposure, cumulative_claims),
        'mae': float(np.mean(np.abs(counts - expected))),
        'total_actual': float(np.sum(counts)),
        'total_predicted': float(np.sum(expected))
    }
