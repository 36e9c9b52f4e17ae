"""
Test deviance-based frequency metrics.
"""

import numpy as np
import pytest
from sklearn.metrics import mean_poisson_deviance as sklearn_mean_poisson_deviance

import sys
sys.path.append('../')

from freqboost.metrics import (
    poisson_deviance,
    exposed_poisson_deviance,
    mean_poisson_deviance,
    deviance_improvement,
    lorenz_curve,
    evaluate_frequency
)


class TestFrequencyMetrics:

    @pytest.fixture
    def sample_claims(self):
        """Observed and predicted claims for a small portfolio."""
        rng = np.random.default_rng(0)
        exposure = rng.uniform(0.2, 1.0, 2000)
        frequency = rng.uniform(0.05, 0.4, 2000)
        counts = rng.poisson(frequency * exposure)
        return counts, frequency * exposure, exposure

    def test_poisson_deviance_known_value(self):
        """D([0, 1, 2], [1, 1, 1]) = 4 log 2."""
        deviance = poisson_deviance(np.array([0, 1, 2]), np.array([1.0, 1.0, 1.0]))
        assert np.isclose(deviance, 4 * np.log(2))

    def test_poisson_deviance_perfect_fit(self):
        counts = np.array([0, 1, 3, 0])
        expected = np.array([0.0, 1.0, 3.0, 0.0])
        assert poisson_deviance(counts, expected) == 0.0

    def test_poisson_deviance_weights(self):
        counts = np.array([0, 2])
        expected = np.array([1.0, 1.0])

        unweighted = poisson_deviance(counts, expected)
        weighted = poisson_deviance(counts, expected, sample_weight=np.array([2.0, 2.0]))
        assert np.isclose(weighted, 2 * unweighted)

    def test_poisson_deviance_invalid(self):
        with pytest.raises(ValueError):
            poisson_deviance(np.array([1, 0]), np.array([0.0, 1.0]))

        with pytest.raises(ValueError):
            poisson_deviance(np.array([1, 0]), np.array([1.0, 1.0, 1.0]))

        with pytest.raises(ValueError):
            poisson_deviance(np.array([1, 0]), np.array([-1.0, 1.0]))

    def test_exposed_poisson_deviance_skips_unexposed(self):
        """Claims on zero-exposure policies are left out of the deviance."""
        counts = np.array([1, 0, 1, 2])
        expected = np.array([0.0, 1.0, 1.0, 1.0])
        exposure = np.array([0.0, 1.0, 1.0, 1.0])

        deviance = exposed_poisson_deviance(counts, expected, exposure)
        assert np.isclose(deviance, 4 * np.log(2))

        with pytest.raises(ValueError):
            exposed_poisson_deviance(counts, expected, exposure[:3])

    def test_mean_poisson_deviance_matches_sklearn(self, sample_claims):
        counts, expected, _ = sample_claims

        assert np.isclose(
            mean_poisson_deviance(counts, expected),
            sklearn_mean_poisson_deviance(counts, expected)
        )
        assert np.isclose(
            mean_poisson_deviance(counts, expected),
            poisson_deviance(counts, expected) / len(counts)
        )

    def test_mean_poisson_deviance_zero_expected(self):
        """Zero expected claims are allowed where no claims were observed."""
        value = mean_poisson_deviance(np.array([0, 1]), np.array([0.0, 1.0]))
        assert value == 0.0

    def test_deviance_improvement(self, sample_claims):
        counts, expected, exposure = sample_claims

        flat = exposure * counts.sum() / exposure.sum()
        assert np.isclose(deviance_improvement(counts, flat, exposure), 0.0)

        # A perfect fit removes all deviance
        assert np.isclose(deviance_improvement(counts, counts.astype(float), exposure), 1.0)

    def test_lorenz_curve(self, sample_claims):
        counts, expected, exposure = sample_claims

        x, y = lorenz_curve(counts, expected, exposure)

        assert x[0] == 0.0 and y[0] == 0.0
        assert np.isclose(x[-1], 1.0) and np.isclose(y[-1], 1.0)
        assert np.all(np.diff(x) >= 0)
        assert np.all(np.diff(y) >= 0)

    def test_evaluate_frequency(self, sample_claims):
        counts, expected, exposure = sample_claims

        metrics = evaluate_frequency(counts, expected, exposure)

        expected_keys = {
            'deviance', 'mean_deviance', 'deviance_improvement', 'gini',
            'mae', 'total_actual', 'total_predicted'
        }
        assert set(metrics) == expected_keys

        assert metrics['deviance'] > 0
        assert np.isclose(metrics['total_actual'], counts.sum())
        assert np.isclose(metrics['total_predicted'], expected.sum())
        assert -1.0 <= metrics['gini'] <= 1.0

    def test_gini_ranks_informative_model_higher(self, sample_claims):
        """True frequencies rank policies better than noise."""
        counts, expected, exposure = sample_claims
        rng = np.random.default_rng(1)

        informative = evaluate_frequency(counts, expected, exposure)['gini']
        noise = evaluate_frequency(counts, rng.uniform(0.1, 0.2, len(counts)) * exposure,
                                   exposure)['gini']

        assert informative > noise

    def test_no_claims_warning(self):
        with pytest.warns(UserWarning):
            lorenz_curve(np.zeros(3), np.ones(3), np.ones(3))
