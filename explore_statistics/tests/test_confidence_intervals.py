"""Unit tests for the t-based confidence interval of the mean."""

import math

import pytest
from scipy import stats

from explore_statistics.confidence_intervals import (
    ConfidenceIntervalEstimator,
    nearest_alpha,
    t_critical_value,
)


class TestCriticalValue:
    """Test the tabulated t approximation."""

    @pytest.mark.parametrize("alpha, expected", [(0.05, 2.228), (0.01, 3.169), (0.10, 1.812)])
    def test_table_lookup(self, alpha, expected):
        """Integer degrees of freedom read the table directly."""
        assert t_critical_value(10, alpha) == expected

    def test_below_one_uses_first_row(self):
        """Fewer than one degree of freedom uses the df=1 row."""
        assert t_critical_value(0.5) == 12.706

    def test_fractional_df_interpolates(self):
        """Fractional df interpolate linearly between rows."""
        assert t_critical_value(10.5) == pytest.approx((2.228 + 2.201) / 2)

    def test_large_df_decays_to_normal(self):
        """Beyond 30 df the value decays towards the normal quantile."""
        assert t_critical_value(40) == pytest.approx(1.96 + (2.042 - 1.96) * math.exp(-1))
        assert t_critical_value(1000) == pytest.approx(1.96, abs=1e-6)

    def test_decay_is_continuous_at_table_edge(self):
        """The df=30 entry is reached from both sides."""
        assert t_critical_value(30) == 2.042
        assert t_critical_value(30.0001) == pytest.approx(2.042, abs=1e-4)

    @pytest.mark.parametrize("alpha, expected", [(0.04, 0.05), (0.2, 0.10), (0.001, 0.01)])
    def test_alpha_snapping(self, alpha, expected):
        """Unsupported alphas snap to the nearest tabulated level."""
        assert nearest_alpha(alpha) == expected


class TestEstimator:
    """Test ConfidenceIntervalEstimator."""

    def test_interval(self):
        """mean=50, SE=2, W=11 at 95% uses t(10) = 2.228."""
        interval = ConfidenceIntervalEstimator(95).estimate(50, 2, 11)
        assert interval.lower == pytest.approx(45.544)
        assert interval.upper == pytest.approx(54.456)
        assert interval.to_dict()["level"] == 95

    def test_level_sets_alpha(self):
        """The confidence level maps to a two-sided alpha."""
        assert ConfidenceIntervalEstimator(90).alpha == pytest.approx(0.10)

    @pytest.mark.parametrize(
        "mean, se, weight", [(None, 2, 11), (50, None, 11), (50, 2, 1), (50, 2, 0.5)]
    )
    def test_undefined(self, mean, se, weight):
        """Missing inputs or W <= 1 give no interval."""
        assert ConfidenceIntervalEstimator().estimate(mean, se, weight) is None

    @pytest.mark.parametrize("level", [0, 100, -5, 150])
    def test_invalid_level(self, level):
        """Levels outside (0, 100) are rejected."""
        with pytest.raises(ValueError, match="Confidence level"):
            ConfidenceIntervalEstimator(level)

    def test_invalid_method(self):
        """Unknown critical value methods are rejected."""
        with pytest.raises(ValueError, match="Unknown critical value method"):
            ConfidenceIntervalEstimator(95, method="bootstrap")

    def test_exact_method(self):
        """The exact method uses the scipy quantile."""
        estimator = ConfidenceIntervalEstimator(95, method="exact")
        assert estimator.critical_value(10) == pytest.approx(stats.t.ppf(0.975, 10))
        assert estimator.critical_value(10) == pytest.approx(2.228, abs=1e-3)
