"""Unit tests for the SPSS percentile definitions."""

import pytest

from explore_statistics.config import PercentileMethod
from explore_statistics.percentiles import (
    DEFAULT_PERCENTILE_POINTS,
    PercentileEngine,
    round_half_up,
)
from explore_statistics.weighted_sample import WeightedDistribution


@pytest.fixture
def engine():
    """Return an engine over the unweighted sample [2, 4, 6, 8, 10]."""
    return PercentileEngine(WeightedDistribution.from_values([2, 4, 6, 8, 10]))


class TestWeightedAverage:
    """Test the waverage and haverage definitions."""

    @pytest.mark.parametrize("p, expected", [(25, 3.0), (50, 6.0), (75, 9.0), (100, 10.0)])
    def test_haverage(self, engine, p, expected):
        """haverage interpolates at rank (W+1)*p."""
        assert engine.percentile(PercentileMethod.WEIGHTED_AVERAGE_4, p) == pytest.approx(expected)

    @pytest.mark.parametrize("p, expected", [(0, 2.0), (25, 2.5), (50, 5.0), (100, 10.0)])
    def test_waverage(self, engine, p, expected):
        """waverage interpolates at rank W*p."""
        assert engine.percentile("waverage", p) == pytest.approx(expected)

    def test_heavy_bucket_caps_fraction(self):
        """Inside a bucket of weight >= 1 the blend fraction is capped at 1."""
        engine = PercentileEngine(WeightedDistribution.from_values([10, 20], weights=[1, 4]))
        assert engine.percentile("waverage", 30) == pytest.approx(15.0)
        assert engine.percentile("waverage", 60) == pytest.approx(20.0)

    def test_light_bucket_normalises_fraction(self):
        """Buckets lighter than 1 scale the offset by the bucket weight."""
        engine = PercentileEngine(WeightedDistribution.from_values([1, 2], weights=[0.5, 0.5]))
        assert engine.percentile("waverage", 75) == pytest.approx(1.5)

    def test_monotone_in_p(self):
        """Percentiles never decrease as p increases."""
        dist = WeightedDistribution.from_values(
            [3, 1, 4, 1, 5, 9, 2, 6], weights=[1, 2, 1, 1, 3, 1, 2, 1]
        )
        engine = PercentileEngine(dist)
        for method in PercentileMethod:
            values = [engine.percentile(method, p) for p in range(0, 101, 5)]
            assert values == sorted(values), method


class TestTukeyHinges:
    """Test the Tukey hinge definition."""

    @pytest.mark.parametrize("p, expected", [(25, 4.0), (50, 6.0), (75, 8.0)])
    def test_odd_count(self, engine, p, expected):
        """With n odd the median belongs to both halves."""
        assert engine.percentile(PercentileMethod.TUKEY_HINGES, p) == expected

    def test_even_count(self):
        """With n even the halves split evenly."""
        engine = PercentileEngine(WeightedDistribution.from_values([1, 2, 3, 4]))
        assert engine.percentile("tukeyhinges", 25) == pytest.approx(1.5)
        assert engine.percentile("tukeyhinges", 75) == pytest.approx(3.5)

    def test_other_points_fall_back_to_waverage(self, engine):
        """Points other than the quartiles use waverage."""
        assert engine.percentile("tukeyhinges", 10) == engine.percentile("waverage", 10)

    def test_weighted_data_falls_back_to_waverage(self):
        """Non-unit weights use waverage even for the quartiles."""
        engine = PercentileEngine(WeightedDistribution.from_values([1, 2, 3], weights=[2, 1, 2]))
        assert engine.percentile("tukeyhinges", 25) == engine.percentile("waverage", 25)


class TestEmpiricalFamily:
    """Test the empirical distribution function definitions."""

    def test_aempirical_averages_on_exact_rank(self, engine):
        """An exact rank averages the two neighbouring cases."""
        assert engine.percentile("aempirical", 20) == pytest.approx(3.0)
        assert engine.percentile("aempirical", 25) == 4.0

    def test_empirical(self, engine):
        """empirical takes the case at the ceiling of the rank."""
        assert engine.percentile("empirical", 20) == 2.0
        assert engine.percentile("empirical", 25) == 4.0

    def test_round_nearest(self, engine):
        """round takes the closest case, halves rounding up."""
        assert engine.percentile("round", 25) == 2.0
        assert engine.percentile("round", 30) == 4.0

    @pytest.mark.parametrize(
        "p, expected", [(10, 1.0), (20, 1.0), (40, 1.0), (50, 2.0), (60, 2.0), (80, 3.0), (90, 3.0)]
    )
    def test_empirical_weighted_ranks(self, p, expected):
        """Weighted ranks resolve as in the case-expanded sample [1, 1, 2, 3, 3]."""
        dist = WeightedDistribution.from_values([1, 2, 3], weights=[2, 1, 2])
        assert PercentileEngine(dist).percentile("empirical", p) == expected


class TestEngineContract:
    """Test argument checks and the percentile table."""

    def test_invalid_p_raises(self, engine):
        """p outside [0, 100] is rejected."""
        with pytest.raises(ValueError, match="between 0 and 100"):
            engine.percentile("haverage", 101)
        with pytest.raises(ValueError):
            engine.percentile("haverage", -1)

    def test_unknown_method_raises(self, engine):
        """Unknown method names are rejected."""
        with pytest.raises(ValueError, match="Unknown percentile method"):
            engine.percentile("median-ish", 50)

    def test_empty_distribution(self):
        """An empty distribution yields None."""
        engine = PercentileEngine(WeightedDistribution.from_values([]))
        assert engine.percentile("haverage", 50) is None

    def test_default_method_is_waverage(self, engine):
        """A missing method name resolves to waverage."""
        assert engine.percentile(None, 25) == engine.percentile("waverage", 25)

    def test_percentile_table(self, engine):
        """The table covers the default points and reports the method name."""
        table = engine.percentiles()
        assert tuple(table.values) == DEFAULT_PERCENTILE_POINTS
        assert table.values[50] == pytest.approx(6.0)
        assert table.to_dict()["method"] == "haverage"

    def test_custom_points(self, engine):
        """Custom points are evaluated with the requested method."""
        table = engine.percentiles("empirical", points=(20, 80))
        assert table.values == {20: 2.0, 80: 8.0}


class TestRoundHalfUp:
    """Test the rounding helper."""

    @pytest.mark.parametrize("x, expected", [(2.5, 3), (2.4, 2), (-2.5, -2), (0.5, 1)])
    def test_round_half_up(self, x, expected):
        """Halves round towards positive infinity."""
        assert round_half_up(x) == expected
