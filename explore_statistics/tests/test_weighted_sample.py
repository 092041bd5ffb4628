"""Unit tests for the weighted distribution builder."""

import numpy as np
import pytest

from explore_statistics._warnings import DataQualityWarning
from explore_statistics.config import VariableDefinition
from explore_statistics.weighted_sample import WeightedDistribution, WeightedSampleBuilder


class TestAggregation:
    """Test grouping of raw values into a sorted distribution."""

    def test_unweighted_duplicates_are_merged(self, make_sample):
        """Duplicate values accumulate weight in ascending order."""
        dist = make_sample([3, 1, 3]).distribution
        assert dist.values.tolist() == [1.0, 3.0]
        assert dist.weights.tolist() == [1.0, 2.0]
        assert dist.cum_weights.tolist() == [1.0, 3.0]
        assert dist.valid_weight == 3.0
        assert dist.n_valid == 3
        assert dist.total_weight == 3.0
        assert dist.unit_weights

    def test_weighted_values(self, make_sample):
        """Case weights add up per value and clear the unit-weight flag."""
        dist = make_sample([1, 2, 1], weights=[0.5, 1.5, 2]).distribution
        assert dist.values.tolist() == [1.0, 2.0]
        assert dist.weights.tolist() == [2.5, 1.5]
        assert dist.valid_weight == pytest.approx(4.0)
        assert not dist.unit_weights

    def test_arrays_are_read_only(self, five_values):
        """Distribution arrays cannot be mutated."""
        dist = five_values.distribution
        with pytest.raises(ValueError):
            dist.values[0] = 99.0
        with pytest.raises(ValueError):
            dist.cum_weights[0] = 99.0

    def test_distribution_is_cached(self, five_values):
        """The distribution is built once per builder."""
        assert five_values.distribution is five_values.distribution

    def test_empty_input(self, make_sample):
        """No data gives an empty distribution."""
        dist = make_sample([]).distribution
        assert dist.is_empty
        assert dist.size == 0
        assert dist.valid_weight == 0.0

    def test_from_values(self):
        """The convenience constructor skips the variable definition."""
        dist = WeightedDistribution.from_values([5, 5, 1], weights=[1, 1, 3])
        assert dist.values.tolist() == [1.0, 5.0]
        assert dist.weights.tolist() == [3.0, 2.0]


class TestWeights:
    """Test handling of unusable case weights."""

    @pytest.mark.parametrize("bad", [0, -1, float("nan"), float("inf"), "2", True])
    def test_unusable_weight_drops_case(self, make_sample, bad):
        """Cases with unusable weights count neither as valid nor as missing."""
        dist = make_sample([1, 2], weights=[bad, 1]).distribution
        assert dist.values.tolist() == [2.0]
        assert dist.total_weight == 1.0
        assert dist.missing_weight == 0.0

    def test_none_weight_counts_as_one(self, make_sample):
        """A None weight falls back to 1."""
        dist = make_sample([1, 2], weights=[None, 3]).distribution
        assert dist.weights.tolist() == [1.0, 3.0]

    def test_length_mismatch_warns_and_truncates(self, make_sample):
        """Mismatched arrays warn and use the shorter length."""
        sample = make_sample([1, 2, 3], weights=[1, 1])
        with pytest.warns(DataQualityWarning, match="using the shorter length"):
            dist = sample.distribution
        assert dist.values.tolist() == [1.0, 2.0]


class TestMissingValues:
    """Test exclusion of missing and non-coercible values."""

    def test_discrete_missing(self):
        """Discrete sentinels are excluded but still count toward the total."""
        variable = VariableDefinition(measure="scale", missing={"discrete": [-9]})
        dist = WeightedSampleBuilder(variable, [1, -9, 2]).distribution
        assert dist.values.tolist() == [1.0, 2.0]
        assert dist.valid_weight == 2.0
        assert dist.total_weight == 3.0
        assert dist.missing_weight == 1.0

    def test_string_sentinel_matches_numeric_value(self):
        """A sentinel given as text still matches the number."""
        variable = VariableDefinition(measure="scale", missing={"discrete": ["99"]})
        dist = WeightedSampleBuilder(variable, [1, 99, "99"]).distribution
        assert dist.values.tolist() == [1.0]

    def test_missing_range(self):
        """Values inside the inclusive missing range are excluded."""
        variable = VariableDefinition(measure="scale", missing={"range": {"min": 90, "max": 100}})
        dist = WeightedSampleBuilder(variable, [5, 90, 95, 100, 101]).distribution
        assert dist.values.tolist() == [5.0, 101.0]
        assert dist.total_weight == 5.0

    def test_non_numeric_values_are_invalid(self, make_sample):
        """Blank cells, text and NaN are not valid numeric observations."""
        dist = make_sample([1, "", None, "abc", float("nan"), "2.5"]).distribution
        assert dist.values.tolist() == [1.0, 2.5]
        assert dist.total_weight == 6.0

    def test_nominal_labels(self, nominal_variable):
        """Nominal variables keep trimmed text labels."""
        dist = WeightedSampleBuilder(nominal_variable, ["b", " a ", "b", ""]).distribution
        assert dist.values.tolist() == ["a", "b"]
        assert dist.weights.tolist() == [1.0, 2.0]
        assert not dist.numeric
        assert dist.total_weight == 4.0

    def test_nominal_numeric_missing_code(self):
        """Numeric missing codes exclude matching labels and integer cells."""
        variable = VariableDefinition(measure="nominal", type="STRING", missing={"discrete": [9]})
        dist = WeightedSampleBuilder(variable, ["1", "2", "9", 9]).distribution
        assert dist.values.tolist() == ["1", "2"]
        assert dist.valid_weight == 2.0
        assert dist.total_weight == 4.0

    def test_nominal_float_labels(self, nominal_variable):
        """Whole floats on nominal variables label as integers."""
        dist = WeightedSampleBuilder(nominal_variable, [1.0, 2.5, "1", "a"]).distribution
        assert dist.values.tolist() == ["1", "2.5", "a"]
        assert dist.weights.tolist() == [2.0, 1.0, 1.0]

    def test_date_strings(self):
        """Date variables store SPSS seconds."""
        variable = VariableDefinition(measure="scale", type="ADATE")
        dist = WeightedSampleBuilder(variable, ["15-10-1582", "14-10-1582"]).distribution
        assert dist.values.tolist() == [0.0, 86400.0]


class TestObservations:
    """Test the per-case observation view."""

    def test_default_case_numbers(self, make_sample):
        """Case numbers default to the 1-based row index."""
        observations = make_sample([5, None, 7]).observations
        assert [o.case_number for o in observations] == [1, 3]
        assert [o.row for o in observations] == [0, 2]

    def test_supplied_case_numbers(self, make_sample):
        """Supplied case numbers are carried through."""
        observations = make_sample([5, 7], case_numbers=[101, 102]).observations
        assert [o.case_number for o in observations] == [101, 102]

    def test_sorted_observations_are_stable(self, make_sample):
        """Ties keep their input order."""
        sorted_obs = make_sample([3, 1, 3, 2]).sorted_observations
        assert [o.value for o in sorted_obs] == [1.0, 2.0, 3.0, 3.0]
        assert [o.case_number for o in sorted_obs] == [2, 4, 1, 3]

    def test_numpy_input(self, make_sample):
        """Numpy arrays are accepted as data and weights."""
        dist = make_sample(np.array([1.0, 2.0]), weights=np.array([2.0, 1.0])).distribution
        assert dist.weights.tolist() == [2.0, 1.0]
