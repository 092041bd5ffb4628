"""Pytest configuration and shared fixtures."""

import pytest

from explore_statistics.config import VariableDefinition
from explore_statistics.weighted_sample import WeightedSampleBuilder


@pytest.fixture
def scale_variable():
    """Return a scale variable without missing values."""
    return VariableDefinition(name="score", measure="scale")


@pytest.fixture
def nominal_variable():
    """Return a nominal string variable."""
    return VariableDefinition(name="region", measure="nominal", type="STRING")


@pytest.fixture
def make_sample(scale_variable):
    """Return a factory building a sample of the scale variable."""

    def _make(data, weights=None, case_numbers=None, variable=None):
        return WeightedSampleBuilder(variable or scale_variable, data, weights, case_numbers)

    return _make


@pytest.fixture
def five_values(make_sample):
    """Return the unweighted sample [2, 4, 6, 8, 10]."""
    return make_sample([2, 4, 6, 8, 10])
