"""Custom warning classes for the explore_statistics package.

These warning classes allow users to programmatically filter, suppress,
or capture warnings using Python's standard ``warnings`` module.

Example:
    Silence the hinge approximation notice in a batch run::

        import warnings
        from explore_statistics._warnings import ApproximationWarning

        warnings.filterwarnings("ignore", category=ApproximationWarning)

    Capture data-quality warnings while building a distribution::

        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always", DataQualityWarning)
            # ... run an Explore analysis ...
            issues = [x for x in w if issubclass(x.category, DataQualityWarning)]
"""


class ExploreStatisticsWarning(UserWarning):
    """Base class for all explore_statistics warnings."""


class DataQualityWarning(ExploreStatisticsWarning):
    """Input data anomalies that do not stop a calculation.

    Raised when the observation and weight arrays have different lengths
    (iteration truncates to the shorter one) or other caller-side
    inconsistencies are detected.
    """


class ApproximationWarning(ExploreStatisticsWarning):
    """A statistic was produced by a known approximation.

    Raised when Tukey hinges are derived from non-integer case weights,
    which are replicated ``round(weight)`` times to build the rank order.
    """
