"""
Exceptions raised by the sensitivity index estimator.

Configuration problems are detected when an estimator is constructed or at
the start of an estimation call, before any sample is drawn. Model
failures abort the running call. Write failures of the CoV sweep are
reported with `OutputIOFailed` and never touch the estimator.

:Authors:
 - QSobol developers
"""


class Sobol_error(Exception):
    """Base class of all estimator errors."""


class InvalidConfiguration(Sobol_error, ValueError):
    """Dimension, vector lengths or option values are not usable."""


class InsufficientSamples(InvalidConfiguration):
    """The number of Monte Carlo draws is not positive."""


class InvalidDistributionParameters(InvalidConfiguration):
    """A (mean, variance) pair is outside the support of a distribution."""


class IndexOutOfRange(Sobol_error, IndexError):
    """A parameter index or sequence coordinate is out of bounds."""


class ModelEvaluationFailed(Sobol_error, ArithmeticError):
    """The model returned a non-finite value."""


class EstimationCancelled(Sobol_error, RuntimeError):
    """An estimation call was stopped through its cancellation flag."""


class OutputIOFailed(Sobol_error, OSError):
    """The CoV sweep could not write its output file."""
