"""
Defines the model capability consumed by the estimator and a set of
reference models.

A model maps a vector of uncertain parameters and a vector of fixed
constants to a scalar output. It must be pure: no observable side
effects, deterministic for a given input, and safe to call concurrently.
Any object implementing `Model.evaluate` can be used; plain callables are
wrapped in a `Function_model` by `as_model`.

A model may additionally evaluate a whole block of parameter vectors at
once (`evaluate_block`). The default implementation loops over the rows;
vectorised models override it, which speeds up large runs considerably.

The reference models are examples for the entry point and the tests:

- `Linear_model`: additive linear model with analytic sensitivity indices.
- `Black_Scholes_call`: price of a European call option.
- `Vasicek_bond`: zero-coupon bond price in the Vasicek short-rate model,
  with the model parameters drawn on a log scale.

:Authors:
 - QSobol developers
"""
import math
import numpy as np
from scipy.stats import norm
from modules.Errors import InvalidConfiguration


class Model:
    """
    A base class for models evaluated by the estimator.
    """

    def evaluate(self, parameters, constants):
        """
        Evaluates the model for one parameter vector.

        Parameters
        ----------
        parameters : numpy.ndarray
            The ``dim`` uncertain parameters.
        constants : numpy.ndarray
            The fixed constants.

        Returns
        -------
        float
        """
        raise NotImplementedError

    def evaluate_block(self, block, constants):
        """
        Evaluates the model for every row of `block`.

        Parameters
        ----------
        block : numpy.ndarray
            Parameter vectors, shape ``(n, dim)``.
        constants : numpy.ndarray
            The fixed constants.

        Returns
        -------
        numpy.ndarray
            The ``n`` outputs.
        """
        return np.fromiter((self.evaluate(row, constants) for row in block),
                           dtype=float, count=len(block))

    def __call__(self, parameters, constants):
        return self.evaluate(parameters, constants)


class Function_model(Model):
    """
    Wraps a callable ``f(parameters, constants)`` as a model.

    Attributes
    ----------
    function : callable
        The wrapped function.
    vectorized : bool
        If True, `function` accepts a ``(n, dim)`` block and returns ``n``
        outputs.
    """

    def __init__(self, function, vectorized=False):
        if not callable(function):
            raise InvalidConfiguration(f"Model function {function!r} is not callable")
        self.function = function
        self.vectorized = vectorized

    def evaluate(self, parameters, constants):
        if self.vectorized:
            return float(np.asarray(self.function(np.atleast_2d(parameters), constants))[0])
        return float(self.function(parameters, constants))

    def evaluate_block(self, block, constants):
        if self.vectorized:
            return np.asarray(self.function(block, constants), dtype=float).reshape(len(block))
        return super().evaluate_block(block, constants)

    def __repr__(self):
        return f"Function_model({getattr(self.function, '__name__', self.function)!s})"


def as_model(model, vectorized=False):
    """
    Returns `model` as a `Model`, wrapping plain callables.

    Parameters
    ----------
    model : Model or callable
        The model.
    vectorized : bool, optional
        Passed to `Function_model` for callables, by default False.

    Returns
    -------
    Model
    """
    if isinstance(model, Model):
        return model
    return Function_model(model, vectorized=vectorized)


class Linear_model(Model):
    """
    Additive linear model ``Y = sum_i c_i p_i``.

    For independent parameters with variances ``s_i^2`` the model variance
    is ``sum_i c_i^2 s_i^2`` and the (non-normalised) first-order and total
    index of a group is the sum of ``c_i^2 s_i^2`` over the group.
    """

    def __init__(self, coefficients):
        self.coefficients = np.asarray(coefficients, dtype=float)

    def evaluate(self, parameters, constants):
        return float(np.dot(self.coefficients, parameters))

    def evaluate_block(self, block, constants):
        return np.asarray(block, dtype=float) @ self.coefficients

    def analytic_index(self, indices, variances):
        """
        Returns the analytic raw index of the group `indices`.
        """
        variances = np.asarray(variances, dtype=float)
        return float(sum(self.coefficients[j] ** 2 * variances[j] for j in indices))

    def __repr__(self):
        return f"Linear_model(coefficients={self.coefficients.tolist()})"


class Black_Scholes_call(Model):
    """
    Price of a European call option.

    Parameters are ``[spot, volatility]``; constants are
    ``[strike, rate, maturity]``.
    """

    def evaluate(self, parameters, constants):
        spot, volatility = parameters[0], parameters[1]
        strike, rate, maturity = constants[0], constants[1], constants[2]
        discount = math.exp(-rate * maturity)
        if spot <= 0:
            return 0.0
        if volatility <= 0 or maturity <= 0:
            return max(spot - strike * discount, 0.0)
        sd = volatility * math.sqrt(maturity)
        d1 = (math.log(spot / strike) + (rate + 0.5 * volatility**2) * maturity) / sd
        d2 = d1 - sd
        return float(spot * norm.cdf(d1) - strike * discount * norm.cdf(d2))


class Vasicek_bond(Model):
    """
    Zero-coupon bond price in the Vasicek short-rate model.

    Parameters are ``[log a, log b, log sigma]`` (mean reversion speed,
    long-term rate and volatility drawn on a log scale to keep them
    positive); constants are ``[r0, maturity]``.
    """

    def evaluate(self, parameters, constants):
        a, b, sigma = math.exp(parameters[0]), math.exp(parameters[1]), math.exp(parameters[2])
        r0, maturity = constants[0], constants[1]
        B = (1.0 - math.exp(-a * maturity)) / a
        log_A = (b - sigma**2 / (2.0 * a**2)) * (B - maturity) - sigma**2 * B**2 / (4.0 * a)
        return math.exp(log_A - B * r0)
