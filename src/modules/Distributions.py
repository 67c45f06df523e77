"""
Inverse-transform samplers mapping uniform draws into parameter distributions.

Every parameter of a model is described by the mean and the variance of
its distribution. A sampler applies the inverse cumulative distribution
function (quantile function) of the target distribution to a uniform value
in ``(0, 1)``. The samplers are pure: the same ``(u, mean, variance)``
always yields the same value, which keeps estimation runs reproducible for
a fixed quasi-random sequence.

All samplers accept scalars as well as NumPy arrays and broadcast over
their arguments. A zero variance makes the parameter deterministic: the
sample equals the mean regardless of ``u``.

:Authors:
 - QSobol developers
"""
import numpy as np
from scipy.stats import norm
from modules.Errors import InvalidConfiguration, InvalidDistributionParameters


class Inverse_transform:
    """
    A base class for inverse-transform samplers parameterised by mean and
    variance.

    Subclasses implement `_quantile`, which only ever sees strictly
    positive variances.
    """

    name = None

    def sample(self, u, mean, variance):
        """
        Transforms uniform values into samples of the distribution.

        Parameters
        ----------
        u : float or numpy.ndarray
            Uniform values in ``(0, 1)``.
        mean : float or numpy.ndarray
            Mean of the target distribution.
        variance : float or numpy.ndarray
            Variance of the target distribution, non-negative.

        Returns
        -------
        float or numpy.ndarray
            The samples, with the broadcast shape of the arguments.
        """
        u = np.asarray(u, dtype=float)
        mean = np.asarray(mean, dtype=float)
        variance = np.asarray(variance, dtype=float)
        self.validate(mean, variance)

        fixed = variance == 0
        # placeholder variance keeps the quantile defined for fixed parameters
        safe_variance = np.where(fixed, 1.0, variance)
        safe_mean = np.where(fixed, self.placeholder_mean(mean), mean)
        values = np.where(fixed, mean, self._quantile(u, safe_mean, safe_variance))
        if values.ndim == 0:
            return float(values)
        return values

    def __call__(self, u, mean, variance):
        return self.sample(u, mean, variance)

    def validate(self, mean, variance):
        """
        Raises `InvalidDistributionParameters` for unusable parameters.
        """
        if np.any(np.isnan(variance)) or np.any(variance < 0):
            raise InvalidDistributionParameters(
                f"Variance must be non-negative, got {variance}")
        if np.any(~np.isfinite(mean)):
            raise InvalidDistributionParameters(f"Mean must be finite, got {mean}")

    def placeholder_mean(self, mean):
        return mean

    def _quantile(self, u, mean, variance):
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"


class Normal_transform(Inverse_transform):
    """
    Normal distribution, ``mean + sqrt(variance) * Phi^-1(u)``.
    """

    name = "normal"

    def _quantile(self, u, mean, variance):
        return mean + np.sqrt(variance) * norm.ppf(u)


class Lognormal_transform(Inverse_transform):
    """
    Log-normal distribution given the mean and variance of the variable
    itself (not of its logarithm).

    With ``s2 = log(1 + variance / mean^2)`` and
    ``mu = log(mean) - s2 / 2`` the sample is ``exp(mu + sqrt(s2) * Phi^-1(u))``.
    The mean must be positive unless the variance is zero.
    """

    name = "lognormal"

    def validate(self, mean, variance):
        super().validate(mean, variance)
        if np.any((mean <= 0) & (variance > 0)):
            raise InvalidDistributionParameters(
                f"Log-normal parameters need a positive mean, got {mean}")

    def placeholder_mean(self, mean):
        return np.where(mean > 0, mean, 1.0)

    def _quantile(self, u, mean, variance):
        s2 = np.log1p(variance / mean**2)
        mu = np.log(mean) - 0.5 * s2
        return np.exp(mu + np.sqrt(s2) * norm.ppf(u))


class Uniform_transform(Inverse_transform):
    """
    Uniform distribution on ``[mean - a, mean + a]`` with ``a = sqrt(3 variance)``.
    """

    name = "uniform"

    def _quantile(self, u, mean, variance):
        half_width = np.sqrt(3.0 * variance)
        return mean - half_width + 2.0 * half_width * u


TRANSFORMS = {
    cls.name: cls for cls in (Normal_transform, Lognormal_transform, Uniform_transform)
}


def get_transform(name):
    """
    Creates a sampler by name.

    Parameters
    ----------
    name : str
        ``"normal"``, ``"lognormal"`` or ``"uniform"``.

    Returns
    -------
    Inverse_transform
    """
    key = str(name).lower().strip()
    if key not in TRANSFORMS:
        raise InvalidConfiguration(
            f"Unknown distribution '{name}'. Allowed: {', '.join(TRANSFORMS)}")
    return TRANSFORMS[key]()
