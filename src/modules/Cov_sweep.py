"""
Sweeps the coefficient of variation (CoV) of the model parameters.

For every CoV in a list, the variance of each parameter is set to
``(mean * CoV)^2`` and passed to the estimator as a variance override.
Whether the override applies to all parameters or only to the configured
index set is decided by the estimator's ``variance_scope``. For each CoV
the sweep records

- the total index of the configured index set,
- the lower index of its complement,
- the model variance,

and writes one space-separated row ``CoV total lower variance`` per CoV to
a file. The estimator's configuration is never modified.

:Authors:
 - QSobol developers
"""
import logging
import numpy as np
import pandas as pd
from modules.Errors import InvalidConfiguration, OutputIOFailed

logger = logging.getLogger("qsobol.sweep")

COLUMNS = ["CoV", "total_index", "lower_index_complement", "model_variance"]


def cov_variances(means, cov):
    """
    Returns the variances ``(mean * cov)^2`` for a coefficient of variation.

    Parameters
    ----------
    means : sequence of float
        Parameter means.
    cov : float
        Coefficient of variation, non-negative.

    Returns
    -------
    numpy.ndarray
    """
    if cov < 0:
        raise InvalidConfiguration(f"Coefficient of variation must be non-negative, got {cov}")
    return (np.asarray(means, dtype=float) * cov) ** 2


def sweep_cov(estimator, cov_values, workers=1, backend="threads"):
    """
    Runs the estimator for every CoV.

    Parameters
    ----------
    estimator : Sobol_indices
        The configured estimator.
    cov_values : sequence of float
        The coefficients of variation.
    workers : int, optional
        Workers per estimation call, by default 1.
    backend : str, optional
        Parallel backend, by default "threads".

    Returns
    -------
    pandas.DataFrame
        One row per CoV with the columns in `COLUMNS`.
    """
    complement = estimator.complement()
    if not complement:
        logger.warning("The index set covers all parameters; its complement falls back to the index set")

    rows = []
    for cov in cov_values:
        variances = cov_variances(estimator.means, cov)
        own = estimator.estimate_parallel(workers, variances=variances, backend=backend)
        other = estimator.estimate_parallel(workers, variances=variances, indices=complement,
                                            backend=backend)
        rows.append((float(cov), own.total_index, other.lower_index, own.model_variance))
        logger.info(f"CoV {cov}: total={own.total_index:.6g}, "
                    f"complement lower={other.lower_index:.6g}, variance={own.model_variance:.6g}")
    return pd.DataFrame(rows, columns=COLUMNS)


def write_sweep(results, filename):
    """
    Writes the sweep results, one space-separated row per CoV.

    Parameters
    ----------
    results : pandas.DataFrame
        As returned by `sweep_cov`.
    filename : str
        Target path.
    """
    try:
        results.to_csv(filename, sep=" ", header=False, index=False)
    except OSError as e:
        logger.error(f"Unable to write CoV sweep file {filename}: {e}")
        raise OutputIOFailed(f"Unable to write CoV sweep file {filename}") from e
    logger.info(f"CoV sweep written to {filename}")


def read_sweep(filename):
    """
    Reads a file written by `write_sweep`.

    Returns
    -------
    pandas.DataFrame
    """
    return pd.read_csv(filename, sep=" ", header=None, names=COLUMNS)


def plot_cov(estimator, cov_values, filename, workers=1, backend="threads"):
    """
    Runs the CoV sweep and writes its results to `filename`.

    Parameters
    ----------
    estimator : Sobol_indices
        The configured estimator.
    cov_values : sequence of float
        The coefficients of variation.
    filename : str
        Target path of the result file.
    workers : int, optional
        Workers per estimation call, by default 1.
    backend : str, optional
        Parallel backend, by default "threads".

    Returns
    -------
    pandas.DataFrame
        The sweep results.
    """
    results = sweep_cov(estimator, cov_values, workers=workers, backend=backend)
    write_sweep(results, filename)
    return results
