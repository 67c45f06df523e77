"""
Main execution script for sensitivity index estimation.

The script builds an estimator from the settings (see
``settings/settings.toml``) and, depending on ``settings.main.mode``,

- ``estimate``: computes the lower and total index of the configured index
  set once and logs the result, or
- ``sweep``: runs the CoV sweep over ``settings.sweep.cov_values``, writes
  the result rows to the run's output folder and optionally plots them.

Every setting can be overridden through ``QSOBOL_*`` environment variables
or a ``.env`` file, e.g. ``QSOBOL_MAIN__MODE=sweep``.

:Authors:
 - QSobol developers
"""
import logging
import time
from dotenv import load_dotenv
load_dotenv()

from helpers.config import (
    settings,
    config_logging,
    output_conf,
    )
from helpers.information import get_peak_memory_use
from helpers.utils import build_estimator, get_file_name
from modules.Cov_sweep import plot_cov
from modules.Errors import OutputIOFailed
from plotting.Plots import plot_sweep
import helpers.warnings_custom

logger = logging.getLogger("qsobol")


def run(mode=None):
    """
    Runs an estimation or a CoV sweep as configured.

    Parameters
    ----------
    mode : str, optional
        ``"estimate"`` or ``"sweep"``, by default `settings.main.mode`.

    Returns
    -------
    Sensitivity_result or pandas.DataFrame or None
        The estimation result, the sweep results, or None if the sweep
        file could not be written.
    """
    if mode is None:
        mode = settings.main.mode

    estimator = build_estimator()
    if settings.output.log_members:
        estimator.display_members()

    workers = settings.estimator.workers
    backend = settings.estimator.backend
    start = time.perf_counter()

    if mode == "estimate":
        result = estimator.estimate_parallel(workers, backend=backend)
        logger.info(f"Lower index: {result.lower_index}")
        logger.info(f"Total index: {result.total_index}")
        logger.info(f"Model variance: {result.model_variance}")
        logger.info(f"Model mean: {result.model_mean}")
    elif mode == "sweep":
        filename = get_file_name(settings.sweep.filename)
        try:
            result = plot_cov(estimator, list(settings.sweep.cov_values), filename,
                              workers=workers, backend=backend)
        except OutputIOFailed as e:
            logger.error(f"CoV sweep results were not saved: {e}")
            return None
        if settings.sweep.plot:
            plot_sweep(result, get_file_name(settings.sweep.plot_filename),
                       normalized=estimator.normalize)
    else:
        raise ValueError(f"Unknown mode '{mode}'. Allowed: estimate, sweep")

    logger.info(f"Finished in {time.perf_counter() - start:.1f} s, "
                f"peak memory {get_peak_memory_use():.1f} MB")
    return result


def main():
    config_logging()
    if settings.output.output_settings:
        output_conf()
    run()


if __name__ == "__main__":
    main()
