"""
A collection of miscellaneous utility functions for the project.

This module provides helpers that turn configuration settings into objects
(dynamic class loading, estimator construction) and that generate
standardised file names for output data and images.

:Authors:
 - QSobol developers
"""
import importlib
import logging
import os
from helpers.config import settings, get_output_path
from modules.Distributions import get_transform
from modules.Rng import rng_sequence_init
from modules.Sequences import get_sequence
from modules.Sobol_indices import Sobol_indices

logger = logging.getLogger("qsobol.util")


def load_class(module_name, class_name):
    """
    This function imports a module by its string name and then retrieves a
    class from that module, also by its string name. This allows for flexible
    instantiation of models based on configuration settings.

    Parameters
    ----------
    module_name : str
        The name of the module to import.
    class_name : str
        The name of the class to retrieve from the module.

    Returns
    -------
    class
        The requested class object.
    """
    module = importlib.import_module(module_name)
    class_ = getattr(module, class_name)
    return class_


def get_file_name(filename, run_id=None):
    """
    Prefixes a file name with the run ID and places it in the run's output
    folder.

    Parameters
    ----------
    filename : str
        Base file name, e.g. ``cov_sweep.dat``.
    run_id : int, optional
        The ID of the run. If not provided, the `run_id` from the global
        settings is used.

    Returns
    -------
    str
        The absolute path of the file.
    """
    run_id = run_id if run_id is not None else settings.main.run_id
    return os.path.join(get_output_path(runid=run_id), f"{run_id}_{filename}")


def build_estimator(config=None):
    """
    Creates an estimator from the settings.

    Parameters
    ----------
    config : Dynaconf, optional
        Settings object, by default the global settings.

    Returns
    -------
    Sobol_indices
    """
    if config is None:
        config = settings
    est = config.estimator
    dim = len(est.means)

    model_class = load_class("modules.Models", est.model)
    model = model_class(**dict(est.get("model_params", {}) or {}))
    sequence = get_sequence(
        config.sequence.name,
        2 * dim,
        random_start=config.sequence.random_start,
        random_permutation=config.sequence.random_permutation,
        rng=rng_sequence_init(seed=config.get("seeds.sequence_init", None), message="build_estimator"),
    )
    logger.info(f"Build estimator for {model!r} with {type(sequence).__name__}, dim={dim}")
    return Sobol_indices(
        model=model,
        constants=list(est.constants),
        indices=list(est.indices),
        distro_params=list(zip(est.means, est.variances)),
        dim=dim,
        n_mc=est.n_mc,
        cov=est.cov,
        sequence=sequence,
        transform=get_transform(config.distribution.name),
        normalize=est.normalize,
        variance_scope=est.variance_scope,
        batch_size=est.batch_size,
        vectorized=est.get("vectorized", False),
    )
