"""
Pytest fixtures and configuration for testing the sensitivity estimator.

This file defines shared fixtures for the test suite. Estimators created by
the fixtures use a Halton sequence without random start and without
random permutation, so that every run is reproducible and the expected
values do not depend on a seed.

The `override_settings` fixture changes global settings for a single test
and restores them afterwards, so that tests do not interfere with one
another.

:Authors:
 - QSobol developers
"""
import os
import sys

current_dir = os.path.dirname(os.path.abspath(__file__))
src_dir = os.path.dirname(current_dir)
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

from dotenv import load_dotenv
load_dotenv()
from helpers.config import settings
import pytest
from modules.Models import Linear_model
from modules.Sequences import Halton_sequence
from modules.Sobol_indices import Sobol_indices


@pytest.fixture
def linear_model():
    """
    Provides the additive model ``0.1 * (p1 + p2 + p3 + p4)``.
    """
    return Linear_model([0.1, 0.1, 0.1, 0.1])


@pytest.fixture
def standard_params():
    """
    Provides four standard normal parameters as (mean, variance) pairs.
    """
    return [(0.0, 1.0)] * 4


@pytest.fixture
def make_estimator(linear_model, standard_params):
    """
    Provides a factory for estimators with a deterministic Halton sequence.

    Keyword arguments override the defaults (linear model, four standard
    normal parameters, index set ``{0}``, 4000 iterations).

    Returns
    -------
    callable
        Factory returning a new `Sobol_indices` instance.
    """
    def factory(**kwargs):
        config = dict(
            model=linear_model,
            constants=[],
            indices={0},
            distro_params=standard_params,
            dim=4,
            n_mc=4000,
        )
        config.update(kwargs)
        if "sequence" not in config:
            config["sequence"] = Halton_sequence(2 * config["dim"], random_start=False,
                                                 random_permutation=False)
        return Sobol_indices(**config)
    return factory


@pytest.fixture
def override_settings():
    """
    Provides a setter for global settings that restores the previous
    values after the test.
    """
    previous = {}

    def setter(key, value):
        if key not in previous:
            previous[key] = settings.get(key)
        settings.set(key, value, merge=False)

    yield setter

    for key, value in previous.items():
        settings.set(key, value, merge=False)
