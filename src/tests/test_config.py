"""
Tests for the configuration helpers: settings post-processing, output
paths, estimator construction from settings and warning handling.

:Authors:
 - QSobol developers
"""
import os
import warnings
from types import SimpleNamespace
import pytest
from helpers.config import settings, get_output_path
from helpers.information import get_git_version, get_peak_memory_use
from helpers.utils import build_estimator, get_file_name, load_class
from helpers.warnings_custom import apply_warning_settings, custom_formatwarning
from modules.Distributions import Normal_transform, Uniform_transform
from modules.Errors import InvalidConfiguration
from modules.Models import Linear_model
from modules.Sequences import Sobol_sequence
from modules.Sobol_indices import Sobol_indices
from settings.dynaconf_hooks import clear_list, post


def test_clear_list():
    assert clear_list([0, 1]) is None
    assert clear_list([0, "CLEAR", 2, 3, "END"]) == [2, 3]
    assert clear_list(["CLEAR", "END"]) == []
    assert clear_list(["CLEAR", 0.1, 0.2]) == [0.1, 0.2]


def test_post_hook_replaces_lists(override_settings):
    override_settings("estimator.indices", [0, "CLEAR", 2, "END"])
    override_settings("sweep.cov_values", [0.1, 0.2])
    post(settings)
    assert list(settings.estimator.indices) == [2]
    assert list(settings.sweep.cov_values) == [0.1, 0.2]


def test_default_settings():
    assert settings.estimator.variance_scope in ("all", "indices")
    assert len(settings.estimator.means) == len(settings.estimator.variances)
    assert settings.sequence.name in ("halton", "sobol")


def test_output_path(override_settings, tmp_path):
    override_settings("main.output_path", str(tmp_path))
    path = get_output_path(runid=7, subfolder="settings", task="unit")
    assert path == os.path.join(str(tmp_path), "unit", "7", "settings")
    assert os.path.isdir(path)

    not_created = get_output_path(runid=8, task="unit", createfolder=False)
    assert not os.path.exists(not_created)


def test_output_path_time_stamp_is_stable(override_settings, tmp_path):
    override_settings("main.output_path", str(tmp_path))
    first = get_output_path(runid=1, task="", createfolder=False)
    second = get_output_path(runid=1, task="", createfolder=False)
    assert first == second


def test_get_file_name(override_settings, tmp_path):
    override_settings("main.output_path", str(tmp_path))
    override_settings("main.task", "files")
    filename = get_file_name("cov_sweep.dat", run_id=3)
    assert filename == os.path.join(str(tmp_path), "files", "3", "3_cov_sweep.dat")


def test_load_class():
    assert load_class("modules.Models", "Linear_model") is Linear_model
    with pytest.raises(AttributeError):
        load_class("modules.Models", "No_model")


def test_build_estimator_from_settings():
    estimator = build_estimator()
    assert isinstance(estimator, Sobol_indices)
    assert estimator.dim == len(settings.estimator.means)
    assert estimator.n_mc == settings.estimator.n_mc
    assert estimator.indices == frozenset(settings.estimator.indices)
    assert estimator.sequence.length == 2 * estimator.dim
    assert isinstance(estimator.model, Linear_model)
    assert isinstance(estimator.transform, Normal_transform)


def test_build_estimator_is_reproducible():
    assert build_estimator().sequence.permutation.tolist() == \
        build_estimator().sequence.permutation.tolist()


def test_build_estimator_with_overrides(override_settings):
    override_settings("sequence.name", "sobol")
    override_settings("distribution.name", "uniform")
    override_settings("estimator.means", [1.0, 1.0, 1.0])
    override_settings("estimator.variances", [0.1, 0.2, 0.3])
    override_settings("estimator.model_params", {"coefficients": [1.0, 1.0, 1.0]})
    override_settings("estimator.indices", [1, 2])
    estimator = build_estimator()
    assert estimator.dim == 3
    assert isinstance(estimator.sequence, Sobol_sequence)
    assert isinstance(estimator.transform, Uniform_transform)
    assert estimator.indices == frozenset({1, 2})


def test_build_estimator_rejects_unknown_names(override_settings):
    override_settings("sequence.name", "faure")
    with pytest.raises(InvalidConfiguration):
        build_estimator()



def test_custom_formatwarning():
    message = custom_formatwarning(RuntimeWarning("overflow encountered"), RuntimeWarning,
                                   "model.py", 12)
    assert message == "RuntimeWarning: overflow encountered\n"


def test_warnings_as_errors():
    debug = SimpleNamespace(output_detailed_warnings=False, output_warnings_as_errors=True,
                            warningsforerrors="UserWarning")
    with warnings.catch_warnings():
        apply_warning_settings(debug)
        with pytest.raises(UserWarning):
            warnings.warn("escalated", UserWarning)


def test_information():
    assert isinstance(get_git_version(), str)
    assert get_peak_memory_use() > 0
