"""
Tests for the CoV sweep and its plot.

The estimator uses four parameters with mean 1 and the additive model
``0.1 * (p1 + p2 + p3 + p4)``. For a coefficient of variation ``c`` every
parameter has the variance ``c^2`` and contributes ``0.01 c^2`` to the
model variance.

:Authors:
 - QSobol developers
"""
import os
import numpy as np
import pandas as pd
import pytest
from modules.Cov_sweep import COLUMNS, cov_variances, plot_cov, read_sweep, sweep_cov, write_sweep
from modules.Errors import InvalidConfiguration, OutputIOFailed
from plotting import Plots
from plotting.Plots import plot_sweep

COV_VALUES = [0.1, 0.5, 1.0]


@pytest.fixture
def sweep_estimator(make_estimator):
    return make_estimator(distro_params=[(1.0, 1.0)] * 4, n_mc=20000)


def test_cov_variances():
    assert cov_variances([1.0, 2.0, -3.0], 0.5) == pytest.approx([0.25, 1.0, 2.25])
    assert cov_variances([1.0, 2.0], 0.0).tolist() == [0.0, 0.0]
    with pytest.raises(InvalidConfiguration):
        cov_variances([1.0], -0.1)


def test_sweep_rows(sweep_estimator):
    results = sweep_cov(sweep_estimator, COV_VALUES)
    assert list(results.columns) == COLUMNS
    assert results["CoV"].tolist() == COV_VALUES
    for cov, row in zip(COV_VALUES, results.itertuples(index=False)):
        assert row.total_index == pytest.approx(0.01 * cov**2, rel=0.1)
        assert row.lower_index_complement == pytest.approx(0.03 * cov**2, rel=0.15)
        assert row.model_variance == pytest.approx(0.04 * cov**2, rel=0.05)


def test_sweep_leaves_configuration_unchanged(sweep_estimator):
    sweep_cov(sweep_estimator, COV_VALUES)
    assert sweep_estimator.variances.tolist() == [1.0, 1.0, 1.0, 1.0]
    assert sweep_estimator.means.tolist() == [1.0, 1.0, 1.0, 1.0]
    assert sweep_estimator.indices == frozenset({0})


def test_sweep_with_zero_cov(sweep_estimator):
    results = sweep_cov(sweep_estimator, [0.0])
    row = results.iloc[0]
    assert row["total_index"] == 0.0
    assert row["lower_index_complement"] == 0.0
    assert row["model_variance"] == pytest.approx(0.0, abs=1e-12)


def test_sweep_in_parallel(make_estimator):
    sequential = sweep_cov(make_estimator(distro_params=[(1.0, 1.0)] * 4), COV_VALUES)
    parallel = sweep_cov(make_estimator(distro_params=[(1.0, 1.0)] * 4), COV_VALUES, workers=3)
    assert np.allclose(parallel.to_numpy(), sequential.to_numpy(), rtol=1e-9, atol=1e-12)


def test_sweep_with_indices_scope(make_estimator):
    """
    Tests that only the variance of the index set follows the CoV.
    """
    estimator = make_estimator(distro_params=[(1.0, 1.0)] * 4, variance_scope="indices",
                               n_mc=20000)
    results = sweep_cov(estimator, [0.5])
    assert results["total_index"].iloc[0] == pytest.approx(0.0025, rel=0.1)
    assert results["lower_index_complement"].iloc[0] == pytest.approx(0.03, rel=0.1)
    assert results["model_variance"].iloc[0] == pytest.approx(0.0325, rel=0.05)


def test_write_and_read_sweep(tmp_path):
    results = pd.DataFrame([(0.1, 0.0001, 0.0003, 0.0004), (0.5, 0.0025, 0.0075, 0.01)],
                           columns=COLUMNS)
    filename = tmp_path / "sweep.dat"
    write_sweep(results, str(filename))

    lines = filename.read_text().splitlines()
    assert len(lines) == 2
    assert [float(v) for v in lines[1].split(" ")] == [0.5, 0.0025, 0.0075, 0.01]
    pd.testing.assert_frame_equal(read_sweep(str(filename)), results)


def test_write_sweep_to_missing_folder(tmp_path):
    results = pd.DataFrame([(0.1, 0.0, 0.0, 0.0)], columns=COLUMNS)
    with pytest.raises(OutputIOFailed):
        write_sweep(results, str(tmp_path / "missing" / "sweep.dat"))


def test_plot_cov_writes_file(sweep_estimator, tmp_path):
    filename = str(tmp_path / "sweep.dat")
    results = plot_cov(sweep_estimator, [0.2, 0.4], filename)
    assert os.path.isfile(filename)
    assert len(read_sweep(filename)) == 2
    assert results["CoV"].tolist() == [0.2, 0.4]


def test_plot_sweep_image(tmp_path):
    results = pd.DataFrame([(0.1, 0.0001, 0.0003, 0.0004), (0.5, 0.0025, 0.0075, 0.01)],
                           columns=COLUMNS)
    datafile = tmp_path / "sweep.dat"
    write_sweep(results, str(datafile))

    image = plot_sweep(str(datafile), str(tmp_path / "sweep.png"), title="CoV sweep")
    assert os.path.getsize(image) > 0
    with open(image, "rb") as f:
        assert f.read(4) == b"\x89PNG"


@pytest.mark.parametrize("normalized,label", [
    (False, "Sobol' index (raw)"),
    (True, "Sobol' index (normalised)"),
])
def test_plot_sweep_axis_label(tmp_path, monkeypatch, normalized, label):
    figures = []
    monkeypatch.setattr(Plots.plt, "close", figures.append)
    results = pd.DataFrame([(0.1, 0.1, 0.3, 0.0004)], columns=COLUMNS)
    plot_sweep(results, str(tmp_path / "sweep.png"), normalized=normalized)
    assert figures[0].axes[0].get_ylabel() == label
    monkeypatch.undo()
    Plots.plt.close(figures[0])
