"""
Estimates Sobol' sensitivity indices with the pick-and-freeze scheme.

The estimator draws two independent parameter vectors ``x1`` and ``x2`` per
Monte Carlo iteration from a quasi-random sequence, mixes them into the
arguments ``arg1`` and ``arg2`` according to the index set of interest, and
evaluates the model four times:

    f = model(x1), f2 = model(x2), m1 = model(arg1), m2 = model(arg2)

From the running sums of ``f``, ``f^2``, ``f (m1 - f2)`` and
``(f - m2)^2`` it computes the model mean and variance and the lower
(first-order) and total index of the index set. The indices are returned
raw, i.e. not divided by the model variance, unless normalisation is
requested. Evaluating ``f2`` on an independent draw instead of reusing
``f`` keeps the lower index estimate unbiased.

The four sums are associative, so a run can be split into partitions on
disjoint sub-ranges of the sequence and the partial sums merged by
addition. `Sobol_indices.estimate_parallel` uses this to spread a run over
threads or processes.

Each estimation call reserves its own range of the estimator's sequence
and works on a private copy of it; overrides of the index set or of the
variances are passed by value. Concurrent calls on one estimator therefore
neither share a cursor nor see each other's overrides.

:Authors:
 - QSobol developers
"""
import logging
import threading
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from modules.Distributions import Normal_transform
from modules.Errors import (
    EstimationCancelled,
    InsufficientSamples,
    InvalidConfiguration,
    ModelEvaluationFailed,
)
from modules.Models import as_model
from modules.Pick_freeze import assemble, index_mask, index_set
from modules.Sequences import Halton_sequence

logger = logging.getLogger("qsobol.estimator")

VARIANCE_SCOPES = ("all", "indices")
BACKENDS = ("threads", "processes")


@dataclass(frozen=True)
class Sensitivity_result:
    """
    The outcome of one estimation call.

    Attributes
    ----------
    lower_index : float
        First-order (lower) index of the index set.
    total_index : float
        Total index of the index set.
    model_variance : float
        Estimated variance of the model output.
    model_mean : float
        Estimated mean of the model output.
    n_mc : int
        Number of Monte Carlo iterations.
    normalized : bool
        Whether the indices were divided by the model variance.
    """
    lower_index: float
    total_index: float
    model_variance: float
    model_mean: float
    n_mc: int
    normalized: bool = False

    def as_tuple(self):
        return (self.lower_index, self.total_index, self.model_variance, self.model_mean)


@dataclass
class Accumulators:
    """
    Running sums of one (partial) estimation run.

    Sums of disjoint partial runs add up to the sums of the full run up to
    the order of floating point summation, i.e. to a relative tolerance of
    about 1e-9 rather than bit for bit.
    """
    f_sum: float = 0.0
    f_sq_sum: float = 0.0
    lower_sum: float = 0.0
    total_sum: float = 0.0
    count: int = 0

    def add(self, f, f2, m1, m2):
        """
        Adds the model outputs of one or more iterations.

        Parameters
        ----------
        f, f2, m1, m2 : float or numpy.ndarray
            Outputs for ``x1``, ``x2``, ``arg1`` and ``arg2``.
        """
        f = np.asarray(f, dtype=float)
        self.f_sum += float(np.sum(f))
        self.f_sq_sum += float(np.sum(f * f))
        self.lower_sum += float(np.sum(f * (np.asarray(m1) - np.asarray(f2))))
        self.total_sum += float(np.sum((f - np.asarray(m2)) ** 2))
        self.count += int(f.size)

    def __add__(self, other):
        if not isinstance(other, Accumulators):
            return NotImplemented
        return Accumulators(
            self.f_sum + other.f_sum,
            self.f_sq_sum + other.f_sq_sum,
            self.lower_sum + other.lower_sum,
            self.total_sum + other.total_sum,
            self.count + other.count,
        )

    def result(self, normalize=False):
        """
        Computes the indices from the sums.

        Parameters
        ----------
        normalize : bool, optional
            Divide both indices by the model variance, by default False.
            A non-positive variance yields NaN indices.

        Returns
        -------
        Sensitivity_result
        """
        if self.count <= 0:
            raise InsufficientSamples("No iterations accumulated")
        model_mean = self.f_sum / self.count
        model_variance = self.f_sq_sum / self.count - model_mean * model_mean
        lower_index = self.lower_sum / self.count
        total_index = self.total_sum / self.count / 2.0

        if normalize:
            if model_variance > 0:
                lower_index /= model_variance
                total_index /= model_variance
            else:
                logger.warning(f"Model variance is {model_variance}, normalised indices are undefined")
                lower_index = total_index = float("nan")

        return Sensitivity_result(lower_index, total_index, model_variance, model_mean,
                                  self.count, bool(normalize))


def accumulate_run(model, constants, mask, means, variances, transform, sequence, n,
                   batch_size, cancel=None):
    """
    Runs `n` Monte Carlo iterations on `sequence` and returns their sums.

    Iterations are processed in blocks of at most `batch_size` rows. The
    cancellation flag is checked before every block, and model outputs are
    checked before they enter the sums.

    Parameters
    ----------
    model : Model
        The model.
    constants : numpy.ndarray
        Model constants.
    mask : numpy.ndarray of bool
        Index set of interest as a parameter mask.
    means, variances : numpy.ndarray
        Distribution parameters of every parameter.
    transform : Inverse_transform
        The inverse-transform sampler.
    sequence : Quasi_random_sequence
        A sequence of length ``2 * dim`` owned by this run.
    n : int
        Number of iterations.
    batch_size : int
        Maximum number of iterations per block.
    cancel : object with ``is_set()``, optional
        Cooperative cancellation flag, e.g. a `threading.Event`.

    Returns
    -------
    Accumulators
    """
    dim = len(means)
    acc = Accumulators()
    done = 0
    while done < n:
        if cancel is not None and cancel.is_set():
            raise EstimationCancelled(f"Estimation cancelled after {done} of {n} iterations")
        size = min(batch_size, n - done)
        block = sequence.draw(size)
        x1 = transform.sample(block[:, :dim], means, variances)
        x2 = transform.sample(block[:, dim:], means, variances)
        arg1, arg2 = assemble(x1, x2, mask)

        try:
            outputs = [model.evaluate_block(args, constants) for args in (x1, x2, arg1, arg2)]
        except (ArithmeticError, ValueError) as e:
            raise ModelEvaluationFailed(
                f"Model evaluation failed in iterations {done}-{done + size - 1}: {e}") from e
        for name, values in zip(("x1", "x2", "arg1", "arg2"), outputs):
            finite = np.isfinite(values)
            if not finite.all():
                row = int(np.argmin(finite))
                raise ModelEvaluationFailed(
                    f"Model returned {values[row]} for {name} in iteration {done + row}")

        acc.add(*outputs)
        done += size
    return acc


def _run_partition(task):
    """Process pool entry point, `task` holds the arguments of `accumulate_run`."""
    return accumulate_run(*task)


class Sobol_indices:
    """
    Pick-and-freeze estimator of the Sobol' indices of a parameter group.

    Attributes
    ----------
    model : Model
        The model, borrowed from the caller.
    constants : numpy.ndarray
        Fixed model constants.
    indices : frozenset of int
        Default index set of interest (0-based).
    distro_params : numpy.ndarray
        Array of shape ``(dim, 2)`` holding mean and variance per parameter.
    dim : int
        Number of uncertain parameters.
    n_mc : int
        Number of Monte Carlo iterations per estimation call.
    cov : float
        Default coefficient of variation, only used by the CoV sweep.
    sequence : Quasi_random_sequence
        The owned quasi-random sequence of length ``2 * dim``.
    transform : Inverse_transform
        The inverse-transform sampler.
    normalize : bool
        Default for dividing the indices by the model variance.
    variance_scope : str
        ``"all"``: variance overrides replace every variance.
        ``"indices"``: overrides apply to the default index set only.
    batch_size : int
        Iterations evaluated per block.
    """

    def __init__(
        self,
        model,
        constants,
        indices,
        distro_params,
        dim,
        n_mc,
        cov=1.0,
        sequence=None,
        transform=None,
        normalize=False,
        variance_scope="all",
        batch_size=4096,
        vectorized=False,
    ):
        """
        Initialises and validates the estimator.

        Parameters
        ----------
        model : Model or callable
            ``f(parameters, constants) -> float``.
        constants : sequence of float
            Fixed model constants, e.g. strike price and interest rate.
        indices : iterable of int
            Default index set (0-based).
        distro_params : sequence of (float, float)
            ``dim`` pairs of mean and variance.
        dim : int
            Number of uncertain parameters.
        n_mc : int
            Number of Monte Carlo iterations.
        cov : float, optional
            Default coefficient of variation, by default 1.0.
        sequence : Quasi_random_sequence, optional
            Sequence of length ``2 * dim``. By default a Halton sequence
            with random start and random permutation.
        transform : Inverse_transform, optional
            Sampler, by default `Normal_transform`.
        normalize : bool, optional
            Normalise the indices by default, by default False.
        variance_scope : str, optional
            Scope of variance overrides, by default "all".
        batch_size : int, optional
            Iterations per block, by default 4096.
        vectorized : bool, optional
            A callable `model` evaluates whole blocks, by default False.
        """
        if int(dim) <= 0:
            raise InvalidConfiguration(f"Dimension must be positive, got {dim}")
        self.dim = int(dim)
        if int(n_mc) <= 0:
            raise InsufficientSamples(f"Number of Monte Carlo runs must be positive, got {n_mc}")
        self.n_mc = int(n_mc)
        if int(batch_size) <= 0:
            raise InvalidConfiguration(f"Batch size must be positive, got {batch_size}")
        self.batch_size = int(batch_size)
        if variance_scope not in VARIANCE_SCOPES:
            raise InvalidConfiguration(
                f"Unknown variance scope '{variance_scope}'. Allowed: {', '.join(VARIANCE_SCOPES)}")
        self.variance_scope = variance_scope

        self.model = as_model(model, vectorized=vectorized)
        self.constants = np.asarray(constants, dtype=float)
        self.indices = index_set(indices)
        self.default_mask = index_mask(self.indices, self.dim)

        self.distro_params = np.array(distro_params, dtype=float)
        if self.distro_params.shape != (self.dim, 2):
            raise InvalidConfiguration(
                f"Expected {self.dim} (mean, variance) pairs, got shape {self.distro_params.shape}")
        self.transform = transform if transform is not None else Normal_transform()
        self.transform.validate(self.means, self.variances)

        self.cov = cov
        self.normalize = bool(normalize)

        if sequence is None:
            sequence = Halton_sequence(2 * self.dim, random_start=True, random_permutation=True)
        if sequence.length != 2 * self.dim:
            raise InvalidConfiguration(
                f"Sequence length {sequence.length} does not match 2 * dim = {2 * self.dim}")
        self.sequence = sequence
        self._lock = threading.Lock()

    @property
    def means(self):
        return self.distro_params[:, 0]

    @property
    def variances(self):
        return self.distro_params[:, 1]

    def complement(self, indices=None):
        """
        Returns the parameters not in `indices` (default: the configured set).
        """
        if indices is None:
            indices = self.indices
        return frozenset(range(self.dim)) - index_set(indices)

    def _active_indices(self, indices):
        # an omitted or empty override falls back to the configured set
        if indices is None:
            return self.indices
        indices = index_set(indices)
        if len(indices) == 0:
            return self.indices
        return indices

    def _active_variances(self, variances):
        if variances is None:
            return self.variances.copy()
        overrides = np.array(variances, dtype=float)
        if overrides.shape != (self.dim,):
            raise InvalidConfiguration(
                f"Expected {self.dim} variances, got shape {overrides.shape}")
        self.transform.validate(self.means, overrides)
        if self.variance_scope == "indices":
            return np.where(self.default_mask, overrides, self.variances)
        return overrides

    def _reserve(self, n):
        """
        Hands out a private copy of the sequence and moves the owned
        cursor past the `n` points reserved for it.
        """
        with self._lock:
            sequence = self.sequence.spawn()
            self.sequence.fast_forward(n)
        return sequence

    def reset_sequence(self):
        """Rewinds the owned sequence to its first point."""
        with self._lock:
            self.sequence.reset()

    def accumulate(self, n, variances=None, indices=None, start=None, cancel=None):
        """
        Runs `n` iterations and returns the raw sums.

        Parameters
        ----------
        n : int
            Number of iterations.
        variances : sequence of float, optional
            Variance overrides.
        indices : iterable of int, optional
            Index set override.
        start : int, optional
            Absolute sequence position to start at. The owned cursor is
            left untouched in that case. By default the next unused range
            of the owned sequence is reserved.
        cancel : object with ``is_set()``, optional
            Cancellation flag.

        Returns
        -------
        Accumulators
        """
        if int(n) <= 0:
            raise InsufficientSamples(f"Number of iterations must be positive, got {n}")
        indices = self._active_indices(indices)
        mask = index_mask(indices, self.dim)
        active_variances = self._active_variances(variances)
        if start is None:
            sequence = self._reserve(n)
        else:
            with self._lock:
                sequence = self.sequence.spawn()
            sequence.reset()
            sequence.fast_forward(start)
        return accumulate_run(self.model, self.constants, mask, self.means, active_variances,
                              self.transform, sequence, int(n), self.batch_size, cancel)

    def estimate(self, variances=None, indices=None, normalize=None, cancel=None):
        """
        Computes the lower and total index of an index set.

        Parameters
        ----------
        variances : sequence of float, optional
            Variance overrides for this call; means are always taken from
            the configuration. By default the configured variances.
        indices : iterable of int, optional
            Index set for this call. An omitted or empty set falls back to
            the configured one.
        normalize : bool, optional
            Overrides the configured normalisation for this call.
        cancel : object with ``is_set()``, optional
            Cooperative cancellation flag, checked between blocks.

        Returns
        -------
        Sensitivity_result
        """
        if normalize is None:
            normalize = self.normalize
        indices = self._active_indices(indices)
        acc = self.accumulate(self.n_mc, variances=variances, indices=indices, cancel=cancel)
        result = acc.result(normalize)
        logger.info(f"Indices {sorted(indices)}: "
                    f"lower={result.lower_index:.6g}, total={result.total_index:.6g}, "
                    f"variance={result.model_variance:.6g}, mean={result.model_mean:.6g}")
        return result

    def estimate_parallel(self, workers, variances=None, indices=None, normalize=None,
                          backend="threads", cancel=None):
        """
        Computes the indices with the iterations split over `workers`.

        The reserved range of the sequence is cut into contiguous,
        non-overlapping partitions, one per worker. The partial sums are
        merged once all workers are done.

        Parameters
        ----------
        workers : int
            Number of workers.
        variances, indices, normalize, cancel :
            As for `estimate`. The cancellation flag is only honoured by
            the thread backend.
        backend : str, optional
            ``"threads"`` or ``"processes"``, by default "threads". The
            process backend requires a picklable model.

        Returns
        -------
        Sensitivity_result
        """
        if backend not in BACKENDS:
            raise InvalidConfiguration(f"Unknown backend '{backend}'. Allowed: {', '.join(BACKENDS)}")
        if int(workers) <= 1:
            return self.estimate(variances, indices, normalize, cancel)
        if normalize is None:
            normalize = self.normalize

        indices = self._active_indices(indices)
        mask = index_mask(indices, self.dim)
        active_variances = self._active_variances(variances)
        base = self._reserve(self.n_mc)

        sizes = [len(part) for part in np.array_split(np.arange(self.n_mc), int(workers))]
        offsets = np.concatenate(([0], np.cumsum(sizes)[:-1]))
        tasks = [
            (self.model, self.constants, mask, self.means, active_variances, self.transform,
             base.spawn(int(offset)), int(size), self.batch_size)
            for offset, size in zip(offsets, sizes) if size > 0
        ]
        logger.debug(f"Split {self.n_mc} iterations into {len(tasks)} partitions ({backend})")

        if backend == "processes":
            if cancel is not None:
                logger.warning("Cancellation is not supported by the process backend")
            with ProcessPoolExecutor(max_workers=len(tasks)) as ex:
                partials = list(ex.map(_run_partition, tasks))
        else:
            with ThreadPoolExecutor(max_workers=len(tasks)) as ex:
                partials = list(ex.map(lambda task: accumulate_run(*task, cancel=cancel), tasks))

        acc = sum(partials, Accumulators())
        result = acc.result(normalize)
        logger.info(f"Indices {sorted(indices)} "
                    f"({len(tasks)} workers): lower={result.lower_index:.6g}, "
                    f"total={result.total_index:.6g}, variance={result.model_variance:.6g}")
        return result

    def display_members(self):
        """
        Logs the configuration of the estimator at debug level.
        """
        logger.debug("Members of Sobol_indices:")
        logger.debug(f"dim: {self.dim}")
        logger.debug(f"N_MC: {self.n_mc}")
        logger.debug(f"CoV: {self.cov}")
        logger.debug(f"indices: {sorted(self.indices)}")
        logger.debug(f"distroParams: {self.distro_params.tolist()}")
        logger.debug(f"model: {self.model!r}, transform: {self.transform!r}")
        logger.debug(f"sequence: {self.sequence!r}")
        logger.debug(f"normalize: {self.normalize}, variance scope: {self.variance_scope}")
