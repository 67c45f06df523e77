"""
Defines the quasi-random (low-discrepancy) sequences feeding the estimator.

A sequence of dimension ``length`` produces points in the open unit cube
``(0, 1)^length``. The estimator requests ``length = 2 * dim`` coordinates
per Monte Carlo iteration: the first ``dim`` coordinates are used for the
first base draw, the remaining ones for the second.

Two implementations are provided:

- `Halton_sequence`: the random-start, random-permutation Halton sequence
  (RASRAP). Every coordinate is the radical inverse of a running counter
  in its own prime base. The random start shifts each counter by a random
  integer offset and the random permutation shuffles the assignment of
  prime bases to coordinates. Both are drawn once, at construction, so
  that distinct processes produce independent looking sequences while a
  single sequence keeps its low-discrepancy structure.
- `Sobol_sequence`: the Sobol' sequence of `scipy.stats.qmc`, where
  scrambling takes the role of the random start.

Points are addressed by their position in the sequence. This allows
fast-forwarding and spawning copies that cover disjoint sub-ranges of the
same sequence, which is how parallel workers split an estimation run.

:Authors:
 - QSobol developers
"""
import copy
import logging
import warnings
import numpy as np
from scipy.stats import qmc
from modules.Errors import IndexOutOfRange, InvalidConfiguration
from modules.Rng import rng_sequence_init

logger = logging.getLogger("qsobol.sequence")

MAX_START_OFFSET = 2**31


def first_primes(n):
    """
    Returns the first `n` prime numbers.

    Parameters
    ----------
    n : int
        Number of primes.

    Returns
    -------
    numpy.ndarray
        Integer array of length `n`.
    """
    primes = []
    candidate = 2
    while len(primes) < n:
        if all(candidate % p for p in primes if p * p <= candidate):
            primes.append(candidate)
        candidate += 1
    return np.array(primes, dtype=np.int64)


def radical_inverse(counters, base):
    """
    Computes the van der Corput radical inverse of non-negative integers.

    The base-`base` digits of each counter are mirrored at the radix point,
    e.g. 6 = 110 (base 2) is mapped to 0.011 (base 2) = 0.375.

    Parameters
    ----------
    counters : array_like of int
        Non-negative integers.
    base : int
        The base, usually a prime.

    Returns
    -------
    numpy.ndarray
        Values in ``[0, 1)``, zero only for a zero counter.
    """
    k = np.array(counters, dtype=np.int64)
    result = np.zeros(k.shape, dtype=float)
    factor = 1.0 / base
    while np.any(k > 0):
        result += factor * (k % base)
        k //= base
        factor /= base
    return result


class Quasi_random_sequence:
    """
    A base class for randomised low-discrepancy sequences.

    Subclasses implement `_generate`, which returns the points at a range
    of positions. Everything else (cursor handling, coordinate access,
    spawning) is shared.

    Attributes
    ----------
    length : int
        Number of coordinates per point.
    random_start : bool
        Whether the starting point was randomised.
    random_permutation : bool
        Whether the coordinates were randomly permuted.
    permutation : numpy.ndarray
        The coordinate permutation (identity if not randomised).
    position : int
        Number of points produced so far.
    point : numpy.ndarray or None
        The most recently produced point.
    """

    def __init__(self, length, random_start=True, random_permutation=True, rng=None):
        """
        Initialises the sequence and draws its randomisation.

        Parameters
        ----------
        length : int
            Number of coordinates per point, ``2 * dim`` for the estimator.
        random_start : bool, optional
            Randomise the starting point, by default True.
        random_permutation : bool, optional
            Randomise the coordinate order, by default True.
        rng : numpy.random.Generator, optional
            Source of the randomisation. A new generator seeded from the
            settings is created if needed and not given.
        """
        if int(length) <= 0:
            raise InvalidConfiguration(f"Sequence length must be positive, got {length}")
        self.length = int(length)
        self.random_start = bool(random_start)
        self.random_permutation = bool(random_permutation)
        if rng is None and (self.random_start or self.random_permutation):
            rng = rng_sequence_init(message=type(self).__name__)
        self.rng = rng
        if self.random_permutation:
            self.permutation = rng.permutation(self.length)
        else:
            self.permutation = np.arange(self.length)
        self.position = 0
        self.point = None

    def _generate(self, first, n):
        """
        Returns the `n` points at positions ``first, ..., first + n - 1``
        as an array of shape ``(n, length)``.
        """
        raise NotImplementedError

    def draw(self, n):
        """
        Advances the sequence by `n` points.

        Parameters
        ----------
        n : int
            Number of points.

        Returns
        -------
        numpy.ndarray
            Array of shape ``(n, length)``. The last row becomes the
            current point.
        """
        if n < 0:
            raise InvalidConfiguration(f"Cannot draw a negative number of points ({n})")
        block = self._generate(self.position, n)
        self.position += n
        if n > 0:
            self.point = block[-1]
        return block

    def advance(self):
        """
        Produces the next point of the sequence.

        Returns
        -------
        numpy.ndarray
            The new current point.
        """
        self.draw(1)
        return self.point

    def coordinate(self, i):
        """
        Returns coordinate `i` (1-based) of the current point.

        Parameters
        ----------
        i : int
            Coordinate index in ``[1, length]``.

        Returns
        -------
        float
        """
        if not 1 <= i <= self.length:
            raise IndexOutOfRange(f"Coordinate {i} outside [1, {self.length}]")
        if self.point is None:
            raise IndexOutOfRange("No point available, call advance() first")
        return float(self.point[i - 1])

    def fast_forward(self, n):
        """Skips `n` points."""
        if n < 0:
            raise InvalidConfiguration(f"Cannot skip a negative number of points ({n})")
        self.position += n
        self.point = None

    def reset(self):
        """Rewinds to the first point, keeping the randomisation."""
        self.position = 0
        self.point = None

    def spawn(self, offset=0):
        """
        Returns an independent copy positioned `offset` points ahead.

        The copy shares the randomisation, so a set of copies with
        non-overlapping offsets covers disjoint parts of the same sequence.

        Parameters
        ----------
        offset : int, optional
            Number of points to skip in the copy, by default 0.

        Returns
        -------
        Quasi_random_sequence
        """
        clone = copy.deepcopy(self)
        clone.fast_forward(offset)
        return clone

    def __repr__(self):
        return (f"{type(self).__name__}(length={self.length}, random_start={self.random_start}, "
                f"random_permutation={self.random_permutation}, position={self.position})")


class Halton_sequence(Quasi_random_sequence):
    """
    Random-start, random-permutation Halton sequence.

    Coordinate ``i`` of the point at position ``n`` is the radical inverse
    of ``start[i] + n`` in base ``bases[i]``.

    Attributes
    ----------
    bases : numpy.ndarray
        The prime base of every coordinate.
    start : numpy.ndarray
        Counter offset of every coordinate, at least 1 so that the all-zero
        point is never produced.
    """

    def __init__(self, length, random_start=True, random_permutation=True, rng=None):
        super().__init__(length, random_start, random_permutation, rng)
        self.bases = first_primes(self.length)[self.permutation]
        if self.random_start:
            self.start = self.rng.integers(1, MAX_START_OFFSET, size=self.length, dtype=np.int64)
        else:
            self.start = np.ones(self.length, dtype=np.int64)
        logger.debug(f"Halton bases {self.bases.tolist()}, start {self.start.tolist()}")

    def _generate(self, first, n):
        counters = np.arange(first, first + n, dtype=np.int64)
        block = np.empty((n, self.length))
        for i, base in enumerate(self.bases):
            block[:, i] = radical_inverse(self.start[i] + counters, int(base))
        return block


class Sobol_sequence(Quasi_random_sequence):
    """
    Sobol' sequence backed by `scipy.stats.qmc.Sobol`.

    With `random_start` the points are scrambled (Owen scrambling with a
    random digital shift). Without it the leading all-zero point is
    skipped. The optional permutation reorders the columns.
    """

    def __init__(self, length, random_start=True, random_permutation=True, rng=None):
        super().__init__(length, random_start, random_permutation, rng)
        self.engine = qmc.Sobol(d=self.length, scramble=self.random_start,
                                seed=self.rng if self.random_start else None)
        self.skip = 0 if self.random_start else 1
        if self.skip:
            self.engine.fast_forward(self.skip)
        self.engine_position = 0

    def _generate(self, first, n):
        if self.engine_position != first:
            self.engine.reset()
            self.engine.fast_forward(first + self.skip)
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", message="The balance properties of Sobol")
            block = self.engine.random(n)
        self.engine_position = first + n
        return block[:, self.permutation]


SEQUENCES = {
    "halton": Halton_sequence,
    "sobol": Sobol_sequence,
}


def get_sequence(name, length, random_start=True, random_permutation=True, rng=None):
    """
    Creates a sequence by name.

    Parameters
    ----------
    name : str
        ``"halton"`` or ``"sobol"``.
    length : int
        Number of coordinates per point.
    random_start, random_permutation : bool, optional
        Randomisation switches.
    rng : numpy.random.Generator, optional
        Source of the randomisation.

    Returns
    -------
    Quasi_random_sequence
    """
    key = str(name).lower().strip()
    if key not in SEQUENCES:
        raise InvalidConfiguration(f"Unknown sequence '{name}'. Allowed: {', '.join(SEQUENCES)}")
    return SEQUENCES[key](length, random_start, random_permutation, rng)
