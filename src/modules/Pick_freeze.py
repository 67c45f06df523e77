"""
Assembles the mixed model arguments of the pick-and-freeze estimator.

Given two independent base draws ``x1`` and ``x2`` and the index set of the
parameter group of interest, the first mixed argument takes the group's
values from ``x1`` and all other values from ``x2``; the second mixed
argument is its complement. The assembly is purely deterministic.

Both functions work on single parameter vectors as well as on blocks of
shape ``(n, dim)``, one draw per row.

:Authors:
 - QSobol developers
"""
import numbers
import numpy as np
from modules.Errors import IndexOutOfRange


def index_set(indices):
    """
    Converts an iterable of parameter indices into a frozenset of int.

    Integral floats such as ``2.0`` are accepted; fractional values and
    booleans are rejected rather than truncated.

    Parameters
    ----------
    indices : iterable of int
        0-based parameter indices, e.g. a set, a list or a NumPy array.

    Returns
    -------
    frozenset of int
    """
    members = set()
    for j in indices:
        if isinstance(j, (bool, np.bool_)) or not isinstance(j, numbers.Real):
            raise IndexOutOfRange(f"Parameter index {j!r} is not an integer")
        if not isinstance(j, numbers.Integral) and not float(j).is_integer():
            raise IndexOutOfRange(f"Parameter index {j!r} is not an integer")
        members.add(int(j))
    return frozenset(members)


def index_mask(indices, dim):
    """
    Converts an index set into a boolean mask over the parameters.

    Parameters
    ----------
    indices : iterable of int
        0-based parameter indices.
    dim : int
        Number of parameters.

    Returns
    -------
    numpy.ndarray
        Boolean array of length `dim`, True at the given indices.
    """
    mask = np.zeros(dim, dtype=bool)
    for j in index_set(indices):
        if not 0 <= j < dim:
            raise IndexOutOfRange(f"Parameter index {j} outside [0, {dim})")
        mask[j] = True
    return mask


def assemble(x1, x2, indices):
    """
    Builds the two mixed arguments from the base draws.

    For every parameter ``j``: if ``j`` is in `indices`,
    ``arg1[j] = x1[j]`` and ``arg2[j] = x2[j]``; otherwise
    ``arg1[j] = x2[j]`` and ``arg2[j] = x1[j]``.

    Parameters
    ----------
    x1, x2 : numpy.ndarray
        Base draws, shape ``(dim,)`` or ``(n, dim)``.
    indices : iterable of int or numpy.ndarray of bool
        The index set, or a mask as returned by `index_mask`.

    Returns
    -------
    tuple of numpy.ndarray
        ``(arg1, arg2)`` with the shape of the base draws.
    """
    x1 = np.asarray(x1, dtype=float)
    x2 = np.asarray(x2, dtype=float)
    dim = x1.shape[-1]
    if isinstance(indices, np.ndarray) and indices.dtype == bool:
        mask = indices
    else:
        mask = index_mask(indices, dim)
    arg1 = np.where(mask, x1, x2)
    arg2 = np.where(mask, x2, x1)
    return arg1, arg2
