"""
Manages random number generation to ensure estimator reproducibility.

The quasi-random sequences are deterministic; only their randomisation
(random start offsets and coordinate permutation) consumes pseudo-random
numbers. This module provides the seeded NumPy `Generator` instances used
for that purpose.

Unlike a process-wide singleton, every call returns a fresh generator so
that each estimator (and each worker of a parallel run) owns its stream.
The module also includes an optional debugging utility to log the call
stack each time a stream is created.

:Authors:
 - QSobol developers
"""
import numpy as np
import os
import inspect
import traceback
import logging
from helpers.config import settings

logger = logging.getLogger("qsobol.rng")

counter = 0


def rng_sequence_init(seed=None, message: str = ""):
    """
    Provides a new RNG instance for the randomisation of a sequence.

    Parameters
    ----------
    seed : int, optional
        Seed of the generator. If None, `settings.seeds.sequence_init` is
        used; if that is None too, fresh OS entropy is used.
    message : str, optional
        A message to include in the stack trace log for debugging context,
        by default "".

    Returns
    -------
    numpy.random.Generator
        A newly seeded generator.
    """
    if seed is None:
        seed = settings.get("seeds.sequence_init", None)
    print_stacktrace(name="sequence_init", message=message)
    logger.debug(f"Create sequence RNG with seed {seed}")
    return np.random.default_rng(seed=seed)



def print_stacktrace(name="", message: str = ""):
    """
    Log the current call stack to a file for debugging.
    When enabled via `settings.output.randomstreaminvocations`, this function
    records the sequence of function calls that led to the creation of a
    random stream.

    Parameters
    ----------
    name : str, optional
        The prefix for the log file's name, by default "".
    message : str, optional
        A contextual message to include in the log entry, by default "".
    """
    if settings.get("output.randomstreaminvocations", False):
        folder = settings.output.randomstreaminvocations_folder
        os.makedirs(folder, exist_ok=True)
        global counter
        counter += 1
        with open(os.path.join(folder, name + ".txt"), "a") as f:
            print(f"<------- {counter:7d} > " + message, file=f)
            stack = inspect.stack()
            traceback.print_stack(
                limit=-(len(stack) - settings.output.get("randomstream_cutentries", 0)), file=f
            )
            print("-------> ", file=f)
