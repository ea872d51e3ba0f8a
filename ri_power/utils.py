"""
Collection of helper methods. These should be fully generic and make no
assumptions about the experiment being simulated.
"""

import itertools
import logging
import numbers

import numpy as np


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    :param name: The name of the logger.
    :return: The logger.
    """

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    for handler in logger.handlers[::-1]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    formatter = logging.Formatter(fmt="%(asctime)s %(message)s", datefmt="%d/%m/%Y %I:%M:%S %p")
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger


def log_and_raise_error(logger: logging.Logger, message: str, exception_type: type[Exception] = ValueError) -> None:
    """
    Logs an error message and raises an exception of the specified type.

    :param message: The error message to log and raise.
    :param exception_type: The type of exception to raise (default is ValueError).
    """

    logger.error(message)
    raise exception_type(message)


def broadcast_to_groups(
    values: list[float] | float,
    n_groups: int,
    name: str,
    logger: logging.Logger,
    exception_type: type[Exception] = ValueError,
) -> list[float]:
    """
    Expand a per-group list so it has one entry per group.

    A scalar or a list of length 1 is repeated for every group; any other
    length must match ``n_groups`` exactly.
    """
    if np.isscalar(values):
        values = [values]
    values = list(values)
    if len(values) != n_groups:
        if len(values) != 1:
            log_and_raise_error(
                logger, f"{name} should be same length as the number of groups ({n_groups}) or length 1!", exception_type
            )  # noqa: E501
        values = list(itertools.repeat(values[0], n_groups))
    return values


def spawn_seeds(rng: np.random.Generator, count: int) -> list[int]:
    """
    Draw ``count`` independent integer seeds from ``rng``.

    Seeds are plain Python ints so they can be handed to worker threads or
    processes and turned into private generators there.
    """
    if count <= 0:
        return []
    seeds = rng.integers(0, 2**63 - 1, size=count, dtype=np.int64)
    return [int(s) for s in seeds]


def as_generator(rng: np.random.Generator | int | None = None) -> np.random.Generator:
    """
    Normalize a seed or generator into a ``numpy.random.Generator``.
    """
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def is_whole_number(value: object) -> bool:
    """
    True for integers and integral floats; False for booleans, strings and fractions.
    """
    if isinstance(value, bool | np.bool_):
        return False
    if isinstance(value, numbers.Integral):
        return True
    return isinstance(value, numbers.Real) and float(value).is_integer()
