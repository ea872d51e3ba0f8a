"""
Randomization inference under the sharp null hypothesis.

Outcomes are held fixed and only the assignment of labels to units is
re-randomized, so every permuted assignment keeps the original arm counts.
"""

import itertools
import math

import numpy as np

from .exceptions import InsufficientPermutations, InvalidParameters
from .results import TestResult
from .statistics import Statistic, check_alternative, difference_in_means, evaluate_many
from .utils import get_logger, is_whole_number, log_and_raise_error

logger = get_logger("Randomization Inference")

# relative tolerance when comparing permuted statistics with the observed one
_TIE_TOLERANCE = 1e-10

# upper bound on label cells materialized at once
_MAX_BATCH_CELLS = 2**22


def permute(labels: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """
    Uniformly random re-ordering of ``labels``.
    """
    return rng.permutation(np.asarray(labels))


def permute_many(labels: np.ndarray, count: int, rng: np.random.Generator) -> np.ndarray:
    """
    ``count`` independent uniform re-orderings of ``labels``, one per row.
    """
    labels = np.asarray(labels)
    return rng.permuted(np.tile(labels, (count, 1)), axis=1)


def check_permutation_count(permutation_count: int) -> int:
    if not is_whole_number(permutation_count):
        log_and_raise_error(
            logger, f"permutation_count must be an integer, got {permutation_count!r}", InvalidParameters
        )  # noqa: E501
    if permutation_count < 1:
        log_and_raise_error(
            logger, f"permutation_count must be at least 1, got {permutation_count}", InsufficientPermutations
        )  # noqa: E501
    return int(permutation_count)


def _batch_size(n_units: int) -> int:
    return max(1, _MAX_BATCH_CELLS // max(1, n_units))


def count_extreme(reference: np.ndarray, observed: float, alternative: str = "two-tailed") -> int:
    """
    Number of reference values at least as extreme as ``observed``.
    """
    reference = np.asarray(reference, dtype=float)
    tol = _TIE_TOLERANCE * max(1.0, abs(observed))
    if alternative == "two-tailed":
        extreme = np.abs(reference) >= abs(observed) - tol
    elif alternative == "greater":
        extreme = reference >= observed - tol
    else:
        extreme = reference <= observed + tol
    return int(np.sum(extreme))


def reference_distribution(
    outcomes: np.ndarray,
    labels: np.ndarray,
    rng: np.random.Generator,
    permutation_count: int = 200,
    statistic: Statistic = difference_in_means,
) -> np.ndarray:
    """
    Test statistics of ``permutation_count`` permuted assignments paired with
    the unpermuted outcome vector.
    """
    permutation_count = check_permutation_count(permutation_count)
    outcomes = np.asarray(outcomes, dtype=float)
    batch = _batch_size(outcomes.size)

    parts = []
    remaining = permutation_count
    while remaining > 0:
        size = min(batch, remaining)
        parts.append(evaluate_many(statistic, outcomes, permute_many(labels, size, rng)))
        remaining -= size
    return np.concatenate(parts)


def randomization_test(
    outcomes: np.ndarray,
    labels: np.ndarray,
    rng: np.random.Generator,
    permutation_count: int = 200,
    statistic: Statistic = difference_in_means,
    alternative: str = "two-tailed",
) -> TestResult:
    """
    Monte-Carlo randomization inference p-value.

    The observed statistic is counted as a member of its own reference set,
    so the p-value is ``(1 + #extreme) / (permutation_count + 1)`` and never
    falls below ``1 / (permutation_count + 1)``.

    Parameters
    ----------
    outcomes : np.ndarray
        Outcome per unit.
    labels : np.ndarray
        Binary assignment per unit, 1 for treatment and 0 for control.
    rng : numpy.random.Generator
        Source of randomness for the permutations.
    permutation_count : int
        Number of permuted assignments in the reference distribution.
    statistic : callable
        Contrast ``statistic(outcomes, labels) -> float``.
    alternative : str
        'two-tailed', 'greater' or 'smaller'.

    Returns
    -------
    TestResult
    """
    alternative = check_alternative(alternative)
    permutation_count = check_permutation_count(permutation_count)

    observed = float(statistic(outcomes, labels))
    reference = reference_distribution(outcomes, labels, rng, permutation_count, statistic)
    p_value = (1 + count_extreme(reference, observed, alternative)) / (permutation_count + 1)
    return TestResult(statistic=observed, p_value=p_value)


def exact_randomization_test(
    outcomes: np.ndarray,
    labels: np.ndarray,
    statistic: Statistic = difference_in_means,
    alternative: str = "two-tailed",
    max_assignments: int = 1_000_000,
) -> TestResult:
    """
    Exact permutation p-value by enumerating every two-arm assignment.

    Every choice of treated units with the observed treated count is visited
    once; the observed assignment is one of them.
    """
    alternative = check_alternative(alternative)
    outcomes = np.asarray(outcomes, dtype=float)
    labels = np.asarray(labels)
    n = labels.size
    n_treated = int(np.sum(labels == 1))

    total = math.comb(n, n_treated)
    if total > max_assignments:
        log_and_raise_error(
            logger,
            f"{total} assignments exceed max_assignments={max_assignments}; use randomization_test instead",
            InvalidParameters,
        )

    observed = float(statistic(outcomes, labels))
    treated_sets = itertools.combinations(range(n), n_treated)
    batch = _batch_size(n)
    extreme = 0
    while True:
        chunk = list(itertools.islice(treated_sets, batch))
        if not chunk:
            break
        matrix = np.zeros((len(chunk), n), dtype=int)
        rows = np.repeat(np.arange(len(chunk)), n_treated)
        matrix[rows, np.asarray(chunk).ravel()] = 1
        extreme += count_extreme(evaluate_many(statistic, outcomes, matrix), observed, alternative)

    return TestResult(statistic=observed, p_value=extreme / total)
