"""
Test statistics contrasting a treatment arm (label 1) against a control arm (label 0).

Built-in statistics accept either a 1-D label vector or a 2-D matrix with one
assignment per row, in which case they return one value per row.
"""

from collections.abc import Callable

import numpy as np

from .exceptions import DegenerateSample, InvalidParameters
from .utils import get_logger, log_and_raise_error

logger = get_logger("Test Statistic")

Statistic = Callable[[np.ndarray, np.ndarray], float]


def _arm_mean(outcomes: np.ndarray, labels: np.ndarray, code: int) -> tuple[np.ndarray, np.ndarray]:
    mask = labels == code
    n = mask.sum(axis=-1)
    if np.any(n == 0):
        log_and_raise_error(logger, f"Arm coded {code} has no observations under this assignment", DegenerateSample)
    return n, np.where(mask, outcomes, 0.0).sum(axis=-1) / n


def _arm_squares(outcomes: np.ndarray, labels: np.ndarray, code: int, mean: np.ndarray) -> np.ndarray:
    # centered on the arm mean of each row
    deviations = outcomes - np.expand_dims(mean, -1)
    return np.where(labels == code, deviations**2, 0.0).sum(axis=-1)


def difference_in_means(outcomes: np.ndarray, labels: np.ndarray) -> float | np.ndarray:
    """
    Mean outcome of the treatment arm minus mean outcome of the control arm.
    """
    outcomes = np.asarray(outcomes, dtype=float)
    labels = np.asarray(labels)
    _, m1 = _arm_mean(outcomes, labels, 1)
    _, m0 = _arm_mean(outcomes, labels, 0)
    diff = m1 - m0
    return float(diff) if np.ndim(diff) == 0 else diff


def studentized_difference(outcomes: np.ndarray, labels: np.ndarray) -> float | np.ndarray:
    """
    Welch t statistic: difference in means over its unpooled standard error.
    """
    outcomes = np.asarray(outcomes, dtype=float)
    labels = np.asarray(labels)
    n1, m1 = _arm_mean(outcomes, labels, 1)
    n0, m0 = _arm_mean(outcomes, labels, 0)
    if np.any(n1 < 2) or np.any(n0 < 2):
        log_and_raise_error(logger, "Each arm needs at least 2 observations for a studentized statistic", DegenerateSample)

    v1 = _arm_squares(outcomes, labels, 1, m1) / (n1 - 1)
    v0 = _arm_squares(outcomes, labels, 0, m0) / (n0 - 1)
    se = np.sqrt(v1 / n1 + v0 / n0)
    if np.any(se == 0):
        log_and_raise_error(logger, "Standard error is zero; both arms are constant", DegenerateSample)
    t = (m1 - m0) / se
    return float(t) if np.ndim(t) == 0 else t


STATISTICS: dict[str, Statistic] = {
    "difference_in_means": difference_in_means,
    "studentized_difference": studentized_difference,
}


def get_statistic(statistic: str | Statistic) -> Statistic:
    """
    Resolve a statistic given by name, or pass a callable through.
    """
    if callable(statistic):
        return statistic
    if statistic not in STATISTICS:
        log_and_raise_error(
            logger, f"Unknown statistic: {statistic}. Choose from {sorted(STATISTICS)}", InvalidParameters
        )  # noqa: E501
    return STATISTICS[statistic]


def evaluate_many(statistic: Statistic, outcomes: np.ndarray, label_matrix: np.ndarray) -> np.ndarray:
    """
    Evaluate ``statistic`` for each assignment (row) of ``label_matrix``.
    """
    if any(statistic is s for s in STATISTICS.values()):
        return np.asarray(statistic(outcomes, label_matrix), dtype=float)
    return np.array([statistic(outcomes, row) for row in label_matrix], dtype=float)


ALTERNATIVES = ("two-tailed", "greater", "smaller")


def check_alternative(alternative: str) -> str:
    if alternative not in ALTERNATIVES:
        log_and_raise_error(
            logger, f"Alternative must be one of {ALTERNATIVES}, got {alternative!r}", InvalidParameters
        )  # noqa: E501
    return alternative
