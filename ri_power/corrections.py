"""
Multiple-comparison procedures applied to the p-values of one repetition.

Each procedure takes the p-values of all comparisons tested on the same
simulated experiment and returns a boolean rejection mask of the same shape.
"""

import numpy as np

from .exceptions import InvalidParameters
from .utils import get_logger, log_and_raise_error

logger = get_logger("Corrections")


def bonferroni(pvals: np.ndarray, alpha: float = 0.05) -> np.ndarray:
    """Reject when p < alpha / m (controls the FWER)."""
    pvals = np.asarray(pvals, dtype=float)
    return pvals < alpha / float(pvals.size)


def sidak(pvals: np.ndarray, alpha: float = 0.05) -> np.ndarray:
    """Reject when p < 1 - (1 - alpha)^(1/m) (controls the FWER under independence)."""
    pvals = np.asarray(pvals, dtype=float)
    return pvals < 1.0 - (1.0 - alpha) ** (1.0 / pvals.size)


def holm_bonferroni(pvals: np.ndarray, alpha: float = 0.05) -> np.ndarray:
    """
    Holm's step-down procedure.

    Walk the sorted p-values upwards and stop at the first one exceeding
    alpha / (m - k); everything before it is rejected.
    """
    pvals = np.asarray(pvals, dtype=float)
    m = pvals.size
    order = np.argsort(pvals)
    thresholds = alpha / (m - np.arange(m))
    failed = np.flatnonzero(pvals[order] > thresholds)
    n_rejected = failed[0] if failed.size else m
    significant = np.zeros(m, dtype=bool)
    significant[order[:n_rejected]] = True
    return significant


def hochberg(pvals: np.ndarray, alpha: float = 0.05) -> np.ndarray:
    """
    Hochberg's step-up procedure.

    Reject the k smallest p-values where k is the largest index with
    p_(k) <= alpha / (m - k + 1).
    """
    pvals = np.asarray(pvals, dtype=float)
    m = pvals.size
    order = np.argsort(pvals)
    thresholds = alpha / (m - np.arange(m))
    passed = np.flatnonzero(pvals[order] <= thresholds)
    significant = np.zeros(m, dtype=bool)
    if passed.size:
        significant[order[: passed[-1] + 1]] = True
    return significant


def lsu(pvals: np.ndarray, q: float = 0.05) -> np.ndarray:
    """
    Benjamini-Hochberg linear step-up procedure (controls the FDR at q).
    """
    pvals = np.asarray(pvals, dtype=float)
    m = pvals.size
    order = np.argsort(pvals)
    passed = np.flatnonzero(pvals[order] <= q * np.arange(1, m + 1) / m)
    significant = np.zeros(m, dtype=bool)
    if passed.size:
        significant[order[: passed[-1] + 1]] = True
    return significant


CORRECTIONS = {
    "bonferroni": bonferroni,
    "holm": holm_bonferroni,
    "hochberg": hochberg,
    "sidak": sidak,
    "fdr": lsu,
}


def check_correction(correction: str | None) -> str | None:
    if correction is not None and correction not in CORRECTIONS:
        log_and_raise_error(
            logger, f"Unknown correction: {correction}. Choose from {sorted(CORRECTIONS)} or None", InvalidParameters
        )  # noqa: E501
    return correction


def reject(pvals: np.ndarray, alpha: float = 0.05, correction: str | None = None) -> np.ndarray:
    """
    Rejection decisions for one repetition's p-values.

    Parameters
    ----------
    pvals : array_like
        P-values of every comparison tested on the same experiment.
    alpha : float
        Significance threshold (family-wise or false discovery rate).
    correction : str, optional
        'bonferroni', 'holm', 'hochberg', 'sidak', 'fdr' or None for none.

    Returns
    -------
    np.ndarray
        Boolean mask, True where the null hypothesis is rejected.
    """
    correction = check_correction(correction)
    pvals = np.asarray(pvals, dtype=float)
    if correction is None or pvals.size <= 1:
        return pvals < alpha
    return CORRECTIONS[correction](pvals, alpha)
