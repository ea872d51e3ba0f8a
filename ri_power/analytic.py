"""
Asymptotic tests used as a fast substitute for randomization inference.
"""

import numpy as np
from scipy import stats
from statsmodels.stats.power import TTestIndPower

from .exceptions import DegenerateSample
from .generator import CONTROL, GenerationParameters
from .results import TestResult
from .statistics import check_alternative
from .utils import get_logger, log_and_raise_error

logger = get_logger("Analytic Test")

_SCIPY_ALTERNATIVES = {"two-tailed": "two-sided", "greater": "greater", "smaller": "less"}
_STATSMODELS_ALTERNATIVES = {"two-tailed": "two-sided", "greater": "larger", "smaller": "smaller"}


def welch_test(outcomes: np.ndarray, labels: np.ndarray, alternative: str = "two-tailed") -> TestResult:
    """
    Two-sample t-test with unequal variances (Welch-Satterthwaite degrees of freedom).

    Parameters
    ----------
    outcomes : np.ndarray
        Outcome per unit.
    labels : np.ndarray
        Binary assignment per unit, 1 for treatment and 0 for control.
    alternative : str
        'two-tailed', 'greater' or 'smaller'.

    Returns
    -------
    TestResult
        The t statistic and its p-value.
    """
    alternative = check_alternative(alternative)
    outcomes = np.asarray(outcomes, dtype=float)
    labels = np.asarray(labels)
    treated = outcomes[labels == 1]
    control = outcomes[labels == 0]

    if treated.size < 2 or control.size < 2:
        log_and_raise_error(
            logger,
            f"Welch test needs at least 2 observations per arm, got {treated.size} and {control.size}",
            DegenerateSample,
        )

    t_stat, pvalue = stats.ttest_ind(treated, control, equal_var=False, alternative=_SCIPY_ALTERNATIVES[alternative])
    if np.isnan(pvalue):
        log_and_raise_error(logger, "Welch test is undefined: both arms have zero variance", DegenerateSample)
    return TestResult(statistic=float(t_stat), p_value=float(pvalue))


def analytic_power(
    params: GenerationParameters,
    alpha: float = 0.05,
    comparison: tuple[int, int] = (CONTROL, 1),
    alternative: str = "two-tailed",
) -> float:
    """
    Closed-form power of the two-sample t-test for one comparison.

    The standardized effect uses the root mean square of the two spreads and
    the difference of the arms' expected means, which mix compliers and
    non-compliers.
    """
    alternative = check_alternative(alternative)
    params.check_comparison(comparison)
    control, treatment = (params.arms[i] for i in comparison)

    shift = params.expected_mean(comparison[1]) - params.expected_mean(comparison[0])
    sd = np.sqrt((control.spread**2 + treatment.spread**2) / 2)

    power = TTestIndPower().power(
        effect_size=shift / sd,
        nobs1=control.size,
        alpha=alpha,
        ratio=treatment.size / control.size,
        alternative=_STATSMODELS_ALTERNATIVES[alternative],
    )
    return float(power)
