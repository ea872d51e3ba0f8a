"""
Result containers returned by the tests and the power estimator.
"""

from dataclasses import dataclass, field

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class TestResult:
    """
    Outcome of one hypothesis test on one experiment.
    """

    __test__ = False  # not a pytest test class

    statistic: float
    p_value: float

    def rejected(self, alpha: float = 0.05) -> bool:
        return bool(self.p_value < alpha)


@dataclass(frozen=True, eq=False)
class PowerEstimate:
    """
    Empirical power over the completed repetitions.

    Attributes
    ----------
    power : float
        Rejection rate, ``rejections.mean()``.
    p_values : np.ndarray
        P-value of every completed repetition, in repetition order.
    statistics : np.ndarray
        Observed test statistic of every completed repetition.
    alpha : float
        Significance threshold used for the rejection decision.
    repetitions : int
        Number of repetitions requested.
    stopped_early : bool
        True when the time budget ran out before all repetitions completed.
    """

    p_values: np.ndarray = field(repr=False)
    statistics: np.ndarray = field(repr=False)
    alpha: float
    repetitions: int
    stopped_early: bool = False

    @property
    def rejections(self) -> np.ndarray:
        return self.p_values < self.alpha

    @property
    def completed(self) -> int:
        return int(self.p_values.size)

    @property
    def power(self) -> float:
        if self.completed == 0:
            return float("nan")
        return float(np.mean(self.rejections))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "repetition": np.arange(self.completed),
                "statistic": self.statistics,
                "pvalue": self.p_values,
                "rejected": self.rejections,
            }
        )

    def __repr__(self) -> str:
        return (
            f"PowerEstimate(power={self.power:.4f}, completed={self.completed}, "
            f"repetitions={self.repetitions}, alpha={self.alpha}, stopped_early={self.stopped_early})"
        )
