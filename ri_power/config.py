"""
Declarative configuration of one power estimation.
"""

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from .exceptions import InvalidParameters
from .generator import ArmSpec, GenerationParameters
from .results import PowerEstimate
from .simulation import check_alpha, check_repetitions, check_time_budget, estimate_power, make_test
from .utils import get_logger, log_and_raise_error

logger = get_logger("Simulation Config")


@dataclass(frozen=True)
class SimulationConfig:
    """
    Every recognized option of a power estimation.

    ``arms`` holds one mapping per arm with keys ``size``, ``mean``,
    ``spread`` and optionally ``compliance`` and ``baseline``; arm 0 is the
    control.
    """

    arms: tuple[Mapping[str, float], ...]
    alpha: float = 0.05
    repetitions: int = 1000
    permutation_count: int = 200
    test_strategy: str = "randomization"
    statistic: str = "difference_in_means"
    alternative: str = "two-tailed"
    comparison: tuple[int, int] = (0, 1)
    rng_seed: int | None = None
    threads: int = 1
    time_budget: float | None = None

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> "SimulationConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            log_and_raise_error(logger, f"Unknown configuration options: {unknown}", InvalidParameters)
        if "arms" not in options:
            log_and_raise_error(logger, "Configuration must define 'arms'", InvalidParameters)
        values = dict(options)
        values["arms"] = tuple(dict(a) for a in values["arms"])
        if "comparison" in values:
            values["comparison"] = tuple(values["comparison"])
        return cls(**values)

    def parameters(self) -> GenerationParameters:
        return GenerationParameters(arms=tuple(ArmSpec(**arm) for arm in self.arms))

    def validate(self) -> GenerationParameters:
        """Check every option without simulating anything; returns the generation parameters."""
        params = self.parameters()
        check_alpha(self.alpha)
        check_repetitions(self.repetitions)
        params.check_comparison(self.comparison)
        make_test(self.test_strategy, self.permutation_count, self.statistic, self.alternative)
        check_time_budget(self.time_budget)
        return params

    def run(self) -> PowerEstimate:
        params = self.validate()
        return estimate_power(
            params,
            test_strategy=self.test_strategy,
            alpha=self.alpha,
            repetitions=self.repetitions,
            permutation_count=self.permutation_count,
            statistic=self.statistic,
            comparison=self.comparison,
            alternative=self.alternative,
            rng_seed=self.rng_seed,
            threads=self.threads,
            time_budget=self.time_budget,
        )
