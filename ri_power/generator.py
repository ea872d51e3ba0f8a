"""
Synthetic experiment generation with a fixed-margin assignment design.
"""

import math
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from .exceptions import DegenerateSample, InvalidParameters
from .utils import broadcast_to_groups, get_logger, is_whole_number, log_and_raise_error

logger = get_logger("Experiment Generator")

CONTROL = 0


@dataclass(frozen=True)
class ArmSpec:
    """
    Outcome distribution and sample size of one arm.

    Parameters
    ----------
    size : int
        Number of units assigned to the arm.
    mean : float
        Mean outcome of compliers in the arm.
    spread : float
        Standard deviation of the outcome.
    compliance : float
        Fraction of the arm that takes up the treatment.
    baseline : float, optional
        Mean outcome of the arm's non-compliers. Defaults to the control mean.
    """

    size: int
    mean: float
    spread: float
    compliance: float = 1.0
    baseline: float | None = None


@dataclass(frozen=True)
class GenerationParameters:
    """
    Immutable description of the data-generating process.

    Arms are identified by their position: arm 0 is the control, arms
    1..k-1 are variants.
    """

    arms: tuple[ArmSpec, ...]

    def __post_init__(self) -> None:
        arms = tuple(a if isinstance(a, ArmSpec) else ArmSpec(**a) for a in self.arms)
        object.__setattr__(self, "arms", arms)

        if len(arms) < 2:
            log_and_raise_error(logger, "At least two arms are required!", InvalidParameters)
        for i, arm in enumerate(arms):
            if not is_whole_number(arm.size):
                log_and_raise_error(logger, f"Arm {i}: size must be an integer, got {arm.size}", InvalidParameters)
            if arm.size < 2:
                log_and_raise_error(logger, f"Arm {i}: size must be at least 2, got {arm.size}", InvalidParameters)
            if not math.isfinite(arm.mean):
                log_and_raise_error(logger, f"Arm {i}: mean must be finite, got {arm.mean}", InvalidParameters)
            if arm.baseline is not None and not math.isfinite(arm.baseline):
                log_and_raise_error(logger, f"Arm {i}: baseline must be finite, got {arm.baseline}", InvalidParameters)
            if not (math.isfinite(arm.spread) and arm.spread > 0):
                log_and_raise_error(logger, f"Arm {i}: spread must be positive, got {arm.spread}", InvalidParameters)
            if not 0 <= arm.compliance <= 1:
                log_and_raise_error(
                    logger, f"Arm {i}: compliance should be between 0 and 1, got {arm.compliance}", InvalidParameters
                )  # noqa: E501

    @classmethod
    def from_lists(
        cls,
        baseline: list[float] | float = 1.0,
        effect: list[float] | float = 0.1,
        sample_size: list[int] | int = 100,
        standard_deviation: list[float] | float = 1.0,
        compliance: list[float] | float = 1.0,
        relative_effect: bool = False,
        variants: int | None = None,
    ) -> "GenerationParameters":
        """
        Build parameters from per-group lists.

        Parameters
        ----------
        baseline : list
            Base average for control and variants (length 1 or variants + 1).
        effect : list
            Effect of each variant over its baseline (length 1 or variants).
        sample_size : list
            Sample size for control and variants (length 1 or variants + 1).
        standard_deviation : list
            Standard deviations of control and variants (length 1 or variants + 1).
        compliance : list
            Compliance of each variant (length 1 or variants).
        relative_effect : bool
            True when effects are percentual, i.e. mean = baseline * (1 + effect).
        variants : int, optional
            Number of variants. Inferred from the longest list when omitted.

        Returns
        -------
        GenerationParameters
        """
        if variants is None:
            lengths = [len(v) - 1 for v in (baseline, sample_size, standard_deviation) if not np.isscalar(v)]
            lengths += [len(v) for v in (effect, compliance) if not np.isscalar(v)]
            variants = max([1] + lengths)

        baseline = broadcast_to_groups(baseline, variants + 1, "Baseline values", logger, InvalidParameters)
        sample_size = broadcast_to_groups(sample_size, variants + 1, "N", logger, InvalidParameters)
        standard_deviation = broadcast_to_groups(
            standard_deviation, variants + 1, "Standard deviations", logger, InvalidParameters
        )  # noqa: E501
        effect = broadcast_to_groups(effect, variants, "Effects", logger, InvalidParameters)
        compliance = broadcast_to_groups(compliance, variants, "Compliance rates", logger, InvalidParameters)

        arms = [ArmSpec(size=sample_size[0], mean=baseline[0], spread=standard_deviation[0])]
        for i in range(variants):
            if relative_effect:
                mean = baseline[i + 1] * (1.00 + effect[i])
            else:
                mean = baseline[i + 1] + effect[i]
            arms.append(
                ArmSpec(
                    size=sample_size[i + 1],
                    mean=mean,
                    spread=standard_deviation[i + 1],
                    compliance=compliance[i],
                    baseline=baseline[i + 1],
                )
            )
        return cls(arms=tuple(arms))

    @property
    def n_arms(self) -> int:
        return len(self.arms)

    @property
    def sizes(self) -> tuple[int, ...]:
        return tuple(int(a.size) for a in self.arms)

    @property
    def total_size(self) -> int:
        return sum(self.sizes)

    def non_complier_mean(self, arm_id: int) -> float:
        arm = self.arms[arm_id]
        return self.arms[CONTROL].mean if arm.baseline is None else arm.baseline

    def expected_mean(self, arm_id: int) -> float:
        """
        Mean outcome of an arm averaged over compliers and non-compliers.

        The control arm always takes its own mean.
        """
        arm = self.arms[arm_id]
        if arm_id == CONTROL:
            return arm.mean
        return arm.compliance * arm.mean + (1 - arm.compliance) * self.non_complier_mean(arm_id)

    def check_comparison(self, comparison: tuple[int, int]) -> None:
        """Raise InvalidParameters unless both arms of ``comparison`` exist and differ."""
        control, treatment = comparison
        if control == treatment or not all(0 <= a < self.n_arms for a in (control, treatment)):
            log_and_raise_error(
                logger, f"Comparison {comparison} is not valid for {self.n_arms} arms", InvalidParameters
            )  # noqa: E501


def _freeze(values: np.ndarray) -> np.ndarray:
    values = np.array(values, copy=True)
    values.setflags(write=False)
    return values


@dataclass(frozen=True, eq=False)
class Experiment:
    """
    One realized draw: an arm label and an outcome per unit.
    """

    labels: np.ndarray = field(repr=False)
    outcomes: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        labels = _freeze(np.asarray(self.labels, dtype=int))
        outcomes = _freeze(np.asarray(self.outcomes, dtype=float))
        if labels.shape != outcomes.shape or labels.ndim != 1:
            log_and_raise_error(logger, "labels and outcomes must be 1-D arrays of equal length", InvalidParameters)
        object.__setattr__(self, "labels", labels)
        object.__setattr__(self, "outcomes", outcomes)

    def __len__(self) -> int:
        return self.labels.size

    def arm_sizes(self) -> dict[int, int]:
        arms, counts = np.unique(self.labels, return_counts=True)
        return {int(a): int(c) for a, c in zip(arms, counts, strict=True)}

    def contrast(self, control: int = CONTROL, treatment: int = 1) -> tuple[np.ndarray, np.ndarray]:
        """
        Restrict the experiment to two arms.

        Returns
        -------
        tuple
            Outcomes of the units in either arm and binary labels where
            ``1`` marks the treatment arm and ``0`` the control arm.
        """
        mask = np.isin(self.labels, (control, treatment))
        labels = (self.labels[mask] == treatment).astype(int)
        for arm, code in ((control, 0), (treatment, 1)):
            n = int(np.sum(labels == code))
            if n < 2:
                log_and_raise_error(
                    logger, f"Arm {arm} has {n} observations; at least 2 are required", DegenerateSample
                )  # noqa: E501
        return self.outcomes[mask], labels

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"arm": self.labels, "outcome": self.outcomes})


def fixed_margin_labels(sizes: tuple[int, ...], rng: np.random.Generator) -> np.ndarray:
    """
    Shuffle a label multiset with exactly ``sizes[i]`` units in arm ``i``.
    """
    labels = np.repeat(np.arange(len(sizes)), sizes)
    return rng.permutation(labels)


def generate(params: GenerationParameters, rng: np.random.Generator) -> Experiment:
    """
    Simulate one experiment.

    Labels follow a fixed-margin design so every draw has exactly the
    configured arm sizes. Outcomes are normal conditional on the label; in
    arms with partial compliance the first ``round(size * compliance)`` units
    of the arm take the arm mean and the rest the arm's baseline, which
    defaults to the control mean.

    Parameters
    ----------
    params : GenerationParameters
        Data-generating process.
    rng : numpy.random.Generator
        Source of randomness, the only one consumed.

    Returns
    -------
    Experiment
    """
    labels = fixed_margin_labels(params.sizes, rng)

    means = np.empty(labels.size, dtype=float)
    spreads = np.empty(labels.size, dtype=float)
    for arm_id, arm in enumerate(params.arms):
        idx = np.flatnonzero(labels == arm_id)
        n_compliers = int(np.round(arm.size * arm.compliance)) if arm_id != CONTROL else arm.size
        means[idx[:n_compliers]] = arm.mean
        means[idx[n_compliers:]] = params.non_complier_mean(arm_id)
        spreads[idx] = arm.spread

    outcomes = means + spreads * rng.standard_normal(labels.size)
    return Experiment(labels=labels, outcomes=outcomes)
