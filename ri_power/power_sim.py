"""
PowerSim class for simulation of power analysis.
"""

import itertools
import logging

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from multiprocess.pool import ThreadPool

from .analytic import analytic_power
from .corrections import check_correction, reject
from .exceptions import InvalidParameters
from .generator import GenerationParameters
from .simulation import check_alpha, check_repetitions, make_test, simulate_p_values
from .statistics import check_alternative
from .utils import get_logger, log_and_raise_error


class PowerSim:
    """
    PowerSim class for simulation of power analysis.
    """

    def __init__(
        self,
        test_strategy: str = "randomization",
        relative_effect: bool = False,
        nsim: int = 100,
        permutation_count: int = 200,
        variants: int = 1,
        comparisons: list[tuple[int, int]] = None,
        alternative: str = "two-tailed",
        alpha: float = 0.05,
        correction: str | None = "bonferroni",
        statistic: str = "difference_in_means",
        threads: int = 1,
        seed: int | None = None,
        verbose: bool = True,
    ) -> None:
        """
        PowerSim class for simulation of power analysis.

        Parameters
        ----------
        test_strategy : str
            'randomization' (permutation test) or 'analytic' (Welch's t-test).
        relative_effect : bool
            True when change is percentual (not absolute).
        nsim : int
            Number of replicates to simulate power.
        permutation_count : int
            Permutations per replicate for randomization inference.
        variants : int
            Number of variants (total number of groups = control + variants).
        comparisons : list
            List of (control, treatment) tuples to test. Defaults to every pair.
        alternative : str
            Alternative hypothesis, 'two-tailed', 'greater', 'smaller'.
        alpha : float
            One minus statistical confidence.
        correction : str
            'bonferroni', 'holm', 'hochberg', 'sidak', 'fdr' or None.
        statistic : str
            Contrast used by randomization inference.
        threads : int
            Worker threads used for the replicates of one scenario.
        seed : int, optional
            Seed reused by every scenario, so scenarios share random numbers.
        verbose : bool
            Set to False to silence this instance's progress messages. Errors
            are still logged.
        """

        self.logger = get_logger("Power Simulator")
        self.verbose = verbose

        self.test_strategy = test_strategy
        self.relative_effect = relative_effect
        self.variants = variants
        if comparisons is None:
            comparisons = itertools.combinations(range(self.variants + 1), 2)
        self.comparisons = [tuple(c) for c in comparisons]
        self.nsim = check_repetitions(nsim)
        self.permutation_count = permutation_count
        self.alternative = check_alternative(alternative)
        self.alpha = check_alpha(alpha)
        self.correction = check_correction(correction)
        self.statistic = statistic
        self.threads = threads
        self.seed = seed
        self._test = make_test(test_strategy, permutation_count, statistic, alternative)

    def _log(self, level: int, message: str) -> None:
        if self.verbose:
            self.logger.log(level, message)

    def _parameters(
        self,
        baseline: list[float] = None,
        effect: list[float] = None,
        sample_size: list[int] = None,
        compliance: list[float] = None,
        standard_deviation: list[float] = None,
    ) -> GenerationParameters:
        return GenerationParameters.from_lists(
            baseline=[1.0] if baseline is None else baseline,
            effect=[0.10] if effect is None else effect,
            sample_size=[100] if sample_size is None else sample_size,
            standard_deviation=[1.0] if standard_deviation is None else standard_deviation,
            compliance=[1.0] if compliance is None else compliance,
            relative_effect=self.relative_effect,
            variants=self.variants,
        )

    def get_power(
        self,
        baseline: list[float] = None,
        effect: list[float] = None,
        sample_size: list[int] = None,
        compliance: list[float] = None,
        standard_deviation: list[float] = None,
    ) -> pd.DataFrame:
        """
        Estimate power using simulation.

        Parameters
        ----------
        baseline : list
            Base average of control and variants.
        effect : list
            List with effect sizes.
        sample_size : list
            List with sample for control and arm groups.
        compliance : list
            List with compliance values.
        standard_deviation : list
            List of standard deviations of control and variants.

        Returns
        -------
        pd.DataFrame
            One row per comparison with the simulated power (after the
            multiple-comparison correction) and the closed-form, uncorrected
            t-test power for reference.
        """
        params = self._parameters(baseline, effect, sample_size, compliance, standard_deviation)
        p_values, _, _ = simulate_p_values(
            params,
            self._test,
            comparisons=self.comparisons,
            repetitions=self.nsim,
            rng=self.seed,
            threads=self.threads,
        )
        significant = np.array([reject(row, self.alpha, self.correction) for row in p_values])

        return pd.DataFrame(
            {
                "comparisons": self.comparisons,
                "power": significant.mean(axis=0),
                "analytic_power": [
                    analytic_power(params, self.alpha, comparison, self.alternative) for comparison in self.comparisons
                ],
            }
        )

    def grid_sim_power(
        self,
        baseline_rates: list[list[float]] = None,
        effects: list[list[float]] = None,
        sample_sizes: list[list[int]] = None,
        compliances: list[list[float]] = None,
        standard_deviations: list[list[float]] = None,
        threads: int = 3,
        plot: bool = False,
    ) -> pd.DataFrame:
        """
        Return Pandas DataFrame with parameter combinations and statistical power

        Parameters
        ----------
        baseline_rates : list
            List of baseline averages to try.
        effects : list
            List of effect lists to try.
        sample_sizes : list
            List of sample size lists to try.
        compliances : list
            List of compliance lists to try.
        standard_deviations : list
            List of standard deviation lists to try.
        threads : int
            Number of threads running scenarios in parallel.
        plot : bool
            Whether to plot the results.
        """

        pdict = {
            "baseline": [[1.0]] if baseline_rates is None else baseline_rates,
            "effect": [[0.10]] if effects is None else effects,
            "sample_size": [[100]] if sample_sizes is None else sample_sizes,
            "compliance": [[1.0]] if compliances is None else compliances,
            "standard_deviation": [[1.0]] if standard_deviations is None else standard_deviations,
        }
        grid = self.__expand_grid(pdict)
        parameters = list(grid.itertuples(index=False, name=None))

        with ThreadPool(processes=threads) as pool:
            results = pool.starmap(self.get_power, parameters)

        labels = [str(c) for c in self.comparisons]
        power = pd.DataFrame([r["power"].to_numpy() for r in results], columns=labels, index=grid.index)

        grid["nsim"] = self.nsim
        grid["alpha"] = self.alpha
        grid["alternative"] = self.alternative
        grid["test_strategy"] = self.test_strategy
        grid["variants"] = self.variants
        grid["comparisons"] = str(self.comparisons)
        grid["relative_effect"] = self.relative_effect

        grid = pd.concat([grid, power], axis=1)
        grid.sample_size = grid.sample_size.map(str)
        grid.effect = grid.effect.map(str)
        if plot:
            self.plot_power(grid)
        return grid

    def plot_power(self, data: pd.DataFrame) -> None:
        """
        Plot statistical power by scenario
        """

        value_vars = [str(c) for c in self.comparisons]
        id_vars = [c for c in data.columns if c not in value_vars]
        temp = pd.melt(data, id_vars=id_vars, var_name="comparison", value_name="power", value_vars=value_vars)

        d_relative_effect = {True: "relative", False: "absolute"}
        for i in temp.effect.unique():
            plot = sns.lineplot(
                x="sample_size",
                y="power",
                hue="comparison",
                errorbar=None,
                data=temp[temp["effect"] == i],
                legend="full",
            )
            plt.hlines(y=0.8, linestyles="dashed", xmin=0, xmax=len(temp.sample_size.unique()) - 1, colors="gray")
            plt.title(
                f"Simulated power, {self.test_strategy} test, {d_relative_effect[self.relative_effect]} effects {i}\n (sims per scenario:{self.nsim})"  # noqa: E501
            )
            plt.legend(bbox_to_anchor=(1.05, 1), title="comparison", loc="upper left")
            plt.xlabel("\n sample size")
            plt.ylabel("power\n")
            plt.setp(plot.get_xticklabels(), rotation=45)
            plt.show()

    def __expand_grid(self, dictionary: dict[str, list]) -> pd.DataFrame:
        """
        Auxiliary function to expand a dictionary
        """
        return pd.DataFrame(list(itertools.product(*dictionary.values())), columns=list(dictionary.keys()))

    def find_sample_size(
        self,
        target_power: float = 0.80,
        baseline: list[float] = None,
        effect: list[float] = None,
        compliance: list[float] = None,
        standard_deviation: list[float] = None,
        allocation_ratio: list[float] = None,
        comparison: tuple[int, int] = None,
        min_sample_size: int = 20,
        max_sample_size: int = 10000,
        tolerance: float = 0.01,
        step_size: int = 20,
    ) -> pd.DataFrame:
        """
        Find the minimum total sample size reaching the target power.

        Total sizes are first stepped upwards from ``min_sample_size`` by
        ``step_size`` until the target is met (within ``tolerance``), then
        refined by bisection between the last failing and first passing size
        until they are one unit apart.

        Parameters
        ----------
        target_power : float
            The desired power level.
        baseline : list
            Base average of control and variants.
        effect : list
            List with effect sizes for each variant.
        compliance : list
            List with compliance values.
        standard_deviation : list
            List of standard deviations by groups.
        allocation_ratio : list
            Share of the total sample for each group. Must sum to 1.0.
            Default is equal allocation.
        comparison : tuple
            Comparison to power. Defaults to the first configured comparison.
        min_sample_size : int
            Minimum total sample size to consider.
        max_sample_size : int
            Maximum total sample size to consider.
        tolerance : float
            Acceptable shortfall from the target power.
        step_size : int
            Step of the coarse search.

        Returns
        -------
        pd.DataFrame
            Single row with the total and per-group sample sizes and the
            achieved power.

        Examples
        --------
        >>> p = PowerSim(test_strategy="analytic", nsim=500, seed=1)
        >>> p.find_sample_size(target_power=0.80, baseline=[10.0], effect=[1.5], standard_deviation=[3.0])
        """
        num_groups = self.variants + 1
        if allocation_ratio is None:
            allocation_ratio = [1.0 / num_groups] * num_groups
        if len(allocation_ratio) != num_groups:
            log_and_raise_error(
                self.logger,
                f"allocation_ratio must have {num_groups} elements (control + {self.variants} variants)",
                InvalidParameters,
            )
        if not np.isclose(sum(allocation_ratio), 1.0):
            log_and_raise_error(self.logger, "allocation_ratio must sum to 1.0", InvalidParameters)
        if any(r <= 0 for r in allocation_ratio):
            log_and_raise_error(self.logger, "All allocation_ratio values must be positive", InvalidParameters)
        if not 0 < target_power < 1:
            log_and_raise_error(self.logger, "target_power must be between 0 and 1", InvalidParameters)

        if comparison is None:
            comparison = self.comparisons[0]
        comparison = tuple(comparison)
        if comparison not in self.comparisons:
            log_and_raise_error(self.logger, f"comparison {comparison} is not in {self.comparisons}", InvalidParameters)
        comp_idx = self.comparisons.index(comparison)

        def split(total: int) -> list[int]:
            return [max(2, int(total * ratio)) for ratio in allocation_ratio]

        def power_at(total: int) -> float:
            result = self.get_power(
                baseline=baseline,
                effect=effect,
                sample_size=split(total),
                compliance=compliance,
                standard_deviation=standard_deviation,
            )
            return float(result.iloc[comp_idx]["power"])

        low = min_sample_size
        high = None
        best_power = None
        current = min_sample_size
        while current <= max_sample_size:
            current_power = power_at(current)
            if current_power >= target_power - tolerance:
                high, best_power = current, current_power
                break
            low = current
            current += step_size

        if high is None:
            self._log(
                logging.WARNING,
                f"Could not achieve target power {target_power} for comparison {comparison} "
                f"within max_sample_size {max_sample_size}"
            )
            high = max_sample_size
            best_power = power_at(high)
        else:
            while high - low > 1:
                mid = (low + high) // 2
                mid_power = power_at(mid)
                if mid_power >= target_power - tolerance:
                    high, best_power = mid, mid_power
                else:
                    low = mid

        sizes = split(high)
        sample_sizes_dict = {"control": sizes[0]}
        for i in range(1, len(sizes)):
            sample_sizes_dict[f"variant_{i}"] = sizes[i]
        self._log(logging.INFO, f"Sample size {sum(sizes)} reaches power {best_power:.3f} for comparison {comparison}")

        return pd.DataFrame(
            [
                {
                    "comparison": comparison,
                    "target_power": target_power,
                    "total_sample_size": sum(sizes),
                    "sample_sizes_by_group": sample_sizes_dict,
                    "achieved_power": best_power,
                    "test_strategy": self.test_strategy,
                    "correction": self.correction,
                }
            ]
        )
