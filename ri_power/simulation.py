"""
Monte-Carlo power estimation.

Each repetition simulates a fresh experiment, tests it, and records whether
the null hypothesis was rejected. Repetitions are independent: every one of
them owns a generator seeded from a seed drawn up front, so results do not
depend on how repetitions are scheduled across threads.
"""

import time
from collections.abc import Callable, Sequence
from functools import partial
from typing import Any

import numpy as np
from multiprocess.pool import ThreadPool

from .analytic import welch_test
from .exceptions import InvalidParameters
from .generator import CONTROL, GenerationParameters, generate
from .permutation import check_permutation_count, randomization_test
from .results import PowerEstimate, TestResult
from .statistics import Statistic, check_alternative, get_statistic
from .utils import as_generator, get_logger, is_whole_number, log_and_raise_error, spawn_seeds

logger = get_logger("Power Estimator")

TEST_STRATEGIES = ("randomization", "analytic")

Test = Callable[[np.ndarray, np.ndarray, np.random.Generator], TestResult]


def check_alpha(alpha: float) -> float:
    if not 0 < alpha < 1:
        log_and_raise_error(logger, f"alpha must lie in (0, 1), got {alpha}", InvalidParameters)
    return float(alpha)


def check_repetitions(repetitions: int) -> int:
    if not is_whole_number(repetitions) or repetitions < 1:
        log_and_raise_error(logger, f"repetitions must be a positive integer, got {repetitions}", InvalidParameters)
    return int(repetitions)


def check_time_budget(time_budget: float | None) -> float | None:
    if time_budget is None:
        return None
    if not time_budget > 0:
        log_and_raise_error(logger, f"time_budget must be positive, got {time_budget}", InvalidParameters)
    return float(time_budget)


def _analytic(outcomes: np.ndarray, labels: np.ndarray, rng: np.random.Generator, alternative: str) -> TestResult:
    return welch_test(outcomes, labels, alternative=alternative)


def make_test(
    test_strategy: str = "randomization",
    permutation_count: int = 200,
    statistic: str | Statistic = "difference_in_means",
    alternative: str = "two-tailed",
) -> Test:
    """
    Build the inner decision rule ``test(outcomes, labels, rng) -> TestResult``.

    Parameters
    ----------
    test_strategy : str
        'randomization' for randomization inference, 'analytic' for Welch's t-test.
    permutation_count : int
        Permutations per experiment (randomization only).
    statistic : str or callable
        Contrast used by randomization inference.
    alternative : str
        'two-tailed', 'greater' or 'smaller'.
    """
    alternative = check_alternative(alternative)
    if test_strategy == "randomization":
        return partial(
            randomization_test,
            permutation_count=check_permutation_count(permutation_count),
            statistic=get_statistic(statistic),
            alternative=alternative,
        )
    if test_strategy == "analytic":
        return partial(_analytic, alternative=alternative)
    log_and_raise_error(
        logger, f"Unknown test_strategy: {test_strategy}. Choose from {TEST_STRATEGIES}", InvalidParameters
    )  # noqa: E501


def repeat(
    n: int,
    func: Callable[[int], Any],
    threads: int = 1,
    time_budget: float | None = None,
) -> tuple[list[Any], bool]:
    """
    Evaluate ``func(0), ..., func(n - 1)``, optionally on a thread pool.

    Results come back in index order. The first call always completes; once
    ``time_budget`` (seconds) runs out, no further results are collected and
    the completed prefix is returned together with ``stopped_early=True``. An exception raised by any
    call propagates and aborts the whole run.

    Returns
    -------
    tuple
        (results, stopped_early)
    """
    deadline = None if time_budget is None else time.monotonic() + time_budget
    results = []

    if threads is None or threads <= 1:
        for i in range(n):
            if deadline is not None and results and time.monotonic() >= deadline:
                return results, True
            results.append(func(i))
        return results, False

    with ThreadPool(processes=threads) as pool:
        for result in pool.imap(func, range(n)):
            results.append(result)
            if deadline is not None and len(results) < n and time.monotonic() >= deadline:
                return results, True
    return results, False


def simulate_p_values(
    params: GenerationParameters,
    test: Test,
    comparisons: Sequence[tuple[int, int]] = ((CONTROL, 1),),
    repetitions: int = 1000,
    rng: np.random.Generator | int | None = None,
    threads: int = 1,
    time_budget: float | None = None,
) -> tuple[np.ndarray, np.ndarray, bool]:
    """
    Simulate experiments and test every comparison on each of them.

    Returns
    -------
    tuple
        ``(p_values, statistics, stopped_early)`` where both arrays have one
        row per completed repetition and one column per comparison.
    """
    repetitions = check_repetitions(repetitions)
    time_budget = check_time_budget(time_budget)
    for comparison in comparisons:
        params.check_comparison(comparison)
    seeds = spawn_seeds(as_generator(rng), repetitions)

    def run_repetition(i: int) -> list[TestResult]:
        repetition_rng = np.random.default_rng(seeds[i])
        experiment = generate(params, repetition_rng)
        return [test(*experiment.contrast(control, treatment), repetition_rng) for control, treatment in comparisons]

    results, stopped_early = repeat(repetitions, run_repetition, threads=threads, time_budget=time_budget)

    shape = (len(results), len(comparisons))
    p_values = np.array([[r.p_value for r in row] for row in results], dtype=float).reshape(shape)
    statistics = np.array([[r.statistic for r in row] for row in results], dtype=float).reshape(shape)
    return p_values, statistics, stopped_early


def estimate_power(
    params: GenerationParameters,
    test_strategy: str = "randomization",
    alpha: float = 0.05,
    repetitions: int = 1000,
    permutation_count: int = 200,
    statistic: str | Statistic = "difference_in_means",
    comparison: tuple[int, int] = (CONTROL, 1),
    alternative: str = "two-tailed",
    rng_seed: int | None = None,
    rng: np.random.Generator | None = None,
    threads: int = 1,
    time_budget: float | None = None,
) -> PowerEstimate:
    """
    Estimate the power of a test by repeated simulation.

    Parameters
    ----------
    params : GenerationParameters
        Data-generating process of every simulated experiment.
    test_strategy : str
        'randomization' (permutation test) or 'analytic' (Welch's t-test).
    alpha : float
        Significance threshold; a repetition rejects when p < alpha.
    repetitions : int
        Number of simulated experiments.
    permutation_count : int
        Permutations per experiment for randomization inference.
    statistic : str or callable
        Contrast for randomization inference, default difference in means.
    comparison : tuple
        (control arm, treatment arm) to contrast.
    alternative : str
        'two-tailed', 'greater' or 'smaller'.
    rng_seed : int, optional
        Seed of the root generator. Ignored when ``rng`` is given.
    rng : numpy.random.Generator, optional
        Root source of randomness.
    threads : int
        Worker threads for the repetitions.
    time_budget : float, optional
        Seconds after which no more repetitions are collected.

    Returns
    -------
    PowerEstimate
    """
    alpha = check_alpha(alpha)
    repetitions = check_repetitions(repetitions)
    time_budget = check_time_budget(time_budget)
    params.check_comparison(comparison)
    test = make_test(test_strategy, permutation_count, statistic, alternative)

    logger.info(
        f"Estimating power of the {test_strategy} test for comparison {comparison} "
        f"over {repetitions} repetitions (alpha={alpha})"
    )
    p_values, statistics, stopped_early = simulate_p_values(
        params,
        test,
        comparisons=[comparison],
        repetitions=repetitions,
        rng=rng if rng is not None else rng_seed,
        threads=threads,
        time_budget=time_budget,
    )

    estimate = PowerEstimate(
        p_values=p_values[:, 0],
        statistics=statistics[:, 0],
        alpha=alpha,
        repetitions=repetitions,
        stopped_early=stopped_early,
    )
    if stopped_early:
        logger.warning(
            f"Time budget of {time_budget}s exhausted after {estimate.completed} of {repetitions} repetitions"
        )
    logger.info(f"Estimated power: {estimate.power:.4f}")
    return estimate
