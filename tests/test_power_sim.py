import logging

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from ri_power.exceptions import InsufficientPermutations, InvalidParameters
from ri_power.power_sim import PowerSim


def test_power_estimation():
    """Test power estimation"""
    p = PowerSim(test_strategy="randomization", variants=1, nsim=200, permutation_count=99, alpha=0.05, seed=1)
    result = p.get_power(baseline=[10.0], effect=[2.0], sample_size=[40], standard_deviation=[3.0])
    assert list(result.columns) == ["comparisons", "power", "analytic_power"]
    assert result.iloc[0]["comparisons"] == (0, 1)
    assert 0.6 < result.iloc[0]["power"] <= 1.0
    assert result.iloc[0]["power"] == pytest.approx(result.iloc[0]["analytic_power"], abs=0.12)


def test_power_is_reproducible_with_seed():
    """Scenarios with the same seed share random numbers"""
    p = PowerSim(test_strategy="analytic", variants=1, nsim=100, seed=3)
    a = p.get_power(baseline=[10.0], effect=[1.0], sample_size=[50], standard_deviation=[3.0])
    b = p.get_power(baseline=[10.0], effect=[1.0], sample_size=[50], standard_deviation=[3.0])
    pd.testing.assert_frame_equal(a, b)


def test_multiple_variants_with_correction():
    """Corrections can only lower the per-comparison power"""
    kwargs = dict(test_strategy="analytic", variants=2, nsim=300, seed=11)
    corrected = PowerSim(correction="bonferroni", **kwargs)
    uncorrected = PowerSim(correction=None, **kwargs)
    scenario = dict(baseline=[10.0], effect=[1.0, 2.0], sample_size=[60], standard_deviation=[3.0])

    c = corrected.get_power(**scenario)
    u = uncorrected.get_power(**scenario)
    assert list(c["comparisons"]) == [(0, 1), (0, 2), (1, 2)]
    assert (c["power"] <= u["power"]).all()


def test_invalid_settings():
    with pytest.raises(InvalidParameters):
        PowerSim(alpha=1.5)
    with pytest.raises(InvalidParameters):
        PowerSim(correction="tukey")
    with pytest.raises(InvalidParameters):
        PowerSim(test_strategy="bootstrap")
    with pytest.raises(InsufficientPermutations):
        PowerSim(test_strategy="randomization", permutation_count=0)


def test_grid_sim_power():
    """Test grid simulation"""
    p = PowerSim(test_strategy="analytic", variants=2, nsim=100, correction="holm", seed=2)
    grid = p.grid_sim_power(
        baseline_rates=[[10.0]],
        effects=[[0.5, 1.0], [1.0, 2.0]],
        sample_sizes=[[50], [200]],
        standard_deviations=[[3.0]],
        threads=4,
        plot=False,
    )
    assert len(grid) == 4
    for label in ["(0, 1)", "(0, 2)", "(1, 2)"]:
        assert label in grid.columns
        assert grid[label].between(0, 1).all()
    assert (grid["test_strategy"] == "analytic").all()


def test_plot_power(monkeypatch):
    """Test plot power"""
    monkeypatch.setattr(plt, "show", lambda: None)
    p = PowerSim(test_strategy="analytic", variants=1, nsim=50, seed=2)
    p.grid_sim_power(
        baseline_rates=[[10.0]],
        effects=[[1.0], [2.0]],
        sample_sizes=[[20], [40], [80]],
        standard_deviations=[[3.0]],
        threads=2,
        plot=True,
    )
    plt.close("all")


def test_find_sample_size():
    """Test find_sample_size method"""
    p = PowerSim(test_strategy="analytic", variants=1, nsim=400, seed=4, alpha=0.05)
    result = p.find_sample_size(
        target_power=0.80,
        baseline=[10.0],
        effect=[1.5],
        standard_deviation=[3.0],
        min_sample_size=20,
        max_sample_size=1000,
        tolerance=0.01,
        step_size=20,
    )

    assert isinstance(result, pd.DataFrame)
    assert len(result) == 1
    row = result.iloc[0]
    assert row["achieved_power"] >= 0.79
    # two-sample t-test needs about 64 units per arm for d = 0.5
    assert 90 <= row["total_sample_size"] <= 180
    assert set(row["sample_sizes_by_group"]) == {"control", "variant_1"}


def test_find_sample_size_custom_allocation():
    """Test find_sample_size with custom allocation ratio"""
    p = PowerSim(test_strategy="analytic", variants=1, nsim=200, seed=4)
    result = p.find_sample_size(
        target_power=0.80,
        baseline=[10.0],
        effect=[1.5],
        standard_deviation=[3.0],
        allocation_ratio=[0.3, 0.7],
        max_sample_size=2000,
        step_size=50,
    )
    sizes = result.iloc[0]["sample_sizes_by_group"]
    assert sizes["control"] / (sizes["control"] + sizes["variant_1"]) == pytest.approx(0.3, abs=0.02)


def test_find_sample_size_unreachable_target():
    p = PowerSim(test_strategy="analytic", variants=1, nsim=100, seed=4, verbose=False)
    result = p.find_sample_size(
        target_power=0.9,
        baseline=[10.0],
        effect=[0.01],
        standard_deviation=[3.0],
        min_sample_size=20,
        max_sample_size=100,
        step_size=40,
    )
    assert result.iloc[0]["total_sample_size"] == 100
    assert result.iloc[0]["achieved_power"] < 0.9


@pytest.mark.parametrize(
    "kwargs",
    [
        {"allocation_ratio": [0.5, 0.6]},
        {"allocation_ratio": [1.0]},
        {"allocation_ratio": [1.2, -0.2]},
        {"target_power": 1.5},
        {"comparison": (1, 2)},
    ],
)
def test_find_sample_size_bad_arguments(kwargs):
    p = PowerSim(test_strategy="analytic", variants=1, nsim=10)
    with pytest.raises(InvalidParameters):
        p.find_sample_size(**kwargs)


def test_find_sample_size_is_minimal():
    """One unit fewer per arm falls short of the target"""
    p = PowerSim(test_strategy="analytic", variants=1, nsim=200, seed=7, verbose=False)
    target, tolerance = 0.80, 0.01
    result = p.find_sample_size(
        target_power=target,
        baseline=[10.0],
        effect=[1.5],
        standard_deviation=[3.0],
        min_sample_size=20,
        max_sample_size=1000,
        tolerance=tolerance,
        step_size=40,
    )
    total = result.iloc[0]["total_sample_size"]
    assert total > 20
    smaller = p.get_power(baseline=[10.0], effect=[1.5], sample_size=[total // 2 - 1], standard_deviation=[3.0])
    assert smaller.iloc[0]["power"] < target - tolerance


def test_quiet_instance_leaves_shared_loggers_alone():
    PowerSim(test_strategy="analytic", nsim=10, verbose=False)
    for name in ("Power Simulator", "Power Estimator"):
        assert logging.getLogger(name).isEnabledFor(logging.INFO)


def test_quiet_instance_skips_progress_messages(monkeypatch):
    p = PowerSim(test_strategy="analytic", nsim=20, seed=2, verbose=False)
    messages = []
    monkeypatch.setattr(p.logger, "log", lambda level, message: messages.append(message))
    p.find_sample_size(baseline=[10.0], effect=[3.0], standard_deviation=[3.0], max_sample_size=200, step_size=40)
    assert messages == []
