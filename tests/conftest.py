import matplotlib
import numpy as np
import pytest

from ri_power.generator import ArmSpec, GenerationParameters

matplotlib.use("Agg")


@pytest.fixture
def two_arm_params():
    """Two arms of 40 units, control mean 10 and treatment mean 11.5"""
    return GenerationParameters(
        arms=(
            ArmSpec(size=40, mean=10.0, spread=3.0),
            ArmSpec(size=40, mean=11.5, spread=3.5),
        )
    )


@pytest.fixture
def null_params():
    """Two arms drawn from the same normal distribution"""
    return GenerationParameters(
        arms=(
            ArmSpec(size=40, mean=10.0, spread=3.0),
            ArmSpec(size=40, mean=10.0, spread=3.0),
        )
    )


@pytest.fixture
def rng():
    return np.random.default_rng(2024)
