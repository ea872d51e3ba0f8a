import pytest

from ri_power.config import SimulationConfig
from ri_power.exceptions import InsufficientPermutations, InvalidParameters
from ri_power.results import PowerEstimate

ARMS = [
    {"size": 30, "mean": 10.0, "spread": 3.0},
    {"size": 30, "mean": 12.0, "spread": 3.0},
]


def test_from_dict_defaults():
    config = SimulationConfig.from_dict({"arms": ARMS})
    assert config.alpha == 0.05
    assert config.test_strategy == "randomization"
    assert config.parameters().sizes == (30, 30)


def test_from_dict_rejects_unknown_options():
    with pytest.raises(InvalidParameters):
        SimulationConfig.from_dict({"arms": ARMS, "iterations": 10})


def test_from_dict_requires_arms():
    with pytest.raises(InvalidParameters):
        SimulationConfig.from_dict({"alpha": 0.1})


@pytest.mark.parametrize(
    "options, error",
    [
        ({"alpha": 0.0}, InvalidParameters),
        ({"repetitions": 0}, InvalidParameters),
        ({"permutation_count": 0}, InsufficientPermutations),
        ({"test_strategy": "bayes"}, InvalidParameters),
        ({"statistic": "median"}, InvalidParameters),
        ({"alternative": "both"}, InvalidParameters),
        ({"comparison": [0, 5]}, InvalidParameters),
        ({"time_budget": -1}, InvalidParameters),
    ],
)
def test_validate(options, error):
    config = SimulationConfig.from_dict({"arms": ARMS, **options})
    with pytest.raises(error):
        config.validate()


def test_invalid_arm():
    config = SimulationConfig.from_dict({"arms": [ARMS[0], {"size": 1, "mean": 0.0, "spread": 1.0}]})
    with pytest.raises(InvalidParameters):
        config.validate()


def test_run():
    config = SimulationConfig.from_dict({"arms": ARMS, "repetitions": 50, "permutation_count": 49, "rng_seed": 1})
    estimate = config.run()
    assert isinstance(estimate, PowerEstimate)
    assert estimate.completed == 50
    assert config.run().p_values.tolist() == estimate.p_values.tolist()
