from .analytic import analytic_power, welch_test
from .config import SimulationConfig
from .exceptions import DegenerateSample, InsufficientPermutations, InvalidParameters, PowerSimError
from .generator import ArmSpec, Experiment, GenerationParameters, generate
from .permutation import exact_randomization_test, permute, randomization_test
from .power_sim import PowerSim
from .results import PowerEstimate, TestResult
from .simulation import estimate_power
from .statistics import difference_in_means, studentized_difference

__all__ = [
    "ArmSpec",
    "DegenerateSample",
    "Experiment",
    "GenerationParameters",
    "InsufficientPermutations",
    "InvalidParameters",
    "PowerEstimate",
    "PowerSim",
    "PowerSimError",
    "SimulationConfig",
    "TestResult",
    "analytic_power",
    "difference_in_means",
    "estimate_power",
    "exact_randomization_test",
    "generate",
    "permute",
    "randomization_test",
    "studentized_difference",
    "welch_test",
]
