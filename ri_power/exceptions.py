"""
Exceptions raised by the power simulation engine.
"""


class PowerSimError(Exception):
    """Base class for all simulation errors."""


class InvalidParameters(PowerSimError, ValueError):
    """Malformed generation parameters or simulation settings."""


class InsufficientPermutations(PowerSimError, ValueError):
    """Randomization inference requested with fewer than one permutation."""


class DegenerateSample(PowerSimError, ArithmeticError):
    """A realized arm is too small (or too constant) to compute a test."""
