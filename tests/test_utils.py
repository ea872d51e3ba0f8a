import logging

import numpy as np
import pytest

from ri_power.utils import (
    as_generator,
    broadcast_to_groups,
    get_logger,
    log_and_raise_error,
    spawn_seeds,
)


def test_broadcast_to_groups():
    logger = get_logger("test")
    assert broadcast_to_groups([2.0], 3, "values", logger) == [2.0, 2.0, 2.0]
    assert broadcast_to_groups(5, 2, "values", logger) == [5, 5]
    assert broadcast_to_groups([1, 2, 3], 3, "values", logger) == [1, 2, 3]
    with pytest.raises(ValueError, match="values should be same length"):
        broadcast_to_groups([1, 2], 3, "values", logger)


def test_log_and_raise_error(caplog):
    logger = get_logger("raiser")
    logger.propagate = True
    with caplog.at_level(logging.ERROR, logger="raiser"):
        with pytest.raises(KeyError):
            log_and_raise_error(logger, "missing", KeyError)
    assert "missing" in caplog.text


def test_spawn_seeds_are_reproducible():
    a = spawn_seeds(np.random.default_rng(1), 5)
    b = spawn_seeds(np.random.default_rng(1), 5)
    assert a == b
    assert len(set(a)) == 5
    assert all(isinstance(s, int) for s in a)
    assert spawn_seeds(np.random.default_rng(1), 0) == []


def test_as_generator():
    rng = np.random.default_rng(0)
    assert as_generator(rng) is rng
    assert as_generator(3).integers(100) == np.random.default_rng(3).integers(100)
    assert isinstance(as_generator(None), np.random.Generator)
