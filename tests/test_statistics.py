"""
Tests for the pluggable test statistics
"""

import numpy as np
import pytest

from ri_power.exceptions import DegenerateSample, InvalidParameters
from ri_power.statistics import (
    check_alternative,
    difference_in_means,
    evaluate_many,
    get_statistic,
    studentized_difference,
)


@pytest.fixture
def sample():
    outcomes = np.array([1.0, 2.0, 3.0, 4.0, 6.0, 8.0])
    labels = np.array([0, 0, 0, 1, 1, 1])
    return outcomes, labels


def test_difference_in_means(sample):
    outcomes, labels = sample
    assert difference_in_means(outcomes, labels) == pytest.approx(6.0 - 2.0)


def test_studentized_difference_matches_welch(sample):
    outcomes, labels = sample
    treated, control = outcomes[labels == 1], outcomes[labels == 0]
    se = np.sqrt(treated.var(ddof=1) / treated.size + control.var(ddof=1) / control.size)
    assert studentized_difference(outcomes, labels) == pytest.approx((treated.mean() - control.mean()) / se)


@pytest.mark.parametrize("statistic", [difference_in_means, studentized_difference])
def test_matrix_of_assignments(sample, statistic):
    outcomes, labels = sample
    matrix = np.array([labels, labels[::-1], [0, 1, 0, 1, 0, 1]])
    values = statistic(outcomes, matrix)
    assert values.shape == (3,)
    for row, value in zip(matrix, values, strict=True):
        assert value == pytest.approx(statistic(outcomes, row))


def test_empty_arm_is_degenerate():
    with pytest.raises(DegenerateSample):
        difference_in_means(np.array([1.0, 2.0]), np.array([1, 1]))


def test_constant_arms_are_degenerate():
    with pytest.raises(DegenerateSample):
        studentized_difference(np.array([1.0, 1.0, 2.0, 2.0]), np.array([0, 0, 1, 1]))


def test_studentized_difference_with_large_offset():
    rng = np.random.default_rng(8)
    labels = np.repeat([0, 1], 50)
    noise = rng.normal(0, 1, 100) + 0.5 * labels
    expected = studentized_difference(noise, labels)
    assert studentized_difference(1e9 + noise, labels) == pytest.approx(expected, rel=1e-4, abs=1e-5)

    matrix = np.array([labels, rng.permutation(labels)])
    assert studentized_difference(1e9 + noise, matrix) == pytest.approx(
        studentized_difference(noise, matrix), rel=1e-4, abs=1e-5
    )


def test_get_statistic():
    assert get_statistic("difference_in_means") is difference_in_means

    def median_difference(outcomes, labels):
        return float(np.median(outcomes[labels == 1]) - np.median(outcomes[labels == 0]))

    assert get_statistic(median_difference) is median_difference
    with pytest.raises(InvalidParameters):
        get_statistic("ratio_of_means")


def test_evaluate_many_with_custom_statistic(sample):
    outcomes, labels = sample

    def median_difference(outcomes, labels):
        return float(np.median(outcomes[labels == 1]) - np.median(outcomes[labels == 0]))

    matrix = np.array([labels, labels[::-1]])
    np.testing.assert_allclose(evaluate_many(median_difference, outcomes, matrix), [4.0, -4.0])


def test_check_alternative():
    assert check_alternative("greater") == "greater"
    with pytest.raises(InvalidParameters):
        check_alternative("less")
