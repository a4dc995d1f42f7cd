import pytest

from drive_sim.numeric import (
    clamp_num,
    find_sandwiched_elements,
    fuzzy_equals,
    interpolate,
    is_between,
    min_mag,
    regressed_slope,
    regulated_clamp,
    string_to_num,
)


def test_clamp_num():
    assert clamp_num(5, 0, 3) == 3
    assert clamp_num(-5, 0, 3) == 0
    assert clamp_num(2, 0, 3) == 2


def test_is_between_is_inclusive():
    assert is_between(1, 1, 2)
    assert is_between(2, 1, 2)
    assert not is_between(2.01, 1, 2)


@pytest.mark.parametrize(
    "num, expected",
    [
        (5.0, 1.0),
        (-5.0, -1.0),
        (0.5, 0.5),
        (-0.5, -0.5),
        (0.1, 0.2),
        (-0.1, -0.2),
    ],
)
def test_regulated_clamp(num, expected):
    assert regulated_clamp(num, 0.2, 1.0) == pytest.approx(expected)


def test_regulated_clamp_uses_bound_magnitudes():
    assert regulated_clamp(5.0, -0.2, -1.0) == pytest.approx(1.0)


def test_fuzzy_equals_and_min_mag():
    assert fuzzy_equals(1.0, 1.0005, 0.001)
    assert not fuzzy_equals(1.0, 1.01, 0.001)
    assert min_mag(-1.0, 2.0) == -1.0
    assert min_mag(3.0, -2.0) == -2.0


def test_interpolate():
    assert interpolate(5, 0, 0, 10, 10) == pytest.approx(5)
    assert interpolate(15, 1, 10, 2, 20) == pytest.approx(1.5)


def test_interpolate_flat_segment_returns_lower_x():
    assert interpolate(3, 4, 7, 6, 7) == 4


@pytest.mark.parametrize(
    "value, expected",
    [
        (1.5, (1, 2)),
        (2.0, (2, 2)),
        (0.0, (0, 0)),
        (-1.0, (0, 0)),
        (10.0, (3, 3)),
    ],
)
def test_find_sandwiched_elements(value, expected):
    assert find_sandwiched_elements([0.0, 1.0, 2.0, 3.0], value, 1e-3) == expected


def test_regressed_slope():
    assert regressed_slope([0, 1, 2, 3], [1, 3, 5, 7]) == pytest.approx(2.0)


def test_regressed_slope_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        regressed_slope([0, 1, 2], [1, 2])


def test_string_to_num():
    assert string_to_num("3.5") == 3.5
    assert string_to_num("-2") == -2.0
    assert string_to_num("abc") == 0.0
    assert string_to_num("") == 0.0
