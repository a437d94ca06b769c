import pytest

from autobalance.optimization.sampling import (
    SAMPLING_METHODS,
    reverse_bits,
    sample,
    van_der_corput_gray,
)
from autobalance.utils.exceptions import InvalidBoundsError
from autobalance.utils.random_source import SeededRandom

BOUNDS = {"x": (0.0, 10.0), "y": (-1.0, 1.0), "z": (2.0, 3.0)}


@pytest.mark.parametrize("method", SAMPLING_METHODS)
def test_samples_stay_inside_bounds(method):
    points = sample(BOUNDS, 64, method, SeededRandom(5))
    assert len(points) == 64
    for point in points:
        assert set(point) == set(BOUNDS)
        for name, (low, high) in BOUNDS.items():
            assert low <= point[name] <= high


@pytest.mark.parametrize("method", SAMPLING_METHODS)
def test_zero_count_returns_empty(method):
    assert sample(BOUNDS, 0, method, SeededRandom(1)) == []


@pytest.mark.parametrize("method", SAMPLING_METHODS)
def test_degenerate_bound_is_constant(method):
    points = sample({"fixed": (4.0, 4.0), "free": (0.0, 1.0)}, 20, method, SeededRandom(2))
    assert all(point["fixed"] == 4.0 for point in points)


@pytest.mark.parametrize("n", [10, 17, 50])
def test_latin_hypercube_one_sample_per_stratum(n):
    points = sample({"x": (0.0, 1.0)}, n, "latin-hypercube", SeededRandom(11))
    strata = sorted(min(n - 1, int(point["x"] * n)) for point in points)
    assert strata == list(range(n))


def test_latin_alias_matches_canonical_name():
    assert sample(BOUNDS, 12, "latin", SeededRandom(4)) == sample(BOUNDS, 12, "latin-hypercube", SeededRandom(4))


def test_sobol_is_deterministic_without_rng():
    assert sample(BOUNDS, 16) == sample(BOUNDS, 16)


def test_sobol_first_points_follow_gray_code_radical_inverse():
    points = sample({"x": (0.0, 1.0)}, 4, "sobol")
    assert [p["x"] for p in points] == [0.0, 0.5, 0.75, 0.25]


def test_sobol_dimension_offset():
    points = sample({"x": (0.0, 1.0), "y": (0.0, 1.0)}, 2, "sobol")
    assert points[0]["y"] == pytest.approx(0.1)
    assert points[1]["y"] == pytest.approx(0.6)


def test_reverse_bits_uses_full_width():
    assert reverse_bits(1, width=4) == 0b1000
    assert reverse_bits(0b0110, width=4) == 0b0110
    assert van_der_corput_gray(0) == 0.0


def test_random_sampling_reproducible_with_seed():
    assert sample(BOUNDS, 8, "random", SeededRandom(9)) == sample(BOUNDS, 8, "random", SeededRandom(9))


def test_invalid_inputs():
    with pytest.raises(ValueError):
        sample(BOUNDS, 3, "halton")
    with pytest.raises(ValueError):
        sample(BOUNDS, -1)
    with pytest.raises(InvalidBoundsError):
        sample({}, 3)
    with pytest.raises(InvalidBoundsError):
        sample({"x": (1.0, 0.0)}, 3)
