import pytest

from stepsort.datasets import DISTRIBUTIONS, generate_array, is_sorted, parse_values
from stepsort.errors import ConfigurationError


@pytest.mark.parametrize("distribution", DISTRIBUTIONS)
def test_size_and_types(distribution):
    arr = generate_array(50, distribution, seed=1)
    assert len(arr) == 50
    assert all(type(v) is int and v >= 1 for v in arr)


def test_seed_is_reproducible():
    assert generate_array(30, "random", seed=4) == generate_array(30, "random", seed=4)


def test_shapes():
    assert generate_array(5, "reversed") == [5, 4, 3, 2, 1]
    assert sorted(generate_array(40, "nearly-sorted", seed=3)) == list(range(1, 41))
    assert set(generate_array(200, "few-unique", seed=3)) <= {1, 2, 3, 4, 5}
    assert max(generate_array(100, "random", seed=3)) <= 100
    assert generate_array(0, "random") == []


def test_unknown_distribution():
    with pytest.raises(ConfigurationError):
        generate_array(10, "gaussian")
    with pytest.raises(ConfigurationError):
        generate_array(-1)


def test_is_sorted():
    assert is_sorted([])
    assert is_sorted([1, 1, 2])
    assert not is_sorted([2, 1])


def test_parse_values():
    assert parse_values("5, 3,8") == [5, 3, 8]
    assert parse_values("1.5,2") == [1.5, 2]
    with pytest.raises(ConfigurationError):
        parse_values("1,x")
