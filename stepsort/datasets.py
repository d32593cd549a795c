import numpy as np

from .errors import ConfigurationError

DISTRIBUTIONS = ("random", "nearly-sorted", "reversed", "few-unique")

NEARLY_SORTED_SWAPS = 0.1   # fraction of positions swapped at random
FEW_UNIQUE_VALUES   = 5


def generate_array(size: int, distribution: str = "random", seed=None) -> list:
    """
    Fresh input collection of ``size`` positive integers.

    random:         uniform over 1..size
    nearly-sorted:  1..size with size/10 random pair swaps
    reversed:       size..1
    few-unique:     uniform over 1..5
    """
    if size < 0:
        raise ConfigurationError(f"size must be >= 0, got {size}")
    if distribution not in DISTRIBUTIONS:
        raise ConfigurationError(
            f"unknown distribution {distribution!r}, expected one of {', '.join(DISTRIBUTIONS)}")
    rng = np.random.default_rng(seed)

    if distribution == "random":
        arr = rng.integers(1, size + 1, size=size)
    elif distribution == "nearly-sorted":
        arr = np.arange(1, size + 1)
        if size:
            for _ in range(int(size * NEARLY_SORTED_SWAPS)):
                i, j = rng.integers(0, size, size=2)
                arr[i], arr[j] = arr[j], arr[i]
    elif distribution == "reversed":
        arr = np.arange(size, 0, -1)
    else:
        arr = rng.integers(1, FEW_UNIQUE_VALUES + 1, size=size)
    return arr.tolist()


def is_sorted(values) -> bool:
    return all(values[i - 1] <= values[i] for i in range(1, len(values)))


def parse_values(text: str) -> list:
    """'5,3,8' -> [5, 3, 8]; floats stay floats."""
    out = []
    for tok in text.replace(" ", "").split(","):
        if not tok:
            continue
        try:
            out.append(int(tok))
        except ValueError:
            try:
                out.append(float(tok))
            except ValueError:
                raise ConfigurationError(f"not a number: {tok!r}") from None
    return out
