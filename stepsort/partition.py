"""
Splitting a collection across execution units.

Range strategies cut the input into contiguous chunks; the pivot strategy
buckets values by sampled thresholds so that the sorted buckets only need to
be concatenated. Either way every input element lands in exactly one unit.
"""
import math

import numpy as np

from .errors import ConfigurationError

RANGE = "range"
PIVOT = "pivot"

MAX_SAMPLE = 1000

# algorithm key -> (strategy, algorithm each unit runs)
MULTI_UNIT = {
    "quick": (PIVOT, "quick"),
    "merge": (RANGE, "merge"),
    "radix": (RANGE, "radix"),
    "tim":   (RANGE, "insertion"),
}


class Partition:
    """One unit's share: its global output range [start, end) and its values."""
    __slots__ = ("unit_id", "start", "end", "values")

    def __init__(self, unit_id, start: int, end: int, values: list):
        self.unit_id = unit_id
        self.start   = start
        self.end     = end
        self.values  = values

    def __len__(self):
        return self.end - self.start

    def __repr__(self):
        return f"Partition({self.unit_id}, {self.start}, {self.end}, n={len(self.values)})"


class PartitionMap:
    def __init__(self, partitions, strategy: str, pivots=(), algorithm=None):
        self.partitions = list(partitions)
        self.strategy   = strategy
        self.pivots     = list(pivots)
        self.algorithm  = algorithm    # what each unit runs

    def __iter__(self):
        return iter(self.partitions)

    def __len__(self):
        return len(self.partitions)

    def __getitem__(self, i):
        return self.partitions[i]

    @property
    def unit_ids(self):
        return [p.unit_id for p in self.partitions]

    def ranges(self):
        return [(p.unit_id, p.start, p.end) for p in self.partitions]

    def covers(self, n: int) -> bool:
        """True when the ranges tile [0, n) in order with no gap or overlap."""
        pos = 0
        for p in self.partitions:
            if p.start != pos or p.end < p.start or len(p.values) != len(p):
                return False
            pos = p.end
        return pos == n


def range_partition(values, unit_count: int) -> PartitionMap:
    n = len(values)
    chunk = math.ceil(n / unit_count) if n else 0
    parts = []
    for uid in range(unit_count):
        start = min(uid * chunk, n)
        end   = min(start + chunk, n)
        parts.append(Partition(uid, start, end, list(values[start:end])))
    return PartitionMap(parts, RANGE)


def sample_pivots(values, unit_count: int) -> list:
    """``unit_count - 1`` thresholds taken at even strides of a sorted sample."""
    n = len(values)
    if n == 0 or unit_count < 2:
        return []
    step   = max(1, n // min(MAX_SAMPLE, n))
    sample = np.sort(np.asarray(values)[::step])
    stride = len(sample) // unit_count
    return [sample[i * stride].item() for i in range(1, unit_count)]


def pivot_partition(values, unit_count: int) -> PartitionMap:
    pivots = sample_pivots(values, unit_count)
    buckets = [[] for _ in range(unit_count)]
    if pivots:
        # first pivot the value is <= to; past the last pivot means the last bucket
        slots = np.searchsorted(np.asarray(pivots), np.asarray(values), side="left").tolist()
    else:
        slots = [0] * len(values)
    for v, b in zip(values, slots):
        buckets[b].append(v)

    parts, pos = [], 0
    for uid, bucket in enumerate(buckets):
        parts.append(Partition(uid, pos, pos + len(bucket), bucket))
        pos += len(bucket)
    return PartitionMap(parts, PIVOT, pivots)


def partition(values, unit_count: int, algorithm: str) -> PartitionMap:
    """Split ``values`` for ``algorithm``; the map's ``algorithm`` is what units run."""
    if unit_count < 1:
        raise ConfigurationError(f"unit count must be >= 1, got {unit_count}")
    if algorithm not in MULTI_UNIT:
        raise ConfigurationError(f"{algorithm} cannot run on multiple units")
    strategy, unit_algorithm = MULTI_UNIT[algorithm]
    if strategy == PIVOT:
        pmap = pivot_partition(values, unit_count)
    else:
        pmap = range_partition(values, unit_count)
    pmap.algorithm = unit_algorithm
    return pmap
