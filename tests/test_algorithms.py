import random

import pytest

from conftest import tagged
from stepsort.algorithms import ALGORITHM_INFO, ALGORITHMS, digit_count
from stepsort.events import METRICS_UPDATE, OPERATION_UPDATE, SORTING_COMPLETE

BUILT_IN = ["bubble", "selection", "insertion", "merge", "quick", "heap", "radix", "tim"]
STABLE = ["bubble", "insertion", "merge", "radix", "tim"]


def test_catalogue_lists_every_built_in():
    keys = [k for _, k in ALGORITHMS]
    for key in BUILT_IN:
        assert key in keys
        assert key in ALGORITHM_INFO


@pytest.mark.parametrize("algorithm", BUILT_IN)
@pytest.mark.parametrize("values", [
    [],
    [7],
    [2, 1],
    [5, 3, 8, 1, 9, 2],
    [4, 4, 4, 1, 1, 0, 4],
    list(range(20, 0, -1)),
])
def test_sorts_small_inputs(run_sort, algorithm, values):
    engine = run_sort(algorithm, values)
    assert engine.result == sorted(values)


@pytest.mark.parametrize("algorithm", BUILT_IN)
def test_sorts_random_input(run_sort, algorithm):
    values = random.Random(7).choices(range(1000), k=150)
    assert run_sort(algorithm, values).result == sorted(values)


@pytest.mark.parametrize("algorithm", STABLE)
def test_stable_algorithms_keep_equal_elements_in_order(run_sort, algorithm):
    values = tagged(random.Random(3).choices(range(6), k=60))
    result = run_sort(algorithm, values).result
    assert result == sorted(values)
    for a, b in zip(result, result[1:]):
        if a == b:
            assert a.tag < b.tag


@pytest.mark.parametrize("values", [[], [42]])
def test_trivial_inputs_complete_without_work(run_sort, recorder, values):
    engine = run_sort("quick", values)
    assert engine.metrics == {"comparisons": 0, "swaps": 0, "accesses": 0}
    assert len(recorder.of_kind(SORTING_COMPLETE)) == 1


def test_insertion_scenario_counts(run_sort, recorder):
    engine = run_sort("insertion", [5, 3, 8, 1, 9, 2])
    assert engine.result == [1, 2, 3, 5, 8, 9]
    # 5 key reads, 8 shifts and 5 placements; shifts are never swaps
    assert engine.metrics == {"comparisons": 11, "swaps": 0, "accesses": 18}
    assert not recorder.operations("swap")


def test_quick_sort_on_equal_elements(run_sort):
    engine = run_sort("quick", [1, 1, 1])
    assert engine.result == [1, 1, 1]
    # 2 comparisons in the first partition, 1 in the second; every swap is i == j
    assert engine.metrics == {"comparisons": 3, "swaps": 0, "accesses": 2}


def test_bubble_counts_and_early_exit(run_sort):
    engine = run_sort("bubble", [3, 1, 2])
    assert engine.metrics == {"comparisons": 3, "swaps": 2, "accesses": 0}
    engine.load([1, 2, 3, 4])
    engine.start("bubble")
    engine.wait(5)
    assert engine.metrics == {"comparisons": 3, "swaps": 0, "accesses": 0}


def test_selection_skips_same_index_swap(run_sort):
    engine = run_sort("selection", [1, 3, 2])
    assert engine.metrics.swaps == 1


def test_metrics_match_primitive_invocations(run_sort, recorder):
    engine = run_sort("heap", random.Random(11).sample(range(100), 40))
    updates = recorder.of_kind(METRICS_UPDATE)
    for prev, cur in zip(updates, updates[1:]):
        assert cur.comparisons >= prev.comparisons
        assert cur.swaps >= prev.swaps
        assert cur.accesses >= prev.accesses
    last = updates[-1]
    assert engine.metrics == {"comparisons": last.comparisons, "swaps": last.swaps,
                              "accesses": last.accesses}
    assert last.comparisons == len(recorder.operations("comparison"))
    assert last.swaps == len(recorder.operations("swap"))


def test_radix_rejects_negative_input(engine, recorder):
    assert engine.start("radix", [3, -1, 2]) is False
    assert engine.status == "idle"
    assert "non-negative" in engine.error


def test_radix_makes_no_comparisons(run_sort):
    engine = run_sort("radix", [170, 45, 75, 90, 802, 24, 2, 66])
    assert engine.result == [2, 24, 45, 66, 75, 90, 170, 802]
    assert engine.metrics.comparisons == 0


def test_narration_uses_known_kinds(run_sort, recorder):
    run_sort("merge", [4, 2, 3, 1])
    kinds = {e.operation for e in recorder.of_kind(OPERATION_UPDATE)}
    assert {"split", "merge", "comparison", "status"} <= kinds


@pytest.mark.parametrize("value, digits", [(0, 1), (9, 1), (10, 2), (802, 3), (1000, 4)])
def test_digit_count(value, digits):
    assert digit_count(value) == digits
