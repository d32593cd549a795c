import random

import pytest

from conftest import WAIT, tagged
from stepsort.controller import COMPLETED, STEPPING
from stepsort.events import ARRAY_UPDATE, METRICS_UPDATE, SORTING_COMPLETE
from stepsort.partition import PIVOT, RANGE


@pytest.mark.parametrize("algorithm, strategy", [
    ("merge", RANGE),
    ("radix", RANGE),
    ("tim", RANGE),
    ("quick", PIVOT),
])
@pytest.mark.parametrize("units", [2, 3, 8])
def test_multi_unit_output_is_sorted(run_sort, recorder, algorithm, strategy, units):
    values = random.Random(units).choices(range(500), k=97)
    engine = run_sort(algorithm, values, units=units)
    assert engine.result == sorted(values)

    pmap = engine.partition_map
    assert pmap.strategy == strategy
    assert len(pmap) == units
    assert pmap.covers(len(values))
    assert sorted(v for p in pmap for v in p.values) == sorted(values)
    assert len(recorder.of_kind(SORTING_COMPLETE)) == 1


def test_more_units_than_elements(run_sort):
    engine = run_sort("merge", [3, 1], units=4)
    assert engine.result == [1, 3]
    assert [len(p) for p in engine.partition_map] == [1, 1, 0, 0]


def test_tim_units_run_insertion_sort(run_sort, recorder):
    engine = run_sort("tim", [4, 3, 2, 1, 8, 7, 6, 5], units=2)
    assert engine.partition_map.algorithm == "insertion"
    assert recorder.operations("key-selection")
    assert engine.result == list(range(1, 9))


def test_kway_merge_is_stable(run_sort):
    values = tagged(random.Random(9).choices(range(4), k=40))
    result = run_sort("merge", values, units=3).result
    assert result == sorted(values)
    for a, b in zip(result, result[1:]):
        if a == b:
            assert a.tag < b.tag


def test_global_metrics_are_sum_of_units(run_sort, recorder):
    engine = run_sort("merge", list(range(40, 0, -1)), units=4)
    board_total = engine.metrics
    units = [engine.unit_metrics(u) for u in [0, 1, 2, 3, "merge"]]
    for field in ("comparisons", "swaps", "accesses"):
        assert getattr(board_total, field) == sum(getattr(m, field) for m in units)
    # the merge itself runs on primitives
    assert engine.unit_metrics("merge").comparisons > 0

    updates = recorder.of_kind(METRICS_UPDATE)
    for prev, cur in zip(updates, updates[1:]):
        assert cur.comparisons >= prev.comparisons
        assert cur.accesses >= prev.accesses
    assert updates[-1].comparisons == board_total.comparisons


def test_quick_units_are_concatenated_without_merge_work(run_sort):
    engine = run_sort("quick", random.Random(1).sample(range(200), 60), units=4)
    assert engine.unit_metrics("merge").comparisons == 0
    assert engine.result == sorted(engine.result)


def test_pivot_layout_is_announced(run_sort, recorder):
    run_sort("quick", [9, 1, 8, 2, 7, 3], units=2)
    assert recorder.operations("partition")
    assert recorder.operations("pivot-selection")


def test_multi_unit_stepping_reaches_completion(engine):
    values = [8, 3, 5, 1, 7, 2, 6, 4]
    assert engine.start("merge", values, step_mode=True, unit_count=2)
    steps = 0
    while engine.status == STEPPING and steps < 1000:
        before = engine.metrics
        assert engine.execute_step()
        grown = sum(engine.metrics.as_dict().values()) - sum(before.as_dict().values())
        # one primitive for every unit still running
        assert 0 <= grown <= 2
        steps += 1
    assert engine.wait(WAIT)
    assert engine.status == COMPLETED
    assert engine.result == sorted(values)


def test_multi_unit_pause_and_stop(engine, recorder):
    values = list(range(60, 0, -1))
    engine.start("merge", values, speed=100, unit_count=3)
    engine.pause()
    assert engine.stop()
    assert engine.wait(WAIT)
    assert engine.collection == values
    assert not recorder.of_kind(SORTING_COMPLETE)
    assert recorder.of_kind(ARRAY_UPDATE)[-1].collection == tuple(values)


def test_algorithm_without_multi_unit_support(engine, recorder):
    assert engine.start("bubble", [3, 2, 1], unit_count=2) is False
    assert "multiple units" in engine.error


def test_unit_count_above_limit(engine):
    assert engine.start("merge", [3, 2, 1], unit_count=engine.settings["max_units"] + 1) is False
