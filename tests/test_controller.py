import threading
import time

import pytest

from conftest import WAIT
from stepsort.controller import (COMPLETED, IDLE, PAUSED, RUNNING, STEPPING,
                                 ExecutionController, delay_for_speed)
from stepsort.errors import SortCancelled


def wait_until(predicate, timeout=WAIT):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.005)


def test_transition_table():
    c = ExecutionController()
    assert c.status == IDLE
    assert c.start()
    assert c.status == RUNNING
    assert c.start() is False
    assert c.pause()
    assert c.status == PAUSED
    assert c.pause() is False
    assert c.resume()
    assert c.status == RUNNING
    assert c.enable_step()
    assert c.status == STEPPING
    assert c.execute_step()
    assert c.status == STEPPING
    assert c.resume()
    assert c.execute_step() is False
    assert c.stop()
    assert c.status == IDLE
    assert c.stop() is False
    assert c.reset() is False


def test_start_in_step_mode_and_finish():
    c = ExecutionController()
    assert c.start(step_mode=True)
    assert c.status == STEPPING
    assert c.finish()
    assert c.status == COMPLETED
    assert c.stop() is False
    assert c.reset()
    assert c.status == IDLE


def test_fail_marks_completed():
    c = ExecutionController()
    c.start()
    assert c.fail()
    assert c.status == COMPLETED
    assert c.failed
    c.reset()
    c.start()
    assert not c.failed


def test_paused_unit_blocks_until_stopped():
    c = ExecutionController()
    c.start()
    c.pause()
    c.begin()
    outcome = []

    def worker():
        try:
            c.acquire()
            outcome.append("ran")
        except SortCancelled:
            outcome.append("cancelled")

    t = threading.Thread(target=worker)
    t.start()
    wait_until(lambda: c.parked)
    assert outcome == []
    c.stop()
    t.join(WAIT)
    assert outcome == ["cancelled"]


def test_paused_unit_resumes():
    c = ExecutionController()
    c.start()
    c.pause()
    c.begin()
    done = threading.Event()

    def worker():
        c.acquire()
        c.release()
        done.set()

    t = threading.Thread(target=worker)
    t.start()
    wait_until(lambda: c.parked)
    c.resume()
    assert done.wait(WAIT)
    t.join(WAIT)
    assert c.operation_count == 1


def test_step_budget():
    c = ExecutionController(operations_per_step=2)
    c.start(step_mode=True)
    c.begin()

    def worker():
        for _ in range(3):
            c.acquire()
            c.release()
        c.end()

    t = threading.Thread(target=worker)
    t.start()
    wait_until(lambda: c.parked)
    assert c.operation_count == 0
    c.execute_step()
    wait_until(lambda: c.parked and c.operation_count == 2)
    c.execute_step()
    t.join(WAIT)
    assert c.operation_count == 3
    assert not c.active


def test_quiescent_states():
    cond = threading.Condition()
    c = ExecutionController(cond=cond)
    with cond:
        assert c.quiescent()          # never began
    c.start(step_mode=True)
    c.begin()
    with cond:
        assert not c.quiescent()      # may still run its granted step
    c.end()
    with cond:
        assert c.quiescent()


def test_pace_is_cut_short_by_stop():
    c = ExecutionController()
    c.start()
    t = threading.Timer(0.05, c.stop)
    t.start()
    started = time.monotonic()
    c.pace(5.0)
    assert time.monotonic() - started < 2.0
    t.join()


@pytest.mark.parametrize("count", [0, -1, 1.5, True])
def test_operations_per_step_validation(count):
    with pytest.raises(ValueError):
        ExecutionController(operations_per_step=count)
    c = ExecutionController()
    with pytest.raises(ValueError):
        c.operations_per_step = count


@pytest.mark.parametrize("speed, seconds", [
    (None, 0.0),
    (100, 0.01),
    (50, 0.04),
    (10, 1.0),
    (1, 1.0),
    (0, 1.0),
    (500, 0.01),
])
def test_delay_for_speed(speed, seconds):
    assert delay_for_speed(speed) == pytest.approx(seconds)


def test_delay_floor_is_respected():
    assert delay_for_speed(100, floor_ms=25) == pytest.approx(0.025)
