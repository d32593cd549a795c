import pytest

from stepsort.engine import SortingEngine
from stepsort.events import EventRecorder
from stepsort.settings import DEFAULTS

# upper bound for any wait in the tests; a hang becomes a failure instead
WAIT = 10.0


class Tagged(int):
    """An int that remembers where it came from, for stability checks."""

    def __new__(cls, value, tag):
        obj = super().__new__(cls, value)
        obj.tag = tag
        return obj


def tagged(values):
    return [Tagged(v, i) for i, v in enumerate(values)]


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def engine(recorder):
    eng = SortingEngine(dict(DEFAULTS))
    eng.subscribe(recorder)
    yield eng
    eng.stop()
    assert eng.wait(WAIT)


@pytest.fixture
def run_sort(engine):
    """Sort ``values`` to completion, unthrottled, and return the engine."""

    def _run(algorithm, values, units=None):
        assert engine.start(algorithm, values, unit_count=units)
        assert engine.wait(WAIT)
        return engine

    return _run
