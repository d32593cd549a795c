"""
Execution controller: the per-unit state machine and its suspension protocol.

A controller decides whether a primitive may run right now. Algorithm code
never looks at it directly; the instrumented primitives call ``acquire``
before their effect and ``release``/``pace`` after it, which makes them the
only places a unit can be held. Waits are on a condition variable and end
only on an explicit resume, step, or stop.
"""
import logging
import threading
import time

from .errors import SortCancelled
from .settings import MAX_DELAY_MS, MIN_DELAY_MS

logger = logging.getLogger(__name__)

IDLE      = "idle"
RUNNING   = "running"
PAUSED    = "paused"
STEPPING  = "stepping"
COMPLETED = "completed"

STATUSES = (IDLE, RUNNING, PAUSED, STEPPING, COMPLETED)


def delay_for_speed(speed, floor_ms: float = MIN_DELAY_MS, ceiling_ms: float = MAX_DELAY_MS) -> float:
    """
    Seconds to wait between operations at ``speed`` (1..100, clamped).

    ``None`` runs unthrottled. Otherwise the delay is 1000 / (speed^2 / 100) ms,
    kept inside [floor_ms, ceiling_ms] so a fast speed never busy-spins.
    """
    if speed is None:
        return 0.0
    speed = max(1, min(100, speed))
    ms = 1000.0 / (speed * speed * 0.01)
    return max(floor_ms, min(ceiling_ms, ms)) / 1000.0


def _check_per_step(count):
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValueError(f"operations per step must be an integer >= 1, got {count!r}")
    return count


class ExecutionController:
    """
    Status cell plus wakeup mechanism of one execution unit.

    Control methods return True when the transition applied and False when
    it is not valid from the current status (the call is then a no-op).
    Controllers of the same run share ``cond`` so the run can ask whether
    all of its units are quiescent in one atomic check.
    """

    def __init__(self, name: str = "unit", cond: threading.Condition | None = None,
                 operations_per_step: int = 1):
        self.name             = name
        self._cond            = cond or threading.Condition()
        self._status          = IDLE
        self._per_step        = _check_per_step(operations_per_step)
        self._allowance       = 0       # primitive completions granted by the last step
        self._used            = 0       # completions consumed from that grant
        self.operation_count  = 0
        self.failed           = False
        self._cancelled       = False
        self._active          = False   # a thread may call acquire()
        self._parked          = False   # that thread is blocked in acquire()
        self._finished        = False

    # ---------------------------------------------------------------- state

    @property
    def status(self) -> str:
        with self._cond:
            return self._status

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return self._active and not self._finished

    @property
    def parked(self) -> bool:
        with self._cond:
            return self._parked

    @property
    def operations_per_step(self) -> int:
        return self._per_step

    @operations_per_step.setter
    def operations_per_step(self, count: int):
        with self._cond:
            self._per_step = _check_per_step(count)

    def _transition(self, valid, new_status, event) -> bool:
        if self._status not in valid:
            logger.debug("%s: ignoring %s while %s", self.name, event, self._status)
            return False
        logger.debug("%s: %s -> %s (%s)", self.name, self._status, new_status, event)
        self._status = new_status
        self._cond.notify_all()
        return True

    # -------------------------------------------------------- control inputs

    def start(self, step_mode: bool = False) -> bool:
        with self._cond:
            if not self._transition((IDLE, COMPLETED), STEPPING if step_mode else RUNNING, "start"):
                return False
            self.operation_count = 0
            self._allowance = self._used = 0
            self.failed = self._cancelled = self._finished = self._parked = False
            return True

    def pause(self) -> bool:
        with self._cond:
            return self._transition((RUNNING,), PAUSED, "pause")

    def resume(self) -> bool:
        with self._cond:
            if not self._transition((PAUSED, STEPPING), RUNNING, "resume"):
                return False
            self._allowance = self._used = 0
            return True

    def enable_step(self) -> bool:
        with self._cond:
            if not self._transition((RUNNING, PAUSED), STEPPING, "enable_step"):
                return False
            self._allowance = self._used = 0
            return True

    def execute_step(self) -> bool:
        with self._cond:
            if not self._transition((STEPPING,), STEPPING, "execute_step"):
                return False
            self._used = 0
            self._allowance = self._per_step
            self._parked = False
            return True

    def stop(self) -> bool:
        with self._cond:
            if not self._transition((RUNNING, PAUSED, STEPPING), IDLE, "stop"):
                return False
            self._cancelled = True
            return True

    def cancel(self):
        """Make every pending and future ``acquire`` raise SortCancelled."""
        with self._cond:
            self._cancelled = True
            self._cond.notify_all()

    def finish(self) -> bool:
        with self._cond:
            return self._transition((RUNNING, STEPPING, PAUSED), COMPLETED, "finish")

    def fail(self) -> bool:
        with self._cond:
            if not self._transition((RUNNING, STEPPING, PAUSED), COMPLETED, "fail"):
                return False
            self.failed = True
            return True

    def reset(self) -> bool:
        with self._cond:
            return self._transition((COMPLETED,), IDLE, "reset")

    # ------------------------------------------------------------ unit side

    def begin(self):
        with self._cond:
            self._active = True
            self._finished = False

    def end(self):
        with self._cond:
            self._active = False
            self._parked = False
            self._finished = True
            self._cond.notify_all()

    def _may_proceed(self) -> bool:
        if self._status == RUNNING:
            return True
        if self._status == STEPPING:
            return self._used < self._allowance
        if self._status == PAUSED:
            return False
        # idle or completed: this unit has no run to take part in
        raise SortCancelled(f"{self.name} is {self._status}")

    def acquire(self):
        """Block until the next primitive may run."""
        with self._cond:
            while True:
                if self._cancelled:
                    raise SortCancelled(f"{self.name} stopped")
                if self._may_proceed():
                    break
                if not self._parked:
                    self._parked = True
                    self._cond.notify_all()
                self._cond.wait()
            self._parked = False

    def release(self):
        """Count one completed primitive against the step budget."""
        with self._cond:
            self.operation_count += 1
            if self._status == STEPPING:
                self._used += 1
                if self._used >= self._allowance:
                    self._cond.notify_all()

    def pace(self, delay: float):
        """Inter-operation delay; cut short by pause, step mode, or stop."""
        if delay <= 0:
            return
        deadline = time.monotonic() + delay
        with self._cond:
            while self._status == RUNNING and not self._cancelled:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._cond.wait(remaining)

    def quiescent(self) -> bool:
        """
        True when this unit will not run another primitive without a new
        control input (parked, finished, cancelled, not started), or is free
        running. Call with the shared condition held.
        """
        if not self._active or self._finished or self._cancelled:
            return True
        if self._status not in (PAUSED, STEPPING):
            return True
        return self._parked
