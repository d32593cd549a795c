"""
Execution units and the run that owns them.

A Run is one sort operation. It holds the condition variable every
controller of the run shares, the cancellation flag, the display mirror and
the registry of live units. Each SortUnit sorts the values it was handed on
its own thread and reports the outcome to the run's collector; nothing it
raises crosses the thread boundary.
"""
import logging
import threading

from .errors import DispatchError, SortCancelled
from .events import ErrorEvent, OperationUpdate
from .primitives import Operations

logger = logging.getLogger(__name__)

MERGE_UNIT = "merge"


class Run:
    def __init__(self, bus, board, collection, delay: float = 0.0):
        self.bus         = bus
        self.board       = board
        self.cond        = threading.Condition()
        self.original    = list(collection)     # restored on stop
        self.display     = list(collection)
        self.delay       = delay
        self.registry    = UnitRegistry()
        self.controllers = {}                   # unit id -> ExecutionController
        self.collector   = None
        self.merge_controller = None
        self.merge_ops   = None
        self.merge_started = False
        self.done        = False
        self.coordinator = None
        self._cancelled  = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def all_controllers(self) -> list:
        found = list(self.controllers.values())
        if self.merge_controller is not None:
            found.append(self.merge_controller)
        return found

    def add_controller(self, unit_id, controller):
        self.controllers[unit_id] = controller
        self.board.register(unit_id)
        return controller

    def set_merge_controller(self, controller):
        self.merge_controller = controller
        self.merge_ops = Operations(self, MERGE_UNIT, controller)
        self.board.register(MERGE_UNIT)

    def broadcast(self, transition: str, *args):
        """Apply one control transition to every controller of the run."""
        with self.cond:
            for c in self.all_controllers():
                getattr(c, transition)(*args)

    def grant_step(self):
        # units that have not begun (the merge unit before merging) get nothing
        with self.cond:
            for c in self.all_controllers():
                if c.active:
                    c.execute_step()

    def cancel(self):
        with self.cond:
            self._cancelled = True
            for c in self.all_controllers():
                c.cancel()
            self.cond.notify_all()

    def begin_merge(self):
        with self.cond:
            self.merge_started = True
            self.merge_controller.begin()
            self.cond.notify_all()

    def finish(self):
        with self.cond:
            self.done = True
            self.cond.notify_all()

    def report_error(self, message, unit_id=None):
        """Emit the failure unless the run was stopped; stopped runs stay silent."""
        with self.bus.lock:
            if self._cancelled:
                return
            self.bus.emit(OperationUpdate("error", message, unit_id=unit_id))
            self.bus.emit(ErrorEvent(message, unit_id))

    # ------------------------------------------------------------ waiting

    def quiescent(self) -> bool:
        """Nothing will happen in this run without a new control input."""
        with self.cond:
            if self.done or self._cancelled:
                return True
            # every unit reported: the coordinator has work to do
            if self.collector is not None and self.collector.resolved and not self.merge_started:
                return False
            return all(c.quiescent() for c in self.all_controllers())

    def wait_quiescent(self):
        with self.cond:
            while not self.quiescent():
                self.cond.wait()

    def wait_done(self, timeout: float | None = None) -> bool:
        with self.cond:
            return self.cond.wait_for(lambda: self.done, timeout)

    def join(self, timeout: float | None = None):
        t = self.coordinator
        if t is not None and t is not threading.current_thread():
            t.join(timeout)


class SortUnit:
    """One partition worker: its values, its controller, its thread."""

    def __init__(self, run: Run, part, sorter, options=None):
        self.unit_id    = part.unit_id
        self.start      = part.start
        self.end        = part.end
        self.values     = part.values
        self.controller = run.controllers[part.unit_id]
        self.ops        = Operations(run, part.unit_id, self.controller, part.start)
        self.thread     = None
        self._run       = run
        self._sorter    = sorter
        self._options   = options or {}

    def launch(self):
        try:
            self.thread = threading.Thread(target=self._work, name=f"stepsort-unit-{self.unit_id}",
                                           daemon=True)
            self.thread.start()
        except RuntimeError as e:
            raise DispatchError(self.unit_id, e) from e
        logger.debug("unit %s launched on [%d, %d)", self.unit_id, self.start, self.end)

    def _work(self):
        run = self._run
        try:
            self._sorter(self.ops, self.values, **self._options)
            run.collector.unit_completed(self.unit_id, self.values)
        except SortCancelled:
            logger.debug("unit %s cancelled", self.unit_id)
        except Exception as e:
            logger.exception("unit %s failed", self.unit_id)
            run.report_error(f"unit {self.unit_id} failed: {e}", self.unit_id)
            run.collector.unit_failed(self.unit_id, e)
        finally:
            self.controller.end()

    def join(self, timeout: float | None = None):
        if self.thread is not None and self.thread is not threading.current_thread():
            self.thread.join(timeout)


class UnitRegistry:
    """
    Live units of one run, keyed by unit id.

    Used as a context manager by the coordinator: leaving the block, however
    it is left, cancels every unit still running and joins all threads.
    """

    def __init__(self):
        self._lock  = threading.Lock()
        self._units = {}

    def add(self, unit: SortUnit) -> SortUnit:
        with self._lock:
            self._units[unit.unit_id] = unit
        return unit

    def __getitem__(self, unit_id) -> SortUnit:
        with self._lock:
            return self._units[unit_id]

    def __contains__(self, unit_id):
        with self._lock:
            return unit_id in self._units

    def __len__(self):
        with self._lock:
            return len(self._units)

    def ids(self) -> list:
        with self._lock:
            return list(self._units)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.teardown()
        return False

    def teardown(self):
        with self._lock:
            units = list(self._units.values())
            self._units.clear()
        for unit in units:
            unit.controller.cancel()
        for unit in units:
            unit.join()
        if units:
            logger.debug("tore down %d unit(s)", len(units))
