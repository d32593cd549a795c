"""
Instrumented primitives: compare, access, swap and write.

They are the only suspension points of an execution unit. Each call waits
for permission from the unit's controller, performs its effect, counts it,
and emits its events while holding the event bus lock; then it charges the
step budget and sleeps the inter-operation delay. Nothing the observer sees
between two primitives is a half-finished operation.
"""
from .errors import SortCancelled
from .events import ArrayUpdate, OperationUpdate


class UnitView:
    """
    Maps a unit's local indices onto the run's display collection.

    Units own their values; the display is the read-only mirror that
    ArrayUpdate snapshots are taken from. ``offset`` is where the unit's
    first element sits in the global order.
    """

    def __init__(self, run, unit_id, offset: int = 0):
        self._run    = run
        self.unit_id = unit_id
        self.offset  = offset

    def positions(self, indices):
        if indices is None:
            return None
        return [self.offset + i for i in indices]

    def publish(self, arr, indices, mirror=True):
        """Emit the display with ``indices`` touched; copy them from ``arr`` first."""
        if self._run.cancelled:
            raise SortCancelled(f"unit {self.unit_id} stopped")
        display = self._run.display
        if mirror:
            for i in indices:
                display[self.offset + i] = arr[i]
        self._run.bus.emit(ArrayUpdate(display, self.positions(indices), self.unit_id))


class Operations:
    """The primitive set handed to an algorithm engine for one unit."""

    def __init__(self, run, unit_id, controller, offset: int = 0):
        self._run       = run
        self._bus       = run.bus
        self._board     = run.board
        self.unit_id    = unit_id
        self.controller = controller
        self.view       = UnitView(run, unit_id, offset)

    def _guard(self):
        if self._run.cancelled:
            raise SortCancelled(f"unit {self.unit_id} stopped")

    def _emit(self, event):
        # a listener may have stopped the run while handling the previous event
        self._guard()
        self._bus.emit(event)

    def _done(self):
        self.controller.release()
        self.controller.pace(self._run.delay)

    def narrate(self, operation, description, indices=None, values=None):
        """Describe what the algorithm is doing. Not a suspension point."""
        with self._bus.lock:
            self._emit(OperationUpdate(
                operation, description, self.view.positions(indices), values, self.unit_id))

    # ============================================================
    # ======================== PRIMITIVES ========================
    # ============================================================

    def compare(self, a, b, indices=None) -> int:
        """-1, 0 or 1 as ``a`` is less than, equal to or greater than ``b``."""
        self.controller.acquire()
        with self._bus.lock:
            self._guard()
            result = (a > b) - (a < b)
            self._board.record(self.unit_id, "comparisons")
            if indices is not None:
                i, j = indices
                text = f"Comparing positions {self.view.offset + i} and {self.view.offset + j} ({a} vs {b})"
            else:
                text = f"Comparing {a} and {b}"
            self._emit(OperationUpdate(
                "comparison", text, self.view.positions(indices), (a, b), self.unit_id))
        self._done()
        return result

    def access(self, arr, index: int):
        self.controller.acquire()
        with self._bus.lock:
            self._guard()
            value = arr[index]
            self._board.record(self.unit_id, "accesses")
            self._guard()
        self._done()
        return value

    def write(self, arr, index: int, value):
        """Store ``value``; shifts and placements are counted as accesses."""
        self.controller.acquire()
        with self._bus.lock:
            self._guard()
            self._board.record(self.unit_id, "accesses")
            self._guard()
            arr[index] = value
            self.view.publish(arr, (index,))
        self._done()

    def swap(self, arr, i: int, j: int):
        if i == j:
            return
        self.controller.acquire()
        with self._bus.lock:
            self._guard()
            self._board.record(self.unit_id, "swaps")
            gi, gj = self.view.offset + i, self.view.offset + j
            self._emit(OperationUpdate(
                "swap", f"Swapping positions {gi} and {gj} ({arr[i]} <-> {arr[j]})",
                (gi, gj), (arr[i], arr[j]), self.unit_id))
            # intended swap, display still holds the pre-swap values
            self.view.publish(arr, (i, j), mirror=False)
            self._guard()
            arr[i], arr[j] = arr[j], arr[i]
            self.view.publish(arr, (i, j))
        self._done()
