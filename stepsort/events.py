"""
Outbound events and their delivery.

The core talks to its observers (renderers, sound, the CLI) through exactly
five event kinds. Every event is a small immutable record with a ``kind`` tag;
``dispatch_event`` matches them exhaustively so a consumer that forgets a kind
fails loudly instead of dropping events.
"""
import logging
import threading

logger = logging.getLogger(__name__)

ARRAY_UPDATE     = "array_update"
METRICS_UPDATE   = "metrics_update"
OPERATION_UPDATE = "operation_update"
SORTING_COMPLETE = "sorting_complete"
ERROR            = "error"

EVENT_KINDS = (ARRAY_UPDATE, METRICS_UPDATE, OPERATION_UPDATE, SORTING_COMPLETE, ERROR)

OPERATION_KINDS = frozenset({
    "comparison", "swap", "access", "write",
    "split", "merge", "partition", "pivot-selection", "key-selection",
    "iteration", "build-heap", "extract-max", "digit-pass",
    "waiting", "status", "step", "error",
})


class Event:
    __slots__ = ()
    kind = None

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def _init(self, **fields):
        for name, value in fields.items():
            object.__setattr__(self, name, value)

    def to_dict(self) -> dict:
        data = {"type": self.kind}
        data.update({name: getattr(self, name) for name in self.__slots__})
        return data

    def __eq__(self, other):
        return type(self) is type(other) and self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash((self.kind, repr(self.to_dict())))

    def __repr__(self):
        body = ", ".join(f"{n}={getattr(self, n)!r}" for n in self.__slots__)
        return f"{type(self).__name__}({body})"


class ArrayUpdate(Event):
    """Snapshot of the displayed collection; ``indices`` were just touched."""
    __slots__ = ("collection", "indices", "unit_id", "sorted")
    kind = ARRAY_UPDATE

    def __init__(self, collection, indices=(), unit_id=None, sorted=False):
        self._init(collection=tuple(collection), indices=tuple(indices),
                   unit_id=unit_id, sorted=sorted)


class MetricsUpdate(Event):
    """Cumulative global counters, plus the emitting unit's own counters."""
    __slots__ = ("comparisons", "swaps", "accesses", "unit_id", "unit")
    kind = METRICS_UPDATE

    def __init__(self, comparisons, swaps, accesses, unit_id=None, unit=None):
        self._init(comparisons=comparisons, swaps=swaps, accesses=accesses,
                   unit_id=unit_id, unit=unit)


class OperationUpdate(Event):
    __slots__ = ("operation", "description", "indices", "values", "unit_id")
    kind = OPERATION_UPDATE

    def __init__(self, operation, description, indices=None, values=None, unit_id=None):
        if operation not in OPERATION_KINDS:
            raise ValueError(f"unknown operation kind: {operation!r}")
        self._init(operation=operation, description=description,
                   indices=tuple(indices) if indices is not None else None,
                   values=tuple(values) if values is not None else None,
                   unit_id=unit_id)


class SortingComplete(Event):
    __slots__ = ("metrics",)
    kind = SORTING_COMPLETE

    def __init__(self, metrics=None):
        self._init(metrics=dict(metrics or {}))


class ErrorEvent(Event):
    __slots__ = ("message", "unit_id")
    kind = ERROR

    def __init__(self, message, unit_id=None):
        self._init(message=str(message), unit_id=unit_id)


def dispatch_event(event: Event, handlers: dict):
    """
    Call the handler registered for ``event.kind``.

    ``handlers`` must cover every kind in EVENT_KINDS; a partial table raises
    KeyError up front, whatever the event.
    """
    missing = [k for k in EVENT_KINDS if k not in handlers]
    if missing:
        raise KeyError(f"no handler for event kinds: {', '.join(missing)}")
    return handlers[event.kind](event)


# ============================================================
# ========================= DELIVERY =========================
# ============================================================

class EventBus:
    """
    Synchronous, order-preserving fan-out to listeners.

    ``emit`` holds a re-entrant lock for the whole delivery, so events from
    concurrent units are serialized and every listener sees the same order.
    Listeners may call back into the engine (the lock is re-entrant).
    """

    def __init__(self):
        self.lock       = threading.RLock()
        self._listeners = []
        self._local     = threading.local()

    def subscribe(self, listener):
        with self.lock:
            self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener):
        with self.lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def dispatching(self) -> bool:
        """True when the calling thread is inside a listener callback."""
        return getattr(self._local, "depth", 0) > 0

    def emit(self, event: Event):
        with self.lock:
            self._local.depth = getattr(self._local, "depth", 0) + 1
            try:
                for listener in list(self._listeners):
                    try:
                        listener(event)
                    except Exception:
                        logger.exception("listener %r failed on %s", listener, event.kind)
            finally:
                self._local.depth -= 1


class EventRecorder:
    """Listener that keeps the whole stream; handy for the CLI and tests."""

    def __init__(self):
        self._lock   = threading.Lock()
        self._events = []

    def __call__(self, event):
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list:
        with self._lock:
            return list(self._events)

    def of_kind(self, kind) -> list:
        return [e for e in self.events if e.kind == kind]

    def operations(self, operation) -> list:
        return [e for e in self.of_kind(OPERATION_UPDATE) if e.operation == operation]

    def clear(self):
        with self._lock:
            self._events.clear()
