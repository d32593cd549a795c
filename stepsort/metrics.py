from .events import MetricsUpdate

FIELDS = ("comparisons", "swaps", "accesses")


class Metrics:
    """Monotonic {comparisons, swaps, accesses} counters of one execution unit."""
    __slots__ = FIELDS

    def __init__(self, comparisons=0, swaps=0, accesses=0):
        self.comparisons = comparisons
        self.swaps       = swaps
        self.accesses    = accesses

    def increment(self, field: str, amount: int = 1):
        if field not in FIELDS:
            raise KeyError(field)
        if amount < 0:
            raise ValueError("metrics never decrease")
        setattr(self, field, getattr(self, field) + amount)

    def add(self, other: "Metrics"):
        for f in FIELDS:
            self.increment(f, getattr(other, f))

    def snapshot(self) -> "Metrics":
        return Metrics(self.comparisons, self.swaps, self.accesses)

    def as_dict(self) -> dict:
        return {f: getattr(self, f) for f in FIELDS}

    def __eq__(self, other):
        if isinstance(other, Metrics):
            return self.as_dict() == other.as_dict()
        if isinstance(other, dict):
            return self.as_dict() == other
        return NotImplemented

    def __repr__(self):
        return "Metrics(comparisons={}, swaps={}, accesses={})".format(
            self.comparisons, self.swaps, self.accesses)


class MetricsBoard:
    """
    Per-unit counters plus the global aggregate of one run.

    ``record`` increments and emits under the event bus lock, so the
    aggregate carried by consecutive MetricsUpdate events never goes down
    and always equals the sum of the unit counters.
    """

    def __init__(self, bus):
        self._bus   = bus
        self.total  = Metrics()
        self.units  = {}

    def register(self, unit_id) -> Metrics:
        with self._bus.lock:
            return self.units.setdefault(unit_id, Metrics())

    def record(self, unit_id, field: str):
        with self._bus.lock:
            unit = self.units.setdefault(unit_id, Metrics())
            unit.increment(field)
            self.total.increment(field)
            self._bus.emit(MetricsUpdate(
                self.total.comparisons, self.total.swaps, self.total.accesses,
                unit_id=unit_id, unit=unit.as_dict(),
            ))

    def snapshot(self) -> Metrics:
        with self._bus.lock:
            return self.total.snapshot()

    def unit(self, unit_id) -> Metrics:
        with self._bus.lock:
            return self.units.get(unit_id, Metrics()).snapshot()
