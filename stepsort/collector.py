"""
Collecting unit results and reassembling the global order.
"""
import logging
import threading

from .partition import PIVOT, RANGE

logger = logging.getLogger(__name__)


class Collector:
    """
    Join point for one run's units.

    Units report in any order; ``resolved`` becomes true once every
    dispatched unit has either completed or failed. Results are stored per
    unit id and read back in partition-map order, never completion order.
    """

    def __init__(self, unit_ids, cond: threading.Condition | None = None):
        self._cond     = cond or threading.Condition()
        self._pending  = set(unit_ids)
        self._results  = {}
        self._failures = {}

    def unit_completed(self, unit_id, values):
        with self._cond:
            if unit_id not in self._pending:
                logger.warning("unexpected completion from unit %s", unit_id)
                return
            self._pending.discard(unit_id)
            self._results[unit_id] = list(values)
            logger.debug("unit %s completed, %d pending", unit_id, len(self._pending))
            self._cond.notify_all()

    def unit_failed(self, unit_id, message):
        with self._cond:
            self._pending.discard(unit_id)
            self._failures[unit_id] = str(message)
            logger.debug("unit %s failed, %d pending", unit_id, len(self._pending))
            self._cond.notify_all()

    @property
    def resolved(self) -> bool:
        with self._cond:
            return not self._pending

    @property
    def failed(self) -> bool:
        with self._cond:
            return bool(self._failures)

    @property
    def failures(self) -> dict:
        with self._cond:
            return dict(self._failures)

    def wait(self, cancelled=lambda: False) -> bool:
        """Block until every unit resolved. False when ``cancelled()`` came first."""
        with self._cond:
            while self._pending and not cancelled():
                self._cond.wait()
            return not self._pending

    def parts(self, pmap) -> list:
        """Each unit's sorted values, in partition-map order."""
        with self._cond:
            return [self._results[p.unit_id] for p in pmap]


# ============================================================
# ===================== MERGE STRATEGIES =====================
# ============================================================

def concatenate(ops, parts, out):
    """Pivot buckets are already in output order; no primitive is needed."""
    pos = 0
    for part in parts:
        out[pos:pos + len(part)] = part
        pos += len(part)
    return out


def kway_merge(ops, parts, out):
    """
    Repeatedly take the smallest front element across all parts.

    The scan goes in unit order and only a strictly smaller element replaces
    the current best, so ties go to the lowest unit index and the merge is
    stable. Every comparison and placement is a primitive of the merge unit.
    """
    cursors = [0] * len(parts)
    total = sum(len(p) for p in parts)
    for k in range(total):
        best = -1
        for u, part in enumerate(parts):
            if cursors[u] >= len(part):
                continue
            if best < 0:
                best = u
                continue
            if ops.compare(part[cursors[u]], parts[best][cursors[best]]) < 0:
                best = u
        ops.write(out, k, parts[best][cursors[best]])
        cursors[best] += 1
    return out


MERGE_STRATEGIES = {
    PIVOT: concatenate,
    RANGE: kway_merge,
}
