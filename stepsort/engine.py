"""
SortingEngine: the control surface observers drive.

One engine owns one collection and at most one run at a time. ``start``
builds the run (partition map, one controller per unit, the merge
controller for multi-unit mode) and hands it to a coordinator thread that
dispatches the units, waits for every one of them to report, merges, and
completes. Control inputs take the event bus lock first, update the
engine's own status, then broadcast to every controller of the run.

pause, enable_step_mode and execute_step return once their effect is
observable: every unit is parked or done. When called from inside an event
listener they return immediately instead, because the units cannot make
progress while the caller holds the delivery.
"""
import logging
import threading

from . import commands
from .algorithms import algorithm_name, check_radix_input, digit_count, get_algorithm
from .collector import MERGE_STRATEGIES, Collector
from .controller import (COMPLETED, IDLE, PAUSED, RUNNING, STEPPING,
                         ExecutionController, delay_for_speed)
from .datasets import generate_array
from .errors import ConfigurationError, DispatchError, SortCancelled
from .events import ArrayUpdate, ErrorEvent, EventBus, MetricsUpdate, OperationUpdate, SortingComplete
from .metrics import MetricsBoard
from .partition import PIVOT, partition, range_partition
from .settings import DEFAULTS
from .units import MERGE_UNIT, Run, SortUnit

logger = logging.getLogger(__name__)


class SortingEngine:
    def __init__(self, settings: dict | None = None, bus: EventBus | None = None):
        self.settings   = dict(DEFAULTS if settings is None else settings)
        self.bus        = bus or EventBus()
        self._control   = ExecutionController("engine")
        self._board     = MetricsBoard(self.bus)
        self._speed     = self.settings["speed"]
        self._per_step  = self.settings["operations_per_step"]
        self._collection = []
        self._run: Run | None = None
        self._pmap      = None
        self._result    = None
        self._error     = None
        self._handlers  = {
            commands.Start:                self._start_command,
            commands.Pause:                lambda c: self.pause(),
            commands.Resume:               lambda c: self.resume(),
            commands.Stop:                 lambda c: self.stop(),
            commands.EnableStepMode:       lambda c: self.enable_step_mode(),
            commands.ExecuteStep:          lambda c: self.execute_step(),
            commands.SetSpeed:             lambda c: self.set_speed(c.speed),
            commands.SetOperationsPerStep: lambda c: self.set_operations_per_step(c.count),
            commands.Reset:                lambda c: self.reset(),
        }

    # ------------------------------------------------------------ queries

    @property
    def status(self) -> str:
        return self._control.status

    @property
    def failed(self) -> bool:
        return self._control.failed

    @property
    def metrics(self):
        return self._board.snapshot()

    def unit_metrics(self, unit_id):
        return self._board.unit(unit_id)

    @property
    def collection(self) -> list:
        with self.bus.lock:
            return list(self._collection)

    @property
    def result(self) -> list | None:
        """The sorted collection of the last successful run."""
        with self.bus.lock:
            return list(self._result) if self._result is not None else None

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def partition_map(self):
        return self._pmap

    @property
    def speed(self):
        return self._speed

    def subscribe(self, listener):
        return self.bus.subscribe(listener)

    def unsubscribe(self, listener):
        self.bus.unsubscribe(listener)

    # ------------------------------------------------------------ input

    def load(self, collection) -> bool:
        """Replace the collection; only between runs."""
        with self.bus.lock:
            if self._control.status not in (IDLE, COMPLETED):
                logger.warning("cannot load a collection while %s", self._control.status)
                return False
            self._control.reset()
            self._collection = list(collection)
            self._result = None
            self._board = MetricsBoard(self.bus)
            self.bus.emit(ArrayUpdate(self._collection))
            return True

    def initialize(self, size: int | None = None, distribution: str | None = None, seed=None) -> bool:
        size = self.settings["size"] if size is None else size
        distribution = distribution or self.settings["distribution"]
        return self.load(generate_array(size, distribution, seed))

    # ------------------------------------------------------------ start

    def _configure(self, algorithm, values, unit_count):
        get_algorithm(algorithm)
        if unit_count < 1 or unit_count > self.settings["max_units"]:
            raise ConfigurationError(
                f"unit count must be between 1 and {self.settings['max_units']}, got {unit_count}")
        if unit_count > 1:
            pmap = partition(values, unit_count, algorithm)
        else:
            pmap = range_partition(values, 1)
            pmap.algorithm = algorithm
        sorter = get_algorithm(pmap.algorithm)
        options = {}
        if pmap.algorithm == "radix":
            check_radix_input(values)
            if unit_count > 1 and values:
                options["digits"] = digit_count(max(values))
        return pmap, sorter, options

    def start(self, algorithm: str, collection=None, speed=None, step_mode: bool = False,
              unit_count: int | None = None) -> bool:
        """
        Begin sorting. Returns False, with an ``error`` event for
        configuration problems, when the run could not be started.
        """
        with self.bus.lock:
            if self._control.status not in (IDLE, COMPLETED):
                logger.warning("start ignored while %s", self._control.status)
                return False
            values = list(self._collection if collection is None else collection)
            unit_count = self.settings["units"] if unit_count is None else unit_count
            try:
                pmap, sorter, options = self._configure(algorithm, values, unit_count)
            except ConfigurationError as e:
                logger.error("cannot start %s: %s", algorithm, e)
                self._error = str(e)
                self.bus.emit(ErrorEvent(str(e)))
                return False

            if speed is not None:
                self._speed = speed
            self._collection = values
            self._result = None
            self._error = None
            self._pmap = pmap
            self._board = MetricsBoard(self.bus)
            run = Run(self.bus, self._board, values,
                      delay_for_speed(self._speed, self.settings["min_delay_ms"],
                                      self.settings["max_delay_ms"]))
            for p in pmap:
                c = run.add_controller(p.unit_id, ExecutionController(
                    f"unit-{p.unit_id}", run.cond, self._per_step))
                c.start(step_mode)
                c.begin()
            if len(pmap) > 1:
                run.set_merge_controller(ExecutionController(MERGE_UNIT, run.cond, self._per_step))
                run.merge_controller.start(step_mode)
            run.collector = Collector(pmap.unit_ids, run.cond)
            self._control.start(step_mode)
            self._run = run

            name = algorithm_name(algorithm)
            logger.info("starting %s on %d element(s), %d unit(s)%s",
                        name, len(values), len(pmap), " in step mode" if step_mode else "")
            self.bus.emit(ArrayUpdate(values))
            self.bus.emit(MetricsUpdate(0, 0, 0))
            self.bus.emit(OperationUpdate("status", f"Starting {name}"))
            if len(pmap) > 1:
                self._announce_partition(run, pmap)
            if step_mode:
                self.bus.emit(OperationUpdate("waiting", "Waiting for next step"))

            run.coordinator = threading.Thread(
                target=self._coordinate, args=(run, pmap, sorter, options),
                name="stepsort-coordinator", daemon=True)
            run.coordinator.start()
            return True

    def _start_command(self, cmd):
        return self.start(cmd.algorithm, cmd.collection, cmd.speed, cmd.step_mode, cmd.unit_count)

    def _announce_partition(self, run, pmap):
        sizes = ", ".join(str(len(p)) for p in pmap)
        self.bus.emit(OperationUpdate(
            "partition", f"Split {len(run.display)} element(s) into {len(pmap)} {pmap.strategy} "
                         f"partitions ({sizes})"))
        if pmap.strategy == PIVOT:
            self.bus.emit(OperationUpdate(
                "pivot-selection", f"Pivots {pmap.pivots}", values=pmap.pivots))
            # buckets are laid out in output order
            layout = [v for p in pmap for v in p.values]
            run.display[:] = layout
            self.bus.emit(ArrayUpdate(layout, range(len(layout))))

    # ------------------------------------------------------------ coordinator

    def _coordinate(self, run: Run, pmap, sorter, options):
        try:
            with run.registry:
                for p in pmap:
                    unit = run.registry.add(SortUnit(run, p, sorter, options))
                    try:
                        unit.launch()
                    except DispatchError as e:
                        logger.error("dispatch failed: %s", e)
                        run.report_error(str(e), p.unit_id)
                        run.collector.unit_failed(p.unit_id, e)
                        unit.controller.end()

                if not run.collector.wait(lambda: run.cancelled):
                    return
                failures = run.collector.failures
                if failures:
                    ids = ", ".join(str(u) for u in sorted(failures, key=str))
                    self._fail(run, f"unit(s) {ids} failed, merge skipped")
                    return

                parts = run.collector.parts(pmap)
                if len(pmap) == 1:
                    self._complete(run, parts[0])
                else:
                    self._merge(run, pmap, parts)
        except SortCancelled:
            logger.debug("coordinator cancelled")
        except Exception as e:
            logger.exception("run failed")
            self._fail(run, f"run failed: {e}")
        finally:
            run.finish()

    def _merge(self, run: Run, pmap, parts):
        run.begin_merge()
        try:
            ops = run.merge_ops
            how = "concatenating" if pmap.strategy == PIVOT else "k-way merging"
            ops.narrate("merge", f"All {len(pmap)} units done, {how} results")
            out = list(run.display)
            MERGE_STRATEGIES[pmap.strategy](ops, parts, out)
            self._complete(run, out)
        finally:
            run.merge_controller.end()

    def _complete(self, run: Run, result):
        with self.bus.lock:
            if run.cancelled:
                return
            result = list(result)
            self._result = result
            self._collection = list(result)
            run.display[:] = result
            self.bus.emit(ArrayUpdate(result, range(len(result)), sorted=True))
            if run.cancelled:
                return
            metrics = self._board.snapshot()
            self.bus.emit(OperationUpdate("status", "Sorting complete"))
            self.bus.emit(SortingComplete(metrics.as_dict()))
            self._control.finish()
            run.broadcast("finish")
            logger.info("sorted %d element(s): %r", len(result), metrics)

    def _fail(self, run: Run, message):
        with self.bus.lock:
            if run.cancelled:
                return
            logger.error("%s", message)
            self._error = message
            self.bus.emit(ErrorEvent(message))
            self._control.fail()
            run.broadcast("fail")

    # ------------------------------------------------------------ control

    def _settle(self, run, wait):
        if wait and run is not None and not self.bus.dispatching():
            run.wait_quiescent()

    def pause(self, wait: bool = True) -> bool:
        with self.bus.lock:
            if not self._control.pause():
                return False
            run = self._run
            run.broadcast("pause")
            self.bus.emit(OperationUpdate("status", "Paused"))
        self._settle(run, wait)
        return True

    def resume(self) -> bool:
        with self.bus.lock:
            if not self._control.resume():
                return False
            self._run.broadcast("resume")
            self.bus.emit(OperationUpdate("status", "Resumed"))
            return True

    def enable_step_mode(self, wait: bool = True) -> bool:
        with self.bus.lock:
            if not self._control.enable_step():
                return False
            run = self._run
            run.broadcast("enable_step")
            self.bus.emit(OperationUpdate("step", "Step mode enabled"))
        self._settle(run, wait)
        return True

    def execute_step(self, wait: bool = True) -> bool:
        """Let every live unit complete ``operations_per_step`` primitives."""
        with self.bus.lock:
            if not self._control.execute_step():
                return False
            run = self._run
            self.bus.emit(OperationUpdate("step", "Executing step"))
            run.grant_step()
        if not wait or self.bus.dispatching():
            return True
        run.wait_quiescent()
        with self.bus.lock:
            if self._control.status == STEPPING and not run.cancelled and not run.done:
                self.bus.emit(OperationUpdate("waiting", "Waiting for next step"))
        return True

    def stop(self, wait: bool = True) -> bool:
        """Abandon the run and restore the collection it started from."""
        with self.bus.lock:
            if not self._control.stop():
                return False
            run = self._run
            run.cancel()
            self._collection = list(run.original)
            self._result = None
            self.bus.emit(ArrayUpdate(self._collection))
            self.bus.emit(OperationUpdate("status", "Sorting stopped"))
            logger.info("run stopped")
        if wait and not self.bus.dispatching():
            run.join()
        return True

    def reset(self) -> bool:
        with self.bus.lock:
            if not self._control.reset():
                return False
            self.bus.emit(OperationUpdate("status", "Ready"))
            return True

    def set_speed(self, speed):
        if speed is not None and (isinstance(speed, bool) or not isinstance(speed, (int, float))):
            raise ValueError(f"speed must be a number or None, got {speed!r}")
        with self.bus.lock:
            self._speed = speed
            run = self._run
            if run is not None:
                with run.cond:
                    run.delay = delay_for_speed(speed, self.settings["min_delay_ms"],
                                                self.settings["max_delay_ms"])
                    run.cond.notify_all()

    def set_operations_per_step(self, count: int):
        with self.bus.lock:
            self._control.operations_per_step = count
            self._per_step = count
            if self._run is not None:
                with self._run.cond:
                    for c in self._run.all_controllers():
                        c.operations_per_step = count

    def dispatch(self, command):
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"unknown command: {command!r}")
        return handler(command)

    # ------------------------------------------------------------ lifecycle

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the current run has ended; False on timeout."""
        run = self._run
        if run is None:
            return True
        if not run.wait_done(timeout):
            return False
        run.join(timeout)
        return True

    def close(self):
        if self._control.status in (RUNNING, PAUSED, STEPPING):
            self.stop()
        self.wait()
