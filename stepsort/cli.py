from __future__ import annotations

import argparse
import json
import sys

from .algorithms import ALGORITHM_INFO, ALGORITHMS, autoload_custom_sorters, load_custom_sorter
from .datasets import DISTRIBUTIONS, generate_array, is_sorted, parse_values
from .engine import SortingEngine
from .errors import SortError
from .events import EVENT_KINDS, EventRecorder
from .logging_config import setup_logging
from .settings import load_settings


def _prepare(args: argparse.Namespace):
    """Settings, logging and custom sorters shared by ``run`` and ``view``."""
    settings = load_settings(args.config, units=args.units, size=args.size,
                             distribution=args.distribution)
    setup_logging(args.log_level or settings["log_level"], args.log_file)
    autoload_custom_sorters(settings["custom_sorters"])

    algorithm = args.algorithm
    for path in args.sorter or []:
        result, err = load_custom_sorter(path)
        if result is None:
            raise SortError(f"cannot load sorter {path}: {err}")
        algorithm = algorithm or result[1]
    if algorithm is None:
        raise SortError("no algorithm given (use --algorithm or --sorter)")

    if args.values:
        values = parse_values(args.values)
    else:
        values = generate_array(settings["size"], settings["distribution"], args.seed)
    return settings, algorithm, values


def _cmd_list(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    autoload_custom_sorters(settings["custom_sorters"])
    for name, key in ALGORITHMS:
        info = ALGORITHM_INFO.get(key, {})
        flags = []
        if info.get("stable"):
            flags.append("stable")
        if info.get("multi_unit"):
            flags.append("multi-unit")
        print(f"{key:<12} {name:<18} {info.get('average', '?'):<11} {', '.join(flags)}")
    return 0


def _cmd_run(args: argparse.Namespace) -> int:
    settings, algorithm, values = _prepare(args)
    engine = SortingEngine(settings)
    recorder = EventRecorder()
    engine.subscribe(recorder)
    engine.load(values)

    speed = args.speed if args.speed is not None else settings["speed"]
    if not engine.start(algorithm, speed=speed):
        print(f"error: {engine.error}", file=sys.stderr)
        return 1
    engine.wait()

    if args.events:
        for event in recorder.events:
            print(json.dumps(event.to_dict(), default=str))

    ok = engine.result is not None and not engine.failed
    metrics = engine.metrics.as_dict()
    if args.json:
        pmap = engine.partition_map
        print(json.dumps({
            "algorithm": algorithm,
            "units": len(pmap) if pmap is not None else 1,
            "strategy": pmap.strategy if pmap is not None and len(pmap) > 1 else None,
            "input": values,
            "output": engine.result,
            "sorted": ok and is_sorted(engine.result),
            "metrics": metrics,
            "events": {k: len(recorder.of_kind(k)) for k in EVENT_KINDS},
            "error": engine.error,
        }, indent=2))
    elif not args.events:
        if ok:
            print(" ".join(str(v) for v in engine.result))
            print("comparisons={comparisons} swaps={swaps} accesses={accesses}".format(**metrics))
        else:
            print(f"error: {engine.error}", file=sys.stderr)
    return 0 if ok else 1


def _cmd_view(args: argparse.Namespace) -> int:
    # pygame is only needed here
    from .viewer import run_viewer

    settings, algorithm, values = _prepare(args)
    return run_viewer(settings, algorithm, values, speed=args.speed, step_mode=args.step)


def _add_run_options(p: argparse.ArgumentParser, default_speed):
    p.add_argument("--algorithm", "-a", help="Algorithm key (see 'stepsort list')")
    p.add_argument("--sorter", action="append", metavar="PATH",
                   help="Load a custom sorter file; repeatable")
    p.add_argument("--size", "-n", type=int, help="Generated collection size")
    p.add_argument("--distribution", "-d", choices=DISTRIBUTIONS)
    p.add_argument("--values", help="Comma separated input instead of a generated one")
    p.add_argument("--seed", type=int, help="Seed for the generated collection")
    p.add_argument("--units", "-u", type=int, help="Execution units (multi-unit for merge, quick, radix, tim)")
    p.add_argument("--speed", "-s", type=int, default=default_speed,
                   help="1..100; omit to run unthrottled" if default_speed is None else "1..100")
    p.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR")
    p.add_argument("--log-file", help="Also write the log to this file")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="stepsort",
        description="Step-synchronized sorting with pause, single-step and multi-unit runs.",
    )
    p.add_argument("--config", help="Settings JSON (default: ./stepsort.json if present)")
    sp = p.add_subparsers(dest="command", required=True)

    list_p = sp.add_parser("list", help="List the available algorithms")
    list_p.set_defaults(func=_cmd_list)

    run_p = sp.add_parser("run", help="Sort headless and print the result")
    _add_run_options(run_p, None)
    run_p.add_argument("--json", action="store_true", help="Print a JSON summary")
    run_p.add_argument("--events", action="store_true", help="Print every event as a JSON line")
    run_p.set_defaults(func=_cmd_run)

    view_p = sp.add_parser("view", help="Watch the sort in a pygame window")
    _add_run_options(view_p, 50)
    view_p.add_argument("--step", action="store_true", help="Start in step mode")
    view_p.set_defaults(func=_cmd_view)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except SortError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
