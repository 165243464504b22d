import argparse
import logging
import sys
import time
from typing import Dict, List

from salesman.config import ConfigError
from salesman.data import Instance, load_instance, load_json, save_solution
from salesman.methods import METHODS, get_method
from salesman.operators import available_operators


def log(msg: str) -> None:
    ts = time.strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", file=sys.stderr, flush=True)


def parse_options(pairs: List[str]) -> Dict[str, str]:
    options = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ConfigError(f"expected KEY=VALUE, got {pair!r}")
        options[key.strip()] = value.strip()
    return options


def run(args) -> None:
    options = parse_options(args.set)
    solver = get_method(args.method)
    instance = load_instance(args.input) if args.input else Instance("stdin", load_json(sys.stdin))
    problem = instance.problem
    log(f"loaded {instance.name}: {len(problem)} cities")
    t0 = time.perf_counter()
    result = solver.solve(problem, options)
    elapsed = time.perf_counter() - t0
    log(f"method_name: {solver.name}")
    log(f"calculation_time: {elapsed:.4f}")
    log(f"solution_goal_value: {result.goal():.6f}")
    gap = instance.gap(result.goal())
    if gap is not None:
        log(f"optimum_gap: {gap:.4%} (optimum {instance.optimum:.6f})")
    save_solution(result, args.out)


def methods(args) -> None:
    print(" ".join(sorted(METHODS)))
    for role, names in available_operators().items():
        print(f"{role}: {' '.join(names)}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="TSP metaheuristics CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug records")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Solve a problem with the selected method")
    run_parser.add_argument("--method", default="brute_force")
    run_parser.add_argument("--in", dest="input", help="JSON or TSPLIB problem (stdin JSON if omitted)")
    run_parser.add_argument("--out", help="Result JSON path (stdout if omitted)")
    run_parser.add_argument("--set", action="append", metavar="KEY=VALUE", help="Method option, repeatable")
    run_parser.set_defaults(func=run)

    methods_parser = subparsers.add_parser("methods", help="List methods and operators")
    methods_parser.set_defaults(func=methods)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    try:
        args.func(args)
    except ConfigError as exc:
        parser.exit(2, f"error: {exc}\n")


if __name__ == "__main__":
    main()
