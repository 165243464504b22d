from typing import Dict, Mapping

from .config import ConfigError
from .data import Problem
from .evolutionary import GeneticAlgorithmSolver
from .island import IslandGeneticAlgorithmSolver
from .solvers.base import Solution, Solver
from .solvers.heuristics import LOCAL_SEARCH_SOLVERS


def generate_methods_map() -> Dict[str, Solver]:
    solvers = list(LOCAL_SEARCH_SOLVERS) + [GeneticAlgorithmSolver(), IslandGeneticAlgorithmSolver()]
    return {s.name: s for s in solvers}


METHODS: Dict[str, Solver] = generate_methods_map()


def get_method(name: str) -> Solver:
    try:
        return METHODS[name]
    except KeyError:
        raise ConfigError(
            f"unknown method {name!r}; available: {', '.join(sorted(METHODS))}"
        ) from None


def run_method(name: str, problem: Problem, args: Mapping[str, str]) -> Solution:
    return get_method(name).solve(problem, args)
