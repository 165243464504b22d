"""
Genetic operators and the registries that build them from option strings.

Each role is a small callable interface that receives the random generator
explicitly, so the same operator can serve several demes with private
generators. Factoradic operators work gene-wise on ``Alternative`` genomes;
permutation operators work on ``Solution`` orders.
"""

import logging
import random
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type

import numpy as np

from .config import get_bool, get_float, get_int
from .solvers.base import Solution
from .solvers.genome import Alternative


logger = logging.getLogger(__name__)

FITNESS_SCALE = 10_000_000.0

FACTORADIC = "factoradic"
PERMUTATION = "permutation"
ENCODINGS = (FACTORADIC, PERMUTATION)


def make_fitness(scale: float = FITNESS_SCALE) -> Callable[[object], float]:
    def fitness(specimen) -> float:
        return scale / (1.0 + specimen.goal())

    return fitness


# -- selection ---------------------------------------------------------------


class Selection(ABC):
    name: str = "selection"

    @abstractmethod
    def __call__(self, fitnesses: Sequence[float], rng: random.Random) -> int:
        raise NotImplementedError


class TournamentSelection(Selection):
    name = "tournament_selection"

    def __call__(self, fitnesses: Sequence[float], rng: random.Random) -> int:
        first = rng.randrange(len(fitnesses))
        second = rng.randrange(len(fitnesses))
        return first if fitnesses[first] > fitnesses[second] else second


class RouletteSelection(Selection):
    name = "roulette_selection"

    def __call__(self, fitnesses: Sequence[float], rng: random.Random) -> int:
        total = float(sum(fitnesses))
        u = rng.uniform(0.0, total)
        for i in range(len(fitnesses) - 1, -1, -1):
            total -= fitnesses[i]
            if total <= u:
                return i
        return 0


class RankSelection(Selection):
    """Roulette over ranks 1..N instead of raw fitness."""

    name = "rank_selection"

    def __init__(self):
        self._roulette = RouletteSelection()

    def __call__(self, fitnesses: Sequence[float], rng: random.Random) -> int:
        ranked = sorted(range(len(fitnesses)), key=lambda i: fitnesses[i])
        weights = [float(r + 1) for r in range(len(ranked))]
        return ranked[self._roulette(weights, rng)]


# -- crossover ---------------------------------------------------------------


def one_point(a: Alternative, b: Alternative, cut: int) -> Tuple[Alternative, Alternative]:
    """Swap the suffix starting at ``cut``."""
    if len(a) == 0:
        raise ValueError("crossover needs at least two cities")
    return (
        a.with_genes(a.genes[:cut] + b.genes[cut:]),
        b.with_genes(b.genes[:cut] + a.genes[cut:]),
    )


def two_point(a: Alternative, b: Alternative, start: int, end: int) -> Tuple[Alternative, Alternative]:
    """Swap the segment ``[start, end)``."""
    if len(a) == 0:
        raise ValueError("crossover needs at least two cities")
    if start > end:
        start, end = end, start
    return (
        a.with_genes(a.genes[:start] + b.genes[start:end] + a.genes[end:]),
        b.with_genes(b.genes[:start] + a.genes[start:end] + b.genes[end:]),
    )


def order_crossover(a: Solution, b: Solution, start: int, end: int) -> Tuple[Solution, Solution]:
    if len(a) < 2:
        raise ValueError("crossover needs at least two cities")
    if start > end:
        start, end = end, start

    def child(p1: Sequence[int], p2: Sequence[int]) -> Tuple[int, ...]:
        segment = p1[start:end]
        taken = set(segment)
        rest = [c for c in p2 if c not in taken]
        return tuple(rest[:start]) + tuple(segment) + tuple(rest[start:])

    return Solution(a.problem, child(a.order, b.order)), Solution(a.problem, child(b.order, a.order))


class Crossover(ABC):
    name: str = "crossover"

    def __init__(self, probability: float):
        self.probability = probability

    def __call__(self, a, b, rng: random.Random):
        if rng.random() < self.probability:
            return self.cross(a, b, rng)
        return a, b

    @abstractmethod
    def cross(self, a, b, rng: random.Random):
        raise NotImplementedError


class OnePointCrossover(Crossover):
    name = "crossover_one_point"

    def cross(self, a, b, rng):
        return one_point(a, b, rng.randrange(len(a)))


class TwoPointCrossover(Crossover):
    name = "crossover_two_point"

    def cross(self, a, b, rng):
        return two_point(a, b, rng.randrange(len(a)), rng.randrange(len(a)))


class OrderCrossover(Crossover):
    name = "crossover_ox"

    def cross(self, a, b, rng):
        return order_crossover(a, b, rng.randrange(len(a)), rng.randrange(len(a)))


# -- mutation ----------------------------------------------------------------


class Mutation(ABC):
    name: str = "mutation"

    def __init__(self, probability: float):
        self.probability = probability

    def __call__(self, specimen, rng: random.Random):
        if rng.random() < self.probability:
            return self.mutate(specimen, rng)
        return specimen

    @abstractmethod
    def mutate(self, specimen, rng: random.Random):
        raise NotImplementedError


class DescendingGeneMutation(Mutation):
    """Redraw one gene uniformly within its positional bound."""

    name = "mutation_change_one_city_descending"

    def mutate(self, specimen: Alternative, rng):
        i = rng.randrange(len(specimen))
        return specimen.with_gene(i, rng.randrange(specimen.bound(i)))


class SwapMutation(Mutation):
    name = "mutation_swap"

    def mutate(self, specimen: Solution, rng):
        order = list(specimen.order)
        i = rng.randrange(len(order))
        j = rng.randrange(len(order))
        order[i], order[j] = order[j], order[i]
        return Solution(specimen.problem, tuple(order))


class InverseMutation(Mutation):
    name = "mutation_inverse"

    def mutate(self, specimen: Solution, rng):
        order = list(specimen.order)
        i, j = sorted((rng.randrange(len(order)), rng.randrange(len(order) + 1)))
        order[i:j] = reversed(order[i:j])
        return Solution(specimen.problem, tuple(order))


# -- termination -------------------------------------------------------------


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation (divides by n)."""
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def population_stats_line(population: Sequence, fitnesses: Sequence[float], generation: int) -> str:
    fit = np.asarray(fitnesses, dtype=float)
    pairs = " ".join(f"{s.goal():.6g}:{f:.6g}" for s, f in zip(population, fit))
    return f"{generation} {fit.max():.6g} {fit.mean():.6g} {standard_deviation(fit):.6g}  {pairs}"


class Termination(ABC):
    """Predicate deciding whether evolution continues after a generation."""

    name: str = "termination"

    def __init__(self, print_population_stats: bool = False, sink: Callable[[str], None] = print):
        self.print_population_stats = print_population_stats
        self.sink = sink

    @classmethod
    def from_args(cls, args: Mapping[str, str], **common) -> "Termination":
        return cls(**common)

    def begin(self, population: Sequence, fitnesses: Sequence[float]) -> None:
        """Called once with the initial population before the first generation."""

    def __call__(self, population: Sequence, fitnesses: Sequence[float], generation: int) -> bool:
        if self.print_population_stats:
            self.sink(population_stats_line(population, fitnesses, generation))
        return self.proceed(population, fitnesses, generation)

    @abstractmethod
    def proceed(self, population: Sequence, fitnesses: Sequence[float], generation: int) -> bool:
        raise NotImplementedError


class IterationCountTermination(Termination):
    name = "iteration_count"

    def __init__(self, iteration_count: int = 10, **kwargs):
        super().__init__(**kwargs)
        self.iteration_count = iteration_count

    @classmethod
    def from_args(cls, args, **common):
        return cls(get_int(args, "iteration_count", 10), **common)

    def proceed(self, population, fitnesses, generation):
        return generation < self.iteration_count


class NoImprovementTermination(Termination):
    """
    Stops once the best fitness has not strictly improved for
    ``stall_generations`` generations. The baseline is the initial
    population's best when the engine calls ``begin``; otherwise the first
    generation seen.
    """

    name = "no_improvement"

    def __init__(self, stall_generations: int = 100, **kwargs):
        super().__init__(**kwargs)
        self.stall_generations = stall_generations
        self.best: Optional[float] = None
        self.last_improvement = 0

    @classmethod
    def from_args(cls, args, **common):
        return cls(get_int(args, "stall_generations", 100), **common)

    def begin(self, population, fitnesses):
        self.best = max(fitnesses) if len(fitnesses) else None
        self.last_improvement = 0

    def proceed(self, population, fitnesses, generation):
        current = max(fitnesses)
        if self.best is None or current > self.best:
            self.best = current
            self.last_improvement = generation
        if generation - self.last_improvement < self.stall_generations:
            return True
        logger.info("no improvement for %d generations, finishing at %d", self.stall_generations, generation)
        return False


class StddevTermination(Termination):
    name = "stddev"

    def __init__(self, stddev_threshold: float = 1e-7, **kwargs):
        super().__init__(**kwargs)
        self.stddev_threshold = stddev_threshold

    @classmethod
    def from_args(cls, args, **common):
        return cls(get_float(args, "stddev_threshold", 1e-7), **common)

    def proceed(self, population, fitnesses, generation):
        return standard_deviation(fitnesses) > self.stddev_threshold


def begin_termination(termination: Callable, population: Sequence, fitnesses: Sequence[float]) -> None:
    # plain predicate functions carry no per-run state
    begin = getattr(termination, "begin", None)
    if begin is not None:
        begin(population, fitnesses)


# -- registries --------------------------------------------------------------


def _registry(*classes) -> Dict[str, Type]:
    return {cls.name: cls for cls in classes}


SELECTIONS: Dict[str, Type[Selection]] = _registry(TournamentSelection, RouletteSelection, RankSelection)

CROSSOVERS: Dict[str, Dict[str, Type[Crossover]]] = {
    FACTORADIC: _registry(OnePointCrossover, TwoPointCrossover),
    PERMUTATION: _registry(OrderCrossover),
}

MUTATIONS: Dict[str, Dict[str, Type[Mutation]]] = {
    FACTORADIC: _registry(DescendingGeneMutation),
    PERMUTATION: _registry(SwapMutation, InverseMutation),
}

DEFAULT_CROSSOVER = {FACTORADIC: OnePointCrossover.name, PERMUTATION: OrderCrossover.name}
DEFAULT_MUTATION = {FACTORADIC: DescendingGeneMutation.name, PERMUTATION: SwapMutation.name}

TERMINATIONS: Dict[str, Type[Termination]] = _registry(
    IterationCountTermination, NoImprovementTermination, StddevTermination
)


def _check_encoding(encoding: str) -> None:
    if encoding not in ENCODINGS:
        raise ValueError(f"unknown encoding {encoding!r}, expected one of {ENCODINGS}")


def selection_factory(name: str) -> Selection:
    if name not in SELECTIONS:
        logger.warning("falling back to default selection: tournament_selection (got %r)", name)
        name = TournamentSelection.name
    return SELECTIONS[name]()


def crossover_factory(name: str, probability: float, encoding: str = FACTORADIC) -> Crossover:
    _check_encoding(encoding)
    available = CROSSOVERS[encoding]
    if name not in available:
        logger.warning("falling back to default crossover: %s (got %r)", DEFAULT_CROSSOVER[encoding], name)
        name = DEFAULT_CROSSOVER[encoding]
    return available[name](probability)


def mutation_factory(name: str, probability: float, encoding: str = FACTORADIC) -> Mutation:
    _check_encoding(encoding)
    available = MUTATIONS[encoding]
    if name not in available:
        logger.warning("falling back to default mutation: %s (got %r)", DEFAULT_MUTATION[encoding], name)
        name = DEFAULT_MUTATION[encoding]
    return available[name](probability)


def termination_factory(args: Mapping[str, str], sink: Callable[[str], None] = print) -> Termination:
    name = args.get("termination", IterationCountTermination.name)
    if name not in TERMINATIONS:
        logger.warning("falling back to default termination: iteration_count (got %r)", name)
        name = IterationCountTermination.name
    print_stats = get_bool(args, "print_population_stats", False)
    return TERMINATIONS[name].from_args(args, print_population_stats=print_stats, sink=sink)


def available_operators() -> Dict[str, List[str]]:
    return {
        "selection": sorted(SELECTIONS),
        "crossover": sorted(n for reg in CROSSOVERS.values() for n in reg),
        "mutation": sorted(n for reg in MUTATIONS.values() for n in reg),
        "termination": sorted(TERMINATIONS),
    }
