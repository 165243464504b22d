import logging
import random
from dataclasses import dataclass, fields
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from .config import ConfigError, get_bool, get_float, get_int, get_seed, get_str
from .data import Problem
from .operators import (
    DEFAULT_CROSSOVER,
    DEFAULT_MUTATION,
    ENCODINGS,
    FACTORADIC,
    IterationCountTermination,
    Termination,
    TournamentSelection,
    begin_termination,
    crossover_factory,
    make_fitness,
    mutation_factory,
    selection_factory,
    termination_factory,
)
from .solvers.base import Solution, Solver
from .solvers.genome import Alternative


logger = logging.getLogger(__name__)


@dataclass
class EvolutionConfig:
    population_size: int = 10
    crossover_probability: float = 0.9
    mutation_probability: float = 0.1
    iteration_count: int = 10
    selection: str = TournamentSelection.name
    crossover: Optional[str] = None
    mutation: Optional[str] = None
    termination: str = IterationCountTermination.name
    encoding: str = FACTORADIC
    print_population_stats: bool = False
    stall_generations: int = 100
    stddev_threshold: float = 1e-7
    random_seed: Optional[int] = None

    def __post_init__(self):
        if self.encoding not in ENCODINGS:
            raise ConfigError(f"encoding must be one of {ENCODINGS}, got {self.encoding!r}")
        if self.population_size < 1:
            raise ConfigError("population_size must be at least 1")
        for name in ("crossover_probability", "mutation_probability"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ConfigError(f"{name} must lie in [0, 1]")
        if self.crossover is None:
            self.crossover = DEFAULT_CROSSOVER[self.encoding]
        if self.mutation is None:
            self.mutation = DEFAULT_MUTATION[self.encoding]

    @classmethod
    def _parse(cls, args: Mapping[str, str]) -> dict:
        d = cls()
        return dict(
            population_size=get_int(args, "population_size", d.population_size),
            crossover_probability=get_float(args, "crossover_probability", d.crossover_probability),
            mutation_probability=get_float(args, "mutation_probability", d.mutation_probability),
            iteration_count=get_int(args, "iteration_count", d.iteration_count),
            selection=get_str(args, "selection", d.selection),
            crossover=args.get("crossover"),
            mutation=args.get("mutation"),
            termination=get_str(args, "termination", d.termination),
            encoding=get_str(args, "encoding", d.encoding),
            print_population_stats=get_bool(args, "print_population_stats", d.print_population_stats),
            stall_generations=get_int(args, "stall_generations", d.stall_generations),
            stddev_threshold=get_float(args, "stddev_threshold", d.stddev_threshold),
            random_seed=get_seed(args),
        )

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "EvolutionConfig":
        return cls(**cls._parse(args))

    def to_args(self) -> dict:
        """Flat string options, the form the termination factory reads."""
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            key = "seed" if f.name == "random_seed" else f.name
            out[key] = str(value).lower() if isinstance(value, bool) else str(value)
        return out


def initial_population(problem: Problem, size: int, rng: random.Random, encoding: str = FACTORADIC) -> List:
    if encoding == FACTORADIC:
        return [Alternative.of(problem, rng) for _ in range(size)]
    return [Alternative.of(problem, rng).decode() for _ in range(size)]


class GeneticAlgorithm:
    """
    Generational GA over an arbitrary genome type.

    Every generation is rebuilt entirely from selected parents; nothing is
    carried over, so the result is the best member of the final population
    and an earlier, better individual can be lost.
    """

    def __init__(
        self,
        fitness: Callable[[object], float],
        selection: Callable[[Sequence[float], random.Random], int],
        crossover: Callable,
        mutation: Callable,
        rng: random.Random = None,
    ):
        self.fitness = fitness
        self.selection = selection
        self.crossover = crossover
        self.mutation = mutation
        self.rng = rng or random.Random()

    def evaluate(self, population: Sequence) -> List[float]:
        return [self.fitness(s) for s in population]

    def step(self, population: Sequence, fitnesses: Sequence[float] = None) -> List:
        if fitnesses is None:
            fitnesses = self.evaluate(population)
        parents = [population[self.selection(fitnesses, self.rng)] for _ in range(len(population))]
        children = []
        for i in range(0, len(parents) - 1, 2):
            children.extend(self.crossover(parents[i], parents[i + 1], self.rng))
        if len(parents) % 2:
            children.append(parents[-1])
        return [self.mutation(c, self.rng) for c in children]

    def best(self, population: Sequence, fitnesses: Sequence[float] = None):
        if fitnesses is None:
            fitnesses = self.evaluate(population)
        best_idx = max(range(len(population)), key=lambda i: fitnesses[i])
        return population[best_idx]

    def run(self, population: Sequence, termination: Callable[[Sequence, Sequence[float], int], bool]):
        if not population:
            raise ValueError("population must not be empty")
        population = list(population)
        fitnesses = self.evaluate(population)
        begin_termination(termination, population, fitnesses)
        generation = 0
        while True:
            population = self.step(population, fitnesses)
            fitnesses = self.evaluate(population)
            generation += 1
            if not termination(population, fitnesses, generation):
                break
        logger.debug("genetic algorithm finished after %d generations", generation)
        return self.best(population, fitnesses)


def genetic_algorithm(population, fitness, selection, crossover, mutation, termination, rng=None):
    return GeneticAlgorithm(fitness, selection, crossover, mutation, rng).run(population, termination)


def build_operators(cfg: EvolutionConfig) -> Tuple[Callable, Callable, Callable]:
    return (
        selection_factory(cfg.selection),
        crossover_factory(cfg.crossover, cfg.crossover_probability, cfg.encoding),
        mutation_factory(cfg.mutation, cfg.mutation_probability, cfg.encoding),
    )


class GeneticAlgorithmSolver(Solver):
    name = "genetic_algorithm"

    def __init__(self, sink: Callable[[str], None] = print):
        self.sink = sink

    def solve(self, problem: Problem, args: Mapping[str, str]) -> Solution:
        cfg = EvolutionConfig.from_args(args)
        termination: Termination = termination_factory(cfg.to_args(), sink=self.sink)
        selection, crossover, mutation = build_operators(cfg)
        rng = random.Random(cfg.random_seed)
        population = initial_population(problem, cfg.population_size, rng, cfg.encoding)
        engine = GeneticAlgorithm(make_fitness(), selection, crossover, mutation, rng)
        best = engine.run(population, termination)
        logger.info("genetic algorithm best goal %.6g", best.goal())
        return best.get_solution()
