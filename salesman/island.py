import concurrent.futures
import logging
import random
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Sequence

from .config import ConfigError, get_bool, get_int
from .data import Problem
from .evolutionary import EvolutionConfig, GeneticAlgorithm, build_operators, initial_population
from .operators import begin_termination, make_fitness, termination_factory
from .solvers.base import Solution, Solver


logger = logging.getLogger(__name__)


@dataclass
class IslandConfig(EvolutionConfig):
    population_size: int = 50
    demes: int = 5
    migration_gap: int = 5
    random_replace: bool = True
    parallel: bool = False

    def __post_init__(self):
        super().__post_init__()
        if self.demes < 1:
            raise ConfigError("demes must be at least 1")
        if self.migration_gap < 1:
            raise ConfigError("migration_gap must be at least 1")
        if self.population_size % self.demes:
            raise ConfigError(
                f"population_size {self.population_size} is not divisible into {self.demes} demes"
            )
        if not self.random_replace and self.population_size // self.demes < 3:
            raise ConfigError("ranked migration needs at least 3 specimens per deme")

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "IslandConfig":
        params = cls._parse(args)
        d = cls()
        params.update(
            demes=get_int(args, "demes", d.demes),
            migration_gap=get_int(args, "migration_gap", d.migration_gap),
            random_replace=get_bool(args, "random_replace", d.random_replace),
            parallel=get_bool(args, "parallel", d.parallel),
        )
        return cls(**params)


class IslandModel:
    """
    Demes evolved independently on a ring, exchanging their best specimens
    every ``migration_gap`` generations.
    """

    def __init__(self, cfg: IslandConfig, fitness, selection, crossover, mutation):
        self.cfg = cfg
        self.fitness = fitness
        seed = cfg.random_seed
        self.rng = random.Random(seed)
        self.islands: List[GeneticAlgorithm] = []
        for i in range(cfg.demes):
            rng = random.Random(None if seed is None else seed + i + 1)
            self.islands.append(GeneticAlgorithm(fitness, selection, crossover, mutation, rng))
        self.generation = 0
        self.executor: Optional[concurrent.futures.Executor] = None

    def partition(self, population: Sequence) -> List[List]:
        size = len(population) // self.cfg.demes
        return [list(population[d * size : (d + 1) * size]) for d in range(self.cfg.demes)]

    def _evolve(self, demes: List[List]) -> List[List]:
        # results come back in deme order whatever the thread timing
        if self.executor is not None:
            return list(self.executor.map(lambda pair: pair[0].step(pair[1]), zip(self.islands, demes)))
        return [island.step(deme) for island, deme in zip(self.islands, demes)]

    def _best(self, deme: Sequence):
        return max(deme, key=self.fitness)

    def migrate(self, demes: List[List]) -> List[List]:
        count = len(demes)
        if not self.cfg.random_replace:
            demes = [sorted(deme, key=self.fitness)[2:] for deme in demes]
        migrants = [self._best(deme) for deme in demes]
        result = [list(deme) for deme in demes]
        for i, best in enumerate(migrants):
            for j in ((i + 1) % count, (i - 1) % count):
                if self.cfg.random_replace:
                    result[j][self.rng.randrange(len(result[j]))] = best
                else:
                    result[j].append(best)
        logger.debug("migration at generation %d", self.generation)
        return result

    def step(self, population: Sequence) -> List:
        demes = self._evolve(self.partition(population))
        self.generation += 1
        if self.generation % self.cfg.migration_gap == 0:
            demes = self.migrate(demes)
        return [s for deme in demes for s in deme]

    def run(self, population: Sequence, termination: Callable[[Sequence, Sequence[float], int], bool]):
        """
        Evolve until ``termination`` says stop and return the best of the
        final population. With ``parallel`` set, one thread pool serves the
        whole run.
        """
        if len(population) != self.cfg.population_size:
            raise ValueError(f"expected {self.cfg.population_size} specimens, got {len(population)}")
        if not self.cfg.parallel or self.cfg.demes < 2:
            return self._run(population, termination)
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.cfg.demes) as executor:
            self.executor = executor
            try:
                return self._run(population, termination)
            finally:
                self.executor = None

    def _run(self, population: Sequence, termination):
        population = list(population)
        begin_termination(termination, population, [self.fitness(s) for s in population])
        while True:
            population = self.step(population)
            fitnesses = [self.fitness(s) for s in population]
            if not termination(population, fitnesses, self.generation):
                break
        best_idx = max(range(len(population)), key=lambda i: fitnesses[i])
        return population[best_idx]


def island_model(cfg: IslandConfig, fitness: Optional[Callable] = None) -> IslandModel:
    selection, crossover, mutation = build_operators(cfg)
    return IslandModel(cfg, fitness or make_fitness(), selection, crossover, mutation)


class IslandGeneticAlgorithmSolver(Solver):
    name = "genetic_algorithm_islands"

    def __init__(self, sink: Callable[[str], None] = print):
        self.sink = sink

    def solve(self, problem: Problem, args: Mapping[str, str]) -> Solution:
        cfg = IslandConfig.from_args(args)
        model = island_model(cfg)
        population = initial_population(problem, cfg.population_size, model.rng, cfg.encoding)
        best = model.run(population, termination_factory(cfg.to_args(), sink=self.sink))
        logger.info("island model best goal %.6g after %d generations", best.goal(), model.generation)
        return best.get_solution()
