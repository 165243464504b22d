import itertools
import random

import pytest

from conftest import scattered
from salesman.config import ConfigError
from salesman.evolutionary import (
    EvolutionConfig,
    GeneticAlgorithm,
    GeneticAlgorithmSolver,
    genetic_algorithm,
    initial_population,
)
from salesman.operators import (
    DescendingGeneMutation,
    OnePointCrossover,
    TournamentSelection,
    make_fitness,
    termination_factory,
)
from salesman.solvers.base import Solution
from salesman.solvers.genome import Alternative


def make_engine(rng=None, crossover=0.9, mutation=0.1):
    return GeneticAlgorithm(
        make_fitness(),
        TournamentSelection(),
        OnePointCrossover(crossover),
        DescendingGeneMutation(mutation),
        rng or random.Random(0),
    )


@pytest.mark.parametrize("size", [1, 2, 7, 10])
def test_step_preserves_population_size(size):
    problem = scattered(7)
    rng = random.Random(size)
    population = initial_population(problem, size, rng)
    engine = make_engine(rng)
    for _ in range(5):
        population = engine.step(population)
        assert len(population) == size
        for specimen in population:
            specimen.validate()


def test_step_without_variation_only_resamples_parents():
    problem = scattered(7)
    rng = random.Random(4)
    population = initial_population(problem, 10, rng)
    engine = make_engine(rng, crossover=0.0, mutation=0.0)
    children = engine.step(population)
    assert all(child in population for child in children)


def test_run_calls_termination_once_per_generation():
    problem = scattered(6)
    rng = random.Random(2)
    seen = []

    def termination(population, fitnesses, generation):
        seen.append((len(population), len(fitnesses), generation))
        return generation < 4

    make_engine(rng).run(initial_population(problem, 8, rng), termination)
    assert seen == [(8, 8, 1), (8, 8, 2), (8, 8, 3), (8, 8, 4)]


def test_run_hands_initial_population_to_termination():
    problem = scattered(6)
    rng = random.Random(3)
    population = initial_population(problem, 6, rng)
    calls = []

    class Recorder:
        def begin(self, population, fitnesses):
            calls.append(("begin", list(population), list(fitnesses)))

        def __call__(self, population, fitnesses, generation):
            calls.append(("generation", generation))
            return generation < 2

    make_engine(rng).run(population, Recorder())
    fitness = make_fitness()
    assert calls[0] == ("begin", population, [fitness(s) for s in population])
    assert calls[1:] == [("generation", 1), ("generation", 2)]


def test_result_comes_from_final_population_only():
    problem = scattered(5)
    every = [Alternative(problem, g) for g in itertools.product(range(5), range(4), range(3), range(2))]
    good = min(every, key=lambda a: a.goal())
    bad = max(every, key=lambda a: a.goal())

    result = genetic_algorithm(
        [good] * 4,
        make_fitness(),
        lambda fitnesses, rng: 0,
        lambda a, b, rng: (a, b),
        lambda specimen, rng: bad,
        lambda population, fitnesses, generation: generation < 1,
        rng=random.Random(0),
    )
    assert result == bad
    assert result.goal() > good.goal()


def test_best_picks_highest_fitness():
    problem = scattered(6)
    rng = random.Random(8)
    population = initial_population(problem, 12, rng)
    engine = make_engine(rng)
    best = engine.best(population)
    assert best.goal() == pytest.approx(min(s.goal() for s in population))


def test_empty_population_is_rejected():
    with pytest.raises(ValueError):
        make_engine().run([], lambda *args: False)


def test_permutation_population():
    problem = scattered(6)
    population = initial_population(problem, 5, random.Random(1), "permutation")
    assert all(isinstance(s, Solution) for s in population)


def test_ga_improves_on_random_tours():
    problem = scattered(8, seed=12)
    rng = random.Random(12)
    population = initial_population(problem, 30, rng)
    start_best = min(s.goal() for s in population)
    engine = make_engine(rng, crossover=0.9, mutation=0.2)
    best = engine.run(population, termination_factory({"iteration_count": "60"}))
    assert best.goal() <= start_best * 1.25


def test_config_defaults_and_parsing():
    cfg = EvolutionConfig.from_args({})
    assert cfg.population_size == 10
    assert cfg.crossover_probability == 0.9
    assert cfg.mutation_probability == 0.1
    assert cfg.crossover == "crossover_one_point"
    assert cfg.mutation == "mutation_change_one_city_descending"

    cfg = EvolutionConfig.from_args(
        {"population_size": "40", "encoding": "permutation", "print_population_stats": "true", "seed": "3"}
    )
    assert cfg.population_size == 40
    assert cfg.crossover == "crossover_ox"
    assert cfg.mutation == "mutation_swap"
    assert cfg.print_population_stats is True
    assert cfg.random_seed == 3
    assert cfg.to_args()["print_population_stats"] == "true"
    assert cfg.to_args()["seed"] == "3"


@pytest.mark.parametrize(
    "args",
    [
        {"population_size": "many"},
        {"crossover_probability": "high"},
        {"mutation_probability": "1.5"},
        {"encoding": "binary"},
        {"print_population_stats": "maybe"},
    ],
)
def test_config_errors(args):
    with pytest.raises(ConfigError):
        EvolutionConfig.from_args(args)


def test_solver_is_reproducible_under_seed():
    problem = scattered(9, seed=1)
    args = {"population_size": "20", "iteration_count": "30", "seed": "17"}
    first = GeneticAlgorithmSolver().solve(problem, args)
    second = GeneticAlgorithmSolver().solve(problem, args)
    assert isinstance(first, Solution)
    assert first == second


def test_solver_emits_population_stats_to_sink():
    problem = scattered(6)
    lines = []
    GeneticAlgorithmSolver(sink=lines.append).solve(
        problem, {"population_size": "6", "iteration_count": "4", "print_population_stats": "true", "seed": "1"}
    )
    assert [line.split()[0] for line in lines] == ["1", "2", "3", "4"]
