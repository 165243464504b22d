import concurrent.futures
import math
import random

import pytest

from conftest import scattered
from salesman.config import ConfigError
from salesman.data import circle_problem
from salesman.evolutionary import initial_population
from salesman.island import IslandConfig, IslandGeneticAlgorithmSolver, island_model
from salesman.operators import make_fitness, termination_factory


def build(random_replace, demes=3, population_size=12, seed=5, parallel=False):
    cfg = IslandConfig(
        population_size=population_size,
        demes=demes,
        migration_gap=2,
        random_replace=random_replace,
        parallel=parallel,
        random_seed=seed,
    )
    return island_model(cfg)


def population_for(model, n_cities=7, seed=1):
    return initial_population(scattered(n_cities), model.cfg.population_size, random.Random(seed))


def test_partition_splits_into_equal_demes():
    model = build(True)
    population = population_for(model)
    demes = model.partition(population)
    assert [len(d) for d in demes] == [4, 4, 4]
    assert [s for d in demes for s in d] == population


@pytest.mark.parametrize("demes", [1, 2, 3, 4])
def test_ranked_migration_preserves_deme_sizes(demes):
    model = build(False, demes=demes, population_size=4 * demes)
    before = model.partition(population_for(model))
    after = model.migrate(before)
    assert [len(d) for d in after] == [len(d) for d in before]


def test_ranked_migration_moves_best_to_ring_neighbours():
    model = build(False, demes=4, population_size=16)
    fitness = make_fitness()
    before = model.partition(population_for(model))
    after = model.migrate(before)
    for i, deme in enumerate(before):
        best = max(sorted(deme, key=fitness)[2:], key=fitness)
        assert best in after[(i + 1) % 4]
        assert best in after[(i - 1) % 4]
    for i, deme in enumerate(before):
        survivors = after[i][:-2]
        assert survivors == sorted(deme, key=fitness)[2:]


def test_random_migration_overwrites_neighbours():
    model = build(True, demes=3, population_size=15)
    fitness = make_fitness()
    before = model.partition(population_for(model, n_cities=9))
    after = model.migrate(before)
    assert [len(d) for d in after] == [5, 5, 5]
    for i, deme in enumerate(after):
        kept = sum(1 for a, b in zip(deme, before[i]) if a == b)
        assert kept >= len(deme) - 2
    # the last deme migrates last, so nothing overwrites its best afterwards
    best = max(before[2], key=fitness)
    assert best in after[0]
    assert best in after[1]


def test_migration_fires_every_gap():
    model = build(True)
    calls = []
    original = model.migrate
    model.migrate = lambda demes: calls.append(model.generation) or original(demes)
    population = population_for(model)
    for _ in range(6):
        population = model.step(population)
        assert len(population) == 12
    assert calls == [2, 4, 6]


def test_runs_are_reproducible_and_parallel_matches_serial():
    terminate = termination_factory({"iteration_count": "15"})
    results = []
    for parallel in (False, False, True):
        model = build(True, parallel=parallel, seed=21)
        results.append(model.run(population_for(model), terminate))
    assert results[0] == results[1] == results[2]


def test_demes_own_independent_generators():
    model = build(True, seed=3)
    rngs = [island.rng for island in model.islands]
    assert len({id(r) for r in rngs}) == len(rngs)
    assert len({r.random() for r in rngs}) == len(rngs)


def test_deme_generators_are_seeded_after_the_migration_generator():
    model = build(True, seed=3)
    assert model.rng.random() == random.Random(3).random()
    for i, island in enumerate(model.islands):
        assert island.rng.random() == random.Random(3 + i + 1).random()


def test_parallel_run_reuses_one_thread_pool(monkeypatch):
    created = []

    class CountingExecutor(concurrent.futures.ThreadPoolExecutor):
        def __init__(self, *args, **kwargs):
            created.append(self)
            super().__init__(*args, **kwargs)

    monkeypatch.setattr(concurrent.futures, "ThreadPoolExecutor", CountingExecutor)
    model = build(True, parallel=True, seed=8)
    model.run(population_for(model), termination_factory({"iteration_count": "12"}))
    assert len(created) == 1
    assert model.generation == 12
    assert model.executor is None


def test_serial_run_starts_no_thread_pool(monkeypatch):
    created = []
    monkeypatch.setattr(concurrent.futures, "ThreadPoolExecutor", lambda *a, **k: created.append(a))
    model = build(True, seed=8)
    model.run(population_for(model), termination_factory({"iteration_count": "3"}))
    assert created == []


def test_no_improvement_baseline_is_the_initial_population():
    model = build(True, seed=4)
    population = population_for(model)
    term = termination_factory({"termination": "no_improvement", "stall_generations": "3"})
    model.run(population, term)
    assert term.best >= max(make_fitness()(s) for s in population)


def test_run_rejects_wrong_population_size():
    model = build(True)
    with pytest.raises(ValueError):
        model.run(population_for(model)[:-1], termination_factory({}))


@pytest.mark.parametrize(
    "args",
    [
        {"population_size": "10", "demes": "3"},
        {"population_size": "10", "demes": "5", "random_replace": "false"},
        {"demes": "0"},
        {"migration_gap": "0"},
        {"demes": "two"},
    ],
)
def test_island_config_errors(args):
    with pytest.raises(ConfigError):
        IslandConfig.from_args(args)


def test_island_config_defaults():
    cfg = IslandConfig.from_args({})
    assert cfg.population_size == 50
    assert cfg.demes == 5
    assert cfg.migration_gap == 5
    assert cfg.random_replace is True
    assert cfg.parallel is False


def test_island_solver_returns_tour():
    problem = scattered(8)
    best = IslandGeneticAlgorithmSolver().solve(
        problem, {"population_size": "12", "demes": "3", "iteration_count": "10", "seed": "2"}
    )
    assert sorted(best.order) == list(range(8))


def circle_optimum(problem):
    order = sorted(range(len(problem)), key=lambda i: math.atan2(problem.cities[i].y, problem.cities[i].x))
    from salesman.solvers.base import tour_length

    return tour_length(problem.dist, order)


@pytest.mark.slow
def test_island_ga_converges_on_circle():
    problem = circle_problem()
    optimum = circle_optimum(problem)
    best = IslandGeneticAlgorithmSolver().solve(
        problem,
        {
            "encoding": "permutation",
            "mutation": "mutation_inverse",
            "population_size": "100",
            "demes": "5",
            "migration_gap": "5",
            "random_replace": "true",
            "crossover_probability": "0.8",
            "mutation_probability": "0.3",
            "iteration_count": "1000",
            "seed": "123",
        },
    )
    assert best.goal() >= optimum - 1e-9
    assert best.goal() == pytest.approx(2 * math.pi * 10, rel=0.01)
