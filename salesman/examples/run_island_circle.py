import math

from salesman.data import circle_problem
from salesman.methods import run_method


def main():
    problem = circle_problem()
    args = {
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
    }
    best = run_method("genetic_algorithm_islands", problem, args)
    print(f"best goal: {best.goal():.4f}")
    # The cities do not cover the whole circle, so the result sits slightly below this.
    print(f"result should be somewhere near {2 * math.pi * 10.0:.4f}")


if __name__ == "__main__":
    main()
