"""
Metaheuristic search for the travelling salesman problem: exhaustive search,
hill climbing, tabu search, simulated annealing and a genetic algorithm with
an island model, all over a shared factoradic tour encoding.
"""

__all__ = [
    "config",
    "data",
    "evolutionary",
    "island",
    "methods",
    "operators",
]
