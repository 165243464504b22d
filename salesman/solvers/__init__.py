from .base import Solution, Solver, Tour, tour_length
from .genome import Alternative, neighbours, random_neighbour
from .heuristics import (
    BruteForceSolver,
    DeterministicHillClimbSolver,
    HillClimbSolver,
    SimulatedAnnealingSolver,
    TabuList,
    TabuSearch,
    TabuSearchSolver,
    brute_force,
    hillclimb,
    hillclimb_deterministic,
    schedule_factory,
    simulated_annealing,
    tabu_search,
)

__all__ = [
    "Solution",
    "Solver",
    "Tour",
    "tour_length",
    "Alternative",
    "neighbours",
    "random_neighbour",
    "BruteForceSolver",
    "DeterministicHillClimbSolver",
    "HillClimbSolver",
    "SimulatedAnnealingSolver",
    "TabuList",
    "TabuSearch",
    "TabuSearchSolver",
    "brute_force",
    "hillclimb",
    "hillclimb_deterministic",
    "schedule_factory",
    "simulated_annealing",
    "tabu_search",
]
