import logging
import math
import random
from collections import deque
from typing import Callable, Dict, Iterator, List, Mapping, Optional

from ..config import LocalSearchConfig
from ..data import Problem
from .base import Solution, Solver
from .genome import Alternative, neighbours, random_neighbour


logger = logging.getLogger(__name__)

Observer = Callable[[int, object], None]
Schedule = Callable[[int], float]


def brute_force(start: Solution, observer: Optional[Observer] = None) -> Solution:
    if len(start.problem) == 0:
        raise ValueError("brute force needs at least one city")
    best = start
    best_goal = start.goal()
    current = start
    iteration = 0
    while True:
        current = current.next_solution()
        iteration += 1
        goal = current.goal()
        if goal < best_goal:
            best, best_goal = current, goal
        if observer:
            observer(iteration, current)
        if current == start:
            break
    return best


def hillclimb(
    start: Alternative,
    rng: random.Random,
    iterations: int = 1000,
    observer: Optional[Observer] = None,
) -> Alternative:
    current = start
    current_goal = current.goal()
    for iteration in range(iterations):
        candidate = random_neighbour(current, rng)
        goal = candidate.goal()
        if goal < current_goal:
            current, current_goal = candidate, goal
        if observer:
            observer(iteration, current)
    return current


def hillclimb_deterministic(
    start: Alternative,
    iterations: int = 1000,
    observer: Optional[Observer] = None,
) -> Alternative:
    current = start
    current_goal = current.goal()
    for iteration in range(iterations):
        scored = [(c.goal(), c) for c in neighbours(current)]
        best_goal, best = min(scored, key=lambda x: x[0])
        if best_goal < current_goal:
            current, current_goal = best, best_goal
            if observer:
                observer(iteration, current)
        else:
            logger.info("no further improvement at iteration %d (budget %d)", iteration, iterations)
            return current
    logger.debug("hill climbing budget exhausted after %d iterations", iterations)
    return current


class TabuList:
    """Bounded FIFO of recently visited alternatives; the oldest entry leaves first."""

    def __init__(self, max_size: int):
        if max_size < 1:
            raise ValueError("tabu list size must be at least 1")
        self.max_size = max_size
        self._entries = deque()
        self._members = set()

    def append(self, alternative: Alternative) -> None:
        if alternative in self._members:
            raise ValueError("alternative is already tabu")
        self._entries.append(alternative)
        self._members.add(alternative)
        if len(self._entries) > self.max_size:
            self.evict_oldest()

    def evict_oldest(self) -> Alternative:
        oldest = self._entries.popleft()
        self._members.discard(oldest)
        return oldest

    @property
    def latest(self) -> Alternative:
        return self._entries[-1]

    def __contains__(self, alternative) -> bool:
        return alternative in self._members

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Alternative]:
        return iter(self._entries)


class TabuSearch:
    def __init__(self, start: Alternative, max_tabu_size: int = 50):
        self.tabu = TabuList(max_tabu_size)
        self.tabu.append(start)
        self.best = start
        self.best_goal = start.goal()

    def step(self) -> bool:
        """One iteration. Returns False when no escape from the tabu region exists."""
        candidates = [c for c in neighbours(self.tabu.latest) if c not in self.tabu]
        if not candidates:
            if len(self.tabu) > 1:
                self.tabu.evict_oldest()
                return True
            return False
        goal, current = min(((c.goal(), c) for c in candidates), key=lambda x: x[0])
        self.tabu.append(current)
        if goal < self.best_goal:
            self.best, self.best_goal = current, goal
        return True

    def run(self, iterations: int = 1000, observer: Optional[Observer] = None) -> Alternative:
        for iteration in range(iterations):
            if not self.step():
                logger.info("tabu search: no escape at iteration %d, returning best", iteration)
                break
            if observer:
                observer(iteration, self.tabu.latest)
        return self.best


def tabu_search(
    start: Alternative,
    iterations: int = 1000,
    max_tabu_size: int = 50,
    observer: Optional[Observer] = None,
) -> Alternative:
    return TabuSearch(start, max_tabu_size).run(iterations, observer)


def inverse_schedule(initial: float = 1000.0, **_) -> Schedule:
    return lambda k: initial / k


def exponential_schedule(initial: float = 1000.0, cooling: float = 0.99, **_) -> Schedule:
    return lambda k: initial * cooling ** k


def logarithmic_schedule(initial: float = 1000.0, **_) -> Schedule:
    return lambda k: initial / math.log(k + 1)


TEMPERATURE_SCHEDULES: Dict[str, Callable[..., Schedule]] = {
    "inverse": inverse_schedule,
    "exponential": exponential_schedule,
    "logarithmic": logarithmic_schedule,
}


def schedule_factory(name: str, initial: float = 1000.0, cooling: float = 0.99) -> Schedule:
    if name not in TEMPERATURE_SCHEDULES:
        logger.warning("falling back to default temperature schedule: inverse (got %r)", name)
        name = "inverse"
    return TEMPERATURE_SCHEDULES[name](initial=initial, cooling=cooling)


def simulated_annealing(
    start: Alternative,
    rng: random.Random,
    iterations: int = 1000,
    temperature: Optional[Schedule] = None,
    observer: Optional[Observer] = None,
) -> Alternative:
    temperature = temperature or inverse_schedule()
    current = best = start
    current_goal = best_goal = start.goal()
    for k in range(1, iterations + 1):
        candidate = random_neighbour(current, rng)
        goal = candidate.goal()
        if goal <= current_goal:
            current, current_goal = candidate, goal
        else:
            t = temperature(k)
            if t > 0 and rng.random() < math.exp(-(goal - current_goal) / t):
                current, current_goal = candidate, goal
        if current_goal < best_goal:
            best, best_goal = current, current_goal
        if observer:
            observer(k, current)
    return best


class BruteForceSolver(Solver):
    name = "brute_force"

    def solve(self, problem: Problem, args: Mapping[str, str]) -> Solution:
        return brute_force(Solution.identity(problem))


class HillClimbSolver(Solver):
    name = "hillclimb"

    def solve(self, problem: Problem, args: Mapping[str, str]) -> Solution:
        cfg = LocalSearchConfig.from_args(args)
        rng = cfg.rng()
        return hillclimb(Alternative.of(problem, rng), rng, cfg.iterations).decode()


class DeterministicHillClimbSolver(Solver):
    name = "hillclimb_deterministic"

    def solve(self, problem: Problem, args: Mapping[str, str]) -> Solution:
        cfg = LocalSearchConfig.from_args(args)
        start = Alternative.of(problem, cfg.rng())
        return hillclimb_deterministic(start, cfg.iterations).decode()


class TabuSearchSolver(Solver):
    name = "tabu_search"

    def solve(self, problem: Problem, args: Mapping[str, str]) -> Solution:
        cfg = LocalSearchConfig.from_args(args)
        start = Alternative.of(problem, cfg.rng())
        return tabu_search(start, cfg.iterations, cfg.tabu_size).decode()


class SimulatedAnnealingSolver(Solver):
    name = "simulated_annealing"

    def solve(self, problem: Problem, args: Mapping[str, str]) -> Solution:
        cfg = LocalSearchConfig.from_args(args)
        rng = cfg.rng()
        schedule = schedule_factory(cfg.temperature, cfg.initial_temperature, cfg.cooling)
        start = Alternative.of(problem, rng)
        return simulated_annealing(start, rng, cfg.iterations, schedule).decode()


LOCAL_SEARCH_SOLVERS: List[Solver] = [
    BruteForceSolver(),
    HillClimbSolver(),
    DeterministicHillClimbSolver(),
    TabuSearchSolver(),
    SimulatedAnnealingSolver(),
]
