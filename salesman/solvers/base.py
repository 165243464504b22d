from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Mapping, Sequence, Tuple

import numpy as np

from ..data import Problem


Tour = Tuple[int, ...]


def tour_length(dist: np.ndarray, order: Sequence[int]) -> float:
    if len(order) < 2:
        return 0.0
    idx = np.asarray(order, dtype=np.intp)
    return float(dist[idx, np.roll(idx, -1)].sum())


@dataclass(frozen=True)
class Solution:
    """Canonical tour: a permutation of city indices with implicit return to start."""

    problem: Problem = field(compare=False, repr=False)
    order: Tour

    def __post_init__(self):
        order = tuple(int(c) for c in self.order)
        if sorted(order) != list(range(len(self.problem))):
            raise ValueError(f"not a permutation of {len(self.problem)} cities: {order}")
        object.__setattr__(self, "order", order)

    @staticmethod
    def identity(problem: Problem) -> "Solution":
        return Solution(problem, tuple(range(len(problem))))

    def goal(self) -> float:
        return tour_length(self.problem.dist, self.order)

    def get_solution(self) -> "Solution":
        return self

    def next_solution(self) -> "Solution":
        # Lexicographic successor; the last permutation wraps to the first.
        order = list(self.order)
        i = len(order) - 2
        while i >= 0 and order[i] >= order[i + 1]:
            i -= 1
        if i < 0:
            return Solution(self.problem, tuple(reversed(order)))
        j = len(order) - 1
        while order[j] <= order[i]:
            j -= 1
        order[i], order[j] = order[j], order[i]
        order[i + 1 :] = reversed(order[i + 1 :])
        return Solution(self.problem, tuple(order))

    def __len__(self) -> int:
        return len(self.order)


class Solver(ABC):
    name: str = "base"

    @abstractmethod
    def solve(self, problem: Problem, args: Mapping[str, str]) -> Solution:
        raise NotImplementedError
