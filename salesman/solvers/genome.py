"""
Factoradic encoding of tours.

Gene ``i`` picks one of the ``n - i`` cities not yet visited, so every gene is
bounded independently of the others and any gene-wise crossover or redraw
keeps the genome decodable. The last remaining city is implicit.
"""

import random
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from ..data import Problem
from .base import Solution


def _require_cities(problem: Problem) -> None:
    if len(problem) < 2:
        raise ValueError(
            f"factoradic encoding needs at least two cities, problem has {len(problem)}"
        )


@dataclass(frozen=True)
class Alternative:
    problem: Problem = field(compare=False, repr=False)
    genes: Tuple[int, ...]

    def __post_init__(self):
        _require_cities(self.problem)
        genes = tuple(int(g) for g in self.genes)
        object.__setattr__(self, "genes", genes)
        self.validate()

    def bound(self, i: int) -> int:
        return len(self.problem) - i

    def validate(self) -> None:
        expected = len(self.problem) - 1
        if len(self.genes) != expected:
            raise ValueError(f"expected {expected} genes, got {len(self.genes)}")
        for i, g in enumerate(self.genes):
            if not 0 <= g < self.bound(i):
                raise ValueError(f"gene {i} = {g} outside [0, {self.bound(i)})")

    @staticmethod
    def of(problem: Problem, rng: random.Random) -> "Alternative":
        _require_cities(problem)
        n = len(problem)
        return Alternative(problem, tuple(rng.randrange(n - i) for i in range(n - 1)))

    @staticmethod
    def from_solution(solution: Solution) -> "Alternative":
        remaining = list(range(len(solution.problem)))
        genes = []
        for city in solution.order[:-1]:
            k = remaining.index(city)
            genes.append(k)
            remaining.pop(k)
        return Alternative(solution.problem, tuple(genes))

    def decode(self) -> Solution:
        remaining = list(range(len(self.problem)))
        order = [remaining.pop(g) for g in self.genes]
        order.extend(remaining)
        return Solution(self.problem, tuple(order))

    get_solution = decode

    def goal(self) -> float:
        return self.decode().goal()

    def with_gene(self, i: int, value: int) -> "Alternative":
        genes = list(self.genes)
        genes[i] = value
        return Alternative(self.problem, tuple(genes))

    def with_genes(self, genes: Sequence[int]) -> "Alternative":
        return Alternative(self.problem, tuple(genes))

    def __len__(self) -> int:
        return len(self.genes)


def neighbours(alternative: Alternative) -> List[Alternative]:
    """Every gene moved one step up and one step down, wrapping within its bound."""
    ret = []
    for i, g in enumerate(alternative.genes):
        b = alternative.bound(i)
        ret.append(alternative.with_gene(i, (g + 1) % b))
        ret.append(alternative.with_gene(i, (g - 1 + b) % b))
    return ret


def random_neighbour(alternative: Alternative, rng: random.Random) -> Alternative:
    i = rng.randrange(len(alternative.genes))
    step = rng.choice((1, -1))
    b = alternative.bound(i)
    return alternative.with_gene(i, (alternative.genes[i] + step) % b)
