import math
import random

import pytest

from salesman.data import City, Problem


class ScriptedRandom(random.Random):
    """Random source replaying fixed draws, for pinning operator decisions."""

    def __init__(self, randranges=(), randoms=(), uniforms=()):
        super().__init__(0)
        self._randranges = list(randranges)
        self._randoms = list(randoms)
        self._uniforms = list(uniforms)

    def randrange(self, *args, **kwargs):
        return self._randranges.pop(0)

    def random(self):
        return self._randoms.pop(0)

    def uniform(self, a, b):
        return self._uniforms.pop(0)


def polygon(n: int, radius: float = 1.0) -> Problem:
    return Problem(
        [
            City(f"c{i}", radius * math.cos(2 * math.pi * i / n), radius * math.sin(2 * math.pi * i / n))
            for i in range(n)
        ]
    )


def scattered(n: int, seed: int = 7) -> Problem:
    rng = random.Random(seed)
    return Problem([City(f"c{i}", rng.uniform(0, 100), rng.uniform(0, 100)) for i in range(n)])


@pytest.fixture
def pentagon():
    return polygon(5)


@pytest.fixture
def six():
    return scattered(6)


@pytest.fixture
def rng():
    return random.Random(42)
