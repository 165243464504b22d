import json
import logging
import math
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, TextIO, Union

import networkx as nx
import numpy as np
import tsplib95


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class City:
    name: str
    x: float
    y: float


class Problem:
    """
    Ordered, read-only list of cities with a dense symmetric distance matrix.
    Every solution keeps a reference to one shared Problem.
    """

    def __init__(self, cities: Sequence[City], dist: Optional[np.ndarray] = None):
        self.cities = tuple(cities)
        n = len(self.cities)
        if dist is None:
            coords = np.array([[c.x, c.y] for c in self.cities], dtype=float).reshape(n, 2)
            diff = coords[:, None, :] - coords[None, :, :]
            dist = np.sqrt((diff ** 2).sum(axis=-1))
        else:
            dist = np.array(dist, dtype=float)
            if dist.shape != (n, n):
                raise ValueError(f"distance matrix shape {dist.shape} does not match {n} cities")
        dist.setflags(write=False)
        self.dist = dist

    def __len__(self) -> int:
        return len(self.cities)

    def __repr__(self) -> str:
        return f"Problem(cities={len(self)})"

    def distance(self, a: int, b: int) -> float:
        return float(self.dist[a, b])

    @classmethod
    def from_coordinates(cls, coords: Iterable[Sequence[float]]) -> "Problem":
        return cls([City(str(i), float(x), float(y)) for i, (x, y) in enumerate(coords)])

    @classmethod
    def from_graph(cls, graph: nx.Graph, cities: Sequence[City], nodes: Sequence = None) -> "Problem":
        nodes = list(graph.nodes()) if nodes is None else list(nodes)
        mat = nx.to_numpy_array(graph, nodelist=nodes, weight="weight")
        np.fill_diagonal(mat, 0.0)
        return cls(cities, mat)


@dataclass
class Instance:
    """A loaded problem and the length of its known optimal tour, if one ships with it."""

    name: str
    problem: Problem
    optimum: Optional[float] = None

    def gap(self, goal: float) -> Optional[float]:
        """Relative excess of ``goal`` over the known optimum."""
        if not self.optimum:
            return None
        return goal / self.optimum - 1.0


def circle_cities() -> List[City]:
    # 30 points on a circle of radius 10: angles 1..9 rad, the top point, then 10..29 rad.
    points = [(10 * math.sin(k), 10 * math.cos(k)) for k in range(1, 10)]
    points.append((0.0, 10.0))
    points.extend((10 * math.sin(k), 10 * math.cos(k)) for k in range(10, 30))
    return [City(str(i), x, y) for i, (x, y) in enumerate(points)]


def circle_problem() -> Problem:
    return Problem(circle_cities())


def problem_from_dict(data: Dict) -> Problem:
    try:
        records = data["cities"]
        cities = [City(str(name), float(x), float(y)) for name, x, y in records]
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"malformed problem description: {exc}") from exc
    return Problem(cities)


def load_json(source: Union[PathLike, TextIO]) -> Problem:
    if hasattr(source, "read"):
        return problem_from_dict(json.load(source))
    return problem_from_dict(json.loads(Path(source).read_text()))


def optimal_tour_paths(path: Path) -> List[Path]:
    return [path.with_name(f"{path.stem}.opt.tour"), path.parent / "solutions" / f"{path.stem}.opt.tour"]


def read_optimum(path: Path, nodes: Sequence, problem: Problem) -> Optional[float]:
    """Length, measured on ``problem``, of the first usable ``.opt.tour`` beside ``path``."""
    index = {node: i for i, node in enumerate(nodes)}
    for candidate in optimal_tour_paths(path):
        if not candidate.exists():
            continue
        try:
            order = [index[node] for node in tsplib95.load(candidate).tours[0]]
        except (ValueError, IndexError, KeyError) as exc:
            logger.warning("ignoring tour file %s: %r", candidate, exc)
            continue
        if sorted(order) != list(range(len(problem))):
            logger.warning("ignoring tour file %s: not a tour over all %d nodes", candidate, len(problem))
            continue
        idx = np.asarray(order, dtype=np.intp)
        return float(problem.dist[idx, np.roll(idx, -1)].sum())
    return None


def load_tsplib(path: PathLike) -> Instance:
    path = Path(path)
    tsp = tsplib95.load(path)
    nodes = list(tsp.get_nodes())
    coords = tsp.node_coords or tsp.display_data or {}
    cities = []
    for node in nodes:
        x, y = coords.get(node, (0.0, 0.0))[:2]
        cities.append(City(str(node), float(x), float(y)))
    problem = Problem.from_graph(tsp.get_graph(), cities, nodes)
    optimum = read_optimum(path, nodes, problem)
    if optimum is not None:
        logger.info("%s: known optimum %.6g", path.name, optimum)
    return Instance(name=tsp.name or path.stem, problem=problem, optimum=optimum)


def load_instance(path: PathLike) -> Instance:
    path = Path(path)
    if path.suffix.lower() == ".tsp":
        return load_tsplib(path)
    return Instance(name=path.stem, problem=load_json(path))


def load_problem(path: PathLike) -> Problem:
    return load_instance(path).problem


def solution_to_dict(solution) -> Dict:
    cities = solution.problem.cities
    return {
        "cities": [[cities[i].name, cities[i].x, cities[i].y] for i in solution.order],
        "goal": solution.goal(),
    }


def save_solution(solution, target: Union[PathLike, TextIO] = None) -> None:
    text = json.dumps(solution_to_dict(solution), indent=4)
    if target is None:
        print(text, file=sys.stdout)
    elif hasattr(target, "write"):
        target.write(text + "\n")
    else:
        Path(target).write_text(text + "\n")
