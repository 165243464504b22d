import random
from dataclasses import dataclass
from typing import Mapping, Optional


Args = Mapping[str, str]

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


class ConfigError(ValueError):
    """Raised for unknown methods and malformed or inconsistent options."""


def get_str(args: Args, key: str, default: str) -> str:
    return args[key] if key in args else default


def get_int(args: Args, key: str, default: int) -> int:
    if key not in args:
        return default
    try:
        return int(args[key])
    except (TypeError, ValueError):
        raise ConfigError(f"option {key!r} expects an integer, got {args[key]!r}") from None


def get_float(args: Args, key: str, default: float) -> float:
    if key not in args:
        return default
    try:
        return float(args[key])
    except (TypeError, ValueError):
        raise ConfigError(f"option {key!r} expects a number, got {args[key]!r}") from None


def get_bool(args: Args, key: str, default: bool) -> bool:
    if key not in args:
        return default
    value = str(args[key]).strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"option {key!r} expects true/false, got {args[key]!r}")


def get_seed(args: Args) -> Optional[int]:
    return get_int(args, "seed", None)


@dataclass
class LocalSearchConfig:
    iterations: int = 1000
    tabu_size: int = 50
    temperature: str = "inverse"
    initial_temperature: float = 1000.0
    cooling: float = 0.99
    random_seed: Optional[int] = None

    def __post_init__(self):
        if self.iterations < 0:
            raise ConfigError("iterations must not be negative")
        if self.tabu_size < 1:
            raise ConfigError("tabu_size must be at least 1")
        if self.initial_temperature <= 0:
            raise ConfigError("initial_temperature must be positive")

    @classmethod
    def from_args(cls, args: Args) -> "LocalSearchConfig":
        return cls(
            iterations=get_int(args, "iterations", cls.iterations),
            tabu_size=get_int(args, "tabu_size", cls.tabu_size),
            temperature=get_str(args, "temperature", cls.temperature),
            initial_temperature=get_float(args, "initial_temperature", cls.initial_temperature),
            cooling=get_float(args, "cooling", cls.cooling),
            random_seed=get_seed(args),
        )

    def rng(self) -> random.Random:
        return random.Random(self.random_seed)
