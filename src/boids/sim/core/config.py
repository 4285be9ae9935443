from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

from .errors import ConfigurationError

# Changing any of these requires a fresh grid and population.
STRUCTURAL_FIELDS = frozenset(
    {"population_size", "neighbourhood_radius", "domain_width", "domain_height", "seed"}
)
_INTEGER_FIELDS = frozenset({"population_size", "seed"})
MAX_GRID_CELLS = 1_000_000


@dataclass
class SimulationConfig:
    population_size: int = 1000
    neighbourhood_radius: float = 50.0
    max_speed: float = 300.0
    max_acceleration: float = 100.0
    acceleration_decay: float = 0.75
    rule1_weight: float = 0.34
    rule2_weight: float = 0.33
    rule3_weight: float = 0.33
    domain_width: float = 600.0
    domain_height: float = 600.0
    refresh_rate: float = 60.0
    initial_speed_fraction: float = 0.2
    seed: int = 42
    config_version: str = "v1"

    @property
    def time_step(self) -> float:
        return 1.0 / self.refresh_rate

    @property
    def weights(self) -> Tuple[float, float, float]:
        return (self.rule1_weight, self.rule2_weight, self.rule3_weight)

    def validate(self) -> "SimulationConfig":
        """Raise ConfigurationError for the first value the core cannot run with."""
        for entry in fields(self):
            value = getattr(self, entry.name)
            if entry.name == "config_version":
                if not isinstance(value, str):
                    raise ConfigurationError(entry.name, f"must be a string, got {value!r}")
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(entry.name, f"must be a number, got {value!r}")
            if entry.name in _INTEGER_FIELDS and not isinstance(value, int):
                raise ConfigurationError(entry.name, f"must be an integer, got {value!r}")
            if not math.isfinite(value):
                raise ConfigurationError(entry.name, f"must be finite, got {value}")
        if self.population_size < 0:
            raise ConfigurationError("population_size", f"must be >= 0, got {self.population_size}")
        for name in ("neighbourhood_radius", "domain_width", "domain_height", "refresh_rate"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(name, f"must be > 0, got {getattr(self, name)}")
        cells = math.ceil(self.domain_width / self.neighbourhood_radius) * math.ceil(
            self.domain_height / self.neighbourhood_radius
        )
        if cells > MAX_GRID_CELLS:
            raise ConfigurationError(
                "neighbourhood_radius",
                f"{self.neighbourhood_radius} gives {cells} grid cells, more than {MAX_GRID_CELLS}",
            )
        for name in ("max_speed", "max_acceleration", "initial_speed_fraction"):
            if getattr(self, name) < 0:
                raise ConfigurationError(name, f"must be >= 0, got {getattr(self, name)}")
        if not 0.0 <= self.acceleration_decay <= 1.0:
            raise ConfigurationError(
                "acceleration_decay", f"must be within [0, 1], got {self.acceleration_decay}"
            )
        return self

    def with_changes(self, **changes: Any) -> "SimulationConfig":
        unknown = set(changes) - {entry.name for entry in fields(self)}
        if unknown:
            raise ConfigurationError(sorted(unknown)[0], "unknown parameter")
        return replace(self, **changes).validate()

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class RenderConfig:
    boid_height: float = 10.0
    boid_base: float = 4.0
    line_width: int = 1
    stroke_color: Tuple[int, int, int] = (128, 128, 128)
    background_color: Tuple[int, int, int] = (255, 255, 255)


@dataclass
class LoggingConfig:
    level: str = "INFO"
    log_file: str | None = None
    metrics_interval: int = 60


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    broadcast_interval: int = 1

    @staticmethod
    def from_yaml(path: Path) -> "AppConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_app_config(data)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["render"]["stroke_color"] = list(self.render.stroke_color)
        data["render"]["background_color"] = list(self.render.background_color)
        return data


def _build(cls: type, section: str, raw: Dict[str, Any]) -> Any:
    if not isinstance(raw, dict):
        raise ConfigurationError(section, f"expected a mapping, got {type(raw).__name__}")
    known = {entry.name for entry in fields(cls)}
    for key in raw:
        if key not in known:
            raise ConfigurationError(f"{section}.{key}", "unknown parameter")
    return cls(**raw)


def _color(value: Any, default: Tuple[int, int, int], name: str) -> Tuple[int, int, int]:
    if value is None:
        return default
    if isinstance(value, (tuple, list)) and len(value) == 3:
        return (int(value[0]), int(value[1]), int(value[2]))
    raise ConfigurationError(name, f"expected an RGB triple, got {value!r}")


def load_config(raw: dict) -> SimulationConfig:
    return _build(SimulationConfig, "simulation", raw).validate()


def load_app_config(raw: dict) -> AppConfig:
    defaults = RenderConfig()
    render_raw = dict(raw.get("render", {}))
    stroke = _color(render_raw.pop("stroke_color", None), defaults.stroke_color, "render.stroke_color")
    background = _color(
        render_raw.pop("background_color", None), defaults.background_color, "render.background_color"
    )
    render = _build(RenderConfig, "render", render_raw)
    render.stroke_color = stroke
    render.background_color = background
    app_values = {k: v for k, v in raw.items() if k not in {"simulation", "render", "logging"}}
    app = _build(AppConfig, "app", app_values)
    app.simulation = load_config(raw.get("simulation", {}))
    app.render = render
    app.logging = _build(LoggingConfig, "logging", raw.get("logging", {}))
    if app.broadcast_interval < 1:
        raise ConfigurationError("broadcast_interval", f"must be >= 1, got {app.broadcast_interval}")
    return app


def normalized_weights(config: SimulationConfig) -> Tuple[float, float, float]:
    """Rule weights scaled to sum to 1, for presentation only."""
    total = sum(config.weights)
    if total == 0:
        return (0.0, 0.0, 0.0)
    return tuple(weight / total for weight in config.weights)  # type: ignore[return-value]
