from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import AppConfig
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

_HEADER = [
    "tick",
    "population",
    "neighbor_checks",
    "neighbor_pairs",
    "isolated",
    "avg_speed",
    "avg_acceleration",
    "occupied_cells",
    "tick_ms",
]


def _format_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.neighbor_checks,
        metrics.neighbor_pairs,
        metrics.isolated,
        f"{metrics.average_speed:.4f}",
        f"{metrics.average_acceleration:.4f}",
        metrics.occupied_cells,
        f"{tick_ms:.3f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    summary_path: Optional[Path] = None,
    summary_window: int = 600,
    config_path: Optional[Path] = None,
) -> World:
    app_config = AppConfig.from_yaml(config_path) if config_path else AppConfig()
    config = app_config.simulation
    if seed is not None:
        config.seed = seed
    world = World(config)
    world.setup()
    metrics_interval = max(1, app_config.logging.metrics_interval)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    isolated_series: list[float] = []
    neighbor_pairs_series: list[float] = []

    try:
        for _ in range(steps):
            metrics = world.tick()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            tick_ms_series.append(tick_ms)
            speed_series.append(metrics.average_speed)
            isolated_series.append(float(metrics.isolated))
            neighbor_pairs_series.append(float(metrics.neighbor_pairs))
            if writer:
                writer.writerow(_format_row(metrics, tick_ms))
            if metrics.tick % metrics_interval == 0:
                logger.debug(
                    "Tick %d | avg speed %.2f | isolated %d | %.2f ms",
                    metrics.tick,
                    metrics.average_speed,
                    metrics.isolated,
                    metrics.tick_duration_ms,
                )
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "population": config.population_size,
            "deterministic_log": deterministic_log,
            "tick_ms": _summary_stats(tick_ms_series),
            "avg_speed": _summary_stats(speed_series),
            "isolated": _summary_stats(isolated_series),
            "neighbor_pairs": _summary_stats(neighbor_pairs_series),
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail]),
                "avg_speed": _summary_stats(speed_series[tail]),
                "isolated": _summary_stats(isolated_series[tail]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))

    logger.info("Headless run finished after %d ticks", steps)
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless boids simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=600,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level.")
    args = parser.parse_args()

    app_config = AppConfig.from_yaml(args.config) if args.config else AppConfig()
    if args.log_level:
        app_config.logging.level = args.log_level
    setup_logging(app_config.logging)
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config_path=args.config,
    )


if __name__ == "__main__":
    main()
