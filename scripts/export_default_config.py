#!/usr/bin/env python3
"""Write the default boids configuration as YAML."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import yaml

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from boids.sim.core.config import AppConfig  # noqa: E402


def write_config(path: Path, overwrite: bool) -> None:
    if path.exists() and not overwrite:
        raise FileExistsError(f"{path} already exists. Use --overwrite to replace.")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(AppConfig().to_dict(), sort_keys=False))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Write the default simulation configuration as YAML.")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("config/default.yaml"),
        help="File to write the configuration to.",
    )
    parser.add_argument(
        "--overwrite", action="store_true", help="Overwrite an existing file."
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    write_config(args.output, args.overwrite)
    print(f"Wrote default configuration to {args.output}")


if __name__ == "__main__":
    main()
