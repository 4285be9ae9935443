from __future__ import annotations


def wrap(value: float, span: float) -> float:
    """Map ``value`` into ``[0, span)``, including negative inputs."""
    wrapped = ((value % span) + span) % span
    # -1e-20 % 600.0 rounds up to exactly 600.0
    if wrapped >= span:
        return 0.0
    return wrapped


def toroidal_distance(a: float, b: float, span: float) -> float:
    delta = abs(a - b)
    return min(delta, span - delta)
