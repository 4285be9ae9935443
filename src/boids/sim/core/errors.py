from __future__ import annotations


class BoidsError(Exception):
    """Base class for errors raised by the simulation core."""


class ConfigurationError(BoidsError, ValueError):
    def __init__(self, field_name: str, message: str):
        super().__init__(f"invalid configuration for {field_name!r}: {message}")
        self.field_name = field_name


class SimulationStateError(BoidsError, RuntimeError):
    pass
