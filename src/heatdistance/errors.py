"""
Exceptions raised by the distance solver.

Configuration errors are fatal: they are raised identically on every rank that
reaches the same code path with the same inputs. Solver non-convergence is not
an error and is never raised.
"""
from __future__ import annotations


class HeatDistanceError(RuntimeError):
    """Base class for all heatdistance errors."""


class ConfigurationError(HeatDistanceError):
    """Invalid or unsupported solver configuration."""


class UnsupportedGeometryError(ConfigurationError):
    """The mesh uses an element geometry the solver cannot handle."""

    def __init__(self, geometry: object, context: str = "") -> None:
        self.geometry = geometry
        name = getattr(geometry, "name", str(geometry))
        message = f"Unsupported element geometry: {name}"
        if context:
            message = f"{message} ({context})"
        super().__init__(message)


class BackendUnavailableError(ConfigurationError):
    """A requested preconditioner backend is not available in this environment."""

    def __init__(self, backend: object, reason: str) -> None:
        self.backend = backend
        name = getattr(backend, "value", str(backend))
        super().__init__(f"Preconditioner backend '{name}' is not available: {reason}")
