"""
Solver Constants & Settings
===========================
Central registry of the numerical constants used by the distance solver.

Exports:
    CG_REL_TOL (float): Relative residual tolerance of every conjugate-gradient solve.
    CG_MAX_ITER (int): Iteration cap of every conjugate-gradient solve.
    CG_PRINT_LEVEL (int): 0 = silent, 1 = one summary line per solve, 2 = every iteration.
    GRADIENT_NORM_EPS (float): Gradients at or below this magnitude are not normalized.
    SMOOTHER_WEIGHT (float): Damping of the Jacobi smoother.
    SolverSettings: Bundle of the solve constants, overridable through the environment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

# Global Constants
CG_REL_TOL: float = 1e-12
CG_MAX_ITER: int = 100
CG_PRINT_LEVEL: int = 1
GRADIENT_NORM_EPS: float = 1e-12
SMOOTHER_WEIGHT: float = 2.0 / 3.0

ENV_PREFIX: str = "HEATDISTANCE_"


@dataclass(frozen=True)
class SolverSettings:
    """
    Parameters shared by all linear solves of one distance computation.

    Args:
        rel_tol: Relative tolerance on the preconditioned residual norm.
        max_iter: Maximum number of iterations; reaching it is not an error.
        print_level: Verbosity of the iterative solver.
        gradient_eps: Magnitude below which a gradient contributes nothing.
    """
    rel_tol: float = CG_REL_TOL
    max_iter: int = CG_MAX_ITER
    print_level: int = CG_PRINT_LEVEL
    gradient_eps: float = GRADIENT_NORM_EPS

    def __post_init__(self) -> None:
        if self.rel_tol < 0.0:
            raise ValueError(f"rel_tol must be non-negative, got {self.rel_tol}.")
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be at least 1, got {self.max_iter}.")
        if self.gradient_eps < 0.0:
            raise ValueError(f"gradient_eps must be non-negative, got {self.gradient_eps}.")

    @classmethod
    def from_env(cls) -> SolverSettings:
        """
        Build settings from ``HEATDISTANCE_CG_REL_TOL``, ``HEATDISTANCE_CG_MAX_ITER``
        and ``HEATDISTANCE_CG_PRINT_LEVEL``, falling back to the module constants.
        """
        return cls(
            rel_tol=float(os.environ.get(f"{ENV_PREFIX}CG_REL_TOL", CG_REL_TOL)),
            max_iter=int(os.environ.get(f"{ENV_PREFIX}CG_MAX_ITER", CG_MAX_ITER)),
            print_level=int(os.environ.get(f"{ENV_PREFIX}CG_PRINT_LEVEL", CG_PRINT_LEVEL)),
        )
