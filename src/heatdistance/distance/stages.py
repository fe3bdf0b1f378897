"""
Stages of the heat method.

1. HeatDiffusionStage: (M + t K) u = M s, solved once with the boundary held at zero
   and once without constraints; the two solutions are averaged.
2. GradientReconstructionStage: K d = ∫ X · ∇φ with X = -∇u / |∇u|.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from typing import TYPE_CHECKING

import numpy as np

from heatdistance.config import SolverSettings
from heatdistance.fea.analysis.field import DistributedField
from heatdistance.fea.analysis.forms import (
    assemble_diffusion_operator,
    assemble_mass_diffusion_operator,
    assemble_normalized_gradient_functional,
    assemble_projection_functional,
    form_linear_system,
    recover_solution,
)
from heatdistance.fea.solvers.cg import solve_linear_system
from heatdistance.fea.solvers.preconditioners import PreconditionerBackend, make_preconditioner

if TYPE_CHECKING:
    import numpy.typing as npt

    from heatdistance.fea.analysis.assembly import ParallelMatrix
    from heatdistance.fea.analysis.space import FiniteElementSpace
    from heatdistance.fea.solvers.cg import CGResult

logger = logging.getLogger(__name__)


def transform_source(values: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """
    Map values in [0, 1] to 4x(1 - x) and everything else to 0.

    A level set ranging over [0, 1] thereby peaks where it crosses 1/2.
    """
    x = np.asarray(values, dtype=np.float64)
    inside = (x >= 0.0) & (x <= 1.0)
    return np.where(inside, 4.0 * x * (1.0 - x), 0.0)


def solve_constrained(
    A: ParallelMatrix,
    b: npt.NDArray[np.float64],
    ess_tdofs: npt.NDArray[np.int64],
    x: DistributedField,
    backend: PreconditionerBackend,
    settings: SolverSettings,
) -> CGResult:
    """
    Solve A x = b with PCG under the given constraints; ``x`` is the initial guess and
    receives the solution. The constrained system and the preconditioner are released
    before returning.
    """
    with form_linear_system(A, ess_tdofs, x, b) as system:
        with make_preconditioner(system.operator, backend) as preconditioner:
            result = solve_linear_system(system, preconditioner, settings)
        recover_solution(system, x)
    return result


@dataclass
class DiffusionResult:
    """Both diffusion solutions and their pointwise average."""
    dirichlet: DistributedField
    neumann: DistributedField
    averaged: DistributedField
    solves: tuple[CGResult, CGResult]


class HeatDiffusionStage:
    """
    Short-time heat flow from a source field.

    Args:
        space: Discretization space.
        time_step: Diffusion time t.
        ess_tdofs: Owned boundary dofs held at zero in the Dirichlet variant.
        backend: Preconditioner backend.
        settings: Linear solver settings.
    """

    def __init__(
        self,
        space: FiniteElementSpace,
        time_step: float,
        ess_tdofs: npt.NDArray[np.int64],
        backend: PreconditionerBackend = PreconditionerBackend.AMG,
        settings: SolverSettings | None = None,
    ) -> None:
        self.space = space
        self.time_step = time_step
        self.ess_tdofs = ess_tdofs
        self.backend = backend
        self.settings = settings or SolverSettings()

    def run(self, source: DistributedField) -> DiffusionResult:
        """Diffuse ``source`` (collective)."""
        b = assemble_projection_functional(source)
        A = assemble_mass_diffusion_operator(self.space, self.time_step)

        dirichlet = DistributedField(self.space)
        dirichlet_solve = solve_constrained(A, b, self.ess_tdofs, dirichlet, self.backend, self.settings)

        # The Neumann variant gets its own empty constraint set
        neumann = DistributedField(self.space)
        no_ess_tdofs = np.empty(0, dtype=np.int64)
        neumann_solve = solve_constrained(A, b, no_ess_tdofs, neumann, self.backend, self.settings)

        averaged = DistributedField(self.space, 0.5 * (dirichlet.values + neumann.values))
        logger.info(f"Diffused the source for t = {self.time_step:.6e}.")
        return DiffusionResult(
            dirichlet=dirichlet,
            neumann=neumann,
            averaged=averaged,
            solves=(dirichlet_solve, neumann_solve),
        )


class GradientReconstructionStage:
    """
    Recovers a distance field from the normalized gradient of a diffused field.

    The Laplace problem has no constraints; the result is defined up to a constant and
    starts from zero on every call.
    """

    def __init__(
        self,
        space: FiniteElementSpace,
        backend: PreconditionerBackend = PreconditionerBackend.AMG,
        settings: SolverSettings | None = None,
    ) -> None:
        self.space = space
        self.backend = backend
        self.settings = settings or SolverSettings()

    def run(self, diffused: DistributedField) -> DistributedField:
        """Solve for the unshifted distance (collective)."""
        b = assemble_normalized_gradient_functional(diffused, self.settings.gradient_eps)
        K = assemble_diffusion_operator(self.space)

        distance = DistributedField(self.space)
        solve_constrained(K, b, np.empty(0, dtype=np.int64), distance, self.backend, self.settings)
        logger.info("Reconstructed the distance from the normalized gradient.")
        return distance
