"""
Operators, functionals and constrained linear systems of the distance solver.

Operators:
    assemble_mass_diffusion_operator: M + t K
    assemble_diffusion_operator: K
Functionals:
    assemble_projection_functional: b_i = ∫ u φ_i
    assemble_normalized_gradient_functional: b_i = ∫ (-∇u / |∇u|) · ∇φ_i
"""
from __future__ import annotations

import logging

from typing import TYPE_CHECKING

import numpy as np
import scipy as sp

from heatdistance.fea.analysis.assembly import ParallelMatrix

if TYPE_CHECKING:
    import numpy.typing as npt

    from heatdistance.fea.analysis.field import DistributedField
    from heatdistance.fea.analysis.space import FiniteElementSpace

logger = logging.getLogger(__name__)


def assemble_mass_diffusion_operator(space: FiniteElementSpace, time_step: float) -> ParallelMatrix:
    """Assemble M + t K."""
    return space.assembler.assemble_matrix(
        get_local_matrix=lambda element: element.get_mass_matrix() + time_step * element.get_stiffness_matrix()
    )


def assemble_diffusion_operator(space: FiniteElementSpace) -> ParallelMatrix:
    """Assemble the stiffness (Laplacian) matrix K."""
    return space.assembler.assemble_matrix(
        get_local_matrix=lambda element: element.get_stiffness_matrix()
    )


def assemble_projection_functional(field: DistributedField) -> npt.NDArray[np.float64]:
    """Assemble the mass-weighted projection b = M u of a field."""
    values = field.gather()
    return field.space.assembler.assemble_vector(
        get_local_vector=lambda element: element.get_load_vector(values[element.global_dofs])
    )


def assemble_normalized_gradient_functional(
    field: DistributedField,
    eps: float,
) -> npt.NDArray[np.float64]:
    """
    Assemble b_i = ∫ X · ∇φ_i with X = -∇u / |∇u|.

    Quadrature points where |∇u| <= eps contribute nothing.
    """
    values = field.gather()
    return field.space.assembler.assemble_vector(
        get_local_vector=lambda element: element.get_gradient_load_vector(values[element.global_dofs], eps)
    )


class LinearSystem:
    """
    Constrained system A X = B produced by :func:`form_linear_system`.

    Used as a context manager; the operator and the vectors are dropped on exit.
    """

    def __init__(
        self,
        operator: ParallelMatrix,
        rhs: npt.NDArray[np.float64],
        solution: npt.NDArray[np.float64],
    ) -> None:
        self.operator: ParallelMatrix | None = operator
        self.rhs: npt.NDArray[np.float64] | None = rhs
        self.solution: npt.NDArray[np.float64] | None = solution

    def __enter__(self) -> LinearSystem:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.release()

    @property
    def released(self) -> bool:
        return self.operator is None

    def release(self) -> None:
        self.operator = None
        self.rhs = None
        self.solution = None


def form_linear_system(
    A: ParallelMatrix,
    ess_tdofs: npt.NDArray[np.int64],
    x: DistributedField,
    b: npt.NDArray[np.float64],
) -> LinearSystem:
    """
    Apply essential constraints to A x = b (collective).

    Constrained rows and columns are eliminated symmetrically: their values are taken
    from ``x``, moved to the right-hand side, and replaced by identity rows.

    Args:
        A: Unconstrained operator.
        ess_tdofs: Owned constrained dofs of this rank (may be empty).
        x: Initial guess; supplies the values of the constrained dofs.
        b: Owned entries of the right-hand side.
    """
    comm = A.comm
    start, stop = A.layout.owned_range(comm.rank)
    ess_tdofs = np.asarray(ess_tdofs, dtype=np.int64)
    all_ess = np.concatenate(comm.allgather(ess_tdofs)).astype(np.int64)

    x_global = x.gather()
    x_ess = np.zeros(A.layout.n_global, dtype=np.float64)
    x_ess[all_ess] = x_global[all_ess]

    B = np.asarray(b, dtype=np.float64) - A.block @ x_ess
    X = x.values.copy()

    if all_ess.size == 0:
        return LinearSystem(ParallelMatrix(A.block.copy(), A.layout, comm), B, X)

    local_ess = ess_tdofs - start
    constrained_col = np.zeros(A.layout.n_global, dtype=bool)
    constrained_col[all_ess] = True
    constrained_row = np.zeros(stop - start, dtype=bool)
    constrained_row[local_ess] = True

    coo = A.block.tocoo()
    keep = ~(constrained_row[coo.row] | constrained_col[coo.col])
    rows = np.concatenate([coo.row[keep], local_ess])
    cols = np.concatenate([coo.col[keep], ess_tdofs])
    data = np.concatenate([coo.data[keep], np.ones(local_ess.size)])
    block = sp.sparse.coo_matrix((data, (rows, cols)), shape=A.block.shape).tocsr()

    B[local_ess] = x_global[ess_tdofs]
    X[local_ess] = x_global[ess_tdofs]

    logger.debug(f"Eliminated {all_ess.size} constrained dofs.")
    return LinearSystem(ParallelMatrix(block, A.layout, comm), B, X)


def recover_solution(system: LinearSystem, x: DistributedField) -> None:
    """Copy the solution of a constrained system into ``x``."""
    if system.released:
        raise RuntimeError("Cannot recover the solution of a released linear system.")
    x.values[:] = system.solution
