from __future__ import annotations

import logging
from dataclasses import dataclass

from typing import TYPE_CHECKING

import numpy as np

from heatdistance import config

if TYPE_CHECKING:
    import numpy.typing as npt

    from heatdistance.fea.analysis.assembly import ParallelMatrix
    from heatdistance.fea.analysis.forms import LinearSystem
    from heatdistance.fea.solvers.preconditioners import Preconditioner

logger = logging.getLogger(__name__)


@dataclass
class CGResult:
    """
    Outcome of one conjugate-gradient solve.

    Norms are the preconditioned residual norms sqrt(r · z).
    """
    iterations: int
    converged: bool
    initial_norm: float
    final_norm: float


def conjugate_gradient(
    A: ParallelMatrix,
    b: npt.NDArray[np.float64],
    x: npt.NDArray[np.float64],
    preconditioner: Preconditioner | None = None,
    rel_tol: float = config.CG_REL_TOL,
    max_iter: int = config.CG_MAX_ITER,
    print_level: int = config.CG_PRINT_LEVEL,
    abs_tol: float = 0.0,
) -> CGResult:
    """
    Solve A x = b with the preconditioned conjugate-gradient method (collective).

    ``x`` holds the owned entries of the initial guess and is updated in place. The
    iteration stops once sqrt(r · z) <= max(rel_tol * sqrt(r0 · z0), abs_tol). Reaching
    ``max_iter`` is not an error: a warning is logged and the last iterate is kept.

    Args:
        A: Symmetric positive (semi-)definite operator.
        b: Owned entries of the right-hand side.
        x: Owned entries of the initial guess, overwritten with the solution.
        preconditioner: Symmetric positive definite preconditioner; identity when omitted.
        rel_tol: Relative tolerance.
        max_iter: Maximum number of iterations.
        print_level: 0 = silent, 1 = summary, 2 = every iteration.
        abs_tol: Absolute tolerance.
    """
    comm = A.comm

    def dot(u: npt.NDArray[np.float64], v: npt.NDArray[np.float64]) -> float:
        return float(comm.allreduce(float(np.dot(u, v)), op="sum"))

    def precondition(r: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return r.copy() if preconditioner is None else preconditioner.apply(r)

    r = b - A.matvec(x)
    z = precondition(r)
    d = z.copy()

    nom = dot(z, r)
    initial_norm = float(np.sqrt(max(nom, 0.0)))
    r0 = max(nom * rel_tol * rel_tol, abs_tol * abs_tol)

    if print_level >= 2:
        logger.debug(f"PCG iteration 0: ||r||_B = {initial_norm:.6e}")

    if nom < 0.0:
        logger.warning(f"PCG: preconditioner is not positive definite (r·z = {nom:.6e}).")
        return CGResult(iterations=0, converged=False, initial_norm=initial_norm, final_norm=initial_norm)

    if nom <= r0:
        _report(print_level, 0, True, initial_norm, initial_norm)
        return CGResult(iterations=0, converged=True, initial_norm=initial_norm, final_norm=initial_norm)

    Ad = A.matvec(d)
    den = dot(d, Ad)

    converged = False
    iterations = 0
    final_norm = initial_norm
    for i in range(1, max_iter + 1):
        if den <= 0.0:
            logger.warning(f"PCG: operator is not positive definite (d·Ad = {den:.6e}).")
            break

        iterations = i
        alpha = nom / den
        x += alpha * d
        r -= alpha * Ad

        z = precondition(r)
        betanom = dot(r, z)
        final_norm = float(np.sqrt(max(betanom, 0.0)))

        if print_level >= 2:
            logger.debug(f"PCG iteration {i}: ||r||_B = {final_norm:.6e}")

        if betanom <= r0:
            converged = True
            break

        beta = betanom / nom
        d = z + beta * d
        Ad = A.matvec(d)
        den = dot(d, Ad)
        nom = betanom

    _report(print_level, iterations, converged, initial_norm, final_norm)
    return CGResult(
        iterations=iterations,
        converged=converged,
        initial_norm=initial_norm,
        final_norm=final_norm,
    )


def _report(print_level: int, iterations: int, converged: bool, initial_norm: float, final_norm: float) -> None:
    if not converged:
        logger.warning(
            f"PCG: no convergence after {iterations} iterations "
            f"(||r0||_B = {initial_norm:.6e}, ||r||_B = {final_norm:.6e})."
        )
    elif print_level >= 1:
        logger.info(
            f"PCG: converged in {iterations} iterations "
            f"(||r0||_B = {initial_norm:.6e}, ||r||_B = {final_norm:.6e})."
        )


def solve_linear_system(
    system: LinearSystem,
    preconditioner: Preconditioner | None,
    settings: config.SolverSettings | None = None,
) -> CGResult:
    """Run PCG on a constrained system, updating ``system.solution`` in place."""
    settings = settings or config.SolverSettings()
    return conjugate_gradient(
        system.operator,
        system.rhs,
        system.solution,
        preconditioner=preconditioner,
        rel_tol=settings.rel_tol,
        max_iter=settings.max_iter,
        print_level=settings.print_level,
    )
