from heatdistance.fea.solvers.cg import CGResult, conjugate_gradient, solve_linear_system
from heatdistance.fea.solvers.preconditioners import (
    PreconditionerBackend,
    make_preconditioner,
    require_backend,
)
from heatdistance.fea.solvers.smoother import JacobiSmoother

__all__ = [
    "CGResult",
    "JacobiSmoother",
    "PreconditionerBackend",
    "conjugate_gradient",
    "make_preconditioner",
    "require_backend",
    "solve_linear_system",
]
