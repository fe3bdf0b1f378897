from __future__ import annotations

import logging

from typing import TYPE_CHECKING

import numpy as np

from heatdistance.config import SMOOTHER_WEIGHT

if TYPE_CHECKING:
    import numpy.typing as npt

    from heatdistance.fea.analysis.assembly import ParallelMatrix

logger = logging.getLogger(__name__)


class JacobiSmoother:
    """
    Damped Jacobi relaxation x <- x + w D⁻¹ (b - A x).

    The smoother runs in iterative mode: the vector passed to :meth:`mult` is both the
    starting point and the result.
    """

    def __init__(self, A: ParallelMatrix, steps: int = 1, weight: float = SMOOTHER_WEIGHT) -> None:
        """
        Args:
            A: Distributed operator.
            steps: Number of sweeps per call to :meth:`mult`.
            weight: Damping factor w.
        """
        if steps < 0:
            raise ValueError(f"steps must be non-negative, got {steps}.")
        self.A = A
        self.steps = steps
        self.weight = weight

        diag = A.diagonal()
        self._dinv: npt.NDArray[np.float64] = np.divide(
            1.0, diag, out=np.zeros_like(diag), where=diag != 0.0
        )

    def mult(self, b: npt.NDArray[np.float64], x: npt.NDArray[np.float64]) -> None:
        """
        Apply ``steps`` sweeps to ``x`` in place (collective).

        Args:
            b: Owned entries of the right-hand side.
            x: Owned entries of the current iterate.
        """
        for _ in range(self.steps):
            x += self.weight * self._dinv * (b - self.A.matvec(x))
        logger.debug(f"Applied {self.steps} Jacobi sweeps (w = {self.weight:.4f}).")
