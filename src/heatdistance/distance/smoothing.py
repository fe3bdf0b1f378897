from __future__ import annotations

import logging

from typing import TYPE_CHECKING

import numpy as np

from heatdistance.config import SMOOTHER_WEIGHT
from heatdistance.fea.analysis.forms import assemble_diffusion_operator
from heatdistance.fea.solvers.smoother import JacobiSmoother

if TYPE_CHECKING:
    from heatdistance.fea.analysis.field import DistributedField

logger = logging.getLogger(__name__)


class FieldSmoother:
    """
    Diffuses a field in place with damped Jacobi sweeps of the Laplacian.

    The right-hand side is zero and the current field values are the starting iterate,
    so every sweep only damps the high-frequency content of the field.
    """

    def __init__(self, weight: float = SMOOTHER_WEIGHT) -> None:
        self.weight = weight

    def smooth(self, field: DistributedField, steps: int) -> None:
        """
        Apply ``steps`` sweeps to ``field`` (collective when ``steps > 0``).

        ``steps == 0`` leaves the field untouched.
        """
        if steps < 0:
            raise ValueError(f"smooth_steps must be non-negative, got {steps}.")
        if steps == 0:
            return

        A = assemble_diffusion_operator(field.space)
        smoother = JacobiSmoother(A, steps=steps, weight=self.weight)
        smoother.mult(np.zeros_like(field.values), field.values)
        logger.info(f"Smoothed the source with {steps} Jacobi sweeps.")


def smooth_field(field: DistributedField, steps: int) -> None:
    """Smooth ``field`` in place with the default smoother."""
    FieldSmoother().smooth(field, steps)
