from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from heatdistance.fea.analysis.finite_elements.finite_element import FiniteElement
from heatdistance.fea.analysis.finite_elements.tri3 import B_N
from heatdistance.fea.geometry import Geometry
import heatdistance.fea.analysis.gauss as gauss

if TYPE_CHECKING:
    import numpy.typing as npt


class Tri6(FiniteElement):
    """
    Represents a six-node quadratic triangular finite element (Tri6).

    Dofs are ordered as the three vertices followed by the edge midpoints of
    (0, 1), (1, 2) and (2, 0). Edges are straight, so the geometry map is affine.
    """
    geometry = Geometry.TRIANGLE
    order = 2
    n_integration_points = 6

    @staticmethod
    def shape_functions(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Calculate the shape functions for the Tri6 element.

        Args:
            iso_coords: Barycentric coordinates [L1, L2, L3].
        """
        L1, L2, L3 = iso_coords
        return np.array([[
            L1 * (2.0 * L1 - 1.0),
            L2 * (2.0 * L2 - 1.0),
            L3 * (2.0 * L3 - 1.0),
            4.0 * L1 * L2,
            4.0 * L2 * L3,
            4.0 * L3 * L1,
        ]])

    @staticmethod
    def shape_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        L1, L2, L3 = iso_coords
        # dL/dr and dL/ds are the columns of B_N
        dL1, dL2, dL3 = B_N[:, 0], B_N[:, 1], B_N[:, 2]
        return np.column_stack([
            (4.0 * L1 - 1.0) * dL1,
            (4.0 * L2 - 1.0) * dL2,
            (4.0 * L3 - 1.0) * dL3,
            4.0 * (L2 * dL1 + L1 * dL2),
            4.0 * (L3 * dL2 + L2 * dL3),
            4.0 * (L1 * dL3 + L3 * dL1),
        ])

    @staticmethod
    def geometry_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return B_N

    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Degree 4 rule, exact for the quadratic mass matrix."""
        return gauss.gauss_points_weights_triangle(self.n_integration_points)
