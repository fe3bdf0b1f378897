from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from heatdistance.fea.analysis.finite_elements.finite_element import FiniteElement
from heatdistance.fea.geometry import Geometry
import heatdistance.fea.analysis.gauss as gauss

if TYPE_CHECKING:
    import numpy.typing as npt


# Reference vertex coordinates, counter-clockwise from (-1, -1)
_QUAD4_VERTICES = np.array([
    [-1.0, -1.0],
    [+1.0, -1.0],
    [+1.0, +1.0],
    [-1.0, +1.0],
])


class Quad4(FiniteElement):
    """
    Represents a four-node bilinear quadrilateral finite element (Quad4).
    """
    geometry = Geometry.SQUARE
    order = 1
    n_integration_points = 4

    @staticmethod
    def shape_functions(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Calculate the shape functions for the Quad4 element.

        N_i = (1 + ξ ξ_i)(1 + η η_i) / 4

        Args:
            iso_coords: Isoparametric coordinates [ξ, η] in the range [-1, 1].
        """
        xi, eta = iso_coords
        return np.array([
            0.25 * (1.0 + xi * _QUAD4_VERTICES[:, 0]) * (1.0 + eta * _QUAD4_VERTICES[:, 1])
        ])

    @staticmethod
    def shape_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        xi, eta = iso_coords
        xi_i, eta_i = _QUAD4_VERTICES[:, 0], _QUAD4_VERTICES[:, 1]
        return np.array([
            0.25 * xi_i * (1.0 + eta * eta_i),
            0.25 * eta_i * (1.0 + xi * xi_i),
        ])

    @staticmethod
    def geometry_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return Quad4.shape_derivatives(iso_coords)

    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        return gauss.gauss_points_weights_quadrilateral(self.n_integration_points)
