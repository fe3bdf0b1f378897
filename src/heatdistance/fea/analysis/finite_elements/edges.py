from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from heatdistance.fea.analysis.finite_elements.finite_element import FiniteElement
from heatdistance.fea.geometry import Geometry
import heatdistance.fea.analysis.gauss as gauss

if TYPE_CHECKING:
    import numpy.typing as npt


# dN/dξ of the two vertex functions on [-1, +1]
_LINE2_DN = np.array([[-0.5, 0.5]])


class Line2(FiniteElement):
    """
    Represents a two-node linear line element (Line2).
    """
    geometry = Geometry.SEGMENT
    order = 1
    n_integration_points = 2

    @staticmethod
    def shape_functions(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Calculate the shape functions for the Line2 element.

        Args:
            iso_coords: Isoparametric coordinate [ξ] in the range [-1, 1].
        """
        xi = iso_coords[0]
        return np.array([[0.5 * (1.0 - xi), 0.5 * (1.0 + xi)]])

    @staticmethod
    def shape_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return _LINE2_DN

    @staticmethod
    def geometry_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return _LINE2_DN

    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        return gauss.gauss_points_weights_edge(self.n_integration_points)


class Line3(FiniteElement):
    """
    Represents a three-node quadratic line element (Line3).

    Dofs are ordered as the two end vertices followed by the midpoint.
    """
    geometry = Geometry.SEGMENT
    order = 2
    n_integration_points = 3

    @staticmethod
    def shape_functions(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        xi = iso_coords[0]
        return np.array([[0.5 * xi * (xi - 1.0), 0.5 * xi * (xi + 1.0), 1.0 - xi * xi]])

    @staticmethod
    def shape_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        xi = iso_coords[0]
        return np.array([[xi - 0.5, xi + 0.5, -2.0 * xi]])

    @staticmethod
    def geometry_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return _LINE2_DN

    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        return gauss.gauss_points_weights_edge(self.n_integration_points)
