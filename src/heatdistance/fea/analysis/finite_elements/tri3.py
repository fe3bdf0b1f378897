from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numba as nb

from heatdistance.fea.analysis.finite_elements.finite_element import FiniteElement
from heatdistance.fea.geometry import Geometry
import heatdistance.fea.analysis.gauss as gauss

if TYPE_CHECKING:
    import numpy.typing as npt


# B_N = [
#   [dN1(r,s)/dr, dN2(r,s)/dr, dN3(r,s)/dr],
#   [dN1(r,s)/ds, dN2(r,s)/ds, dN3(r,s)/ds]
# ]
B_N = np.array([
    [-1.0, 1.0, 0.0],
    [-1.0, 0.0, 1.0],
])


@nb.jit(cache=True, fastmath=True)
def _inv2(
    a11: float,
    a12: float,
    a21: float,
    a22: float
) -> tuple[tuple[float, float, float, float], float]:
    """
    Compute the inverse and determinant of a 2×2 matrix [[a11, a12], [a21, a22]].

    Args:
        a11, a12, a21, a22: Elements of the 2x2 matrix.

    Returns:
        A tuple containing the elements of the inverse matrix and the determinant.
    """
    det = a11 * a22 - a12 * a21
    inv = (a22 / det, -a12 / det, -a21 / det, a11 / det)
    return inv, det


@nb.jit(cache=True, fastmath=True)
def _tri3_B_and_detJ(
    x: npt.NDArray[np.float64],
    y: npt.NDArray[np.float64]
) -> tuple[npt.NDArray[np.float64], float]:
    """
    Build the constant B matrix and |det(J)| for a Tri3 element.

    Args:
        x: (3, ) array of x-coordinates of the element's vertices.
        y: (3, ) array of y-coordinates of the element's vertices.

    Returns:
        B: (2, 3) array representing the B matrix.
        detJ_abs: Absolute value of the Jacobian determinant.
    """
    # J = B_N @ [[x], [y]].T
    J00 = B_N[0, 0] * x[0] + B_N[0, 1] * x[1] + B_N[0, 2] * x[2]
    J01 = B_N[0, 0] * y[0] + B_N[0, 1] * y[1] + B_N[0, 2] * y[2]
    J10 = B_N[1, 0] * x[0] + B_N[1, 1] * x[1] + B_N[1, 2] * x[2]
    J11 = B_N[1, 0] * y[0] + B_N[1, 1] * y[1] + B_N[1, 2] * y[2]

    (i00, i01, i10, i11), detJ = _inv2(J00, J01, J10, J11)

    # B = inv(J) @ B_N
    B = np.empty((2, 3), dtype=np.float64)
    for j in range(3):
        b0, b1 = B_N[0, j], B_N[1, j]
        B[0, j] = i00 * b0 + i01 * b1
        B[1, j] = i10 * b0 + i11 * b1

    return B, abs(detJ)


class Tri3(FiniteElement):
    """
    Represents a three-node linear triangular finite element (Tri3).
    """
    geometry = Geometry.TRIANGLE
    order = 1
    n_integration_points = 3

    @staticmethod
    def shape_functions(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Calculate the shape functions for the Tri3 element.

        Args:
            iso_coords: Isoparametric coordinates [1 - r - s, r, s] in the range [0, 1].

        Returns:
            Shape function values at the given coordinates ``[N1, N2, N3]``.
        """
        # For Tri3, the shape functions are the isoparametric coordinates
        return np.array([iso_coords])

    @staticmethod
    def shape_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return B_N

    @staticmethod
    def geometry_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return B_N

    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """
        Return Gauss points and weights for 3-point triangle rule.

        Returns:
            Tuple of Gauss points and weights for numerical integration.
        """
        return gauss.gauss_points_weights_triangle(self.n_integration_points)

    def _precompute_at_integration_points(
        self,
    ) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """
        Constant [B] and |det(J)| for Tri3, computed once with the compiled kernel.
        """
        x = np.ascontiguousarray(self.vertices[:, 0])
        y = np.ascontiguousarray(self.vertices[:, 1])
        B, detJ = _tri3_B_and_detJ(x, y)

        n_gp = len(self._gp)
        N = np.array([self.shape_functions(gp_i)[0] for gp_i in self._gp])
        return N, np.broadcast_to(B, (n_gp, 2, 3)).copy(), np.full(n_gp, detJ)
