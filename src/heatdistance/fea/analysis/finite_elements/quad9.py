from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from heatdistance.fea.analysis.finite_elements.finite_element import FiniteElement
from heatdistance.fea.analysis.finite_elements.quad4 import Quad4, _QUAD4_VERTICES
from heatdistance.fea.geometry import EDGES, Geometry
import heatdistance.fea.analysis.gauss as gauss

if TYPE_CHECKING:
    import numpy.typing as npt


def quadratic_1d(x: float, nodes: npt.NDArray[np.float64]) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Evaluate the 1D quadratic Lagrange functions on [-1, +1] and their derivatives.

    Args:
        x: Reference coordinate.
        nodes: Node coordinate (-1, 0 or +1) selecting the function of each dof.

    Returns:
        Values and derivatives, one per entry of ``nodes``.
    """
    values = np.where(nodes == 0.0, 1.0 - x * x, 0.5 * x * (x + nodes))
    derivatives = np.where(nodes == 0.0, -2.0 * x, x + 0.5 * nodes)
    return values, derivatives


def tensor_shape_functions(
    iso_coords: npt.NDArray[np.float64],
    nodes: npt.NDArray[np.float64],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Tensor-product quadratic shape functions and their reference derivatives.

    Args:
        iso_coords: (dim,) point in [-1, +1]^dim.
        nodes: (n_dofs, dim) reference coordinates of the dofs.

    Returns:
        N: (n_dofs,), dN: (dim, n_dofs)
    """
    dim = nodes.shape[1]
    values, derivatives = zip(*(quadratic_1d(iso_coords[d], nodes[:, d]) for d in range(dim)))
    N = np.prod(values, axis=0)
    dN = np.empty((dim, nodes.shape[0]), dtype=np.float64)
    for d in range(dim):
        factors = [derivatives[k] if k == d else values[k] for k in range(dim)]
        dN[d] = np.prod(factors, axis=0)
    return N, dN


# Vertices, edge midpoints, centre
_QUAD9_NODES = np.vstack([
    _QUAD4_VERTICES,
    _QUAD4_VERTICES[EDGES[Geometry.SQUARE]].mean(axis=1),
    [[0.0, 0.0]],
])


class Quad9(FiniteElement):
    """
    Represents a nine-node biquadratic quadrilateral finite element (Quad9).

    Dofs are ordered as the four vertices, the edge midpoints of (0, 1), (1, 2),
    (2, 3) and (3, 0), then the centre. The geometry map is bilinear.
    """
    geometry = Geometry.SQUARE
    order = 2
    n_integration_points = 9

    @staticmethod
    def shape_functions(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Args:
            iso_coords: Isoparametric coordinates [ξ, η] in the range [-1, 1].
        """
        return np.array([tensor_shape_functions(iso_coords, _QUAD9_NODES)[0]])

    @staticmethod
    def shape_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return tensor_shape_functions(iso_coords, _QUAD9_NODES)[1]

    @staticmethod
    def geometry_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return Quad4.shape_derivatives(iso_coords)

    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        return gauss.gauss_points_weights_quadrilateral(self.n_integration_points)
