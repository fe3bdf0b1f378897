from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from heatdistance.fea.analysis.finite_elements.finite_element import FiniteElement
from heatdistance.fea.analysis.finite_elements.quad9 import tensor_shape_functions
from heatdistance.fea.geometry import EDGES, FACES, Geometry
import heatdistance.fea.analysis.gauss as gauss

if TYPE_CHECKING:
    import numpy.typing as npt


# dN/d(r, s, t) of the barycentric functions [1 - r - s - t, r, s, t]
_TET4_DN = np.array([
    [-1.0, 1.0, 0.0, 0.0],
    [-1.0, 0.0, 1.0, 0.0],
    [-1.0, 0.0, 0.0, 1.0],
])

# Reference vertex coordinates in gmsh ordering: bottom face, then top face
_HEX8_VERTICES = np.array([
    [-1.0, -1.0, -1.0],
    [+1.0, -1.0, -1.0],
    [+1.0, +1.0, -1.0],
    [-1.0, +1.0, -1.0],
    [-1.0, -1.0, +1.0],
    [+1.0, -1.0, +1.0],
    [+1.0, +1.0, +1.0],
    [-1.0, +1.0, +1.0],
])


class Tet4(FiniteElement):
    """
    Represents a four-node linear tetrahedral finite element (Tet4).
    """
    geometry = Geometry.TETRAHEDRON
    order = 1
    n_integration_points = 4

    @staticmethod
    def shape_functions(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Args:
            iso_coords: Barycentric coordinates [1 - r - s - t, r, s, t].
        """
        return np.array([iso_coords])

    @staticmethod
    def shape_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return _TET4_DN

    @staticmethod
    def geometry_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return _TET4_DN

    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        return gauss.gauss_points_weights_tetrahedron(self.n_integration_points)


class Hex8(FiniteElement):
    """
    Represents an eight-node trilinear hexahedral finite element (Hex8).
    """
    geometry = Geometry.CUBE
    order = 1
    n_integration_points = 8

    @staticmethod
    def shape_functions(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        N_i = (1 + ξ ξ_i)(1 + η η_i)(1 + ζ ζ_i) / 8

        Args:
            iso_coords: Isoparametric coordinates [ξ, η, ζ] in the range [-1, 1].
        """
        factors = 1.0 + _HEX8_VERTICES * np.asarray(iso_coords)
        return np.array([0.125 * np.prod(factors, axis=1)])

    @staticmethod
    def shape_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        factors = 1.0 + _HEX8_VERTICES * np.asarray(iso_coords)
        dN = np.empty((3, 8), dtype=np.float64)
        for d in range(3):
            others = [k for k in range(3) if k != d]
            dN[d] = 0.125 * _HEX8_VERTICES[:, d] * factors[:, others[0]] * factors[:, others[1]]
        return dN

    @staticmethod
    def geometry_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return Hex8.shape_derivatives(iso_coords)

    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        return gauss.gauss_points_weights_hexahedron(self.n_integration_points)


# Vertices, edge midpoints, face centres, centre
_HEX27_NODES = np.vstack([
    _HEX8_VERTICES,
    _HEX8_VERTICES[EDGES[Geometry.CUBE]].mean(axis=1),
    _HEX8_VERTICES[FACES[Geometry.CUBE]].mean(axis=1),
    [[0.0, 0.0, 0.0]],
])

_TET10_EDGES = np.array(EDGES[Geometry.TETRAHEDRON])


class Tet10(FiniteElement):
    """
    Represents a ten-node quadratic tetrahedral finite element (Tet10).

    Dofs are ordered as the four vertices followed by the edge midpoints in the order
    of ``EDGES[Geometry.TETRAHEDRON]``. Edges are straight, so the geometry map is affine.
    """
    geometry = Geometry.TETRAHEDRON
    order = 2
    n_integration_points = 14

    @staticmethod
    def shape_functions(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Args:
            iso_coords: Barycentric coordinates [1 - r - s - t, r, s, t].
        """
        L = np.asarray(iso_coords)
        a, b = _TET10_EDGES[:, 0], _TET10_EDGES[:, 1]
        return np.array([np.concatenate([L * (2.0 * L - 1.0), 4.0 * L[a] * L[b]])])

    @staticmethod
    def shape_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        L = np.asarray(iso_coords)
        a, b = _TET10_EDGES[:, 0], _TET10_EDGES[:, 1]
        return np.hstack([
            (4.0 * L - 1.0) * _TET4_DN,
            4.0 * (L[b] * _TET4_DN[:, a] + L[a] * _TET4_DN[:, b]),
        ])

    @staticmethod
    def geometry_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return _TET4_DN

    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Degree 5 rule, exact for the quadratic mass matrix."""
        return gauss.gauss_points_weights_tetrahedron(self.n_integration_points)


class Hex27(FiniteElement):
    """
    Represents a twenty-seven-node triquadratic hexahedral finite element (Hex27).

    Dofs are ordered as the eight vertices, the twelve edge midpoints, the six face
    centres and the cell centre, following ``EDGES`` and ``FACES`` for the cube.
    The geometry map is trilinear.
    """
    geometry = Geometry.CUBE
    order = 2
    n_integration_points = 27

    @staticmethod
    def shape_functions(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Args:
            iso_coords: Isoparametric coordinates [ξ, η, ζ] in the range [-1, 1].
        """
        return np.array([tensor_shape_functions(iso_coords, _HEX27_NODES)[0]])

    @staticmethod
    def shape_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return tensor_shape_functions(iso_coords, _HEX27_NODES)[1]

    @staticmethod
    def geometry_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return Hex8.shape_derivatives(iso_coords)

    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        return gauss.gauss_points_weights_hexahedron(self.n_integration_points)
