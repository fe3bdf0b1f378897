from __future__ import annotations

from enum import Enum


class Geometry(Enum):
    """
    Reference element shapes a mesh can be made of.

    Only SEGMENT, TRIANGLE, SQUARE, TETRAHEDRON and CUBE carry finite elements and a
    mesh-size formula; the remaining members exist so that meshes using them can be
    loaded and rejected with a named error.
    """
    POINT = "point"
    SEGMENT = "segment"
    TRIANGLE = "triangle"
    SQUARE = "square"
    TETRAHEDRON = "tetrahedron"
    CUBE = "cube"
    PRISM = "prism"
    PYRAMID = "pyramid"

    @property
    def dimension(self) -> int:
        """Topological dimension of the reference element."""
        return _DIMENSIONS[self]

    @property
    def n_vertices(self) -> int:
        """Number of vertices of the reference element."""
        return _VERTICES[self]


_DIMENSIONS = {
    Geometry.POINT: 0,
    Geometry.SEGMENT: 1,
    Geometry.TRIANGLE: 2,
    Geometry.SQUARE: 2,
    Geometry.TETRAHEDRON: 3,
    Geometry.CUBE: 3,
    Geometry.PRISM: 3,
    Geometry.PYRAMID: 3,
}

_VERTICES = {
    Geometry.POINT: 1,
    Geometry.SEGMENT: 2,
    Geometry.TRIANGLE: 3,
    Geometry.SQUARE: 4,
    Geometry.TETRAHEDRON: 4,
    Geometry.CUBE: 8,
    Geometry.PRISM: 6,
    Geometry.PYRAMID: 5,
}

# Local vertex indices of each facet, in gmsh/meshio vertex ordering.
FACETS: dict[Geometry, list[tuple[int, ...]]] = {
    Geometry.SEGMENT: [(0,), (1,)],
    Geometry.TRIANGLE: [(0, 1), (1, 2), (2, 0)],
    Geometry.SQUARE: [(0, 1), (1, 2), (2, 3), (3, 0)],
    Geometry.TETRAHEDRON: [(0, 1, 2), (0, 1, 3), (0, 2, 3), (1, 2, 3)],
    Geometry.CUBE: [
        (0, 3, 2, 1),
        (4, 5, 6, 7),
        (0, 1, 5, 4),
        (1, 2, 6, 5),
        (2, 3, 7, 6),
        (3, 0, 4, 7),
    ],
}

# Local vertex pairs of each edge carrying a dof for second-order elements.
EDGES: dict[Geometry, list[tuple[int, int]]] = {
    Geometry.SEGMENT: [(0, 1)],
    Geometry.TRIANGLE: [(0, 1), (1, 2), (2, 0)],
    Geometry.SQUARE: [(0, 1), (1, 2), (2, 3), (3, 0)],
    Geometry.TETRAHEDRON: [(0, 1), (1, 2), (2, 0), (0, 3), (1, 3), (2, 3)],
    Geometry.CUBE: [
        (0, 1), (1, 2), (2, 3), (3, 0),
        (4, 5), (5, 6), (6, 7), (7, 4),
        (0, 4), (1, 5), (2, 6), (3, 7),
    ],
}

# Local vertices of each quadrilateral face carrying a dof for second-order elements.
FACES: dict[Geometry, list[tuple[int, ...]]] = {
    Geometry.CUBE: FACETS[Geometry.CUBE],
}

# Geometries whose second-order elements carry a dof at the cell centre.
CENTRE_DOF: frozenset[Geometry] = frozenset({Geometry.SQUARE, Geometry.CUBE})
