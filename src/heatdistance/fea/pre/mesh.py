from __future__ import annotations

import logging
import itertools

from typing import TYPE_CHECKING

import numpy as np
import meshio

from heatdistance.errors import ConfigurationError, UnsupportedGeometryError
from heatdistance.fea.analysis.finite_elements import ELEMENT_TYPE_MAP
from heatdistance.fea.geometry import FACETS, Geometry

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

# meshio cell type -> element geometry. Only the vertex columns of higher-order
# cells are kept, the mesh is always stored with straight (affine) edges.
CELL_TYPE_MAP: dict[str, Geometry] = {
    "vertex": Geometry.POINT,
    "line": Geometry.SEGMENT,
    "line3": Geometry.SEGMENT,
    "triangle": Geometry.TRIANGLE,
    "triangle6": Geometry.TRIANGLE,
    "quad": Geometry.SQUARE,
    "quad8": Geometry.SQUARE,
    "quad9": Geometry.SQUARE,
    "tetra": Geometry.TETRAHEDRON,
    "tetra10": Geometry.TETRAHEDRON,
    "hexahedron": Geometry.CUBE,
    "hexahedron20": Geometry.CUBE,
    "hexahedron27": Geometry.CUBE,
    "wedge": Geometry.PRISM,
    "pyramid": Geometry.PYRAMID,
}

# Element geometry -> meshio cell type used when writing
MESHIO_CELL_TYPE: dict[Geometry, str] = {
    Geometry.SEGMENT: "line",
    Geometry.TRIANGLE: "triangle",
    Geometry.SQUARE: "quad",
    Geometry.TETRAHEDRON: "tetra",
    Geometry.CUBE: "hexahedron",
    Geometry.PRISM: "wedge",
    Geometry.PYRAMID: "pyramid",
}

PHYSICAL_TAG = "gmsh:physical"


def find_boundary_facets(cells: npt.NDArray[np.int64], geometry: Geometry) -> npt.NDArray[np.int64]:
    """
    Find the facets that belong to exactly one cell.

    Args:
        cells: (n_cells, n_vertices) vertex connectivity.
        geometry: Geometry of the cells.

    Returns:
        (n_facets, n_facet_vertices) vertex indices of the exterior facets, in the
        orientation of the owning cell.
    """
    if geometry not in FACETS:
        raise UnsupportedGeometryError(geometry, "boundary detection")

    local_facets = np.array(FACETS[geometry], dtype=np.int64)
    # (n_cells, n_facets_per_cell, n_facet_vertices) -> flat list of facets
    facets = cells[:, local_facets].reshape(-1, local_facets.shape[1])
    keys = np.sort(facets, axis=1)

    _, inverse, counts = np.unique(keys, axis=0, return_inverse=True, return_counts=True)
    exterior = counts[inverse.ravel()] == 1
    return facets[exterior]


class Mesh:
    """
    Serial unstructured mesh made of a single element geometry.

    Attributes:
        points: (n_points, dim) vertex coordinates, dim equal to the geometry dimension.
        cells: (n_cells, n_vertices) vertex connectivity.
        geometry: Element geometry of every cell.
        boundary_facets: (n_facets, n_facet_vertices) tagged boundary facets.
        boundary_attributes: (n_facets,) positive integer attribute of each boundary facet.
    """

    def __init__(
        self,
        points: npt.ArrayLike,
        cells: npt.ArrayLike,
        geometry: Geometry,
        boundary_facets: npt.ArrayLike | None = None,
        boundary_attributes: npt.ArrayLike | None = None,
    ) -> None:
        """
        Initialize the Mesh class.
        """
        self.points: npt.NDArray[np.float64] = np.atleast_2d(np.asarray(points, dtype=np.float64))
        self.cells: npt.NDArray[np.int64] = np.atleast_2d(np.asarray(cells, dtype=np.int64))
        self.geometry = geometry

        if self.cells.shape[1] != geometry.n_vertices:
            raise ValueError(
                f"{geometry.name} cells need {geometry.n_vertices} vertices, got {self.cells.shape[1]}."
            )

        n_facet_vertices = len(FACETS[geometry][0]) if geometry in FACETS else geometry.dimension
        if boundary_facets is None:
            boundary_facets = np.empty((0, n_facet_vertices), dtype=np.int64)
        self.boundary_facets: npt.NDArray[np.int64] = np.asarray(boundary_facets, dtype=np.int64).reshape(
            -1, n_facet_vertices
        )

        if boundary_attributes is None:
            boundary_attributes = np.ones(len(self.boundary_facets), dtype=np.int64)
        self.boundary_attributes: npt.NDArray[np.int64] = np.asarray(boundary_attributes, dtype=np.int64)

        if self.boundary_attributes.shape != (len(self.boundary_facets),):
            raise ValueError("Every boundary facet needs exactly one attribute.")
        if np.any(self.boundary_attributes < 1):
            raise ValueError("Boundary attributes must be positive integers.")

    def __repr__(self) -> str:
        return (
            f"Mesh(geometry={self.geometry.name}, points={self.number_of_points}, "
            f"cells={self.number_of_cells}, boundary_facets={len(self.boundary_facets)})"
        )

    @property
    def dimension(self) -> int:
        return self.geometry.dimension

    @property
    def number_of_points(self) -> int:
        return self.points.shape[0]

    @property
    def number_of_cells(self) -> int:
        return self.cells.shape[0]

    @property
    def bdr_attributes(self) -> npt.NDArray[np.int64]:
        """Sorted unique boundary attributes declared by the mesh."""
        return np.unique(self.boundary_attributes)

    def exterior_facets(self) -> npt.NDArray[np.int64]:
        """Facets on the domain boundary, whether tagged or not."""
        return find_boundary_facets(self.cells, self.geometry)

    def element_volumes(self, indices: npt.ArrayLike | None = None) -> npt.NDArray[np.float64]:
        """
        Length, area or volume of the selected cells.

        Args:
            indices: Cell indices; all cells when omitted.
        """
        element_class = ELEMENT_TYPE_MAP.get((self.geometry, 1))
        if element_class is None:
            raise UnsupportedGeometryError(self.geometry, "element measure")

        if indices is None:
            indices = np.arange(self.number_of_cells)
        indices = np.asarray(indices, dtype=np.int64)

        volumes = np.empty(indices.size, dtype=np.float64)
        for i, e in enumerate(indices):
            cell = self.cells[e]
            volumes[i] = element_class(index=int(e), global_dofs=cell, vertices=self.points[cell]).measure
        return volumes

    @classmethod
    def from_file(cls, filename: str) -> Mesh:
        """
        Load a mesh with meshio.

        The highest-dimensional cell blocks form the domain; cell blocks one dimension
        lower are boundary facets, tagged with their ``gmsh:physical`` attribute. Points
        not referenced by a domain cell (e.g. midside nodes of quadratic cells) are dropped.
        """
        logger.info(f"Reading mesh from '{filename}'.")
        raw = meshio.read(filename)
        physical = raw.cell_data.get(PHYSICAL_TAG)

        blocks: list[tuple[Geometry, npt.NDArray[np.int64], npt.NDArray[np.int64] | None]] = []
        for i, block in enumerate(raw.cells):
            if block.type not in CELL_TYPE_MAP:
                raise ConfigurationError(f"Unsupported meshio cell type '{block.type}' in '{filename}'.")
            geometry = CELL_TYPE_MAP[block.type]
            data = np.asarray(block.data, dtype=np.int64)[:, :geometry.n_vertices]
            tags = np.asarray(physical[i], dtype=np.int64) if physical is not None else None
            blocks.append((geometry, data, tags))

        if not blocks:
            raise ConfigurationError(f"Mesh file '{filename}' contains no cells.")

        dim = max(geometry.dimension for geometry, _, _ in blocks)
        domain = [(g, data) for g, data, _ in blocks if g.dimension == dim]
        geometries = {g for g, _ in domain}
        if len(geometries) != 1:
            names = sorted(g.name for g in geometries)
            raise ConfigurationError(f"Mixed element geometries are not supported: {names}.")
        geometry = geometries.pop()
        cells = np.vstack([data for _, data in domain])

        facets, attributes = [], []
        n_facet_vertices = len(FACETS[geometry][0]) if geometry in FACETS else None
        for g, data, tags in blocks:
            if g.dimension != dim - 1 or tags is None:
                continue
            if data.shape[1] != n_facet_vertices:
                logger.warning(f"Ignoring {g.name} boundary block of a {geometry.name} mesh.")
                continue
            facets.append(data)
            attributes.append(tags)

        # Compact the point numbering to the vertices used by the domain
        used = np.unique(cells)
        renumber = np.full(len(raw.points), -1, dtype=np.int64)
        renumber[used] = np.arange(used.size)
        points = raw.points[used, :geometry.dimension]
        cells = renumber[cells]

        if facets:
            boundary_facets = renumber[np.vstack(facets)]
            boundary_attributes = np.concatenate(attributes)
            keep = np.all(boundary_facets >= 0, axis=1) & (boundary_attributes > 0)
            boundary_facets, boundary_attributes = boundary_facets[keep], boundary_attributes[keep]
        else:
            boundary_facets, boundary_attributes = None, np.empty(0, dtype=np.int64)

        mesh = cls(
            points=points,
            cells=cells,
            geometry=geometry,
            boundary_facets=boundary_facets,
            boundary_attributes=boundary_attributes,
        )
        logger.info(f"Loaded {mesh}.")
        return mesh

    def to_meshio(self, point_data: dict[str, npt.NDArray[np.float64]] | None = None) -> meshio.Mesh:
        """Convert the mesh (vertices only) to a :class:`meshio.Mesh`."""
        return meshio.Mesh(
            points=self.points,
            cells=[(MESHIO_CELL_TYPE[self.geometry], self.cells)],
            point_data=point_data or {},
        )


def _with_marked_boundary(points, cells, geometry: Geometry, mark_boundary: bool) -> Mesh:
    if not mark_boundary:
        return Mesh(points, cells, geometry)
    facets = find_boundary_facets(np.asarray(cells, dtype=np.int64), geometry)
    return Mesh(points, cells, geometry, facets, np.ones(len(facets), dtype=np.int64))


def unit_interval(n: int, mark_boundary: bool = True) -> Mesh:
    """
    Uniform mesh of [0, 1] with ``n`` segments.

    Args:
        n: Number of segments.
        mark_boundary: Tag both end points with attribute 1.
    """
    if n < 1:
        raise ValueError(f"n must be at least 1, got {n}.")
    points = np.linspace(0.0, 1.0, n + 1)[:, None]
    cells = np.column_stack([np.arange(n), np.arange(1, n + 1)])
    return _with_marked_boundary(points, cells, Geometry.SEGMENT, mark_boundary)


def unit_square(n: int, element: str = "triangle", mark_boundary: bool = True) -> Mesh:
    """
    Uniform mesh of [0, 1]² with ``n`` × ``n`` cells.

    Args:
        n: Number of cells along each axis.
        element: "triangle" (each square split along its diagonal) or "quad".
        mark_boundary: Tag the whole boundary with attribute 1.
    """
    if n < 1:
        raise ValueError(f"n must be at least 1, got {n}.")

    x = np.linspace(0.0, 1.0, n + 1)
    X, Y = np.meshgrid(x, x, indexing="xy")
    points = np.column_stack([X.ravel(), Y.ravel()])

    i, j = np.meshgrid(np.arange(n), np.arange(n), indexing="xy")
    v00 = (j * (n + 1) + i).ravel()
    v10 = v00 + 1
    v01 = v00 + (n + 1)
    v11 = v01 + 1

    if element == "quad":
        cells = np.column_stack([v00, v10, v11, v01])
        geometry = Geometry.SQUARE
    elif element == "triangle":
        cells = np.vstack([
            np.column_stack([v00, v10, v11]),
            np.column_stack([v00, v11, v01]),
        ])
        geometry = Geometry.TRIANGLE
    else:
        raise ValueError(f"Unknown element '{element}'. Must be 'triangle' or 'quad'.")

    return _with_marked_boundary(points, cells, geometry, mark_boundary)


def unit_cube(n: int, element: str = "tetrahedron", mark_boundary: bool = True) -> Mesh:
    """
    Uniform mesh of [0, 1]³ with ``n`` × ``n`` × ``n`` cells.

    Args:
        n: Number of cells along each axis.
        element: "tetrahedron" (six Kuhn simplices per cube) or "hexahedron".
        mark_boundary: Tag the whole boundary with attribute 1.
    """
    if n < 1:
        raise ValueError(f"n must be at least 1, got {n}.")

    x = np.linspace(0.0, 1.0, n + 1)
    Z, Y, X = np.meshgrid(x, x, x, indexing="ij")
    points = np.column_stack([X.ravel(), Y.ravel(), Z.ravel()])

    k, j, i = np.meshgrid(np.arange(n), np.arange(n), np.arange(n), indexing="ij")
    base = (k * (n + 1) ** 2 + j * (n + 1) + i).ravel()
    step = np.array([1, n + 1, (n + 1) ** 2])

    def corner(dx: int, dy: int, dz: int) -> npt.NDArray[np.int64]:
        return base + dx * step[0] + dy * step[1] + dz * step[2]

    if element == "hexahedron":
        cells = np.column_stack([
            corner(0, 0, 0), corner(1, 0, 0), corner(1, 1, 0), corner(0, 1, 0),
            corner(0, 0, 1), corner(1, 0, 1), corner(1, 1, 1), corner(0, 1, 1),
        ])
        geometry = Geometry.CUBE
    elif element == "tetrahedron":
        # Kuhn triangulation: one simplex per axis ordering, all sharing the main diagonal
        tets = []
        for axes in itertools.permutations(range(3)):
            offset = np.zeros(3, dtype=np.int64)
            path = [corner(*offset)]
            for axis in axes:
                offset[axis] = 1
                path.append(corner(*offset))
            tets.append(np.column_stack(path))
        cells = np.vstack(tets)
        geometry = Geometry.TETRAHEDRON
    else:
        raise ValueError(f"Unknown element '{element}'. Must be 'tetrahedron' or 'hexahedron'.")

    return _with_marked_boundary(points, cells, geometry, mark_boundary)
