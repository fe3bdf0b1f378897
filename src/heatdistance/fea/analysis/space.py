from __future__ import annotations

import logging

from typing import TYPE_CHECKING

import numpy as np

from heatdistance.errors import ConfigurationError, UnsupportedGeometryError
from heatdistance.fea.analysis.finite_elements import ELEMENT_TYPE_MAP
from heatdistance.fea.geometry import CENTRE_DOF, EDGES, FACES, Geometry

if TYPE_CHECKING:
    import numpy.typing as npt

    from heatdistance.fea.analysis.assembly import Assembler
    from heatdistance.fea.analysis.finite_elements import FiniteElement
    from heatdistance.fea.pre.partition import ParallelMesh
    from heatdistance.parallel.comm import Communicator

logger = logging.getLogger(__name__)

# Facet geometry by number of facet vertices
_FACET_GEOMETRY = {2: Geometry.SEGMENT, 3: Geometry.TRIANGLE, 4: Geometry.SQUARE}


class DofLayout:
    """
    Ownership of the global dof range: rank ``r`` owns ``offsets[r]:offsets[r + 1]``.
    """

    def __init__(self, n_global: int, n_ranks: int) -> None:
        self.n_global = n_global
        counts = np.full(n_ranks, n_global // n_ranks, dtype=np.int64)
        counts[: n_global % n_ranks] += 1
        self.offsets: npt.NDArray[np.int64] = np.concatenate([[0], np.cumsum(counts)])

    def __repr__(self) -> str:
        return f"DofLayout(n_global={self.n_global}, offsets={self.offsets.tolist()})"

    @property
    def n_ranks(self) -> int:
        return self.offsets.size - 1

    def owned_range(self, rank: int) -> tuple[int, int]:
        return int(self.offsets[rank]), int(self.offsets[rank + 1])

    def n_owned(self, rank: int) -> int:
        start, stop = self.owned_range(rank)
        return stop - start

    def owner_of(self, dofs: npt.ArrayLike) -> npt.NDArray[np.int64]:
        """Rank owning each of the given global dofs."""
        return np.searchsorted(self.offsets, np.asarray(dofs), side="right") - 1


class FiniteElementSpace:
    """
    Continuous Lagrange space of a given order on a distributed mesh.

    Dofs are numbered globally: the mesh vertices first, then for second-order spaces one
    dof per mesh edge, one per hexahedron face and one per quadrilateral or hexahedral
    cell. Each rank builds finite elements for its local cells only.
    """

    def __init__(self, pmesh: ParallelMesh, order: int = 1) -> None:
        """
        Args:
            pmesh: Distributed mesh.
            order: Polynomial order of the shape functions.

        Raises:
            UnsupportedGeometryError: No finite element exists for the mesh geometry.
            ConfigurationError: The geometry does not support the requested order.
        """
        geometry = pmesh.base_geometry
        if (geometry, 1) not in ELEMENT_TYPE_MAP:
            raise UnsupportedGeometryError(geometry, "finite element space")
        if (geometry, order) not in ELEMENT_TYPE_MAP:
            raise ConfigurationError(f"Order {order} is not supported on {geometry.name} elements.")

        self.pmesh = pmesh
        self.order = order
        self.element_class: type[FiniteElement] = ELEMENT_TYPE_MAP[(geometry, order)]

        mesh = pmesh.mesh
        self._cell_dofs, self._entities = self._number_dofs()
        self.n_global_dofs = mesh.number_of_points + sum(len(block) for block in self._entities)
        self._entity_dofs: dict[tuple[int, ...], int] | None = None
        self.layout = DofLayout(self.n_global_dofs, self.comm.size)

        self.elements: list[FiniteElement] = [
            self.element_class(
                index=int(e),
                global_dofs=self._cell_dofs[e],
                vertices=mesh.points[mesh.cells[e]],
            )
            for e in pmesh.local_elements
        ]
        self._assembler: Assembler | None = None

        logger.debug(
            f"{self.element_class.__name__} space: {self.n_global_dofs} global dofs, "
            f"{self.n_owned_dofs} owned by rank {self.comm.rank}."
        )

    def __repr__(self) -> str:
        return (
            f"FiniteElementSpace(element={self.element_class.__name__}, order={self.order}, "
            f"n_global_dofs={self.n_global_dofs})"
        )

    def _number_dofs(self) -> tuple[npt.NDArray[np.int64], list[npt.NDArray[np.int64]]]:
        """
        Build the cell-to-dof table.

        Returns:
            cell_dofs: (n_cells, n_dofs_per_cell) global dofs in local shape-function order.
            entities: Vertex blocks of the edges, faces and cells carrying the dofs that
                follow the vertex dofs, in dof order (empty for order 1).
        """
        mesh = self.pmesh.mesh
        if self.order == 1:
            return mesh.cells, []

        columns = [mesh.cells]
        entities = []
        n_dofs = mesh.number_of_points
        for table in (EDGES, FACES):
            if mesh.geometry not in table:
                continue
            local = np.array(table[mesh.geometry], dtype=np.int64)
            keys = np.sort(mesh.cells[:, local], axis=2).reshape(-1, local.shape[1])
            unique, inverse = np.unique(keys, axis=0, return_inverse=True)
            columns.append(n_dofs + inverse.reshape(mesh.number_of_cells, len(local)))
            entities.append(unique)
            n_dofs += len(unique)

        if mesh.geometry in CENTRE_DOF:
            columns.append(n_dofs + np.arange(mesh.number_of_cells, dtype=np.int64)[:, None])
            entities.append(mesh.cells)
        return np.hstack(columns), entities

    @property
    def comm(self) -> Communicator:
        return self.pmesh.comm

    @property
    def dimension(self) -> int:
        return self.pmesh.dimension

    @property
    def owned_range(self) -> tuple[int, int]:
        return self.layout.owned_range(self.comm.rank)

    @property
    def n_owned_dofs(self) -> int:
        return self.layout.n_owned(self.comm.rank)

    @property
    def assembler(self) -> Assembler:
        """Assembler over the local elements, built on first use."""
        if self._assembler is None:
            from heatdistance.fea.analysis.assembly import Assembler

            self._assembler = Assembler(self)
        return self._assembler

    def dof_coordinates(self) -> npt.NDArray[np.float64]:
        """(n_global_dofs, dim) coordinates of every dof; higher-order dofs sit at entity centres."""
        points = self.pmesh.mesh.points
        return np.vstack([points] + [points[block].mean(axis=1) for block in self._entities])

    def _facet_dofs(self, facets: npt.NDArray[np.int64]) -> npt.NDArray[np.int64]:
        """Global dofs on the closure of the given (n, n_facet_vertices) facets."""
        dofs = [facets.ravel()]
        if self.order == 1 or facets.shape[1] < 2:
            return np.concatenate(dofs)

        if self._entity_dofs is None:
            # Shared edges and faces only; cell centres never lie on a facet
            n_cell_vertices = self.pmesh.mesh.geometry.n_vertices
            self._entity_dofs = {}
            offset = self.pmesh.mesh.number_of_points
            for block in self._entities:
                if block.shape[1] < n_cell_vertices:
                    self._entity_dofs.update((tuple(row), offset + i) for i, row in enumerate(block.tolist()))
                offset += len(block)

        facet_geometry = _FACET_GEOMETRY[facets.shape[1]]
        keys = [np.sort(facets[:, list(edge)], axis=1) for edge in EDGES[facet_geometry]]
        if self.pmesh.mesh.geometry in FACES:
            keys.append(np.sort(facets, axis=1))
        for block in keys:
            dofs.append(np.array([self._entity_dofs[tuple(row)] for row in block.tolist()], dtype=np.int64))
        return np.concatenate(dofs)

    def essential_true_dofs(self, marker: npt.ArrayLike) -> npt.NDArray[np.int64]:
        """
        Resolve marked boundary attributes to owned global dofs.

        Args:
            marker: ``marker[a - 1] != 0`` selects the boundary facets with attribute ``a``.

        Returns:
            Sorted, unique global dofs on the selected facets that this rank owns.
        """
        mesh = self.pmesh.mesh
        marker = np.asarray(marker)
        attributes = mesh.boundary_attributes
        in_range = attributes <= marker.size
        selected = np.zeros(attributes.size, dtype=bool)
        selected[in_range] = marker[attributes[in_range] - 1] != 0
        facets = mesh.boundary_facets[selected]

        dofs = np.unique(self._facet_dofs(facets)).astype(np.int64)

        start, stop = self.owned_range
        return dofs[(dofs >= start) & (dofs < stop)]
