from __future__ import annotations

import logging
import math

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

    from heatdistance.fea.geometry import Geometry
    from heatdistance.fea.pre.mesh import Mesh
    from heatdistance.parallel.comm import Communicator

logger = logging.getLogger(__name__)


def partition_elements(mesh: Mesh, n_parts: int) -> npt.NDArray[np.int64]:
    """
    Split the cells of a mesh into ``n_parts`` contiguous chunks.

    Cells are ordered by the coordinate of their centroid along the longest axis of the
    bounding box, then cut into chunks whose sizes differ by at most one.

    Returns:
        (n_cells,) part index of every cell.
    """
    if n_parts < 1:
        raise ValueError(f"n_parts must be at least 1, got {n_parts}.")

    centroids = mesh.points[mesh.cells].mean(axis=1)
    extent = mesh.points.max(axis=0) - mesh.points.min(axis=0)
    axis = int(np.argmax(extent))
    order = np.argsort(centroids[:, axis], kind="stable")

    parts = np.empty(mesh.number_of_cells, dtype=np.int64)
    for part, chunk in enumerate(np.array_split(order, n_parts)):
        parts[chunk] = part
    return parts


class ParallelMesh:
    """
    View of a mesh from one rank of a communicator.

    The serial mesh is replicated on every rank; each rank owns the cells assigned to it
    by the partition and computes only on those. Global quantities are obtained by
    reductions on ``comm``.
    """

    def __init__(
        self,
        mesh: Mesh,
        comm: Communicator,
        partition: npt.ArrayLike | None = None,
    ) -> None:
        """
        Args:
            mesh: The serial mesh, identical on every rank.
            comm: Communicator shared by all ranks holding this mesh.
            partition: Part index of every cell; computed with
                :func:`partition_elements` when omitted.
        """
        self.mesh = mesh
        self.comm = comm

        if partition is None:
            partition = partition_elements(mesh, comm.size)
        self.partition: npt.NDArray[np.int64] = np.asarray(partition, dtype=np.int64)
        if self.partition.shape != (mesh.number_of_cells,):
            raise ValueError("The partition must assign exactly one part to every cell.")

        self.local_elements: npt.NDArray[np.int64] = np.flatnonzero(self.partition == comm.rank)
        self._volumes: npt.NDArray[np.float64] | None = None

        logger.debug(f"Rank {comm.rank} holds {self.n_local_elements} of {mesh.number_of_cells} elements.")

    def __repr__(self) -> str:
        return f"ParallelMesh(rank={self.comm.rank}, size={self.comm.size}, local_elements={self.n_local_elements})"

    @property
    def base_geometry(self) -> Geometry:
        return self.mesh.geometry

    @property
    def dimension(self) -> int:
        return self.mesh.dimension

    @property
    def n_local_elements(self) -> int:
        return self.local_elements.size

    @property
    def global_element_count(self) -> int:
        """Number of elements over all ranks (collective)."""
        return int(self.comm.allreduce(self.n_local_elements, op="sum"))

    @property
    def bdr_attributes(self) -> npt.NDArray[np.int64]:
        return self.mesh.bdr_attributes

    @property
    def local_volumes(self) -> npt.NDArray[np.float64]:
        """Measures of the local elements, in ``local_elements`` order."""
        if self._volumes is None:
            self._volumes = self.mesh.element_volumes(self.local_elements)
        return self._volumes

    def element_volume(self, i: int) -> float:
        """Measure of the ``i``-th local element."""
        return float(self.local_volumes[i])

    @property
    def local_measure(self) -> float:
        """Sum of the measures of the local elements."""
        return math.fsum(self.local_volumes)

    def global_measure(self) -> float:
        """
        Sum of all element measures (collective).

        The per-element measures are gathered and summed with :func:`math.fsum`, which is
        correctly rounded, so the result does not depend on the partition.
        """
        return math.fsum(np.concatenate(self.comm.allgather(self.local_volumes)))
