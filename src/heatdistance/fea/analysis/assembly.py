from __future__ import annotations

import logging
from functools import reduce

from typing import TYPE_CHECKING, Callable

import numpy as np
import scipy as sp

if TYPE_CHECKING:
    import numpy.typing as npt

    from heatdistance.fea.analysis.finite_elements import FiniteElement
    from heatdistance.fea.analysis.space import DofLayout, FiniteElementSpace
    from heatdistance.parallel.comm import Communicator

logger = logging.getLogger(__name__)


class ParallelMatrix:
    """
    Row-distributed sparse matrix.

    Each rank holds the rows of the dofs it owns as an (n_owned, n_global) CSR block with
    global column indices.
    """

    def __init__(
        self,
        block: sp.sparse.csr_matrix,
        layout: DofLayout,
        comm: Communicator,
    ) -> None:
        self.block = block.tocsr()
        self.layout = layout
        self.comm = comm

        start, stop = layout.owned_range(comm.rank)
        if self.block.shape != (stop - start, layout.n_global):
            raise ValueError(
                f"Row block of shape {self.block.shape} does not match the owned range {start}:{stop}."
            )

    def __repr__(self) -> str:
        return f"ParallelMatrix(shape={self.shape}, local_nnz={self.block.nnz})"

    @property
    def shape(self) -> tuple[int, int]:
        return self.layout.n_global, self.layout.n_global

    @property
    def n_owned(self) -> int:
        return self.block.shape[0]

    def matvec(self, x: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Multiply by a distributed vector (collective).

        Args:
            x: Owned entries of the input vector.

        Returns:
            Owned entries of the product.
        """
        return self.block @ np.concatenate(self.comm.allgather(x))

    def diagonal_block(self) -> sp.sparse.csr_matrix:
        """(n_owned, n_owned) coupling between the owned dofs."""
        start, stop = self.layout.owned_range(self.comm.rank)
        return self.block[:, start:stop].tocsr()

    def diagonal(self) -> npt.NDArray[np.float64]:
        return self.diagonal_block().diagonal()

    def to_global(self) -> sp.sparse.csr_matrix:
        """Full matrix, identical on every rank (collective)."""
        return sp.sparse.vstack(self.comm.allgather(self.block), format="csr")


class Assembler:
    """
    Assembles global operators and functionals from the local elements of a space.

    The sparsity pattern and the scatter vectors are computed once; every assembly then
    only adds element contributions into the pattern and ships the rows it computed to
    their owning ranks.
    """

    def __init__(self, space: FiniteElementSpace) -> None:
        self.space = space
        self.comm = space.comm
        self.layout = space.layout
        self.elements = space.elements

        self._pattern, self._scatter = self._precompute_pattern_and_scatter(self.elements)

    def _precompute_pattern_and_scatter(
        self,
        elements: list[FiniteElement],
    ) -> tuple[sp.sparse.csr_matrix, list[npt.NDArray[np.int64]]]:
        """
        Precompute the local sparsity pattern and the scatter vectors of each element.

        Returns:
            A_template: (n_global, n_global) csr_matrix with the local pattern (zero data).
            scatter_list: for element e, scatter_list[e] gives the indices in
                          A_template.data where Ke.ravel(order="C") adds.
        """
        n = self.layout.n_global
        if not elements:
            return sp.sparse.csr_matrix((n, n), dtype=np.float64), []

        # 1) Build the sparsity pattern via COO triplets
        row_parts: list[npt.NDArray[np.int64]] = []
        col_parts: list[npt.NDArray[np.int64]] = []
        for element in elements:
            dofs = element.global_dofs
            row_parts.append(np.repeat(dofs, dofs.size))
            col_parts.append(np.tile(dofs, dofs.size))

        rows = np.concatenate(row_parts)
        cols = np.concatenate(col_parts)

        pattern = sp.sparse.coo_matrix(
            (np.ones_like(rows, dtype=np.int8), (rows, cols)),
            shape=(n, n),
        ).tocsr()
        pattern.sort_indices()

        A_template = pattern.astype(np.float64, copy=True)
        A_template.data[:] = 0.0

        # 2) For each element, find where each (row, col) lives in A_template.data
        indptr, indices = A_template.indptr, A_template.indices
        scatter_list: list[npt.NDArray[np.int64]] = []
        for element in elements:
            dofs = element.global_dofs
            n_dofs = dofs.size
            scatter_e = np.empty(n_dofs * n_dofs, dtype=np.int64)

            pos = 0
            for r in dofs:
                a, b = indptr[r], indptr[r + 1]  # indices[a:b] sorted
                scatter_e[pos:pos + n_dofs] = a + np.searchsorted(indices[a:b], dofs)
                pos += n_dofs
            scatter_list.append(scatter_e)

        return A_template, scatter_list

    def _row_slices(self):
        for rank in range(self.layout.n_ranks):
            yield self.layout.owned_range(rank)

    def assemble_matrix(
        self,
        get_local_matrix: Callable[[FiniteElement], npt.NDArray[np.float64]],
    ) -> ParallelMatrix:
        """
        Assemble a distributed matrix from element matrices (collective).

        Args:
            get_local_matrix: Function returning the (n_dofs, n_dofs) element matrix.
        """
        A = self._pattern.copy()
        A.data[:] = 0.0
        for i, element in enumerate(self.elements):
            Ke = np.asarray(get_local_matrix(element), dtype=np.float64)
            A.data[self._scatter[i]] += Ke.ravel(order="C")

        # Rows computed here go to their owners; owners sum what they receive
        received = self.comm.alltoall([A[start:stop] for start, stop in self._row_slices()])
        block = reduce(lambda x, y: x + y, received).tocsr()
        block.sum_duplicates()
        return ParallelMatrix(block, self.layout, self.comm)

    def assemble_vector(
        self,
        get_local_vector: Callable[[FiniteElement], npt.NDArray[np.float64]],
    ) -> npt.NDArray[np.float64]:
        """
        Assemble a distributed vector from element vectors (collective).

        Args:
            get_local_vector: Function returning the (n_dofs,) element vector.

        Returns:
            Owned entries of the assembled vector.
        """
        F = np.zeros(self.layout.n_global, dtype=np.float64)
        for element in self.elements:
            F[element.global_dofs] += get_local_vector(element)

        received = self.comm.alltoall([F[start:stop] for start, stop in self._row_slices()])
        return reduce(np.add, received)
