from __future__ import annotations

from numbers import Number
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

    from heatdistance.fea.analysis.space import FiniteElementSpace
    from heatdistance.parallel.comm import Communicator


class DistributedField:
    """
    Scalar field on a finite element space, one float64 value per dof.

    Each rank stores only the values of the dofs it owns (``values``); the full vector is
    available through the collective :meth:`gather`.
    """

    def __init__(
        self,
        space: FiniteElementSpace,
        values: npt.ArrayLike | None = None,
    ) -> None:
        """
        Args:
            space: Space the field lives on.
            values: Owned values; zeros when omitted.
        """
        self.space = space
        if values is None:
            self.values: npt.NDArray[np.float64] = np.zeros(space.n_owned_dofs, dtype=np.float64)
        else:
            self.values = np.array(values, dtype=np.float64)
            if self.values.shape != (space.n_owned_dofs,):
                raise ValueError(
                    f"Expected {space.n_owned_dofs} owned values, got array of shape {self.values.shape}."
                )

    def __repr__(self) -> str:
        return f"DistributedField(n_owned={self.values.size}, n_global={self.space.n_global_dofs})"

    @property
    def comm(self) -> Communicator:
        return self.space.comm

    def gather(self) -> npt.NDArray[np.float64]:
        """Full vector of global dof values, identical on every rank (collective)."""
        return np.concatenate(self.comm.allgather(self.values))

    def min(self) -> float:
        """Minimum of the owned values; ``+inf`` when this rank owns no dof."""
        if self.values.size == 0:
            return np.inf
        return float(self.values.min())

    def copy(self) -> DistributedField:
        return DistributedField(self.space, self.values)

    def assign(self, other: DistributedField) -> None:
        """Copy the values of ``other`` into this field in place."""
        self.values[:] = other.values

    def project_coefficient(self, coefficient: Any) -> None:
        """
        Set the field to the nodal interpolant of ``coefficient``.

        Args:
            coefficient: One of
                - a callable ``f(points) -> values`` evaluated at the (n, dim) dof coordinates,
                - a scalar,
                - a :class:`DistributedField` on the same space,
                - an array of all global dof values.
        """
        start, stop = self.space.owned_range

        if isinstance(coefficient, DistributedField):
            if coefficient.space is not self.space:
                raise ValueError("Cannot project a field from a different space.")
            self.values[:] = coefficient.values
        elif callable(coefficient):
            points = self.space.dof_coordinates()[start:stop]
            values = np.asarray(coefficient(points), dtype=np.float64)
            self.values[:] = np.broadcast_to(values, self.values.shape)
        elif isinstance(coefficient, Number):
            self.values[:] = float(coefficient)
        else:
            values = np.asarray(coefficient, dtype=np.float64)
            if values.shape != (self.space.n_global_dofs,):
                raise ValueError(
                    f"Expected {self.space.n_global_dofs} global dof values, got array of shape {values.shape}."
                )
            self.values[:] = values[start:stop]
