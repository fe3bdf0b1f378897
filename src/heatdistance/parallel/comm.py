"""
Communication contexts.

Every collective used by the solver goes through a :class:`Communicator` owned by
the mesh, the discretization space and the fields built on it. Nothing reaches for
an ambient ``COMM_WORLD``, so several independent solvers can coexist.

All methods are blocking collectives: every rank of the communicator must call them
in the same order, otherwise the computation deadlocks.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import reduce
from typing import Any, Sequence

import numpy as np

logger = logging.getLogger(__name__)

REDUCE_OPS = {
    "sum": np.add,
    "min": np.minimum,
    "max": np.maximum,
    "prod": np.multiply,
}


def _check_op(op: str) -> None:
    if op not in REDUCE_OPS:
        raise ValueError(f"Unknown reduction '{op}'. Must be one of {sorted(REDUCE_OPS)}.")


class Communicator(ABC):
    """
    Abstract communication context of one rank.
    """

    @property
    @abstractmethod
    def rank(self) -> int:
        """Index of the calling rank."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of participating ranks."""

    @abstractmethod
    def allgather(self, obj: Any) -> list[Any]:
        """Return the list of ``obj`` contributed by every rank, ordered by rank."""

    @abstractmethod
    def alltoall(self, objs: Sequence[Any]) -> list[Any]:
        """Send ``objs[r]`` to rank ``r``; return what every rank sent to this one."""

    def allreduce(self, value: Any, op: str = "sum") -> Any:
        """
        Reduce ``value`` across all ranks.

        Args:
            value: Scalar or array contribution of this rank.
            op: One of "sum", "min", "max", "prod".

        Returns:
            The reduced value, identical on every rank.
        """
        _check_op(op)
        return reduce(REDUCE_OPS[op], self.allgather(value))

    def barrier(self) -> None:
        """Block until every rank has reached the barrier."""
        self.allgather(None)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(rank={self.rank}, size={self.size})"


class SerialCommunicator(Communicator):
    """
    Single-rank communicator; every collective is a local identity.
    """

    @property
    def rank(self) -> int:
        return 0

    @property
    def size(self) -> int:
        return 1

    def allgather(self, obj: Any) -> list[Any]:
        return [obj]

    def alltoall(self, objs: Sequence[Any]) -> list[Any]:
        if len(objs) != 1:
            raise ValueError(f"alltoall expects exactly 1 entry on a serial communicator, got {len(objs)}.")
        return list(objs)

    def allreduce(self, value: Any, op: str = "sum") -> Any:
        _check_op(op)
        return value

    def barrier(self) -> None:
        return None


class MPICommunicator(Communicator):
    """
    Communicator backed by an :mod:`mpi4py` communicator.

    Args:
        comm: An ``mpi4py.MPI.Comm``. Defaults to ``MPI.COMM_WORLD``.
    """

    def __init__(self, comm: Any = None) -> None:
        from mpi4py import MPI

        self._mpi = MPI
        self.comm = MPI.COMM_WORLD if comm is None else comm
        self._ops = {
            "sum": MPI.SUM,
            "min": MPI.MIN,
            "max": MPI.MAX,
            "prod": MPI.PROD,
        }

    @property
    def rank(self) -> int:
        return self.comm.Get_rank()

    @property
    def size(self) -> int:
        return self.comm.Get_size()

    def allgather(self, obj: Any) -> list[Any]:
        return self.comm.allgather(obj)

    def alltoall(self, objs: Sequence[Any]) -> list[Any]:
        return self.comm.alltoall(list(objs))

    def allreduce(self, value: Any, op: str = "sum") -> Any:
        _check_op(op)
        return self.comm.allreduce(value, op=self._ops[op])

    def barrier(self) -> None:
        self.comm.Barrier()


def get_communicator(use_mpi: bool = False) -> Communicator:
    """
    Return the communicator for this process.

    Args:
        use_mpi: Use ``MPI.COMM_WORLD`` (requires the ``mpi`` extra) instead of a
            serial context.
    """
    if use_mpi:
        comm = MPICommunicator()
        logger.debug(f"Using MPI communicator with {comm.size} ranks.")
        return comm
    return SerialCommunicator()
