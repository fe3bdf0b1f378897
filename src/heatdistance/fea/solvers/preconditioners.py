"""
Preconditioners for the conjugate-gradient solves.

Both backends build a smoothed-aggregation AMG hierarchy with pyamg on the diagonal
block of the calling rank (block Jacobi across ranks):

- ``AMG`` applies the hierarchy on the host as a V-cycle.
- ``ACCELERATOR`` moves the hierarchy to a CUDA device with CuPy and runs a damped
  Jacobi V-cycle there.

Preconditioners are context managers; leaving the ``with`` block releases the
hierarchy and any device memory.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum

from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np
import pyamg

from heatdistance.config import SMOOTHER_WEIGHT
from heatdistance.errors import BackendUnavailableError

if TYPE_CHECKING:
    import numpy.typing as npt

    from heatdistance.fea.analysis.assembly import ParallelMatrix

logger = logging.getLogger(__name__)

# Coarsest level size of the AMG hierarchy
AMG_MAX_COARSE: int = 10

# Jacobi sweeps before and after the coarse-grid correction of the device V-cycle
DEVICE_PRE_SWEEPS: int = 2
DEVICE_POST_SWEEPS: int = 2


class PreconditionerBackend(Enum):
    AMG = "amg"
    ACCELERATOR = "accelerator"


def require_backend(backend: PreconditionerBackend) -> None:
    """
    Check that ``backend`` can be used in this process.

    Raises:
        BackendUnavailableError: CuPy is missing or no CUDA device is visible.
    """
    if backend is PreconditionerBackend.AMG:
        return

    try:
        import cupy
        import cupyx.scipy.sparse  # noqa: F401
    except ImportError as exc:
        raise BackendUnavailableError(backend, f"CuPy is not installed ({exc}).") from exc

    try:
        n_devices = cupy.cuda.runtime.getDeviceCount()
    except cupy.cuda.runtime.CUDARuntimeError as exc:
        raise BackendUnavailableError(backend, f"CUDA runtime error ({exc}).") from exc

    if n_devices < 1:
        raise BackendUnavailableError(backend, "no CUDA device found.")


def _build_hierarchy(block) -> Any:
    return pyamg.smoothed_aggregation_solver(
        block,
        symmetry="symmetric",
        max_coarse=AMG_MAX_COARSE,
    )


class Preconditioner(ABC):
    """
    Approximate inverse of the owned diagonal block of a distributed operator.
    """
    backend: ClassVar[PreconditionerBackend]

    def __init__(self, A: ParallelMatrix) -> None:
        self.n = A.n_owned
        self._released = False

    def __enter__(self) -> Preconditioner:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.release()

    @property
    def released(self) -> bool:
        return self._released

    @abstractmethod
    def apply(self, r: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """Return z ≈ A⁻¹ r for the owned entries of a residual."""
        pass

    def release(self) -> None:
        self._released = True


class AMGPreconditioner(Preconditioner):
    backend = PreconditionerBackend.AMG

    def __init__(self, A: ParallelMatrix) -> None:
        super().__init__(A)
        self._ml = None
        self._M = None
        if self.n > 0:
            self._ml = _build_hierarchy(A.diagonal_block())
            self._M = self._ml.aspreconditioner(cycle="V")
            logger.debug(f"AMG hierarchy with {len(self._ml.levels)} levels for {self.n} dofs.")

    def apply(self, r: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        if self._released:
            raise RuntimeError("Preconditioner has been released.")
        if self._M is None:
            return r.copy()
        return np.asarray(self._M.matvec(r), dtype=np.float64).ravel()

    def release(self) -> None:
        self._ml = None
        self._M = None
        super().release()


class AcceleratorPreconditioner(Preconditioner):
    """
    AMG V-cycle on a CUDA device.

    The hierarchy is set up on the host by pyamg; operators, prolongators and inverse
    diagonals of every level are then copied to the device. Smoothing is damped Jacobi
    and the coarsest level is solved with a dense pseudo-inverse.
    """
    backend = PreconditionerBackend.ACCELERATOR

    def __init__(self, A: ParallelMatrix, weight: float = SMOOTHER_WEIGHT) -> None:
        require_backend(self.backend)
        import cupy as cp
        import cupyx.scipy.sparse as csp

        super().__init__(A)
        self._cp = cp
        self.weight = weight
        self._A: list[Any] = []
        self._P: list[Any] = []
        self._R: list[Any] = []
        self._Dinv: list[Any] = []
        self._coarse_inverse = None

        if self.n == 0:
            return

        ml = _build_hierarchy(A.diagonal_block())
        for level in ml.levels:
            A_csr = level.A.tocsr()
            diag = A_csr.diagonal()
            dinv = np.divide(1.0, diag, out=np.zeros_like(diag), where=diag != 0.0)
            self._A.append(csp.csr_matrix(A_csr))
            self._Dinv.append(cp.asarray(dinv))
        for level in ml.levels[:-1]:
            P_csr = level.P.tocsr()
            self._P.append(csp.csr_matrix(P_csr))
            self._R.append(csp.csr_matrix(P_csr.T.tocsr()))

        coarse = ml.levels[-1].A.toarray()
        self._coarse_inverse = cp.asarray(np.linalg.pinv(coarse))
        logger.debug(f"Device AMG hierarchy with {len(ml.levels)} levels for {self.n} dofs.")

    def _jacobi(self, level: int, x, b, sweeps: int):
        A, Dinv = self._A[level], self._Dinv[level]
        for _ in range(sweeps):
            x = x + self.weight * (Dinv * (b - A @ x))
        return x

    def _vcycle(self, b):
        cp = self._cp
        xs, bs = [], []
        b_l = b
        for level in range(len(self._A) - 1):
            x = self._jacobi(level, cp.zeros_like(b_l), b_l, DEVICE_PRE_SWEEPS)
            xs.append(x)
            bs.append(b_l)
            b_l = self._R[level] @ (b_l - self._A[level] @ x)

        x = self._coarse_inverse @ b_l

        for level in range(len(self._A) - 2, -1, -1):
            x = xs[level] + self._P[level] @ x
            x = self._jacobi(level, x, bs[level], DEVICE_POST_SWEEPS)
        return x

    def apply(self, r: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        if self._released:
            raise RuntimeError("Preconditioner has been released.")
        if self.n == 0:
            return r.copy()
        z = self._vcycle(self._cp.asarray(r))
        return self._cp.asnumpy(z)

    def release(self) -> None:
        self._A, self._P, self._R, self._Dinv = [], [], [], []
        self._coarse_inverse = None
        self._cp.get_default_memory_pool().free_all_blocks()
        super().release()


PRECONDITIONER_TYPE_MAP: dict[PreconditionerBackend, type[Preconditioner]] = {
    PreconditionerBackend.AMG: AMGPreconditioner,
    PreconditionerBackend.ACCELERATOR: AcceleratorPreconditioner,
}


def make_preconditioner(A: ParallelMatrix, backend: PreconditionerBackend) -> Preconditioner:
    """
    Build a preconditioner for ``A`` on the requested backend.

    Raises:
        BackendUnavailableError: The backend cannot be used in this process.
    """
    require_backend(backend)
    return PRECONDITIONER_TYPE_MAP[backend](A)
