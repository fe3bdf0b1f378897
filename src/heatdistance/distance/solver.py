from __future__ import annotations

import logging

from typing import TYPE_CHECKING, Any

from heatdistance.config import SolverSettings
from heatdistance.distance.boundary import select_boundary_dofs
from heatdistance.distance.mesh_size import compute_mesh_size
from heatdistance.distance.rescale import rescale_to_zero_minimum
from heatdistance.distance.smoothing import FieldSmoother
from heatdistance.distance.stages import (
    GradientReconstructionStage,
    HeatDiffusionStage,
    transform_source,
)
from heatdistance.fea.analysis.field import DistributedField
from heatdistance.fea.analysis.space import FiniteElementSpace
from heatdistance.fea.solvers.preconditioners import PreconditionerBackend, require_backend

if TYPE_CHECKING:
    import numpy as np
    import numpy.typing as npt

    from heatdistance.fea.pre.partition import ParallelMesh

logger = logging.getLogger(__name__)


class DistanceFunction:
    """
    Distance to a source with the heat method.

    The mesh size and the boundary constraint set are fixed at construction. Every call to
    :meth:`compute_distance` projects the source, optionally smooths and transforms it,
    diffuses it for t = diffusion_coefficient * dx², recovers the distance from the
    normalized gradient, and shifts the result to a zero minimum.
    """

    def __init__(
        self,
        pmesh: ParallelMesh,
        order: int = 1,
        diffusion_coefficient: float = 1.0,
        use_accelerator: bool = False,
        settings: SolverSettings | None = None,
    ) -> None:
        """
        Initialize the distance solver (collective).

        Args:
            pmesh: Distributed mesh.
            order: Polynomial order of the discretization.
            diffusion_coefficient: Scale of the diffusion time relative to dx².
            use_accelerator: Precondition on a CUDA device instead of the host.
            settings: Linear solver settings; read from the environment when omitted.

        Raises:
            UnsupportedGeometryError: The mesh geometry has no mesh-size formula.
            ConfigurationError: The order is not supported on the mesh geometry.
            BackendUnavailableError: The accelerator was requested but is not usable.
        """
        self.backend = PreconditionerBackend.ACCELERATOR if use_accelerator else PreconditionerBackend.AMG
        require_backend(self.backend)

        self.order = order
        self.diffusion_coefficient = diffusion_coefficient
        self.settings = settings or SolverSettings.from_env()

        self.dx = compute_mesh_size(pmesh, order)
        self.space = FiniteElementSpace(pmesh, order)
        self.ess_tdofs: npt.NDArray[np.int64] = select_boundary_dofs(self.space)
        self.ess_tdofs.flags.writeable = False

        self.source = DistributedField(self.space)
        self.diffused_source = DistributedField(self.space)
        self.distance = DistributedField(self.space)

        self.smoother = FieldSmoother()

        logger.info(
            f"Distance solver: {self.space}, dx = {self.dx:.6e}, "
            f"{self.ess_tdofs.size} boundary dofs on rank {self.space.comm.rank}, "
            f"preconditioner {self.backend.value}."
        )

    @property
    def time_step(self) -> float:
        """Diffusion time t = diffusion_coefficient * dx²."""
        return self.diffusion_coefficient * self.dx * self.dx

    def compute_distance(
        self,
        level_set: Any,
        smooth_steps: int = 0,
        transform: bool = False,
    ) -> DistributedField:
        """
        Compute the distance to the source described by ``level_set`` (collective).

        Args:
            level_set: Callable ``f(points)``, scalar, :class:`DistributedField` on the
                solver's space, or array of global dof values.
            smooth_steps: Jacobi sweeps applied to the projected source.
            transform: Map the source through 4x(1 - x) on [0, 1] and 0 elsewhere.

        Returns:
            The distance field, with a global minimum of exactly zero. The same field
            object is returned (and overwritten) by every call.
        """
        if smooth_steps < 0:
            raise ValueError(f"smooth_steps must be non-negative, got {smooth_steps}.")

        self.source.project_coefficient(level_set)
        self.smoother.smooth(self.source, smooth_steps)
        if transform:
            self.source.values[:] = transform_source(self.source.values)

        time_step = self.time_step
        diffusion = HeatDiffusionStage(
            self.space,
            time_step,
            self.ess_tdofs,
            backend=self.backend,
            settings=self.settings,
        )
        self.diffused_source.assign(diffusion.run(self.source).averaged)

        reconstruction = GradientReconstructionStage(self.space, backend=self.backend, settings=self.settings)
        self.distance.assign(reconstruction.run(self.diffused_source))

        shift = rescale_to_zero_minimum(self.distance)
        logger.debug(f"Shifted the distance by {shift:.6e}.")
        return self.distance
