"""
Heat-method distance solver.

Public entry point is :class:`DistanceFunction`; the stages it runs are exported for
callers that need the intermediate fields.
"""
from heatdistance.distance.boundary import select_boundary_dofs
from heatdistance.distance.mesh_size import compute_mesh_size, estimate_mesh_size
from heatdistance.distance.rescale import rescale_to_zero_minimum
from heatdistance.distance.smoothing import FieldSmoother, smooth_field
from heatdistance.distance.solver import DistanceFunction
from heatdistance.distance.stages import (
    DiffusionResult,
    GradientReconstructionStage,
    HeatDiffusionStage,
    transform_source,
)

__all__ = [
    "DiffusionResult",
    "DistanceFunction",
    "FieldSmoother",
    "GradientReconstructionStage",
    "HeatDiffusionStage",
    "compute_mesh_size",
    "estimate_mesh_size",
    "rescale_to_zero_minimum",
    "select_boundary_dofs",
    "smooth_field",
    "transform_source",
]
