from __future__ import annotations

import logging

from typing import TYPE_CHECKING, Callable

import numpy as np

from heatdistance.errors import ConfigurationError, UnsupportedGeometryError
from heatdistance.fea.geometry import Geometry

if TYPE_CHECKING:
    from heatdistance.fea.pre.partition import ParallelMesh

logger = logging.getLogger(__name__)

# Average cell size from the mean cell measure a = A / N, assuming similar cells
MESH_SIZE_FORMULAS: dict[Geometry, Callable[[float], float]] = {
    Geometry.SEGMENT: lambda a: a,
    Geometry.SQUARE: lambda a: np.sqrt(a),
    Geometry.TRIANGLE: lambda a: np.sqrt(2.0 * a),
    Geometry.CUBE: lambda a: a ** (1.0 / 3.0),
    Geometry.TETRAHEDRON: lambda a: (6.0 * a) ** (1.0 / 3.0),
}


def estimate_mesh_size(
    total_measure: float,
    global_elements: int,
    geometry: Geometry,
    order: int,
) -> float:
    """
    Characteristic length of one dof spacing.

    Args:
        total_measure: Sum of the element measures over the whole mesh.
        global_elements: Number of elements over the whole mesh.
        geometry: Base element geometry.
        order: Polynomial order of the space.

    Raises:
        UnsupportedGeometryError: No formula exists for ``geometry``.
        ConfigurationError: ``order`` or ``global_elements`` is not positive.
    """
    formula = MESH_SIZE_FORMULAS.get(geometry)
    if formula is None:
        raise UnsupportedGeometryError(geometry, "mesh size estimate")
    if order < 1:
        raise ConfigurationError(f"Polynomial order must be positive, got {order}.")
    if global_elements < 1:
        raise ConfigurationError(f"Mesh has no elements (global count {global_elements}).")

    return float(formula(total_measure / global_elements)) / order


def compute_mesh_size(pmesh: ParallelMesh, order: int) -> float:
    """
    Estimate the mesh size of a distributed mesh (collective).

    The measure and the element count are summed over all ranks first, so every rank
    returns the same value, equal to the serial one for any partition.
    """
    if pmesh.base_geometry not in MESH_SIZE_FORMULAS:
        raise UnsupportedGeometryError(pmesh.base_geometry, "mesh size estimate")

    total_measure = pmesh.global_measure()
    global_elements = pmesh.global_element_count
    dx = estimate_mesh_size(total_measure, global_elements, pmesh.base_geometry, order)
    logger.debug(
        f"Mesh size {dx:.6e} from measure {total_measure:.6e} over {global_elements} "
        f"{pmesh.base_geometry.name} elements (order {order})."
    )
    return dx
