from heatdistance.fea.pre.mesh import Mesh, unit_cube, unit_interval, unit_square
from heatdistance.fea.pre.partition import ParallelMesh, partition_elements

__all__ = [
    "Mesh",
    "ParallelMesh",
    "partition_elements",
    "unit_cube",
    "unit_interval",
    "unit_square",
]
