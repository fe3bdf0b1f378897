"""Command-line interface."""
from __future__ import annotations

import argparse
import logging
import sys

from typing import Sequence

import numpy as np

from heatdistance.distance import DistanceFunction
from heatdistance.errors import HeatDistanceError
from heatdistance.fea.pre.mesh import Mesh, unit_square
from heatdistance.fea.pre.partition import ParallelMesh
from heatdistance.logging_config import setup_logging
from heatdistance.parallel.comm import get_communicator

logger = logging.getLogger("heatdistance.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="heatdistance",
        description="Distance to a point source on an unstructured mesh with the heat method.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Distance to the center of a 32 x 32 triangulated unit square
  python -m heatdistance --unit-square 32 --source-point 0.5 0.5 --output distance.vtu

  # Quadratic elements on a gmsh mesh, four MPI ranks
  mpirun -n 4 python -m heatdistance mesh.msh --order 2 --source-point 0 0 --mpi
        """,
    )
    parser.add_argument("mesh", nargs="?", help="Mesh file readable by meshio")
    parser.add_argument("--unit-square", type=int, metavar="N", help="Use an N x N triangulated unit square")

    parser.add_argument("--order", type=int, default=1, help="Polynomial order (default: 1)")
    parser.add_argument("--diffusion-coefficient", type=float, default=1.0, help="Diffusion time scale (default: 1.0)")
    parser.add_argument("--smooth-steps", type=int, default=0, help="Jacobi sweeps applied to the source")
    parser.add_argument("--transform", action="store_true", help="Map the source through 4x(1 - x)")
    parser.add_argument(
        "--source-point", type=float, nargs="+", required=True, metavar="X",
        help="Coordinates of the point source; the nearest dof is set to 1",
    )
    parser.add_argument("--accelerator", action="store_true", help="Precondition on a CUDA device")
    parser.add_argument("--mpi", action="store_true", help="Run on MPI.COMM_WORLD")
    parser.add_argument("--output", help="Write the distance as point data with meshio")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", help="Also write the log to this file")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.mesh is None) == (args.unit_square is None):
        parser.error("give exactly one of a mesh file or --unit-square")

    comm = get_communicator(use_mpi=args.mpi)
    setup_logging(
        level=getattr(logging, args.log_level),
        log_file=args.log_file,
        rank=comm.rank if comm.size > 1 else None,
    )

    try:
        mesh = unit_square(args.unit_square) if args.unit_square is not None else Mesh.from_file(args.mesh)
        if len(args.source_point) != mesh.dimension:
            logger.error(f"--source-point needs {mesh.dimension} coordinates, got {len(args.source_point)}.")
            return 2

        pmesh = ParallelMesh(mesh, comm)
        solver = DistanceFunction(
            pmesh,
            order=args.order,
            diffusion_coefficient=args.diffusion_coefficient,
            use_accelerator=args.accelerator,
        )

        coords = solver.space.dof_coordinates()
        nearest = int(np.argmin(np.linalg.norm(coords - np.asarray(args.source_point), axis=1)))
        level_set = np.zeros(solver.space.n_global_dofs)
        level_set[nearest] = 1.0
        logger.info(f"Point source at dof {nearest}, {coords[nearest].tolist()}.")

        distance = solver.compute_distance(
            level_set,
            smooth_steps=args.smooth_steps,
            transform=args.transform,
        )
        values = distance.gather()
    except HeatDistanceError as exc:
        logger.error(str(exc))
        return 1

    logger.info(f"Distance range [{values.min():.6e}, {values.max():.6e}].")

    if args.output and comm.rank == 0:
        out = mesh.to_meshio(point_data={"distance": values[:mesh.number_of_points]})
        out.write(args.output)
        logger.info(f"Wrote '{args.output}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
