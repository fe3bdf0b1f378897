"""
Finite Element Layer
====================
Meshes, discretization spaces, assembly and linear solvers used by the distance solver.

Sub-packages:
    pre: Mesh loading, generation and partitioning.
    analysis: Finite elements, dof spaces, distributed fields and assembly.
    solvers: Conjugate gradient, preconditioners and smoothers.

Note: MPI (mpi4py) and accelerator (CuPy) support are optional extras.
"""
