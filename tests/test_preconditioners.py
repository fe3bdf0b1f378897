import sys

import numpy as np
import pytest

from heatdistance.distance import DistanceFunction
from heatdistance.errors import BackendUnavailableError, ConfigurationError
from heatdistance.fea.analysis.forms import assemble_mass_diffusion_operator
from heatdistance.fea.analysis.space import FiniteElementSpace
from heatdistance.fea.pre.mesh import unit_interval, unit_square
from heatdistance.fea.pre.partition import ParallelMesh
from heatdistance.fea.solvers.preconditioners import (
    AMGPreconditioner,
    PRECONDITIONER_TYPE_MAP,
    PreconditionerBackend,
    make_preconditioner,
    require_backend,
)
from heatdistance.parallel.comm import SerialCommunicator


@pytest.fixture
def operator():
    space = FiniteElementSpace(ParallelMesh(unit_square(10), SerialCommunicator()))
    return assemble_mass_diffusion_operator(space, 1.0)


@pytest.fixture
def no_cupy(monkeypatch):
    # A None entry makes every import of the module fail
    monkeypatch.setitem(sys.modules, "cupy", None)


def test_amg_is_symmetric_positive_definite(operator):
    rng = np.random.default_rng(0)
    u, v = rng.standard_normal((2, operator.n_owned))
    with make_preconditioner(operator, PreconditionerBackend.AMG) as preconditioner:
        assert isinstance(preconditioner, AMGPreconditioner)
        Mu, Mv = preconditioner.apply(u), preconditioner.apply(v)

    assert u @ Mu > 0.0
    assert v @ Mu == pytest.approx(u @ Mv, rel=1e-8)


def test_amg_approximates_the_inverse(operator):
    b = np.ones(operator.n_owned)
    with AMGPreconditioner(operator) as preconditioner:
        z = preconditioner.apply(b)
    residual = b - operator.matvec(z)
    assert np.linalg.norm(residual) < 0.5 * np.linalg.norm(b)


def test_release_on_exit(operator):
    with AMGPreconditioner(operator) as preconditioner:
        assert not preconditioner.released
    assert preconditioner.released
    with pytest.raises(RuntimeError):
        preconditioner.apply(np.ones(operator.n_owned))


def test_rank_without_dofs_gets_identity(run_parallel):
    mesh = unit_interval(1)

    def body(comm):
        space = FiniteElementSpace(ParallelMesh(mesh, comm))
        A = assemble_mass_diffusion_operator(space, 1.0)
        with AMGPreconditioner(A) as preconditioner:
            return A.n_owned, preconditioner.apply(np.ones(A.n_owned))

    results = run_parallel(3, body)
    assert [n for n, _ in results] == [1, 1, 0]
    assert results[2][1].shape == (0,)


def test_amg_backend_is_always_available():
    require_backend(PreconditionerBackend.AMG)
    assert set(PRECONDITIONER_TYPE_MAP) == set(PreconditionerBackend)


def test_missing_cupy_is_reported(no_cupy, operator):
    with pytest.raises(BackendUnavailableError, match="accelerator"):
        require_backend(PreconditionerBackend.ACCELERATOR)
    with pytest.raises(BackendUnavailableError):
        make_preconditioner(operator, PreconditionerBackend.ACCELERATOR)


def test_distance_function_fails_fast_without_accelerator(no_cupy):
    pmesh = ParallelMesh(unit_square(2), SerialCommunicator())
    with pytest.raises(ConfigurationError):
        DistanceFunction(pmesh, use_accelerator=True)
