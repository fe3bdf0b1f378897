import numpy as np
import pytest

from heatdistance.distance.boundary import select_boundary_dofs
from heatdistance.errors import ConfigurationError, UnsupportedGeometryError
from heatdistance.fea.analysis.field import DistributedField
from heatdistance.fea.analysis.space import DofLayout, FiniteElementSpace
from heatdistance.fea.geometry import Geometry
from heatdistance.fea.pre.mesh import Mesh, unit_cube, unit_interval, unit_square
from heatdistance.fea.pre.partition import ParallelMesh
from heatdistance.parallel.comm import SerialCommunicator


def serial_space(mesh, order=1):
    return FiniteElementSpace(ParallelMesh(mesh, SerialCommunicator()), order)


def test_dof_layout_blocks():
    layout = DofLayout(10, 3)
    np.testing.assert_array_equal(layout.offsets, [0, 4, 7, 10])
    assert layout.owned_range(1) == (4, 7)
    assert layout.n_owned(2) == 3
    np.testing.assert_array_equal(layout.owner_of([0, 3, 4, 9]), [0, 0, 1, 2])


def test_dof_layout_with_more_ranks_than_dofs():
    layout = DofLayout(2, 3)
    assert [layout.n_owned(r) for r in range(3)] == [1, 1, 0]


def test_linear_space_dofs_are_vertices():
    space = serial_space(unit_square(2))
    assert space.n_global_dofs == 9
    np.testing.assert_allclose(space.dof_coordinates(), space.pmesh.mesh.points)
    assert len(space.elements) == 8


def test_quadratic_triangle_space():
    space = serial_space(unit_square(1), order=2)
    # 4 vertices and 5 edges (4 sides and the diagonal)
    assert space.n_global_dofs == 9
    coords = space.dof_coordinates()
    assert any(np.allclose(c, [0.5, 0.5]) for c in coords[4:])

    boundary = space.essential_true_dofs([1])
    assert boundary.size == 8
    assert not any(np.allclose(coords[d], [0.5, 0.5]) for d in boundary)


def test_quadratic_interval_space():
    space = serial_space(unit_interval(3), order=2)
    assert space.n_global_dofs == 7
    np.testing.assert_allclose(np.sort(space.dof_coordinates()[4:, 0]), [1 / 6, 0.5, 5 / 6])
    np.testing.assert_array_equal(space.essential_true_dofs([1]), [0, 3])



def grid_points(n, dim):
    axis = np.linspace(0.0, 1.0, n + 1)
    return np.stack(np.meshgrid(*[axis] * dim, indexing="ij"), axis=-1).reshape(-1, dim)


def same_points(a, b):
    return np.array_equal(np.unique(np.round(a, 12), axis=0), np.unique(np.round(b, 12), axis=0))


@pytest.mark.parametrize(
    "mesh, n_dofs, n_boundary",
    [
        # Quad9: vertices, edges and cell centres fill the 5 x 5 grid
        (unit_square(2, element="quad"), 25, 16),
        (unit_cube(1, element="hexahedron"), 27, 26),
        # Kuhn tets: cube edges, face diagonals and the main diagonal
        (unit_cube(1), 27, 26),
        (unit_cube(2, element="hexahedron"), 125, 98),
    ],
)
def test_quadratic_spaces_on_quads_and_solids(mesh, n_dofs, n_boundary):
    space = serial_space(mesh, order=2)
    assert space.n_global_dofs == n_dofs
    coords = space.dof_coordinates()
    assert same_points(coords, grid_points(round(n_dofs ** (1 / mesh.dimension)) - 1, mesh.dimension))

    boundary = space.essential_true_dofs([1])
    assert boundary.size == n_boundary
    on_boundary = np.any((coords[boundary] == 0.0) | (coords[boundary] == 1.0), axis=1)
    assert np.all(on_boundary)

    # A quadratic field is reproduced exactly when the local dof order matches the shape functions
    field = coords[:, 0] * coords[:, 1] + coords[:, -1] ** 2
    for element in space.elements:
        x = element._N @ coords[element.global_dofs]
        np.testing.assert_allclose(element._N @ field[element.global_dofs], x[:, 0] * x[:, 1] + x[:, -1] ** 2, atol=1e-12)


def test_unsupported_order_and_geometry():
    with pytest.raises(ConfigurationError, match="Order 3"):
        serial_space(unit_square(2, element="quad"), order=3)

    prism = Mesh(
        points=[[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1], [1, 0, 1], [0, 1, 1]],
        cells=[[0, 1, 2, 3, 4, 5]],
        geometry=Geometry.PRISM,
    )
    with pytest.raises(UnsupportedGeometryError):
        serial_space(prism)


def test_marker_selects_attributes():
    mesh = unit_square(2)
    mesh.boundary_attributes[:] = 1
    mesh.boundary_attributes[0] = 2
    space = serial_space(mesh)

    only_second = space.essential_true_dofs([0, 1])
    np.testing.assert_array_equal(only_second, np.unique(mesh.boundary_facets[0]))
    assert space.essential_true_dofs([0, 0]).size == 0
    assert space.essential_true_dofs([1, 1]).size == 8


def test_select_boundary_dofs():
    space = serial_space(unit_square(3))
    dofs = select_boundary_dofs(space)
    assert dofs.dtype == np.int64
    assert dofs.size == 12
    assert np.all(np.diff(dofs) > 0)

    assert select_boundary_dofs(serial_space(unit_square(3, mark_boundary=False))).size == 0


@pytest.mark.parametrize(
    "mesh, order",
    [(unit_square(4), 1), (unit_square(3, element="quad"), 2), (unit_cube(2, element="hexahedron"), 2)],
)
def test_boundary_dofs_are_split_by_owner(run_parallel, mesh, order):
    serial = select_boundary_dofs(serial_space(mesh, order))

    def body(comm):
        space = FiniteElementSpace(ParallelMesh(mesh, comm), order)
        return space.owned_range, select_boundary_dofs(space)

    results = run_parallel(3, body)
    for (start, stop), dofs in results:
        assert np.all((dofs >= start) & (dofs < stop))
    np.testing.assert_array_equal(np.concatenate([dofs for _, dofs in results]), serial)


def test_field_projection_and_gather(run_parallel):
    mesh = unit_square(3)

    def body(comm):
        space = FiniteElementSpace(ParallelMesh(mesh, comm))
        field = DistributedField(space)
        field.project_coefficient(lambda p: p[:, 0] + 2.0 * p[:, 1])
        from_array = DistributedField(space)
        from_array.project_coefficient(field.gather())
        constant = DistributedField(space)
        constant.project_coefficient(2.5)
        return field.gather(), np.array_equal(from_array.values, field.values), constant.values

    results = run_parallel(2, body)
    points = mesh.points
    for gathered, same, constant in results:
        np.testing.assert_allclose(gathered, points[:, 0] + 2.0 * points[:, 1])
        assert same
        np.testing.assert_array_equal(constant, 2.5)


def test_field_rejects_wrong_sizes():
    space = serial_space(unit_square(2))
    with pytest.raises(ValueError):
        DistributedField(space, np.zeros(3))
    with pytest.raises(ValueError):
        DistributedField(space).project_coefficient(np.zeros(4))


def test_empty_field_minimum_is_infinite():
    space = serial_space(unit_interval(1))
    field = DistributedField(space)
    field.values = field.values[:0]
    assert field.min() == np.inf
