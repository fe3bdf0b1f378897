import meshio
import numpy as np
import pytest

from heatdistance.errors import ConfigurationError, UnsupportedGeometryError
from heatdistance.fea.geometry import Geometry
from heatdistance.fea.pre.mesh import Mesh, find_boundary_facets, unit_cube, unit_interval, unit_square
from heatdistance.fea.pre.partition import ParallelMesh, partition_elements
from heatdistance.parallel.comm import SerialCommunicator


@pytest.mark.parametrize(
    "mesh, geometry, n_points, n_cells, n_facets",
    [
        (unit_interval(5), Geometry.SEGMENT, 6, 5, 2),
        (unit_square(4), Geometry.TRIANGLE, 25, 32, 16),
        (unit_square(4, element="quad"), Geometry.SQUARE, 25, 16, 16),
        (unit_cube(2), Geometry.TETRAHEDRON, 27, 48, 48),
        (unit_cube(2, element="hexahedron"), Geometry.CUBE, 27, 8, 24),
    ],
)
def test_generated_meshes(mesh, geometry, n_points, n_cells, n_facets):
    assert mesh.geometry is geometry
    assert mesh.points.shape == (n_points, geometry.dimension)
    assert mesh.number_of_cells == n_cells
    assert len(mesh.boundary_facets) == n_facets
    np.testing.assert_array_equal(mesh.bdr_attributes, [1])
    assert mesh.element_volumes().sum() == pytest.approx(1.0)
    assert np.all(mesh.element_volumes() > 0.0)


def test_interval_boundary_is_both_end_points():
    mesh = unit_interval(4)
    assert sorted(mesh.boundary_facets.ravel().tolist()) == [0, 4]


def test_unmarked_mesh_declares_no_attributes():
    mesh = unit_square(3, mark_boundary=False)
    assert mesh.bdr_attributes.size == 0
    assert len(mesh.exterior_facets()) == 12


def test_boundary_facets_lie_on_the_boundary():
    mesh = unit_cube(3)
    coords = mesh.points[mesh.exterior_facets()]
    on_face = np.any(np.all(np.isclose(coords, 0.0) | np.isclose(coords, 1.0), axis=1), axis=1)
    assert np.all(on_face)


def test_find_boundary_facets_rejects_prisms():
    with pytest.raises(UnsupportedGeometryError, match="PRISM"):
        find_boundary_facets(np.arange(6)[None, :], Geometry.PRISM)


def test_invalid_generator_arguments():
    with pytest.raises(ValueError):
        unit_square(0)
    with pytest.raises(ValueError):
        unit_square(2, element="hexagon")
    with pytest.raises(ValueError):
        unit_cube(2, element="prism")


def test_mesh_validates_connectivity_and_attributes():
    with pytest.raises(ValueError):
        Mesh([[0.0, 0.0], [1.0, 0.0]], [[0, 1]], Geometry.TRIANGLE)
    with pytest.raises(ValueError):
        Mesh([[0.0], [1.0]], [[0, 1]], Geometry.SEGMENT, [[0], [1]], [1, 0])


def _write_gmsh(path, extra_point=True):
    mesh = unit_square(4, mark_boundary=False)
    points = np.column_stack([mesh.points, np.zeros(mesh.number_of_points)])
    if extra_point:
        points = np.vstack([points, [5.0, 5.0, 0.0]])
    facets = mesh.exterior_facets()
    left = np.all(np.isclose(mesh.points[facets][:, :, 0], 0.0), axis=1)
    tags = np.where(left, 3, 2)

    meshio.write(
        str(path),
        meshio.Mesh(
            points=points,
            cells=[("triangle", mesh.cells), ("line", facets)],
            cell_data={
                "gmsh:physical": [np.ones(mesh.number_of_cells, dtype=int), tags],
                "gmsh:geometrical": [np.ones(mesh.number_of_cells, dtype=int), tags],
            },
        ),
        file_format="gmsh22",
        binary=False,
    )
    return mesh, left


def test_from_file_reads_physical_tags(tmp_path):
    path = tmp_path / "square.msh"
    reference, left = _write_gmsh(path)

    mesh = Mesh.from_file(str(path))
    assert mesh.geometry is Geometry.TRIANGLE
    assert mesh.points.shape == (25, 2)
    assert mesh.number_of_cells == 32
    np.testing.assert_array_equal(mesh.bdr_attributes, [2, 3])
    assert np.count_nonzero(mesh.boundary_attributes == 3) == np.count_nonzero(left)
    assert mesh.element_volumes().sum() == pytest.approx(1.0)

    tagged = {tuple(sorted(f)) for f in mesh.boundary_facets.tolist()}
    exterior = {tuple(sorted(f)) for f in mesh.exterior_facets().tolist()}
    assert tagged == exterior

    # Facets tagged 3 sit on x = 0
    left_facets = mesh.boundary_facets[mesh.boundary_attributes == 3]
    np.testing.assert_allclose(mesh.points[left_facets][:, :, 0], 0.0)


def test_to_meshio_round_trip(tmp_path):
    mesh = unit_square(2)
    out = mesh.to_meshio(point_data={"distance": np.arange(mesh.number_of_points, dtype=float)})
    path = tmp_path / "square.vtu"
    out.write(str(path))

    back = meshio.read(str(path))
    np.testing.assert_allclose(back.point_data["distance"], np.arange(9))


def test_from_file_rejects_mixed_geometries(tmp_path):
    path = tmp_path / "mixed.vtu"
    points = np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0], [2, 0, 0]], dtype=float)
    meshio.write(
        str(path),
        meshio.Mesh(points, [("quad", np.array([[0, 1, 2, 3]])), ("triangle", np.array([[1, 4, 2]]))]),
    )
    with pytest.raises(ConfigurationError, match="Mixed"):
        Mesh.from_file(str(path))


def test_partition_is_balanced_and_complete():
    mesh = unit_square(4)
    parts = partition_elements(mesh, 3)
    counts = np.bincount(parts, minlength=3)
    assert counts.sum() == mesh.number_of_cells
    assert counts.max() - counts.min() <= 1


def test_parallel_mesh_counts(run_parallel):
    mesh = unit_square(4)

    def body(comm):
        pmesh = ParallelMesh(mesh, comm)
        return pmesh.n_local_elements, pmesh.global_element_count, pmesh.local_measure

    results = run_parallel(3, body)
    assert sum(n for n, _, _ in results) == 32
    assert all(total == 32 for _, total, _ in results)
    assert sum(measure for _, _, measure in results) == pytest.approx(1.0)


def test_parallel_mesh_with_more_ranks_than_elements(run_parallel):
    mesh = unit_interval(1)
    results = run_parallel(3, lambda comm: ParallelMesh(mesh, comm).n_local_elements)
    assert sorted(results) == [0, 0, 1]


def test_parallel_mesh_rejects_bad_partition():
    with pytest.raises(ValueError):
        ParallelMesh(unit_square(2), SerialCommunicator(), partition=[0, 0])
