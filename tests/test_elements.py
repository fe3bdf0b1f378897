import numpy as np
import pytest

from heatdistance.fea.analysis.finite_elements import (
    ELEMENT_TYPE_MAP,
    Hex8,
    Hex27,
    Line2,
    Line3,
    Quad4,
    Quad9,
    Tet4,
    Tet10,
    Tri3,
    Tri6,
)
from heatdistance.fea.geometry import CENTRE_DOF, EDGES, FACES, Geometry

UNIT_HEX = np.array([
    [0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0],
    [0.0, 0.0, 1.0], [1.0, 0.0, 1.0], [1.0, 1.0, 1.0], [0.0, 1.0, 1.0],
])
UNIT_TET = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
RECTANGLE = np.array([[0.0, 0.0], [2.0, 0.0], [2.0, 1.0], [0.0, 1.0]])


def quadratic_nodes(vertices, geometry):
    """Vertices, edge midpoints, face centres and cell centre in dof order."""
    vertices = np.asarray(vertices, dtype=float)
    blocks = [vertices, vertices[EDGES[geometry]].mean(axis=1)]
    if geometry in FACES:
        blocks.append(vertices[FACES[geometry]].mean(axis=1))
    if geometry in CENTRE_DOF:
        blocks.append(vertices.mean(axis=0, keepdims=True))
    return np.vstack(blocks)


# (element class, vertices, dof coordinates, expected measure)
CASES = [
    (Line2, [[1.0], [3.0]], [[1.0], [3.0]], 2.0),
    (Line3, [[1.0], [3.0]], [[1.0], [3.0], [2.0]], 2.0),
    (Tri3, [[0.0, 0.0], [2.0, 0.0], [0.0, 1.0]], [[0.0, 0.0], [2.0, 0.0], [0.0, 1.0]], 1.0),
    (
        Tri6,
        [[0.0, 0.0], [2.0, 0.0], [0.0, 1.0]],
        [[0.0, 0.0], [2.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 0.5], [0.0, 0.5]],
        1.0,
    ),
    (
        Quad4,
        [[0.0, 0.0], [2.0, 0.0], [2.0, 1.0], [0.0, 1.0]],
        [[0.0, 0.0], [2.0, 0.0], [2.0, 1.0], [0.0, 1.0]],
        2.0,
    ),
    (
        Tet4,
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
        1.0 / 6.0,
    ),
    (Hex8, UNIT_HEX, UNIT_HEX, 1.0),
    (Quad9, RECTANGLE, quadratic_nodes(RECTANGLE, Geometry.SQUARE), 2.0),
    (Tet10, UNIT_TET, quadratic_nodes(UNIT_TET, Geometry.TETRAHEDRON), 1.0 / 6.0),
    (Hex27, UNIT_HEX, quadratic_nodes(UNIT_HEX, Geometry.CUBE), 1.0),
]


def make(element_class, vertices, dof_coords):
    return element_class(index=0, global_dofs=np.arange(len(dof_coords)), vertices=vertices)


@pytest.mark.parametrize("element_class, vertices, dof_coords, measure", CASES)
def test_measure_and_mass_partition_of_unity(element_class, vertices, dof_coords, measure):
    element = make(element_class, vertices, dof_coords)
    assert element.measure == pytest.approx(measure)
    # Shape functions sum to one, so all mass entries add up to the measure
    assert element.get_mass_matrix().sum() == pytest.approx(measure)
    np.testing.assert_allclose(element.get_mass_matrix(), element.get_mass_matrix().T)


@pytest.mark.parametrize("element_class, vertices, dof_coords, measure", CASES)
def test_stiffness_annihilates_constants(element_class, vertices, dof_coords, measure):
    element = make(element_class, vertices, dof_coords)
    K = element.get_stiffness_matrix()
    np.testing.assert_allclose(K @ np.ones(element.number_of_dofs), 0.0, atol=1e-12)
    np.testing.assert_allclose(K, K.T, atol=1e-12)
    assert np.all(np.linalg.eigvalsh(K) > -1e-12)


@pytest.mark.parametrize("element_class, vertices, dof_coords, measure", CASES)
def test_gradient_of_linear_field(element_class, vertices, dof_coords, measure):
    element = make(element_class, vertices, dof_coords)
    values = np.asarray(dof_coords, dtype=float)[:, 0]

    grad = element.gradient_at_integration_points(values)
    expected = np.zeros(grad.shape[1])
    expected[0] = 1.0
    np.testing.assert_allclose(grad, np.broadcast_to(expected, grad.shape), atol=1e-12)

    # X = -e_x, so b_i = -∫ dφ_i/dx and the entries add up to zero
    b = element.get_gradient_load_vector(values, eps=1e-12)
    assert b.sum() == pytest.approx(0.0, abs=1e-12)
    assert np.any(np.abs(b) > 1e-3)


@pytest.mark.parametrize("element_class, vertices, dof_coords, measure", CASES)
def test_zero_gradient_contributes_nothing(element_class, vertices, dof_coords, measure):
    element = make(element_class, vertices, dof_coords)
    b = element.get_gradient_load_vector(np.full(element.number_of_dofs, 3.0), eps=1e-12)
    np.testing.assert_array_equal(b, 0.0)


def test_load_vector_is_mass_weighted():
    element = make(Tri3, [[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]], [[0, 0], [1, 0], [0, 1]])
    values = np.array([1.0, 0.0, 0.0])
    np.testing.assert_allclose(element.get_load_vector(values), element.get_mass_matrix()[:, 0])
    # ∫ φ_0 φ_0 = area / 6 on a linear triangle
    assert element.get_mass_matrix()[0, 0] == pytest.approx(0.5 / 6.0)


def test_tri3_compiled_kernel_matches_generic_path():
    vertices = np.array([[0.1, 0.2], [1.3, 0.4], [0.5, 1.7]])
    element = Tri3(index=0, global_dofs=[0, 1, 2], vertices=vertices)

    J = element.jacobian_matrix(np.array([1 / 3, 1 / 3, 1 / 3]))
    expected_B = np.linalg.solve(J, Tri3.shape_derivatives(None))
    np.testing.assert_allclose(element._B[0], expected_B)
    assert element._detJ[0] == pytest.approx(abs(np.linalg.det(J)))


def test_registry_covers_supported_pairs():
    assert ELEMENT_TYPE_MAP[(Geometry.TRIANGLE, 2)] is Tri6
    assert ELEMENT_TYPE_MAP[(Geometry.SEGMENT, 2)] is Line3
    assert ELEMENT_TYPE_MAP[(Geometry.SQUARE, 2)] is Quad9
    assert ELEMENT_TYPE_MAP[(Geometry.TETRAHEDRON, 2)] is Tet10
    assert ELEMENT_TYPE_MAP[(Geometry.CUBE, 2)] is Hex27
    assert (Geometry.TRIANGLE, 3) not in ELEMENT_TYPE_MAP
    assert all(cls.geometry is geometry and cls.order == order for (geometry, order), cls in ELEMENT_TYPE_MAP.items())


@pytest.mark.parametrize(
    "element_class, reference_nodes",
    [
        (Quad9, quadratic_nodes([[-1.0, -1.0], [1.0, -1.0], [1.0, 1.0], [-1.0, 1.0]], Geometry.SQUARE)),
        (Tet10, quadratic_nodes(np.eye(4), Geometry.TETRAHEDRON)),
        (Hex27, quadratic_nodes(2.0 * UNIT_HEX - 1.0, Geometry.CUBE)),
    ],
)
def test_quadratic_shape_functions_are_nodal(element_class, reference_nodes):
    # Tet10 takes barycentric coordinates, so its reference nodes are built from the identity
    N = np.vstack([element_class.shape_functions(node) for node in reference_nodes])
    np.testing.assert_allclose(N, np.eye(len(reference_nodes)), atol=1e-14)


@pytest.mark.parametrize("element_class, vertices", [(Quad9, RECTANGLE), (Tet10, UNIT_TET), (Hex27, UNIT_HEX)])
def test_quadratic_field_has_exact_gradient(element_class, vertices):
    dof_coords = quadratic_nodes(vertices, element_class.geometry)
    element = make(element_class, vertices, dof_coords)
    x = dof_coords[:, 0]

    grad = element.gradient_at_integration_points(x * x)
    xi = element._N @ x
    np.testing.assert_allclose(grad[:, 0], 2.0 * xi, atol=1e-12)
    np.testing.assert_allclose(grad[:, 1:], 0.0, atol=1e-12)
