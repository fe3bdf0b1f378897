from heatdistance.fea.analysis.finite_elements.finite_element import FiniteElement
from heatdistance.fea.analysis.finite_elements.edges import Line2, Line3
from heatdistance.fea.analysis.finite_elements.tri3 import Tri3
from heatdistance.fea.analysis.finite_elements.tri6 import Tri6
from heatdistance.fea.analysis.finite_elements.quad4 import Quad4
from heatdistance.fea.analysis.finite_elements.quad9 import Quad9
from heatdistance.fea.analysis.finite_elements.solids import Tet4, Tet10, Hex8, Hex27
from heatdistance.fea.geometry import Geometry

# (geometry, polynomial order) -> element class
ELEMENT_TYPE_MAP: dict[tuple[Geometry, int], type[FiniteElement]] = {
    (Geometry.SEGMENT, 1): Line2,
    (Geometry.SEGMENT, 2): Line3,
    (Geometry.TRIANGLE, 1): Tri3,
    (Geometry.TRIANGLE, 2): Tri6,
    (Geometry.SQUARE, 1): Quad4,
    (Geometry.SQUARE, 2): Quad9,
    (Geometry.TETRAHEDRON, 1): Tet4,
    (Geometry.TETRAHEDRON, 2): Tet10,
    (Geometry.CUBE, 1): Hex8,
    (Geometry.CUBE, 2): Hex27,
}

__all__ = [
    "ELEMENT_TYPE_MAP",
    "FiniteElement",
    "Hex8",
    "Hex27",
    "Line2",
    "Line3",
    "Quad4",
    "Quad9",
    "Tet4",
    "Tet10",
    "Tri3",
    "Tri6",
]
