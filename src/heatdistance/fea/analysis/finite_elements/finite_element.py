from __future__ import annotations

from abc import ABC, abstractmethod

from typing import TYPE_CHECKING, ClassVar

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt
    from heatdistance.fea.geometry import Geometry


class FiniteElement(ABC):
    """
    Abstract base class for isoparametric scalar finite elements.

    The geometry is mapped with the first-order (vertex) shape functions; the field is
    interpolated with the element's own shape functions, which may be of higher order.
    """
    geometry: ClassVar[Geometry]
    order: ClassVar[int]
    n_integration_points: ClassVar[int]

    def __init__(
        self,
        index: int,
        global_dofs: npt.ArrayLike,
        vertices: npt.ArrayLike,
    ) -> None:
        """
        Initialize the finite element.

        Args:
            index: Global element index.
            global_dofs: Global degree-of-freedom indices in local shape-function order.
            vertices: (n_vertices, dim) coordinates of the element vertices.
        """
        self.id = index
        self.global_dofs: npt.NDArray[np.int64] = np.asarray(global_dofs, dtype=np.int64)
        self.vertices: npt.NDArray[np.float64] = np.asarray(vertices, dtype=np.float64)

        self._gp, self._w = self.get_integration_scheme()
        self._N, self._B, self._detJ = self._precompute_at_integration_points()

        self._mass: npt.NDArray[np.float64] | None = None
        self._stiffness: npt.NDArray[np.float64] | None = None

    def __repr__(self) -> str:
        """String representation of the finite element."""
        return f"{self.__class__.__name__}(id={self.id}, dofs={self.global_dofs.tolist()})"

    @property
    def number_of_dofs(self) -> int:
        """Number of degrees of freedom of the finite element."""
        return self.global_dofs.size

    @staticmethod
    @abstractmethod
    def shape_functions(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """Calculate the (1, n_dofs) shape functions at given local coordinates."""
        pass

    @staticmethod
    @abstractmethod
    def shape_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """Calculate the (dim, n_dofs) shape function derivatives w.r.t. the reference axes."""
        pass

    @staticmethod
    @abstractmethod
    def geometry_derivatives(iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """Calculate the (dim, n_vertices) derivatives of the vertex shape functions."""
        pass

    @abstractmethod
    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """
        Get the integration scheme for the finite element.

        Returns:
            Tuple of Gauss points and weights for numerical integration.
        """
        pass

    def jacobian_matrix(self, iso_coords: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Calculate the Jacobian matrix of the reference-to-physical map.

        Returns:
            (dim, dim) Jacobian matrix of the element.
        """
        return self.geometry_derivatives(iso_coords) @ self.vertices

    def _precompute_at_integration_points(
        self,
    ) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """
        Evaluate shape functions, the [B] matrix and |det(J)| at every integration point.

        [B] = ∇[N] = [J]⁻¹ [dN]

        Returns:
            N: (n_gp, n_dofs), B: (n_gp, dim, n_dofs), detJ: (n_gp,)
        """
        N = np.array([self.shape_functions(gp_i)[0] for gp_i in self._gp])
        B = []
        detJ = np.empty(len(self._gp), dtype=np.float64)
        for i, gp_i in enumerate(self._gp):
            J = self.jacobian_matrix(gp_i)
            B.append(np.linalg.solve(J, self.shape_derivatives(gp_i)))
            detJ[i] = abs(np.linalg.det(J))
        return N, np.array(B), detJ

    @property
    def measure(self) -> float:
        """Length, area or volume of the element."""
        return float(np.dot(self._detJ, self._w))

    def get_mass_matrix(self) -> npt.NDArray[np.float64]:
        """
        Calculate element mass matrix [M] = ∑ (Nᵀ N * |detJ| * w).

        Returns:
            (n_dofs, n_dofs) mass matrix.
        """
        if self._mass is None:
            scale = self._detJ * self._w
            self._mass = np.einsum("g,gi,gj->ij", scale, self._N, self._N)
        return self._mass

    def get_stiffness_matrix(self) -> npt.NDArray[np.float64]:
        """
        Calculate element stiffness matrix [K] = ∑ (Bᵀ B * |detJ| * w).

        Returns:
            (n_dofs, n_dofs) stiffness matrix.
        """
        if self._stiffness is None:
            scale = self._detJ * self._w
            self._stiffness = np.einsum("g,gdi,gdj->ij", scale, self._B, self._B)
        return self._stiffness

    def get_load_vector(self, values: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Calculate the load vector of a field given by its element dof values.

        f_i = ∫ u φ_i = [M] u

        Args:
            values: (n_dofs,) field values at the element dofs.
        """
        return self.get_mass_matrix() @ values

    def gradient_at_integration_points(self, values: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Evaluate the physical gradient of a field at every integration point.

        Returns:
            (n_gp, dim) gradients.
        """
        return np.einsum("gdi,i->gd", self._B, values)

    def get_gradient_load_vector(
        self,
        values: npt.NDArray[np.float64],
        eps: float,
    ) -> npt.NDArray[np.float64]:
        """
        Calculate f_i = ∫ X · ∇φ_i with X = -∇u / |∇u|.

        Integration points where |∇u| <= eps contribute nothing.

        Args:
            values: (n_dofs,) field values at the element dofs.
            eps: Gradient magnitude threshold.
        """
        grad = self.gradient_at_integration_points(values)
        norm = np.linalg.norm(grad, axis=1)

        X = np.zeros_like(grad)
        mask = norm > eps
        X[mask] = -grad[mask] / norm[mask, None]

        scale = self._detJ * self._w
        return np.einsum("g,gdi,gd->i", scale, self._B, X)
