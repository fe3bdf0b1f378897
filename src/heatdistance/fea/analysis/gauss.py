from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from math import sqrt

if TYPE_CHECKING:
    import numpy.typing as npt


def gauss_points_weights_edge(n_points: int) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Generate Gauss points and weights for a 1D Gaussian integration on the interval [-1, +1].

    Args:
        n_points: Number of integration points.

    Raises:
        ValueError: If `n_points` is not 1, 2, or 3.

    Returns:
        A tuple containing the Gauss points with shape (n_points, 1) and the weights.
    """
    if n_points == 1:
        return np.array([[0.0]]), np.array([2.0])
    elif n_points == 2:
        return np.array([[-1/np.sqrt(3)], [1/np.sqrt(3)]]), np.array([1.0, 1.0])
    elif n_points == 3:
        return np.array([[-np.sqrt(3/5)], [0.0], [np.sqrt(3/5)]]), np.array([5/9, 8/9, 5/9])
    else:
        raise ValueError(f"Unsupported number of Gauss points: {n_points}. "
                         f"'n_points' must be 1, 2, or 3.")


def gauss_points_weights_triangle(n_points: int) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Generate Gauss points and weights for a triangular Gaussian integration.

    Triangle is assumed to be a unit triangle with vertices at (0,0), (1,0), and (0,1).
    Points are given in barycentric coordinates [1 - r - s, r, s].

    The weights are multiplied by the area of the triangle (1/2 for a unit triangle).

    Args:
        n_points: Number of integration points.

    Raises:
        ValueError: If `n_points` is not 1, 3 or 6.

    Returns:
        A tuple containing the Gauss points and weights.
    """
    if n_points == 1:
        return np.array([[1.0/3.0, 1.0/3.0, 1.0/3.0]]), 0.5 * np.array([1.0])
    elif n_points == 3:
        return np.array([
            [2.0/3.0, 1.0/6.0, 1.0/6.0],
            [1.0/6.0, 2.0/3.0, 1.0/6.0],
            [1.0/6.0, 1.0/6.0, 2.0/3.0]]
        ), 0.5 * np.array([1.0/3.0, 1.0/3.0, 1.0/3.0])
    elif n_points == 6:
        # Dunavant degree 4 rule
        a1, w1 = 0.445948490915965, 0.223381589678011
        a2, w2 = 0.091576213509771, 0.109951743655322
        b1 = 1.0 - 2.0 * a1
        b2 = 1.0 - 2.0 * a2
        return np.array([
            [b1, a1, a1],
            [a1, b1, a1],
            [a1, a1, b1],
            [b2, a2, a2],
            [a2, b2, a2],
            [a2, a2, b2]]
        ), 0.5 * np.array([w1, w1, w1, w2, w2, w2])
    else:
        raise ValueError(f"Unsupported number of Gauss points: {n_points}. "
                         f"'n_points' must be 1, 3 or 6.")


def gauss_points_weights_quadrilateral(n_points: int) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Generate Gauss points and weights for a quadrilateral Gaussian integration.

    Quadrilateral is assumed to be a square with vertices at (-1,-1), (1,-1), (1,1), and (-1,1).

    Args:
        n_points: Number of integration points.

    Raises:
        ValueError: If `n_points` is not 1, 4 or 9.

    Returns:
        A tuple containing the Gauss points and weights.
    """
    if n_points == 1:
        return np.array([[0.0, 0.0]]), np.array([4.0])
    elif n_points == 4:
        return np.array([
            [-1.0/sqrt(3.0), -1.0/sqrt(3.0)],
            [+1.0/sqrt(3.0), -1.0/sqrt(3.0)],
            [+1.0/sqrt(3.0), +1.0/sqrt(3.0)],
            [-1.0/sqrt(3.0), +1.0/sqrt(3.0)],
        ]
        ), np.array([1.0, 1.0, 1.0, 1.0])
    elif n_points == 9:
        return np.array([
            [-sqrt(3.0/5.0), -sqrt(3.0/5.0)],
            [0.0, -sqrt(3.0/5.0)],
            [+sqrt(3.0/5.0), -sqrt(3.0/5.0)],
            [-sqrt(3.0/5.0), 0.0],
            [0.0, 0.0],
            [+sqrt(3.0/5.0), 0.0],
            [-sqrt(3.0/5.0), +sqrt(3.0/5.0)],
            [0.0, +sqrt(3.0/5.0)],
            [+sqrt(3.0/5.0), +sqrt(3.0/5.0)],
        ]
        ), np.array([25/81, 40/81, 25/81, 40/81, 64/81, 40/81, 25/81, 40/81, 25/81])
    else:
        raise ValueError(f"Unsupported number of Gauss points: {n_points}. "
                         f"'n_points' must be 1, 4 or 9.")


def gauss_points_weights_tetrahedron(n_points: int) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Generate Gauss points and weights for a tetrahedral Gaussian integration.

    Tetrahedron is the unit tetrahedron with vertices at (0,0,0), (1,0,0), (0,1,0), (0,0,1).
    Points are given in barycentric coordinates [1 - r - s - t, r, s, t] and the weights
    include the volume of the unit tetrahedron (1/6).

    Args:
        n_points: Number of integration points.

    Raises:
        ValueError: If `n_points` is not 1, 4 or 14.

    Returns:
        A tuple containing the Gauss points and weights.
    """
    if n_points == 1:
        return np.array([[0.25, 0.25, 0.25, 0.25]]), np.array([1.0/6.0])
    elif n_points == 4:
        a = 0.5854101966249685
        b = 0.1381966011250105
        return np.array([
            [a, b, b, b],
            [b, a, b, b],
            [b, b, a, b],
            [b, b, b, a]]
        ), np.full(4, 1.0/24.0)
    elif n_points == 14:
        # Walkington degree 5 rule
        points, weights = [], []
        for a, w in ((0.31088591926330060980, 0.018781320953002641800),
                     (0.092735250310891226402, 0.012248840519393658257)):
            b = 1.0 - 3.0 * a
            for i in range(4):
                point = [a, a, a, a]
                point[i] = b
                points.append(point)
                weights.append(w)
        a, w = 0.45449629587435035051, 0.0070910034628469110730
        b = 0.5 - a
        for i, j in ((0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)):
            point = [b, b, b, b]
            point[i] = point[j] = a
            points.append(point)
            weights.append(w)
        return np.array(points), np.array(weights)
    else:
        raise ValueError(f"Unsupported number of Gauss points: {n_points}. "
                         f"'n_points' must be 1, 4 or 14.")


def gauss_points_weights_hexahedron(n_points: int) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Generate Gauss points and weights for a hexahedral Gaussian integration on [-1, +1]^3.

    Built as the tensor product of the 1D rule.

    Args:
        n_points: Number of integration points.

    Raises:
        ValueError: If `n_points` is not 1, 8 or 27.

    Returns:
        A tuple containing the Gauss points and weights.
    """
    per_axis = {1: 1, 8: 2, 27: 3}
    if n_points not in per_axis:
        raise ValueError(f"Unsupported number of Gauss points: {n_points}. "
                         f"'n_points' must be 1, 8 or 27.")

    points_1d, weights_1d = gauss_points_weights_edge(per_axis[n_points])
    points_1d = points_1d[:, 0]

    xi, eta, zeta = np.meshgrid(points_1d, points_1d, points_1d, indexing="ij")
    wx, wy, wz = np.meshgrid(weights_1d, weights_1d, weights_1d, indexing="ij")

    points = np.column_stack([xi.ravel(), eta.ravel(), zeta.ravel()])
    weights = (wx * wy * wz).ravel()
    return points, weights
