"""Pinhole camera with radial and tangential lens distortion."""

from __future__ import annotations

import numpy as np

UNDISTORT_ITERATIONS = 5
_DISTORTION_LENGTHS = (4, 5, 8)


def _coefficients(distortion) -> np.ndarray:
    """Distortion coefficients padded to (k1, k2, p1, p2, k3, k4, k5, k6)."""
    coeffs = np.asarray(distortion, dtype=float).ravel()
    if coeffs.size not in _DISTORTION_LENGTHS:
        raise ValueError(
            f"distortion must have 4, 5 or 8 coefficients, got {coeffs.size}"
        )
    full = np.zeros(8)
    full[: coeffs.size] = coeffs
    return full


def _intrinsic(intrinsic) -> np.ndarray:
    matrix = np.asarray(intrinsic, dtype=float)
    if matrix.shape != (3, 3):
        raise ValueError(f"intrinsic matrix must be 3x3, got shape {matrix.shape}")
    return matrix


def project_points(points, intrinsic, distortion) -> np.ndarray:
    """Project camera-frame 3D points to distorted pixel coordinates, shape (N, 2)."""
    pts = np.asarray(points, dtype=float).reshape(-1, 3)
    k = _intrinsic(intrinsic)
    k1, k2, p1, p2, k3, k4, k5, k6 = _coefficients(distortion)

    z = pts[:, 2]
    safe_z = np.where(z != 0, z, 1.0)
    inv_z = np.where(z != 0, 1.0 / safe_z, 1.0)
    x = pts[:, 0] * inv_z
    y = pts[:, 1] * inv_z

    r2 = x * x + y * y
    radial = (1 + ((k3 * r2 + k2) * r2 + k1) * r2) / (1 + ((k6 * r2 + k5) * r2 + k4) * r2)
    xd = x * radial + 2 * p1 * x * y + p2 * (r2 + 2 * x * x)
    yd = y * radial + p1 * (r2 + 2 * y * y) + 2 * p2 * x * y

    u = k[0, 0] * xd + k[0, 2]
    v = k[1, 1] * yd + k[1, 2]
    return np.column_stack([u, v])


def undistort_points(points, intrinsic, distortion) -> np.ndarray:
    """Remove lens distortion from pixel points and map them back through ``intrinsic``.

    The result is in the same pixel frame as the input, shape (N, 2).
    """
    uv = np.asarray(points, dtype=float).reshape(-1, 2)
    k = _intrinsic(intrinsic)
    k1, k2, p1, p2, k3, k4, k5, k6 = _coefficients(distortion)

    fx, fy = k[0, 0], k[1, 1]
    cx, cy = k[0, 2], k[1, 2]
    if fx == 0 or fy == 0:
        raise ValueError("intrinsic matrix has a zero focal length")

    x0 = (uv[:, 0] - cx) / fx
    y0 = (uv[:, 1] - cy) / fy
    x = x0.copy()
    y = y0.copy()
    frozen = np.zeros(len(uv), dtype=bool)

    for _ in range(UNDISTORT_ITERATIONS):
        r2 = x * x + y * y
        icdist = (1 + ((k6 * r2 + k5) * r2 + k4) * r2) / (1 + ((k3 * r2 + k2) * r2 + k1) * r2)
        frozen |= icdist < 0
        dx = 2 * p1 * x * y + p2 * (r2 + 2 * x * x)
        dy = p1 * (r2 + 2 * y * y) + 2 * p2 * x * y
        x = np.where(frozen, x0, (x0 - dx) * icdist)
        y = np.where(frozen, y0, (y0 - dy) * icdist)

    homogeneous = np.column_stack([x, y, np.ones_like(x)]) @ k.T
    return homogeneous[:, :2] / homogeneous[:, 2:3]


class Camera:
    """Camera model in the right-handed frame: x right, y down, z away from the viewer."""

    def __init__(self) -> None:
        self._intrinsic = np.zeros((3, 3))
        self._distortion = np.zeros(5)

    @property
    def intrinsic_matrix(self) -> np.ndarray:
        """A copy of the 3x3 intrinsic matrix."""
        return self._intrinsic.copy()

    @property
    def distortion(self) -> np.ndarray:
        """A copy of the distortion coefficients."""
        return self._distortion.copy()

    def set_intrinsic_matrix(self, matrix) -> None:
        """Set the intrinsic matrix from a 3x3 array or nine values in column-major order."""
        values = np.asarray(matrix, dtype=float)
        if values.shape == (3, 3):
            self._intrinsic = values.copy()
        elif values.ndim == 1 and values.size == 9:
            self._intrinsic = values.reshape(3, 3, order="F").copy()
        else:
            raise ValueError(
                "intrinsic matrix must be 3x3 or nine column-major values, "
                f"got shape {values.shape}"
            )

    def set_distortion(self, coefficients) -> None:
        """Set the distortion coefficients (k1, k2, p1, p2[, k3[, k4, k5, k6]])."""
        _coefficients(coefficients)
        self._distortion = np.asarray(coefficients, dtype=float).ravel().copy()

    def pix_to_world(self, points) -> np.ndarray:
        """Unit direction vectors, shape (N, 3), of the rays through pixel points.

        Pixel coordinates have their origin at the upper left corner of the image.
        """
        undistorted = undistort_points(points, self._intrinsic, self._distortion)
        fx, fy = self._intrinsic[0, 0], self._intrinsic[1, 1]
        cx, cy = self._intrinsic[0, 2], self._intrinsic[1, 2]
        x = (undistorted[:, 0] - cx) / fx
        y = (undistorted[:, 1] - cy) / fy
        rays = np.column_stack([x, y, np.ones_like(x)])
        return rays / np.linalg.norm(rays, axis=1, keepdims=True)

    def pix_to_world_point(self, u: float, v: float) -> np.ndarray:
        """Unit direction vector of the ray through pixel (u, v)."""
        return self.pix_to_world([(u, v)])[0]

    def world_to_pix(self, point) -> tuple[float, float]:
        """Pixel coordinates (u, v) of a 3D point in the camera frame."""
        u, v = project_points([point], self._intrinsic, self._distortion)[0]
        return float(u), float(v)