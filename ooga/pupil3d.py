"""The 3D pupil centre from back-projected pupil ellipse points."""

from __future__ import annotations

import numpy as np

CORNEA_RADIUS = 0.0077
CORNEA_REFRACTIVE_INDEX = 1.336
PUPIL_PLANE_DISTANCE = 0.00375


def _rowdot(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.einsum("ij,ij->i", a, b)


def compute_pupil_center_3d(ellipse_points_3d, cornea_center) -> np.ndarray:
    """Estimate the pupil centre from rays through the ellipse axis end points.

    The first two points must be the end points of the major axis. The rays are
    refracted at the corneal sphere around ``cornea_center``.
    """
    points = np.asarray(ellipse_points_3d, dtype=float).reshape(-1, 3)
    if len(points) < 2:
        raise ValueError("at least the two major axis end points are needed")
    centre = np.asarray(cornea_center, dtype=float).reshape(3)

    directions = points / np.linalg.norm(points, axis=1, keepdims=True)

    # First intersection of each ray with the corneal sphere.
    b = -2.0 * (directions @ centre)
    c = centre @ centre - CORNEA_RADIUS ** 2
    discriminant = np.maximum(b * b - 4.0 * c, 0.0)
    s = (-b - np.sqrt(discriminant)) / 2.0
    surface = s[:, None] * directions

    pupil_radius = np.linalg.norm(surface[0] - surface[1]) / 2.0
    radius_sq = PUPIL_PLANE_DISTANCE ** 2 + pupil_radius ** 2

    # Refraction at the corneal surface (vector form of Snell's law).
    normals = surface - centre
    normals /= np.linalg.norm(normals, axis=1, keepdims=True)
    eta = 1.0 / CORNEA_REFRACTIVE_INDEX
    cos_in = _rowdot(normals, directions)
    refracted = eta * directions + (
        eta * (-cos_in) - np.sqrt(1.0 - eta * eta * (1.0 - cos_in * cos_in))
    )[:, None] * normals
    refracted /= np.linalg.norm(refracted, axis=1, keepdims=True)

    b = 2.0 * (_rowdot(surface, refracted) - refracted @ centre)
    c = _rowdot(surface, surface) - 2.0 * (surface @ centre) + centre @ centre - radius_sq
    discriminant = np.maximum(b * b - 4.0 * c, 0.0)
    w = (-b - np.sqrt(discriminant)) / 2.0

    return (surface + w[:, None] * refracted).mean(axis=0)