"""End points of the pupil ellipse axes, smoothed over time."""

from __future__ import annotations

import math
from dataclasses import dataclass

Point2 = tuple[float, float]

MIN_THETA = 0.2


@dataclass(frozen=True)
class RotatedRect:
    """An ellipse: centre, size as (width, height) and angle in radians."""

    center: Point2 = (0.0, 0.0)
    size: Point2 = (0.0, 0.0)
    angle: float = 0.0


def pupil_ellipse_points(ellipse: RotatedRect, previous, theta: float) -> list[Point2]:
    """The four axis end points, major axis first, blended with the previous ones.

    Within each axis the points are ordered to match ``previous``; ``theta``
    (at least 0.2) weights the new measurement against the previous points.
    """
    prev = [(float(p[0]), float(p[1])) for p in previous]
    if len(prev) != 4:
        raise ValueError(f"expected 4 previous points, got {len(prev)}")

    cx, cy = (float(v) for v in ellipse.center)
    width, height = (float(v) for v in ellipse.size)
    cos_a = math.cos(ellipse.angle)
    sin_a = math.sin(ellipse.angle)

    measured = [
        (cx + cos_a * height / 2, cy - sin_a * height / 2),
        (cx - cos_a * height / 2, cy + sin_a * height / 2),
        (cx + sin_a * width / 2, cy + cos_a * width / 2),
        (cx - sin_a * width / 2, cy - cos_a * width / 2),
    ]

    for ind in (0, 2):
        if math.dist(measured[ind], prev[ind]) > math.dist(measured[ind], prev[ind + 1]):
            measured[ind], measured[ind + 1] = measured[ind + 1], measured[ind]

    theta = max(theta, MIN_THETA)
    return [
        (theta * mx + (1 - theta) * px, theta * my + (1 - theta) * py)
        for (mx, my), (px, py) in zip(measured, prev)
    ]