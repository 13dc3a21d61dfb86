"""Rough pupil centre as the darkest point of a filtered eye image."""

from __future__ import annotations

import numpy as np


def pupil_center(filtered_image, delta: int = 20) -> tuple[float, float]:
    """(x, y) of the darkest pixel, ignoring a border of ``delta`` pixels.

    Ties go to the first pixel in row-major order.
    """
    image = np.asarray(filtered_image)
    if image.ndim != 2:
        raise ValueError("expected a single-channel image")
    rows, cols = image.shape
    cropped = image[delta : rows - delta, delta : cols - delta]
    if cropped.size == 0 or delta < 0:
        raise ValueError(f"border of {delta} pixels leaves no image of size {cols}x{rows}")
    y, x = np.unravel_index(np.argmin(cropped), cropped.shape)
    return float(x + delta), float(y + delta)