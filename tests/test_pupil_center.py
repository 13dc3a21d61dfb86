import numpy as np
import pytest

from ooga.pupil_center import pupil_center


def _bright(rows=80, cols=100):
    return np.full((rows, cols), 255, dtype=np.uint8)


def test_finds_darkest_pixel():
    image = _bright()
    image[25, 30] = 0
    assert pupil_center(image) == (30.0, 25.0)


def test_border_is_ignored():
    image = _bright()
    image[5, 5] = 0
    image[40, 50] = 10
    assert pupil_center(image) == (50.0, 40.0)


def test_ties_resolve_in_row_major_order():
    image = _bright()
    image[30, 60] = 0
    image[40, 25] = 0
    assert pupil_center(image) == (60.0, 30.0)


def test_custom_border():
    image = _bright()
    image[3, 4] = 0
    assert pupil_center(image, delta=2) == (4.0, 3.0)


def test_border_too_large_raises():
    with pytest.raises(ValueError):
        pupil_center(_bright(30, 30), delta=20)