import copy

import numpy as np
import pytest

from ooga.camera import Camera, project_points, undistort_points

INTRINSIC = np.array([[600.0, 0.0, 320.0], [0.0, 600.0, 240.0], [0.0, 0.0, 1.0]])
DISTORTION = [-0.1, 0.01, 0.001, -0.001, 0.0]


@pytest.fixture
def camera():
    cam = Camera()
    cam.set_intrinsic_matrix(INTRINSIC)
    cam.set_distortion(DISTORTION)
    return cam


def test_intrinsic_values_are_column_major():
    cam = Camera()
    cam.set_intrinsic_matrix([1, 2, 3, 4, 5, 6, 7, 8, 9])
    k = cam.intrinsic_matrix
    assert k[0, 0] == 1
    assert k[1, 0] == 2
    assert k[2, 0] == 3
    assert k[0, 1] == 4
    assert k[0, 2] == 7
    assert k[2, 2] == 9


def test_intrinsic_matrix_form_is_kept(camera):
    np.testing.assert_array_equal(camera.intrinsic_matrix, INTRINSIC)
    np.testing.assert_array_equal(camera.distortion, DISTORTION)


def test_bad_shapes_raise():
    cam = Camera()
    with pytest.raises(ValueError):
        cam.set_intrinsic_matrix([1, 2, 3])
    with pytest.raises(ValueError):
        cam.set_distortion([0.1, 0.2, 0.3])


def test_default_camera_has_no_focal_length():
    cam = Camera()
    np.testing.assert_array_equal(cam.distortion, np.zeros(5))
    with pytest.raises(ValueError):
        cam.pix_to_world_point(10.0, 10.0)


def test_principal_point_maps_to_optical_axis(camera):
    ray = camera.pix_to_world_point(320.0, 240.0)
    np.testing.assert_allclose(ray, [0.0, 0.0, 1.0], atol=1e-12)


def test_rays_are_unit_vectors(camera):
    rays = camera.pix_to_world([(0, 0), (100, 400), (639, 479), (320, 10)])
    assert rays.shape == (4, 3)
    np.testing.assert_allclose(np.linalg.norm(rays, axis=1), 1.0)
    assert np.all(rays[:, 2] > 0)


def test_empty_input_gives_empty_output(camera):
    assert camera.pix_to_world([]).shape == (0, 3)


def test_round_trip_without_distortion():
    cam = Camera()
    cam.set_intrinsic_matrix(INTRINSIC)
    for u, v in [(10.0, 20.0), (320.0, 240.0), (600.0, 450.0)]:
        ray = cam.pix_to_world_point(u, v)
        assert cam.world_to_pix(ray) == pytest.approx((u, v), abs=1e-9)


def test_round_trip_with_small_distortion(camera):
    for u, v in [(200.0, 150.0), (320.0, 240.0), (450.0, 330.0)]:
        ray = camera.pix_to_world_point(u, v)
        assert camera.world_to_pix(ray) == pytest.approx((u, v), abs=1e-3)


def test_projection_is_scale_invariant(camera):
    point = np.array([0.01, -0.02, 0.5])
    assert camera.world_to_pix(point) == pytest.approx(camera.world_to_pix(3 * point))


def test_undistort_inverts_projection():
    points = np.array([[0.02, 0.01, 0.5], [-0.05, 0.03, 0.6]])
    distorted = project_points(points, INTRINSIC, DISTORTION)
    ideal = project_points(points, INTRINSIC, np.zeros(5))
    np.testing.assert_allclose(
        undistort_points(distorted, INTRINSIC, DISTORTION), ideal, atol=1e-4
    )


def test_copies_are_independent(camera):
    other = copy.deepcopy(camera)
    other.set_distortion([0, 0, 0, 0, 0])
    np.testing.assert_array_equal(camera.distortion, DISTORTION)