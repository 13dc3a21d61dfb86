import numpy as np
import pytest

from ooga.camera import Camera
from ooga.common import GazeState, TrackingResult
from ooga.ellipse import RotatedRect
from ooga.frame import FrameSource
from ooga.gaze import (
    DEFAULT_GAZE_DISTANCE,
    GazeEstimator,
    UserCalibration,
    choose_eyes,
    gaze_vector,
    optical_vector,
    transform_point,
)

TARGET = np.array([0.0, 0.02, 0.8])
CORNEA_R = np.array([0.03, 0.0, 0.0])
CORNEA_L = np.array([-0.03, 0.0, 0.0])


def _camera():
    cam = Camera()
    cam.set_intrinsic_matrix([[500.0, 0, 320.0], [0, 500.0, 240.0], [0, 0, 1.0]])
    cam.set_distortion(np.zeros(5))
    return cam


def _result(cornea, score, target=TARGET, size=(40.0, 40.0)):
    cornea = np.asarray(cornea, float)
    direction = (target - cornea) / np.linalg.norm(target - cornea)
    return TrackingResult(
        pupil_center_3d=tuple(cornea + 0.004 * direction),
        cornea_center_3d=tuple(cornea),
        pupil_ellipse=RotatedRect(center=(100.0, 100.0), size=size, angle=0.0),
        score=score,
    )


def _flipped_pix(point):
    u, v = _camera().world_to_pix(point)
    return 640.0 - u, 480.0 - v


def test_optical_vector_is_unit_and_points_to_pupil():
    v = optical_vector((1.0, 2.0, 5.0), (1.0, 2.0, 3.0))
    assert np.allclose(v, [0.0, 0.0, 1.0])


def test_optical_vector_zero_length_raises():
    with pytest.raises(ValueError):
        optical_vector((1.0, 1.0, 1.0), (1.0, 1.0, 1.0))


def test_gaze_vector_identity_keeps_direction():
    optical = optical_vector((0.3, -0.2, 1.0), (0.0, 0.0, 0.0))
    assert np.allclose(gaze_vector(np.eye(3), optical), optical)
    scaled = gaze_vector(3.0 * np.eye(3), optical)
    assert np.isclose(np.linalg.norm(scaled), 1.0)


def test_transform_point_translation():
    m = np.eye(4)
    m[:3, 3] = [0.5, -1.0, 2.0]
    assert np.allclose(transform_point(m, (1.0, 1.0, 1.0)), [1.5, 0.0, 3.0])


def test_transform_point_rejects_bad_shape():
    with pytest.raises(ValueError):
        transform_point(np.eye(3), (0.0, 0.0, 0.0))


def test_choose_eyes_both_good():
    choice = choose_eyes(_result(CORNEA_R, 0.5), _result(CORNEA_L, 0.5))
    assert choice.using_both_eyes
    assert not choice.blinking
    assert choice.state == GazeState.BOTH


def test_choose_eyes_low_scores_blink():
    choice = choose_eyes(_result(CORNEA_R, 0.3), _result(CORNEA_L, 0.3))
    assert choice.blinking
    assert choice.state == GazeState.BLINK


def test_choose_eyes_score_difference_picks_better_eye():
    choice = choose_eyes(_result(CORNEA_R, 0.9), _result(CORNEA_L, 0.5))
    assert not choice.using_both_eyes
    assert choice.best_eye == FrameSource.EYE_R
    assert choice.best_score == 0.9
    assert choice.state == GazeState.RIGHT

    choice = choose_eyes(_result(CORNEA_R, 0.5), _result(CORNEA_L, 0.9))
    assert choice.best_eye == FrameSource.EYE_L
    assert choice.state == GazeState.LEFT


def test_choose_eyes_pupil_size_mismatch_right_larger():
    right = _result(CORNEA_R, 0.5, size=(40.0, 100.0))
    left = _result(CORNEA_L, 0.5, size=(40.0, 40.0))
    choice = choose_eyes(right, left)
    assert not choice.using_both_eyes
    assert choice.best_eye == FrameSource.EYE_R
    assert not choice.blinking


def test_choose_eyes_pupil_mismatch_after_score_choice_blinks():
    right = _result(CORNEA_R, 0.5, size=(40.0, 100.0))
    left = _result(CORNEA_L, 0.9, size=(40.0, 40.0))
    choice = choose_eyes(right, left)
    assert choice.blinking
    assert choice.best_eye == FrameSource.EYE_L


def test_choose_eyes_negative_cornea_depth():
    right = _result((0.03, 0.0, -0.01), 0.5)
    choice = choose_eyes(right, _result(CORNEA_L, 0.5))
    assert choice.best_eye == FrameSource.EYE_L
    assert not choice.blinking

    left = _result((-0.03, 0.0, -0.01), 0.5)
    assert choose_eyes(right, left).blinking


def test_user_calibration_recovers_k9():
    k9_true = np.array([[1.0, 0.05, 0.0], [-0.03, 1.0, 0.02], [0.0, 0.01, 1.0]])
    calib = UserCalibration()
    cornea = np.array([0.01, 0.0, 0.02])
    opticals = [(0.1, 0.0, 1.0), (0.0, 0.2, 1.0), (-0.2, -0.1, 1.0), (0.15, 0.1, 1.0)]
    solved = None
    for index, direction in enumerate(opticals):
        optical = np.asarray(direction) / np.linalg.norm(direction)
        pupil = cornea + 0.004 * optical
        target = cornea + DEFAULT_GAZE_DISTANCE * (k9_true @ optical)
        solved = calib.add_sample(target, cornea, pupil, cornea, pupil)
        if index < 2:
            assert solved is None
    assert calib.count == 4
    k9_left, k9_right = solved
    assert np.allclose(k9_left, k9_true)
    assert np.allclose(k9_right, k9_true)


def test_process_both_eyes_meet_at_target():
    est = GazeEstimator(_camera(), use_kalman=False)
    res = est.process(_result(CORNEA_L, 0.5), _result(CORNEA_R, 0.5), 0.5, 0.5)
    assert res.state == GazeState.BOTH
    assert res.gazedist == pytest.approx(np.linalg.norm(TARGET - CORNEA_R))
    assert res.pog == pytest.approx(_flipped_pix(TARGET))
    assert est.calibration_sample_ok


def test_process_single_eye_uses_default_distance():
    est = GazeEstimator(_camera(), use_kalman=False)
    res = est.process(_result(CORNEA_L, 0.5), _result(CORNEA_R, 0.9), 0.5, 0.5)
    assert res.state == GazeState.RIGHT
    assert res.gazedist == DEFAULT_GAZE_DISTANCE
    direction = (TARGET - CORNEA_R) / np.linalg.norm(TARGET - CORNEA_R)
    assert res.pog == pytest.approx(_flipped_pix(CORNEA_R + DEFAULT_GAZE_DISTANCE * direction))
    assert not est.calibration_sample_ok


def test_process_timestamp_in_milliseconds():
    times = iter([10.0, 10.25])
    est = GazeEstimator(_camera(), use_kalman=False, clock=lambda: next(times))
    res = est.process(_result(CORNEA_L, 0.5), _result(CORNEA_R, 0.5), 0.5, 0.5)
    assert res.timestamp == 250


def test_process_kalman_keeps_raw_measurement():
    est = GazeEstimator(_camera(), use_kalman=True)
    res = est.process(_result(CORNEA_L, 0.5), _result(CORNEA_R, 0.5), 0.5, 0.5)
    assert est.raw_pog == pytest.approx(_flipped_pix(TARGET))
    assert np.all(np.isfinite(res.pog))
    assert est.pog_prev == est.raw_pog


def test_calibration_callback_rejects_blink():
    est = GazeEstimator(_camera(), use_kalman=False)
    est.process(_result(CORNEA_L, 0.3), _result(CORNEA_R, 0.3), 0.5, 0.5)
    assert est.calibration_callback(320.0, 240.0) is False
    assert est.calibration.count == 0


def test_calibration_callback_resets_k9_on_first_sample():
    est = GazeEstimator(_camera(), k9_left=2 * np.eye(3), k9_right=3 * np.eye(3),
                        use_kalman=False)
    est.process(_result(CORNEA_L, 0.5), _result(CORNEA_R, 0.5), 0.5, 0.5)
    assert est.calibration_callback(320.0, 240.0) is True
    assert est.calibration.count == 1
    assert np.allclose(est.k9_left, np.eye(3))
    assert np.allclose(est.k9_right, np.eye(3))