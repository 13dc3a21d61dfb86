"""Combining the results of both eyes into a point of gaze in the scene image."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

import numpy as np

from .camera import Camera
from .common import GazeState, GazeTrackingResult, TrackingResult
from .frame import FrameSource
from .kalman import kalman_filter_gaze_point

DEFAULT_GAZE_DISTANCE = 1.0
DEFAULT_IMAGE_SIZE = (640.0, 480.0)
DEFAULT_KALMAN_R_MAX = 100.0
BLINK_SCORE_SUM = 0.7
SCORE_DIFFERENCE = 0.2
PUPIL_SIZE_TOLERANCE = 0.1
MIN_CALIBRATION_SAMPLES = 3


def _vec3(point) -> np.ndarray:
    return np.asarray(point, dtype=float).reshape(3)


def _unit(vector: np.ndarray, what: str) -> np.ndarray:
    norm = np.linalg.norm(vector)
    if norm == 0:
        raise ValueError(f"{what} has zero length")
    return vector / norm


def _transform(matrix) -> np.ndarray:
    m = np.asarray(matrix, dtype=float)
    if m.shape not in ((4, 4), (3, 4)):
        raise ValueError(f"transform must be 4x4 or 3x4, got shape {m.shape}")
    return m


def optical_vector(pupil_center, cornea_center) -> np.ndarray:
    """Unit vector from the cornea centre to the pupil centre."""
    return _unit(_vec3(pupil_center) - _vec3(cornea_center), "optical vector")


def gaze_vector(k9, optical) -> np.ndarray:
    """The optical vector corrected by the 3x3 matrix ``k9``, normalised."""
    matrix = np.asarray(k9, dtype=float).reshape(3, 3)
    return _unit(matrix @ _vec3(optical), "gaze vector")


def transform_point(matrix, point) -> np.ndarray:
    """Apply a homogeneous 4x4 (or 3x4) transform to a 3D point."""
    m = _transform(matrix)
    return (m @ np.append(_vec3(point), 1.0))[:3]


def _ellipse_size(result: TrackingResult) -> tuple[float, float]:
    ellipse = result.pupil_ellipse
    if ellipse is None:
        return 0.0, 0.0
    width, height = ellipse.size
    return float(width), float(height)


@dataclass(frozen=True)
class EyeChoice:
    """Which eyes a frame's gaze estimate may rely on."""

    using_both_eyes: bool
    best_eye: FrameSource
    blinking: bool
    best_score: float

    @property
    def state(self) -> GazeState:
        """The gaze state recorded for this choice."""
        if self.blinking:
            return GazeState.BLINK
        if self.using_both_eyes:
            return GazeState.BOTH
        return GazeState.RIGHT if self.best_eye == FrameSource.EYE_R else GazeState.LEFT


def choose_eyes(result_right: TrackingResult, result_left: TrackingResult,
                image_size=DEFAULT_IMAGE_SIZE) -> EyeChoice:
    """Decide from glint scores, pupil sizes and cornea depths which eyes to use.

    Both results must be in the right eye camera coordinates.
    """
    score_r = float(result_right.score)
    score_l = float(result_left.score)
    width_limit = float(image_size[0]) * PUPIL_SIZE_TOLERANCE
    height_limit = float(image_size[1]) * PUPIL_SIZE_TOLERANCE

    blinking = not (score_r + score_l > BLINK_SCORE_SUM)
    using_both = True
    best = FrameSource.EYE_R
    best_score = score_l

    if abs(score_r - score_l) > SCORE_DIFFERENCE:
        using_both = False
        if score_r >= score_l:
            best, best_score = FrameSource.EYE_R, score_r
        else:
            best, best_score = FrameSource.EYE_L, score_l

    width_r, height_r = _ellipse_size(result_right)
    width_l, height_l = _ellipse_size(result_left)
    if abs(height_r - height_l) > height_limit or abs(width_r - width_l) > width_limit:
        if height_r > height_l:
            if using_both:
                using_both = False
                best = FrameSource.EYE_R
            else:
                # One eye misses glints and the other the pupil.
                best = FrameSource.EYE_L
                blinking = True
        else:
            if using_both:
                using_both = False
                best = FrameSource.EYE_L
            else:
                best = FrameSource.EYE_R

    if _vec3(result_right.cornea_center_3d)[2] < 0:
        if using_both:
            using_both = False
            best = FrameSource.EYE_L
        if not using_both and best == FrameSource.EYE_R:
            blinking = True
    if _vec3(result_left.cornea_center_3d)[2] < 0:
        if using_both:
            using_both = False
            best = FrameSource.EYE_R
        if not using_both and best == FrameSource.EYE_L:
            blinking = True

    return EyeChoice(using_both, best, blinking, best_score)


class UserCalibration:
    """Collects calibration samples and solves the K9 correction matrices."""

    def __init__(self, right_to_scene=None, gaze_distance: float = DEFAULT_GAZE_DISTANCE):
        m = np.eye(4) if right_to_scene is None else _transform(right_to_scene)
        self._rotation = m[:3, :3].copy()
        self._translation = m[:3, 3].copy()
        self._inv_rotation = np.linalg.pinv(self._rotation)
        self.gaze_distance = float(gaze_distance)
        self._targets: list[np.ndarray] = []
        self._cornea_left: list[np.ndarray] = []
        self._optical_left: list[np.ndarray] = []
        self._cornea_right: list[np.ndarray] = []
        self._optical_right: list[np.ndarray] = []

    @property
    def count(self) -> int:
        """Number of samples collected."""
        return len(self._targets)

    def add_sample(self, target, cornea_left, pupil_left, cornea_right, pupil_right):
        """Add one sample; return (k9_left, k9_right) once enough samples exist, else None.

        ``target`` is in scene camera coordinates, the eye features in right eye
        camera coordinates.
        """
        optical_l = optical_vector(pupil_left, cornea_left)
        optical_r = optical_vector(pupil_right, cornea_right)
        self._targets.append(_vec3(target))
        self._cornea_left.append(_vec3(cornea_left))
        self._optical_left.append(optical_l)
        self._cornea_right.append(_vec3(cornea_right))
        self._optical_right.append(optical_r)
        if self.count < MIN_CALIBRATION_SAMPLES:
            return None
        return (
            self._solve(self._cornea_left, self._optical_left),
            self._solve(self._cornea_right, self._optical_right),
        )

    def _solve(self, corneas, opticals) -> np.ndarray:
        targets = np.array(self._targets).T
        in_eye = self._inv_rotation @ (targets - self._translation[:, None])
        residual = in_eye - np.array(corneas).T
        return residual @ np.linalg.pinv(np.array(opticals).T) / self.gaze_distance


class GazeEstimator:
    """Turns per-eye tracking results into a filtered point of gaze."""

    def __init__(
        self,
        scene_camera: Camera,
        k9_left=None,
        k9_right=None,
        right_to_scene=None,
        left_to_right=None,
        kalman_r_max: float = DEFAULT_KALMAN_R_MAX,
        image_size=DEFAULT_IMAGE_SIZE,
        use_kalman: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.scene_camera = scene_camera
        self.k9_left = np.eye(3) if k9_left is None else np.asarray(k9_left, float).reshape(3, 3)
        self.k9_right = np.eye(3) if k9_right is None else np.asarray(k9_right, float).reshape(3, 3)
        self.right_to_scene = np.eye(4) if right_to_scene is None else _transform(right_to_scene)
        self.left_to_right = np.eye(4) if left_to_right is None else _transform(left_to_right)
        self.kalman_r_max = float(kalman_r_max)
        self.image_size = (float(image_size[0]), float(image_size[1]))
        self.use_kalman = use_kalman
        self._clock = clock
        self._zero_time = clock()

        self.param_est = np.zeros(4)
        self.p_est = np.eye(4)
        self.pog_prev = (self.image_size[0] / 2, self.image_size[1] / 2)
        self.raw_pog = self.pog_prev
        self.theta_mean = 0.0

        self.calibration = UserCalibration(self.right_to_scene, DEFAULT_GAZE_DISTANCE)
        self.calibration_sample_ok = False
        self._latest = None

    def process(self, result_left: TrackingResult, result_right: TrackingResult,
                theta_left: float, theta_right: float) -> GazeTrackingResult:
        """Combine both eyes' results (left in left camera coordinates) into a gaze result."""
        self.theta_mean = (theta_left + theta_right) / 2.0

        cornea_l = transform_point(self.left_to_right, result_left.cornea_center_3d)
        pupil_l = transform_point(self.left_to_right, result_left.pupil_center_3d)
        cornea_r = _vec3(result_right.cornea_center_3d)
        pupil_r = _vec3(result_right.pupil_center_3d)

        gaze_l = gaze_vector(self.k9_left, optical_vector(pupil_l, cornea_l))
        gaze_r = gaze_vector(self.k9_right, optical_vector(pupil_r, cornea_r))

        left_in_right = TrackingResult(
            pupil_center_3d=tuple(pupil_l),
            pupil_ellipse=result_left.pupil_ellipse,
            cornea_center_3d=tuple(cornea_l),
            score=result_left.score,
        )
        choice = choose_eyes(result_right, left_in_right, self.image_size)

        if choice.using_both_eyes:
            cos_angle = float(np.clip(gaze_l @ gaze_r, -1.0, 1.0))
            with np.errstate(divide="ignore", invalid="ignore"):
                gaze_dist = np.float64(0.5 * np.linalg.norm(cornea_r - cornea_l)) / np.sin(
                    0.5 * np.arccos(cos_angle))
            gaze_point = ((cornea_l + gaze_dist * gaze_l) + (cornea_r + gaze_dist * gaze_r)) / 2
        else:
            gaze_dist = DEFAULT_GAZE_DISTANCE
            if choice.best_eye == FrameSource.EYE_R:
                gaze_point = cornea_r + gaze_dist * gaze_r
            else:
                gaze_point = cornea_l + gaze_dist * gaze_l

        scene_point = transform_point(self.right_to_scene, gaze_point)
        u, v = self.scene_camera.world_to_pix(scene_point)
        # The scene camera is mounted upside down.
        pog = (self.image_size[0] - u, self.image_size[1] - v)
        self.raw_pog = pog

        if self.use_kalman:
            velocity = ((pog[0] - self.pog_prev[0]) * self.theta_mean,
                        (pog[1] - self.pog_prev[1]) * self.theta_mean)
            self.pog_prev = pog
            loc_variance = self.kalman_r_max * (1 - self.theta_mean)
            self.param_est, self.p_est = kalman_filter_gaze_point(
                pog, velocity, self.param_est, self.p_est, loc_variance)
            pog = (float(self.param_est[0]), float(self.param_est[1]))

        self._latest = (cornea_l, pupil_l, cornea_r, pupil_r)
        self.calibration_sample_ok = not choice.blinking and choice.using_both_eyes

        return GazeTrackingResult(
            timestamp=int((self._clock() - self._zero_time) * 1000),
            gaze_vec_left=tuple(float(c) for c in gaze_l),
            gaze_vec_right=tuple(float(c) for c in gaze_r),
            pog=(float(pog[0]), float(pog[1])),
            gazedist=float(gaze_dist),
            score_l=float(result_left.score),
            score_r=float(result_right.score),
            state=choice.state,
        )

    def calibration_callback(self, x: float, y: float) -> bool:
        """Use the latest frame as a calibration sample for scene pixel (x, y).

        Returns False when the latest frame is unsuitable (blink or one eye only).
        """
        if not self.calibration_sample_ok or self._latest is None:
            print("Bad sample! Not to be used for calibration...")
            return False

        if self.calibration.count == 0:
            self.k9_left = np.eye(3)
            self.k9_right = np.eye(3)

        mouse_x = self.image_size[0] - x
        mouse_y = self.image_size[1] - y
        target = self.scene_camera.pix_to_world_point(mouse_x, mouse_y) * self.calibration.gaze_distance

        cornea_l, pupil_l, cornea_r, pupil_r = self._latest
        solved = self.calibration.add_sample(target, cornea_l, pupil_l, cornea_r, pupil_r)
        if solved is not None:
            self.k9_left, self.k9_right = solved

        print(f"{self.calibration.count} calibration samples collected ... ")
        return True