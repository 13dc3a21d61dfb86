"""Kalman filter for the point of gaze with position and velocity state."""

from __future__ import annotations

import numpy as np

OUTLIER_MARGIN = 300.0
IMAGE_WIDTH = 640.0
IMAGE_HEIGHT = 480.0
MAX_VELOCITY = 100.0

TRANSITION = np.array(
    [[1.0, 0.0, 1.0, 0.0], [0.0, 1.0, 0.0, 1.0], [0.0, 0.0, 1.0, 0.0], [0.0, 0.0, 0.0, 1.0]]
)
PROCESS_NOISE = np.eye(4)
VELOCITY_VARIANCE = 1.0


def _is_plausible(loc_meas, velo_meas) -> bool:
    x, y = loc_meas
    vx, vy = velo_meas
    return (
        -OUTLIER_MARGIN < x < IMAGE_WIDTH + OUTLIER_MARGIN
        and -OUTLIER_MARGIN < y < IMAGE_HEIGHT + OUTLIER_MARGIN
        and abs(vx) < MAX_VELOCITY
        and abs(vy) < MAX_VELOCITY
    )


def kalman_filter_gaze_point(loc_meas, velo_meas, param_est, p_est, loc_variance):
    """One predict/update step; returns the new state (4,) and covariance (4, 4).

    A measurement far outside the image or with too high a velocity is
    discarded: the predicted location is kept, the velocity is zeroed and the
    covariance is left as it was.
    """
    state = np.asarray(param_est, dtype=float).reshape(4)
    covariance = np.asarray(p_est, dtype=float).reshape(4, 4)

    state_pred = TRANSITION @ state
    cov_pred = TRANSITION @ covariance @ TRANSITION.T + PROCESS_NOISE

    if _is_plausible(loc_meas, velo_meas):
        measurement = np.array(
            [loc_meas[0], loc_meas[1], velo_meas[0], velo_meas[1]], dtype=float
        )
        noise = np.diag([loc_variance, loc_variance, VELOCITY_VARIANCE, VELOCITY_VARIANCE])
        gain = cov_pred @ np.linalg.pinv(cov_pred + noise)
        new_state = state_pred + gain @ (measurement - state_pred)
        new_cov = (np.eye(4) - gain) @ cov_pred
        return new_state, new_cov

    new_state = state_pred.copy()
    new_state[2:] = 0.0
    return new_state, covariance.copy()