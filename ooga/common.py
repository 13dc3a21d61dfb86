"""Shared result records and mode constants for the gaze tracker."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

Point2 = tuple[float, float]
Point3 = tuple[float, float, float]


class RunningMode(IntEnum):
    """Modes that the user interface reports to the application."""

    CALIBRATE = 1
    RUNNING = 2
    PAUSED = 3
    RECORDING = 4


class GazeState(IntEnum):
    """Which eyes the gaze estimate of a frame was based on."""

    BLINK = 0
    RIGHT = 1
    LEFT = 2
    BOTH = 3


@dataclass
class GrabStatistics:
    """Timing of one grab round, in milliseconds."""

    grab_time: float = 0.0
    frame_time: float = 0.0
    wait_time: float = 0.0


@dataclass
class TrackingResult:
    """Intermediate per-eye tracking results."""

    pupil_center_2d: Point2 = (0.0, 0.0)
    pupil_center_3d: Point3 = (0.0, 0.0, 0.0)
    pupil_ellipse_points: list[Point2] = field(default_factory=list)
    pupil_ellipse: Any = None
    glint_points: list[Point2] = field(default_factory=list)
    cornea_center_3d: Point3 = (0.0, 0.0, 0.0)
    gaze_direction_vector: Point3 = (0.0, 0.0, 0.0)
    score: float = 0.0


@dataclass
class GazeTrackingResult:
    """Final gaze result of one binocular frame; timestamp in milliseconds."""

    timestamp: int = 0
    gaze_vec_left: Point3 = (0.0, 0.0, 0.0)
    gaze_vec_right: Point3 = (0.0, 0.0, 0.0)
    pog: Point2 = (0.0, 0.0)
    gazedist: float = 0.0
    score_l: float = 0.0
    score_r: float = 0.0
    state: GazeState = GazeState.BLINK