"""A frame holding the images of both eye cameras and the scene camera."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np

from .common import GazeTrackingResult, GrabStatistics, TrackingResult


class FrameSource(IntEnum):
    """Camera a frame image comes from, in camera order."""

    EYE_R = 0
    EYE_L = 1
    SCENE = 2


def _empty_image() -> np.ndarray:
    return np.empty((0, 0), dtype=np.uint8)


@dataclass
class BinocularFrame:
    """Images of one synchronised grab together with their metadata."""

    number: int = -1
    timestamp: int = 0
    grab_stats: GrabStatistics = field(default_factory=GrabStatistics)
    tracking_result: TrackingResult = field(default_factory=TrackingResult)
    gaze_result: GazeTrackingResult = field(default_factory=GazeTrackingResult)
    _images: dict[FrameSource, np.ndarray] = field(
        default_factory=lambda: {source: _empty_image() for source in FrameSource},
        repr=False,
    )
    _aux_images: list[np.ndarray] = field(default_factory=list, repr=False)

    def set_image(self, source: FrameSource, image) -> None:
        """Store a deep copy of ``image`` for ``source``."""
        self._images[FrameSource(source)] = np.array(image, copy=True)

    def image(self, source: FrameSource) -> np.ndarray:
        """Return the stored image of ``source`` (not a copy)."""
        return self._images[FrameSource(source)]

    def push_aux_image(self, image) -> None:
        """Keep an auxiliary image for visualising processing results."""
        self._aux_images.append(image)

    def pop_aux_image(self):
        """Remove and return the most recently pushed auxiliary image."""
        if not self._aux_images:
            raise IndexError("no auxiliary images in frame")
        return self._aux_images.pop()