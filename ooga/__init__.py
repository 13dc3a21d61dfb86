"""Geometry, filtering and bookkeeping for a binocular glint-based gaze tracker."""

__version__ = "0.1.0"