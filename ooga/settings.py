"""Command-line options and XML configuration of the tracker."""

from __future__ import annotations

import argparse
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CONFIG_FILE = "config.xml"


@dataclass
class FeedSource:
    """A camera feed: type 0 is a camera, 1 a video file."""

    type: int = 0
    feed_number: int = 0
    calibration_file: str = ""
    file_name: str = ""
    flip: int = 0


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise ValueError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="ooga", description="Allowed options", add_help=False)
    parser.add_argument("--help", action="store_true", help="show help")
    parser.add_argument("--eyefileL", help="set eye cam file to use instead of camera")
    parser.add_argument("--eyefileR", help="set eye cam file to use instead of camera")
    parser.add_argument("--scenefile", help="set scene cam file to use instead of camera")
    parser.add_argument("--config", help="set config file to read from.")
    return parser


def _lookup(root: ET.Element, path: str, attribute: str | None = None) -> str | None:
    head, *rest = path.split(".")
    if root.tag != head:
        return None
    node = root
    for name in rest:
        node = node.find(name)
        if node is None:
            return None
    if attribute is None:
        return (node.text or "").strip()
    return node.get(attribute)


def _required(root, path, attribute=None) -> str:
    value = _lookup(root, path, attribute)
    if value is None:
        where = f"{path}.<xmlattr>.{attribute}" if attribute else path
        raise KeyError(f"missing configuration entry: {where}")
    return value


def _string(root, path, default, attribute=None) -> str:
    value = _lookup(root, path, attribute)
    return default if value is None else value


def _int(root, path, default) -> int:
    value = _lookup(root, path)
    try:
        return int(value.strip())
    except (AttributeError, ValueError):
        return default


def _feed(root: ET.Element, name: str) -> FeedSource:
    path = f"settings.cameras.{name}"
    kind = _required(root, path, "type")
    return FeedSource(
        type=0 if kind == "cam" else 1,
        feed_number=_int(root, f"{path}.num", 0),
        file_name=_string(root, f"{path}.file", ""),
        flip=_int(root, f"{path}.flip", 0),
    )


@dataclass
class Settings:
    """All settings read from the command line and the configuration file."""

    config_file: str = ""
    eye_vid_left_file: str = ""
    eye_vid_right_file: str = ""
    scene_vid_file: str = ""
    eye_left_cam: FeedSource = field(default_factory=FeedSource)
    eye_right_cam: FeedSource = field(default_factory=FeedSource)
    scene_cam: FeedSource = field(default_factory=FeedSource)
    camerarig_file: str = ""
    k9_file: str = ""
    cm_left_file: str = ""
    cm_right_file: str = ""
    glintmodel_file: str = ""
    params_file: str = ""
    led_pos_file: str = ""
    cam_left_eye_file: str = ""
    cam_right_eye_file: str = ""
    save_videos: bool = False
    save_results: bool = False
    stream_lsl: bool = False
    video_folder: str = ""
    result_file: str = ""
    lsl_streamname: str = ""
    n_of_cams: int = 3
    save_frames: bool = False

    def process_command_line(self, argv=None, root=None) -> bool:
        """Apply command-line options; return False when only help was asked for.

        File options are taken relative to ``root``, by default the parent of
        the working directory.
        """
        if argv is None:
            argv = sys.argv[1:]
        root_dir = str(Path(root) if root is not None else Path.cwd().parent)
        parser = _build_parser()
        options = parser.parse_args(list(argv))

        if options.help:
            print(parser.format_help())
            return False

        if options.config is not None:
            self.config_file = f"{root_dir}/{options.config}"
            print(f"Using config file {self.config_file}")
        else:
            self.config_file = f"{root_dir}/config/{DEFAULT_CONFIG_FILE}"
            print(f"Using DEFAULT config file {self.config_file}")

        if options.eyefileL is not None:
            self.eye_vid_left_file = f"{root_dir}/{options.eyefileL}"
        if options.eyefileR is not None:
            self.eye_vid_right_file = f"{root_dir}/{options.eyefileR}"
        if options.scenefile is not None:
            self.scene_vid_file = f"{root_dir}/{options.scenefile}"
        return True

    def load(self, filename) -> None:
        """Read cameras, calibration files and result options from an XML file."""
        root = ET.parse(filename).getroot()

        self.eye_left_cam = _feed(root, "eyeleft")
        self.eye_right_cam = _feed(root, "eyeright")
        self.scene_cam = _feed(root, "scene")

        self.save_frames = _required(root, "settings.savefiles") == "true"

        calib = "settings.calibration"
        self.camerarig_file = _string(
            root, f"{calib}.camerarig", "../calibration/camerarig.yaml", "filename")
        self.k9_file = _string(root, f"{calib}.K9", "../calibration/K9.yaml", "filename")
        self.cm_left_file = _string(
            root, f"{calib}.CM_left", "../calibration/file_CM_left", "filename")
        self.cm_right_file = _string(
            root, f"{calib}.CM_right", "../calibration/file_CM_right", "filename")
        self.glintmodel_file = _string(
            root, f"{calib}.glintmodel", "../calibration/glint_model.yaml", "filename")
        self.params_file = _string(
            root, f"{calib}.parameters", "../calibration/parameters.yaml", "filename")
        self.cam_left_eye_file = _string(
            root, f"{calib}.cam_lefteye", "../calibration/eye_cam_left.yaml", "filename")
        self.cam_right_eye_file = _string(
            root, f"{calib}.cam_righteye", "../calibration/eye_cam_right.yaml", "filename")
        self.led_pos_file = _string(
            root, f"{calib}.led_positions", "../calibration/LED_positions.model.yaml",
            "filename")

        results = "settings.results"
        self.video_folder = ""
        self.result_file = ""
        self.lsl_streamname = ""
        if _string(root, f"{results}.videos", "no", "save") == "yes":
            self.save_videos = True
            self.video_folder = _string(root, f"{results}.videos", "../videos/", "folder")
        if _string(root, f"{results}.resultfile", "no", "save") == "yes":
            self.save_results = True
            self.result_file = _string(
                root, f"{results}.resultfile", "../results/tmp.log", "filename")
        if _string(root, f"{results}.LSL", "no", "stream") == "yes":
            self.stream_lsl = True
            self.lsl_streamname = _string(
                root, f"{results}.LSL", "OOGA_STREAM", "streamname")