"""Writing gaze results to a tab-separated log file."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, TextIO

from .common import GazeState, GazeTrackingResult

HEADER_COLUMNS = "TIME\tPOG_X\tPOG_Y\tPOG_D\tSCORE_L\tSCORE_R\tSTATE"


def format_sample(sample: GazeTrackingResult) -> str:
    """One log line (without newline) for a gaze result."""
    try:
        state = GazeState(sample.state).name
    except ValueError:
        state = ""
    return (
        f"{int(sample.timestamp)}\t{sample.pog[0]:.2f}\t{sample.pog[1]:.2f}\t"
        f"{sample.gazedist:.2f}\t{sample.score_l:.2f}\t{sample.score_r:.2f}\t{state}"
    )


def _ask_overwrite(path: Path) -> bool:
    print(f"Configured result file {path} already exists.")
    print("(o)verwrite, or (q)uit?")
    return input().strip()[:1] == "o"


class ResultHandler:
    """Owns the result file and writes the header and samples into it."""

    def __init__(self) -> None:
        self._output: TextIO | None = None

    def open(self, path, confirm: Callable[[Path], bool] | None = None) -> "ResultHandler":
        """Open ``path`` for writing; an existing file is replaced only if confirmed."""
        path = Path(path)
        if path.is_dir():
            raise IsADirectoryError(
                f"{path} is a directory, please configure a proper output file."
            )
        if path.is_file():
            ask = confirm if confirm is not None else _ask_overwrite
            if not ask(path):
                raise FileExistsError(f"Not allowed to overwrite {path}.")
        self._output = open(path, "w", encoding="utf-8")
        return self

    def _stream(self) -> TextIO:
        if self._output is None:
            raise ValueError("no result file is open")
        return self._output

    def write_header(self, config_filename: str, zero_time) -> None:
        """Write the configuration name, start time (ms) and column names."""
        if isinstance(zero_time, datetime):
            start_ms = int(zero_time.timestamp() * 1000)
        else:
            start_ms = int(zero_time)
        out = self._stream()
        out.write(f"Using config filename: {config_filename}")
        out.write(f"\nStart time {start_ms}\n\n")
        out.write(HEADER_COLUMNS + "\n")

    def push_sample(self, sample: GazeTrackingResult) -> None:
        """Append one gaze result line."""
        self._stream().write(format_sample(sample) + "\n")

    def close(self) -> None:
        """Close the result file if one is open."""
        if self._output is not None:
            self._output.close()
            self._output = None

    def __enter__(self) -> "ResultHandler":
        return self

    def __exit__(self, *args) -> None:
        self.close()