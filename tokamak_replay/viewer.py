"""Command-line replay player: option parsing, playback state and entry point."""

from __future__ import annotations

import bisect
import math
import re
import sys
import time
from dataclasses import dataclass
from pathlib import Path

from tokamak_replay.loader import ReplayLoader
from tokamak_replay.snapshot import ReplayError, ReplayFrame, ReplaySummaryPoint

FRAME_INTERVAL_S = 1.0 / 30.0

_DECIMAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_HEX = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)(?:[pP][+-]?\d+)?"
)
_INTEGER = re.compile(r"[+-]?\d+")
_LEADING_SPACE = " \t\n\v\f\r"
_FLOAT32_MAX = 3.4028234663852886e38
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


class UsageError(Exception):
    """Raised when the command line cannot be used; also signals a help request."""

    def __init__(self, message: str, help_requested: bool = False) -> None:
        super().__init__(message)
        self.help_requested = help_requested


@dataclass
class ViewerOptions:
    manifest_path: Path | None = None
    run_directory: Path | None = None
    point_size_pixels: float = 3.0
    playback_rate: float = 1.0
    start_step: int | None = None


def _parse_finite_float(text: str) -> float | None:
    body = text.lstrip(_LEADING_SPACE)
    if _DECIMAL.fullmatch(body):
        value = float(body)
    elif _HEX.fullmatch(body):
        value = float.fromhex(body)
    else:
        return None
    if not math.isfinite(value) or abs(value) > _FLOAT32_MAX:
        return None
    return value


def _parse_int(text: str) -> int | None:
    body = text.lstrip(_LEADING_SPACE)
    if not _INTEGER.fullmatch(body):
        return None
    value = int(body)
    if not _INT32_MIN <= value <= _INT32_MAX:
        return None
    return value


def parse_viewer_args(argv: list[str]) -> ViewerOptions:
    """Parse command-line arguments (without the program name) into options."""
    options = ViewerOptions()
    args = iter(argv)

    def value_for(option: str) -> str:
        try:
            return next(args)
        except StopIteration:
            raise UsageError(f"Missing value for {option}") from None

    for arg in args:
        if arg == "--manifest":
            value = value_for(arg)
            options.manifest_path = Path(value) if value else None
        elif arg == "--run-dir":
            value = value_for(arg)
            options.run_directory = Path(value) if value else None
        elif arg in ("--point-size", "--playback-rate"):
            value = value_for(arg)
            number = _parse_finite_float(value)
            if number is None or number <= 0.0:
                raise UsageError(f"Invalid {arg}: {value}")
            if arg == "--point-size":
                options.point_size_pixels = number
            else:
                options.playback_rate = number
        elif arg == "--start-step":
            value = value_for(arg)
            step = _parse_int(value)
            if step is None or step < 0:
                raise UsageError(f"Invalid --start-step: {value}")
            options.start_step = step
        elif arg in ("--help", "-h"):
            raise UsageError("help", help_requested=True)
        else:
            raise UsageError(f"Unknown option: {arg}")

    if (options.manifest_path is None) == (options.run_directory is None):
        raise UsageError("Specify exactly one of --manifest <path> or --run-dir <path>")
    return options


def viewer_usage(program: str) -> str:
    """Return the usage text for the given program name."""
    return (
        f"Usage: {program} [options]\n"
        "  --manifest <path/to/manifest_v2.json>\n"
        "  --run-dir <path/to/run_directory>\n"
        "  --point-size <float>\n"
        "  --playback-rate <float>\n"
        "  --start-step <int>\n"
        "  --help\n"
    )


class ReplayPlayback:
    """Playback position over a loaded replay, advancing at 30 frames per simulated second."""

    def __init__(self, loader: ReplayLoader, start_index: int = 0, playback_rate: float = 1.0) -> None:
        self.loader = loader
        self.playback_rate = playback_rate
        self.paused = False
        self.accumulator = 0.0
        self.current_index = start_index
        self.current_frame: ReplayFrame = loader.load_frame_by_ordered_index(start_index)

    @property
    def frame_count(self) -> int:
        return self.loader.frame_count()

    @property
    def at_end(self) -> bool:
        return self.current_index + 1 >= self.frame_count

    @property
    def summary(self) -> ReplaySummaryPoint | None:
        return self.loader.summary_for_step(self.current_frame.step)

    def advance(self, delta_seconds: float) -> int:
        """Move forward by elapsed wall time; return how many frames were stepped.

        A frame that fails to load pauses playback and the error is raised.
        """
        if self.paused or self.at_end:
            return 0
        self.accumulator += delta_seconds * self.playback_rate
        advanced = 0
        while self.accumulator >= FRAME_INTERVAL_S and not self.at_end:
            self.accumulator -= FRAME_INTERVAL_S
            self.current_index += 1
            try:
                self.current_frame = self.loader.load_frame_by_ordered_index(self.current_index)
            except ReplayError:
                self.paused = True
                raise
            advanced += 1
        return advanced

    def toggle_pause(self) -> None:
        self.paused = not self.paused

    def _show(self, ordered_index: int) -> None:
        self.current_index = ordered_index
        self.accumulator = 0.0
        try:
            self.current_frame = self.loader.load_frame_by_ordered_index(ordered_index)
        except ReplayError:
            pass

    def restart(self) -> None:
        """Resume playback from the first frame."""
        self.paused = False
        self._show(0)

    def seek(self, ordered_index: int) -> None:
        """Jump to a frame (clamped to the valid range) and pause."""
        last = max(0, self.frame_count - 1)
        self.paused = True
        self._show(max(0, min(last, ordered_index)))

    def status_lines(self) -> list[str]:
        """Describe the current frame the way the control panel shows it."""
        frame = self.current_frame
        lines = [
            f"Run: {self.loader.manifest.run_id}",
            f"Frame {self.current_index + 1} / {self.frame_count}",
            f"Step: {frame.step}",
            f"Time: {frame.time_s:.6f} s",
            f"Sampled particles: {len(frame.particles)}",
            f"Total particles (reported): {frame.total_particles}",
        ]
        summary = self.summary
        if summary is not None:
            lines.append(f"Summary total ions: {summary.total_ions}")
            lines.append(f"Summary avg energy: {summary.avg_energy_kev:.6f} keV")
            lines.append(f"Summary fusion events: {summary.fusion_events_total}")
        else:
            lines.append("Summary row not found for this step.")
        if not self.loader.run_config.has_tokamak_geometry:
            lines.append("Geometry fallback active (default torus).")
        return lines


def _print_status(playback: ReplayPlayback) -> None:
    print("\n".join(playback.status_lines()))


def main(argv: list[str] | None = None) -> int:
    """Play a replay run on the terminal; return the process exit status."""
    program = sys.argv[0] if sys.argv and sys.argv[0] else "tokamak_viewer"
    args = sys.argv[1:] if argv is None else list(argv)

    try:
        options = parse_viewer_args(args)
    except UsageError as exc:
        print(viewer_usage(program), end="")
        if exc.help_requested:
            return 0
        print(str(exc), file=sys.stderr)
        return 1

    loader = ReplayLoader()
    try:
        if options.manifest_path is not None:
            loader.open_from_manifest(options.manifest_path)
        else:
            loader.open_from_run_directory(options.run_directory)
    except ReplayError as exc:
        print(f"Failed to open replay: {exc}", file=sys.stderr)
        return 1

    if not loader.has_data():
        print("No replay frames are available in manifest.", file=sys.stderr)
        return 1

    start_index = 0
    if options.start_step is not None:
        steps = loader.ordered_steps
        position = bisect.bisect_left(steps, options.start_step)
        if position == len(steps) or steps[position] != options.start_step:
            print(f"Requested --start-step not found: {options.start_step}", file=sys.stderr)
            return 1
        start_index = position

    try:
        playback = ReplayPlayback(loader, start_index, options.playback_rate)
    except ReplayError as exc:
        print(f"Failed to load initial frame: {exc}", file=sys.stderr)
        return 1

    if not loader.run_config.has_tokamak_geometry:
        print(
            "Warning: tokamak geometry not found in run_config_v2.json, "
            "using default torus geometry.",
            file=sys.stderr,
        )

    _print_status(playback)
    last = time.monotonic()
    while not playback.at_end:
        time.sleep(FRAME_INTERVAL_S / playback.playback_rate)
        now = time.monotonic()
        delta, last = now - last, now
        try:
            advanced = playback.advance(delta)
        except ReplayError as exc:
            print(f"Frame load error: {exc}", file=sys.stderr)
            return 1
        if advanced:
            _print_status(playback)
    return 0