"""Loading of replay runs: manifest, run config, summary and cached frames."""

from __future__ import annotations

import os
import re
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path

from tokamak_replay.manifest import (
    ReplayManifest,
    ReplayRunConfig,
    parse_manifest_v2_file,
    parse_run_config_v2_file,
)
from tokamak_replay.snapshot import (
    ReplayError,
    ReplayFrame,
    ReplaySummaryPoint,
    parse_particle_snapshot_csv,
    parse_summary_csv,
)

MANIFEST_FILENAME = "manifest_v2.json"
DEFAULT_CACHE_CAPACITY = 8

_SNAPSHOT_NAME = re.compile(r"particles_step_(\d+)\.csv")
_INT32_MAX = 2**31 - 1


@dataclass(frozen=True)
class _FrameEntry:
    step: int
    snapshot_path: Path


def _step_from_snapshot_filename(path: Path) -> int | None:
    match = _SNAPSHOT_NAME.fullmatch(path.name)
    if match is None:
        return None
    step = int(match.group(1))
    if step > _INT32_MAX:
        return None
    return step


class ReplayLoader:
    """Opens a replay run and serves its frames through a small LRU cache."""

    def __init__(self, cache_capacity: int = DEFAULT_CACHE_CAPACITY) -> None:
        self.cache_capacity = max(1, cache_capacity)
        self.clear()

    @property
    def manifest(self) -> ReplayManifest:
        return self._manifest

    @property
    def run_config(self) -> ReplayRunConfig:
        return self._run_config

    @property
    def ordered_steps(self) -> tuple[int, ...]:
        return tuple(entry.step for entry in self._entries)

    @property
    def summary_rows(self) -> tuple[ReplaySummaryPoint, ...]:
        return tuple(self._summary_rows)

    def open_from_manifest(self, manifest_path: str | os.PathLike) -> None:
        """Open the run described by a manifest file; raise ReplayError on failure."""
        self._initialize(parse_manifest_v2_file(manifest_path))

    def open_from_run_directory(self, run_directory: str | os.PathLike) -> None:
        """Open the run whose manifest lies in the given directory."""
        directory = Path(run_directory)
        if not directory.exists():
            raise ReplayError(f"Run directory does not exist: {os.fspath(directory)}")
        if not directory.is_dir():
            raise ReplayError(f"Provided run path is not a directory: {os.fspath(directory)}")
        self.open_from_manifest(directory / MANIFEST_FILENAME)

    def clear(self) -> None:
        """Forget the open run and empty the frame cache."""
        self._manifest = ReplayManifest()
        self._run_config = ReplayRunConfig()
        self._entries: list[_FrameEntry] = []
        self._step_to_index: dict[int, int] = {}
        self._summary_rows: list[ReplaySummaryPoint] = []
        self._summary_by_step: dict[int, ReplaySummaryPoint] = {}
        self._cache: OrderedDict[int, ReplayFrame] = OrderedDict()

    def has_data(self) -> bool:
        return bool(self._entries)

    def frame_count(self) -> int:
        return len(self._entries)

    def _initialize(self, manifest: ReplayManifest) -> None:
        self.clear()
        self._manifest = manifest

        run_config_path = manifest.run_directory / manifest.files.run_config_json
        self._run_config = parse_run_config_v2_file(run_config_path)

        entries = []
        for relative_path in manifest.files.particle_snapshot_csv_files:
            snapshot_path = manifest.run_directory / relative_path
            if not snapshot_path.exists():
                raise ReplayError(
                    "Snapshot file listed in manifest does not exist: "
                    f"{os.fspath(snapshot_path)}"
                )
            step = _step_from_snapshot_filename(snapshot_path)
            if step is None:
                raise ReplayError(
                    f"Unable to parse step index from snapshot filename: {snapshot_path.name}"
                )
            entries.append(_FrameEntry(step, snapshot_path))

        entries.sort(key=lambda entry: entry.step)
        self._entries = entries
        self._step_to_index = {entry.step: i for i, entry in enumerate(entries)}

        summary_path = manifest.run_directory / manifest.files.summary_csv
        self._summary_rows = parse_summary_csv(summary_path)
        self._summary_by_step = {row.step: row for row in self._summary_rows}

    def _remember(self, ordered_index: int, frame: ReplayFrame) -> None:
        if ordered_index in self._cache:
            self._cache[ordered_index] = frame
            self._cache.move_to_end(ordered_index)
            return
        if len(self._cache) >= self.cache_capacity:
            self._cache.popitem(last=False)
        self._cache[ordered_index] = frame

    def load_frame_by_ordered_index(self, ordered_index: int) -> ReplayFrame:
        """Return the frame at a position in step order, reading it if not cached."""
        cached = self._cache.get(ordered_index)
        if cached is not None:
            self._cache.move_to_end(ordered_index)
            return cached

        if not 0 <= ordered_index < len(self._entries):
            raise ReplayError(f"Frame index out of range: {ordered_index}")

        frame = parse_particle_snapshot_csv(self._entries[ordered_index].snapshot_path)
        self._remember(ordered_index, frame)
        return frame

    def load_frame_by_step(self, step: int) -> ReplayFrame:
        """Return the frame recorded at a simulation step."""
        ordered_index = self._step_to_index.get(step)
        if ordered_index is None:
            raise ReplayError(f"No frame exists for step: {step}")
        return self.load_frame_by_ordered_index(ordered_index)

    def summary_for_step(self, step: int) -> ReplaySummaryPoint | None:
        """Return the summary row for a step, or None if there is none."""
        return self._summary_by_step.get(step)