"""Reading of the run manifest and run configuration JSON artifacts."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from tokamak_replay.snapshot import ReplayError

SUPPORTED_SCHEMA_VERSION = 2
_UINT32_MOD = 2**32
_UINT64_MAX = 2**64 - 1


@dataclass
class ManifestFiles:
    """Relative paths of the artifacts listed in a manifest."""

    run_config_json: str = ""
    summary_csv: str = ""
    radial_profiles_csv: str = ""
    magnetic_field_diagnostics_csv: str = ""
    electrostatic_diagnostics_csv: str = ""
    speed_histogram_csv: str = ""
    pitch_histogram_csv: str = ""
    solver_residual_csv: str = ""
    particle_snapshot_csv_files: list[str] = field(default_factory=list)


@dataclass
class ReplayManifest:
    manifest_path: Path = Path()
    run_directory: Path = Path()
    schema_version: int = 0
    run_id: str = ""
    created_utc: str = ""
    files: ManifestFiles = field(default_factory=ManifestFiles)


@dataclass
class ReplayRunConfig:
    scenario: str = ""
    seed: int | None = None
    major_radius_m: float | None = None
    minor_radius_m: float | None = None

    @property
    def has_seed(self) -> bool:
        return self.seed is not None

    @property
    def has_tokamak_geometry(self) -> bool:
        return self.major_radius_m is not None and self.minor_radius_m is not None


def _read_text(path: Path) -> str:
    try:
        with open(path, encoding="utf-8", errors="surrogateescape") as handle:
            return handle.read()
    except OSError as exc:
        raise ReplayError(f"Failed to open file: {os.fspath(path)}") from exc


def _key(key: str) -> str:
    return '"' + re.escape(key) + r'"\s*:\s*'


def _string_field(text: str, key: str) -> str | None:
    match = re.search(_key(key) + r'"([^"]*)"', text)
    return match.group(1) if match else None


def _unsigned_field(text: str, key: str) -> int | None:
    match = re.search(_key(key) + r"(\d+)", text)
    if match is None:
        return None
    value = int(match.group(1))
    if value > _UINT64_MAX:
        raise ReplayError(f"Value of {key} is out of range: {match.group(1)}")
    return value


def _float_field(text: str, key: str) -> float | None:
    match = re.search(_key(key) + r"([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)", text)
    return float(match.group(1)) if match else None


def _string_array_field(text: str, key: str) -> list[str] | None:
    match = re.search(_key(key) + r"\[([\s\S]*?)\]", text)
    if match is None:
        return None
    return re.findall(r'"([^"]*)"', match.group(1))


_MANIFEST_STRING_KEYS = (
    ("run_id", "run_id", None),
    ("created_utc", "created_utc", None),
    ("run_config", "files.run_config", "run_config_json"),
    ("summary_csv", "files.summary_csv", "summary_csv"),
    ("radial_profiles_csv", "files.radial_profiles_csv", "radial_profiles_csv"),
    (
        "magnetic_field_diagnostics_csv",
        "files.magnetic_field_diagnostics_csv",
        "magnetic_field_diagnostics_csv",
    ),
    (
        "electrostatic_diagnostics_csv",
        "files.electrostatic_diagnostics_csv",
        "electrostatic_diagnostics_csv",
    ),
    ("speed_histogram_csv", "files.speed_histogram_csv", "speed_histogram_csv"),
    ("pitch_histogram_csv", "files.pitch_histogram_csv", "pitch_histogram_csv"),
    ("solver_residual_log_csv", "files.solver_residual_log_csv", "solver_residual_csv"),
)


def parse_manifest_v2_file(manifest_path: str | os.PathLike) -> ReplayManifest:
    """Read a schema-version-2 manifest; raise ReplayError when it is unusable."""
    path = Path(manifest_path)
    text = _read_text(path)

    manifest = ReplayManifest(manifest_path=path, run_directory=path.parent)
    missing: list[str] = []

    schema_version = _unsigned_field(text, "schema_version")
    if schema_version is None:
        missing.append("schema_version")
    else:
        manifest.schema_version = schema_version % _UINT32_MOD

    for key, label, files_attr in _MANIFEST_STRING_KEYS:
        value = _string_field(text, key)
        if value is None:
            missing.append(label)
        elif files_attr is None:
            setattr(manifest, key, value)
        else:
            setattr(manifest.files, files_attr, value)

    snapshots = _string_array_field(text, "particle_snapshot_csv_files")
    if snapshots is None:
        missing.append("files.particle_snapshot_csv_files")
    else:
        manifest.files.particle_snapshot_csv_files = snapshots

    if missing:
        raise ReplayError("Manifest missing required key(s): " + ", ".join(missing))

    if manifest.schema_version != SUPPORTED_SCHEMA_VERSION:
        raise ReplayError(
            f"Unsupported manifest schema_version: {manifest.schema_version} "
            f"(expected {SUPPORTED_SCHEMA_VERSION})"
        )

    if not manifest.files.particle_snapshot_csv_files:
        raise ReplayError("Manifest has empty files.particle_snapshot_csv_files")

    return manifest


def parse_run_config_v2_file(run_config_path: str | os.PathLike) -> ReplayRunConfig:
    """Read the optional fields of a run configuration; only an unreadable file is an error."""
    text = _read_text(Path(run_config_path))

    config = ReplayRunConfig(
        scenario=_string_field(text, "scenario") or "",
        seed=_unsigned_field(text, "seed"),
    )

    major = _float_field(text, "major_radius_m")
    minor = _float_field(text, "minor_radius_m")
    if major is not None and minor is not None and major > 0.0 and minor > 0.0:
        config.major_radius_m = major
        config.minor_radius_m = minor

    return config