from pathlib import Path

import pytest

from tokamak_replay.manifest import (
    ReplayRunConfig,
    parse_manifest_v2_file,
    parse_run_config_v2_file,
)
from tokamak_replay.snapshot import ReplayError

FILES_BODY = (
    '    "run_config": "run_config_v2.json",\n'
    '    "summary_csv": "summary_v2.csv",\n'
    '    "radial_profiles_csv": "radial_profiles_v2.csv",\n'
    '    "magnetic_field_diagnostics_csv": "magnetic_field_diagnostics_v2.csv",\n'
    '    "electrostatic_diagnostics_csv": "electrostatic_diagnostics_v2.csv",\n'
    '    "speed_histogram_csv": "speed_histogram_v2.csv",\n'
    '    "pitch_histogram_csv": "pitch_angle_histogram_v2.csv",\n'
    '    "solver_residual_log_csv": "solver_residuals_v2.csv"'
)


def _manifest_text(schema_version=2, snapshots='["snapshots/particles_step_00000000.csv"]'):
    snapshot_line = ""
    if snapshots is not None:
        snapshot_line = f',\n    "particle_snapshot_csv_files": {snapshots}'
    return (
        "{\n"
        '  "schema": "tokamak.milestone7.manifest",\n'
        f'  "schema_version": {schema_version},\n'
        '  "run_id": "run_test",\n'
        '  "created_utc": "2026-02-20T00:00:00Z",\n'
        '  "files": {\n'
        f"{FILES_BODY}{snapshot_line}\n"
        "  }\n"
        "}\n"
    )


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def test_manifest_v2_parses_required_keys(tmp_path):
    path = _write(tmp_path / "run_test" / "manifest_v2.json", _manifest_text())
    manifest = parse_manifest_v2_file(path)
    assert manifest.schema_version == 2
    assert manifest.run_id == "run_test"
    assert manifest.created_utc == "2026-02-20T00:00:00Z"
    assert manifest.files.summary_csv == "summary_v2.csv"
    assert manifest.files.run_config_json == "run_config_v2.json"
    assert manifest.files.solver_residual_csv == "solver_residuals_v2.csv"
    assert manifest.files.pitch_histogram_csv == "pitch_angle_histogram_v2.csv"
    assert manifest.files.particle_snapshot_csv_files == ["snapshots/particles_step_00000000.csv"]
    assert manifest.run_directory == tmp_path / "run_test"
    assert manifest.manifest_path == path


def test_manifest_v2_fails_when_particle_snapshots_key_missing(tmp_path):
    path = _write(tmp_path / "manifest_v2.json", _manifest_text(snapshots=None))
    with pytest.raises(ReplayError) as excinfo:
        parse_manifest_v2_file(path)
    assert "particle_snapshot_csv_files" in str(excinfo.value)


def test_manifest_lists_all_missing_keys(tmp_path):
    path = _write(tmp_path / "manifest_v2.json", '{"schema_version": 2, "run_id": "x"}')
    with pytest.raises(ReplayError) as excinfo:
        parse_manifest_v2_file(path)
    message = str(excinfo.value)
    assert message.startswith("Manifest missing required key(s): created_utc, files.run_config")
    assert message.endswith("files.particle_snapshot_csv_files")


def test_manifest_rejects_other_schema_version(tmp_path):
    path = _write(tmp_path / "manifest_v2.json", _manifest_text(schema_version=3))
    with pytest.raises(ReplayError, match=r"Unsupported manifest schema_version: 3 \(expected 2\)"):
        parse_manifest_v2_file(path)


def test_manifest_rejects_empty_snapshot_list(tmp_path):
    path = _write(tmp_path / "manifest_v2.json", _manifest_text(snapshots="[]"))
    with pytest.raises(ReplayError, match="empty files.particle_snapshot_csv_files"):
        parse_manifest_v2_file(path)


def test_manifest_multiple_snapshots_keep_order(tmp_path):
    snapshots = '[\n "b/particles_step_10.csv",\n "a/particles_step_00.csv"\n]'
    path = _write(tmp_path / "manifest_v2.json", _manifest_text(snapshots=snapshots))
    manifest = parse_manifest_v2_file(path)
    assert manifest.files.particle_snapshot_csv_files == [
        "b/particles_step_10.csv",
        "a/particles_step_00.csv",
    ]


def test_manifest_missing_file_raises(tmp_path):
    with pytest.raises(ReplayError, match="Failed to open file"):
        parse_manifest_v2_file(tmp_path / "absent.json")


def test_run_config_reads_scenario_seed_and_geometry(tmp_path):
    path = _write(
        tmp_path / "run_config_v2.json",
        "{\n"
        '  "schema": "tokamak.milestone7.run_config",\n'
        '  "schema_version": 2,\n'
        '  "scenario": "COLD_VACUUM",\n'
        '  "seed": 20260220,\n'
        '  "tokamak_config": {\n'
        '    "major_radius_m": 2.0,\n'
        '    "minor_radius_m": 0.5\n'
        "  }\n"
        "}\n",
    )
    config = parse_run_config_v2_file(path)
    assert config.scenario == "COLD_VACUUM"
    assert config.seed == 20260220
    assert config.has_seed
    assert config.has_tokamak_geometry
    assert config.major_radius_m == pytest.approx(2.0)
    assert config.minor_radius_m == pytest.approx(0.5)


def test_run_config_without_optional_fields(tmp_path):
    path = _write(tmp_path / "run_config_v2.json", '{"schema_version": 2}')
    config = parse_run_config_v2_file(path)
    assert config == ReplayRunConfig()
    assert not config.has_seed
    assert not config.has_tokamak_geometry


def test_run_config_rejects_non_positive_geometry(tmp_path):
    path = _write(
        tmp_path / "run_config_v2.json",
        '{"major_radius_m": 2.0, "minor_radius_m": -0.5}',
    )
    config = parse_run_config_v2_file(path)
    assert not config.has_tokamak_geometry
    assert config.major_radius_m is None


def test_run_config_accepts_exponent_notation(tmp_path):
    path = _write(
        tmp_path / "run_config_v2.json",
        '{"major_radius_m": 1.5e0, "minor_radius_m": .25}',
    )
    config = parse_run_config_v2_file(path)
    assert config.major_radius_m == pytest.approx(1.5)
    assert config.minor_radius_m == pytest.approx(0.25)


def test_run_config_missing_file_raises(tmp_path):
    with pytest.raises(ReplayError, match="Failed to open file"):
        parse_run_config_v2_file(tmp_path / "missing.json")