import pytest

from tokamak_replay.snapshot import (
    ReplayError,
    ReplaySpecies,
    parse_particle_snapshot_csv,
    parse_species_name,
    parse_summary_csv,
    split_csv_line,
)

SNAPSHOT_HEADER = (
    "schema_version,step,time_s,total_particles,sampled_particles,sample_stride,"
    "particle_index,species,species_name,x_m,y_m,z_m\n"
)

SUMMARY_TEXT = (
    "schema_version,step,time_s,active_seed,scenario,total_ions,deuterium,tritium,helium,"
    "avg_energy_kev,fusion_events_total,particle_cap_hit_events,rejected_injection_pairs,"
    "rejected_fusion_ash,out_of_domain_cell_clamp_events,fusion_attempts,fusion_accepted,"
    "max_reactions_in_cell,kinetic_j,beam_injected_j,fusion_alpha_injected_j,total_charge_c\n"
    "2,10,0.000001,20260220,COLD_VACUUM,2,1,1,0,0.12,1,0,0,0,0,0,1,1,0,0,0,0.0\n"
    "2,0,0.0,20260220,COLD_VACUUM,2,1,1,0,0.10,0,0,0,0,0,0,0,0,0,0,0,0.0\n"
)


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


def test_snapshot_parses_species_and_positions(tmp_path):
    path = _write(
        tmp_path / "particles_step_00000000.csv",
        SNAPSHOT_HEADER
        + "2,0,0.0,2,2,1,0,0,Deuterium,1.0,2.0,3.0\n"
        + "2,0,0.0,2,2,1,1,1,Tritium,4.0,5.0,6.0\n",
    )
    frame = parse_particle_snapshot_csv(path)
    assert frame.step == 0
    assert len(frame.particles) == 2
    assert frame.particles[0].species is ReplaySpecies.DEUTERIUM
    assert frame.particles[1].species is ReplaySpecies.TRITIUM
    assert frame.particles[1].position_m.z == pytest.approx(6.0, abs=1e-6)
    assert frame.total_particles == 2
    assert frame.sampled_particles == 2


def test_snapshot_fails_on_header_mismatch(tmp_path):
    path = _write(
        tmp_path / "particles_step_00000000.csv",
        "schema_version,step,time_s,total_particles,sampled_particles,sample_stride,"
        "particle_index,species,x_m,y_m,z_m\n"
        "2,0,0.0,2,2,1,0,0,1.0,2.0,3.0\n",
    )
    with pytest.raises(ReplayError, match="species_name"):
        parse_particle_snapshot_csv(path)


def test_snapshot_zero_stride_becomes_one(tmp_path):
    path = _write(tmp_path / "s.csv", SNAPSHOT_HEADER + "2,7,0.5,9,1,0,0,0,Helium,1,2,3\n")
    frame = parse_particle_snapshot_csv(path)
    assert frame.sample_stride == 1
    assert frame.step == 7
    assert frame.particles[0].species is ReplaySpecies.HELIUM


def test_snapshot_metadata_comes_from_first_row_and_blank_lines_skipped(tmp_path):
    path = _write(
        tmp_path / "s.csv",
        SNAPSHOT_HEADER
        + "2,3,0.25,4,2,2,0,0,Deuterium,1,1,1\r\n"
        + "   \n"
        + "2,99,9.0,8,8,8,1,1,Neon,2,2,2\n",
    )
    frame = parse_particle_snapshot_csv(path)
    assert frame.step == 3
    assert frame.time_s == pytest.approx(0.25)
    assert frame.sample_stride == 2
    assert [p.species_name for p in frame.particles] == ["Deuterium", "Neon"]
    assert frame.particles[1].species is ReplaySpecies.UNKNOWN


def test_snapshot_too_few_columns(tmp_path):
    path = _write(tmp_path / "s.csv", SNAPSHOT_HEADER + "2,0,0.0,2\n")
    with pytest.raises(ReplayError, match="too few columns at line 2"):
        parse_particle_snapshot_csv(path)


def test_snapshot_bad_number(tmp_path):
    path = _write(
        tmp_path / "s.csv",
        SNAPSHOT_HEADER + "2,0,0.0,2,2,1,0,0,Deuterium,1,2,3\n2,0,0.0,2,2,1,0,0,Deuterium,abc,2,3\n",
    )
    with pytest.raises(ReplayError, match="parse error at line 3"):
        parse_particle_snapshot_csv(path)


def test_snapshot_without_rows(tmp_path):
    path = _write(tmp_path / "s.csv", SNAPSHOT_HEADER)
    with pytest.raises(ReplayError, match="no particle rows"):
        parse_particle_snapshot_csv(path)


def test_snapshot_empty_file_has_no_header(tmp_path):
    path = _write(tmp_path / "s.csv", "")
    with pytest.raises(ReplayError, match="missing header row"):
        parse_particle_snapshot_csv(path)


def test_snapshot_missing_file(tmp_path):
    with pytest.raises(ReplayError, match="Failed to open snapshot CSV"):
        parse_particle_snapshot_csv(tmp_path / "absent.csv")


def test_summary_parses_and_sorts_by_step(tmp_path):
    path = _write(tmp_path / "summary_v2.csv", SUMMARY_TEXT)
    points = parse_summary_csv(path)
    assert [p.step for p in points] == [0, 10]
    assert points[0].avg_energy_kev == pytest.approx(0.10, abs=1e-12)
    assert points[1].fusion_events_total == 1
    assert points[1].total_ions == 2


def test_summary_minimal_columns(tmp_path):
    path = _write(
        tmp_path / "summary_v2.csv",
        "schema_version,step,time_s,total_ions,avg_energy_kev,fusion_events_total\n2,0,0.0,0,0.0,0\n",
    )
    points = parse_summary_csv(path)
    assert len(points) == 1
    assert points[0].step == 0


def test_summary_missing_column(tmp_path):
    path = _write(tmp_path / "summary_v2.csv", "step,time_s,total_ions\n0,0,0\n")
    with pytest.raises(ReplayError, match="avg_energy_kev"):
        parse_summary_csv(path)


def test_summary_parse_error(tmp_path):
    path = _write(
        tmp_path / "summary_v2.csv",
        "step,time_s,total_ions,avg_energy_kev,fusion_events_total\n0,0.0,x,0.0,0\n",
    )
    with pytest.raises(ReplayError, match="Summary CSV parse error at line 2"):
        parse_summary_csv(path)


def test_summary_header_only_gives_empty_list(tmp_path):
    path = _write(tmp_path / "summary_v2.csv", "step,time_s,total_ions,avg_energy_kev,fusion_events_total\n")
    assert parse_summary_csv(path) == []


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ('a,"b,c",d', ["a", "b,c", "d"]),
        ('"x""y"', ['x"y']),
        ("", [""]),
        ("a,,b,", ["a", "", "b", ""]),
    ],
)
def test_split_csv_line(line, expected):
    assert split_csv_line(line) == expected


@pytest.mark.parametrize(
    ("name", "species"),
    [
        ("Deuterium", ReplaySpecies.DEUTERIUM),
        ("Tritium", ReplaySpecies.TRITIUM),
        ("Helium", ReplaySpecies.HELIUM),
        ("deuterium", ReplaySpecies.UNKNOWN),
        ("", ReplaySpecies.UNKNOWN),
    ],
)
def test_parse_species_name(name, species):
    assert parse_species_name(name) is species