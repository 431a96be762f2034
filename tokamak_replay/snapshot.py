"""Parsing of particle snapshot and run summary CSV files."""

from __future__ import annotations

import enum
import math
import os
import re
from dataclasses import dataclass, field

from tokamak_replay.camera import Vec3

_WHITESPACE = " \t\r\n"
_INT_PREFIX = re.compile(r"[+-]?\d+")
_FLOAT_PREFIX = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_UINT64_MOD = 2**64

_SNAPSHOT_COLUMNS = (
    "step",
    "time_s",
    "total_particles",
    "sampled_particles",
    "sample_stride",
    "species_name",
    "x_m",
    "y_m",
    "z_m",
)
_SUMMARY_COLUMNS = ("step", "time_s", "total_ions", "avg_energy_kev", "fusion_events_total")


class ReplayError(Exception):
    """Raised when replay artifacts cannot be read or are malformed."""


class ReplaySpecies(enum.Enum):
    DEUTERIUM = "Deuterium"
    TRITIUM = "Tritium"
    HELIUM = "Helium"
    UNKNOWN = "Unknown"


@dataclass
class ReplayParticle:
    position_m: Vec3
    species_name: str
    species: ReplaySpecies


@dataclass
class ReplayFrame:
    step: int = 0
    time_s: float = 0.0
    total_particles: int = 0
    sampled_particles: int = 0
    sample_stride: int = 1
    particles: list[ReplayParticle] = field(default_factory=list)


@dataclass
class ReplaySummaryPoint:
    step: int = 0
    time_s: float = 0.0
    total_ions: int = 0
    avg_energy_kev: float = 0.0
    fusion_events_total: int = 0


def split_csv_line(line: str) -> list[str]:
    """Split one CSV line into fields, honouring double quotes and "" escapes."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    chars = iter(enumerate(line))
    for i, c in chars:
        if c == '"':
            if in_quotes and line[i + 1:i + 2] == '"':
                current.append('"')
                next(chars)
            else:
                in_quotes = not in_quotes
        elif c == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(c)
    fields.append("".join(current))
    return fields


def parse_species_name(species_name: str) -> ReplaySpecies:
    """Map a species name to its enum value; anything unrecognised is UNKNOWN."""
    try:
        species = ReplaySpecies(species_name)
    except ValueError:
        return ReplaySpecies.UNKNOWN
    return species


def _parse_int(text: str) -> int:
    match = _INT_PREFIX.match(text)
    if match is None:
        raise ValueError(text)
    value = int(match.group())
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError(text)
    return value


def _parse_uint64(text: str) -> int:
    match = _INT_PREFIX.match(text)
    if match is None:
        raise ValueError(text)
    value = int(match.group())
    if abs(value) >= _UINT64_MOD:
        raise ValueError(text)
    return value % _UINT64_MOD


def _parse_float(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        raise ValueError(text)
    token = match.group()
    value = float(token)
    if math.isinf(value) and "inf" not in token.lower():
        raise ValueError(text)
    return value


def _read_lines(path: str | os.PathLike, label: str) -> tuple[str, list[str]]:
    try:
        with open(path, encoding="utf-8", errors="surrogateescape", newline="") as handle:
            text = handle.read()
    except OSError as exc:
        raise ReplayError(f"Failed to open {label}: {os.fspath(path)}") from exc

    if not text:
        raise ReplayError(f"{label[0].upper()}{label[1:]} missing header row: {os.fspath(path)}")
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return lines[0], lines[1:]


def _column_indices(header_line: str, required: tuple[str, ...]) -> dict[str, int]:
    header = {name.strip(_WHITESPACE): i for i, name in enumerate(split_csv_line(header_line))}
    for name in required:
        if name not in header:
            raise ReplayError(f"Missing required CSV column: {name}")
    return {name: header[name] for name in required}


def _data_rows(rows: list[str], max_column: int, label: str):
    """Yield (line number, trimmed fields) for non-blank rows."""
    for line_number, line in enumerate(rows, start=2):
        if not line.strip(_WHITESPACE):
            continue
        fields = split_csv_line(line)
        if len(fields) <= max_column:
            raise ReplayError(f"{label} row has too few columns at line {line_number}")
        yield line_number, [f.strip(_WHITESPACE) for f in fields]


def parse_particle_snapshot_csv(path: str | os.PathLike) -> ReplayFrame:
    """Read a particle snapshot CSV into a frame; frame metadata comes from the first row."""
    header_line, rows = _read_lines(path, "snapshot CSV")
    cols = _column_indices(header_line, _SNAPSHOT_COLUMNS)
    max_column = max(cols.values())

    frame: ReplayFrame | None = None
    for line_number, fields in _data_rows(rows, max_column, "Snapshot CSV"):
        try:
            step = _parse_int(fields[cols["step"]])
            time_s = _parse_float(fields[cols["time_s"]])
            total = _parse_uint64(fields[cols["total_particles"]])
            sampled = _parse_uint64(fields[cols["sampled_particles"]])
            stride = _parse_uint64(fields[cols["sample_stride"]])
            x = _parse_float(fields[cols["x_m"]])
            y = _parse_float(fields[cols["y_m"]])
            z = _parse_float(fields[cols["z_m"]])
        except ValueError as exc:
            raise ReplayError(f"Snapshot CSV parse error at line {line_number}") from exc

        if frame is None:
            frame = ReplayFrame(
                step=step,
                time_s=time_s,
                total_particles=total,
                sampled_particles=sampled,
                sample_stride=max(1, stride),
            )

        species_name = fields[cols["species_name"]]
        frame.particles.append(
            ReplayParticle(
                position_m=Vec3(x, y, z),
                species_name=species_name,
                species=parse_species_name(species_name),
            )
        )

    if frame is None:
        raise ReplayError(f"Snapshot CSV contains no particle rows: {os.fspath(path)}")
    return frame


def parse_summary_csv(path: str | os.PathLike) -> list[ReplaySummaryPoint]:
    """Read a run summary CSV into points sorted by step."""
    header_line, rows = _read_lines(path, "summary CSV")
    cols = _column_indices(header_line, _SUMMARY_COLUMNS)
    max_column = max(cols.values())

    points: list[ReplaySummaryPoint] = []
    for line_number, fields in _data_rows(rows, max_column, "Summary CSV"):
        try:
            point = ReplaySummaryPoint(
                step=_parse_int(fields[cols["step"]]),
                time_s=_parse_float(fields[cols["time_s"]]),
                total_ions=_parse_uint64(fields[cols["total_ions"]]),
                avg_energy_kev=_parse_float(fields[cols["avg_energy_kev"]]),
                fusion_events_total=_parse_uint64(fields[cols["fusion_events_total"]]),
            )
        except ValueError as exc:
            raise ReplayError(f"Summary CSV parse error at line {line_number}") from exc
        points.append(point)

    points.sort(key=lambda p: p.step)
    return points