"""Vertex data for drawing the torus wireframe and replay particles."""

from __future__ import annotations

import math
from typing import NamedTuple

from tokamak_replay.camera import Vec3
from tokamak_replay.snapshot import ReplayFrame, ReplaySpecies

MAJOR_SEGMENTS = 96
MINOR_SEGMENTS = 32
DEFAULT_MAJOR_RADIUS_M = 2.0
DEFAULT_MINOR_RADIUS_M = 0.5

TOROIDAL_LINE_COLOR = (0.25, 0.94, 0.70)
POLOIDAL_LINE_COLOR = (0.12, 0.62, 0.56)

_SPECIES_COLORS = {
    ReplaySpecies.DEUTERIUM: (0.20, 0.62, 1.00),
    ReplaySpecies.TRITIUM: (1.00, 0.54, 0.18),
    ReplaySpecies.HELIUM: (0.98, 0.93, 0.26),
    ReplaySpecies.UNKNOWN: (0.62, 0.62, 0.62),
}


class Vertex(NamedTuple):
    """A position with an RGB colour, laid out as six floats."""

    x: float
    y: float
    z: float
    r: float
    g: float
    b: float

    @classmethod
    def at(cls, position: Vec3, color: tuple[float, float, float]) -> Vertex:
        return cls(position.x, position.y, position.z, *color)

    @property
    def position(self) -> Vec3:
        return Vec3(self.x, self.y, self.z)

    @property
    def color(self) -> tuple[float, float, float]:
        return (self.r, self.g, self.b)


def species_color(species: ReplaySpecies) -> tuple[float, float, float]:
    """Return the RGB colour used to draw a particle of the given species."""
    return _SPECIES_COLORS.get(species, _SPECIES_COLORS[ReplaySpecies.UNKNOWN])


def torus_point(major_radius: float, minor_radius: float, phi: float, theta: float) -> Vec3:
    """Return the point on a torus at toroidal angle phi and poloidal angle theta."""
    ring_radius = major_radius + minor_radius * math.cos(theta)
    return Vec3(
        ring_radius * math.cos(phi),
        ring_radius * math.sin(phi),
        minor_radius * math.sin(theta),
    )


def torus_line_vertices(major_radius: float, minor_radius: float) -> list[Vertex]:
    """Return line-segment vertex pairs forming a toroidal/poloidal wireframe."""
    two_pi = 2.0 * math.pi
    vertices: list[Vertex] = []
    for i in range(MAJOR_SEGMENTS):
        phi0 = two_pi * i / MAJOR_SEGMENTS
        phi1 = two_pi * (i + 1) / MAJOR_SEGMENTS
        for j in range(MINOR_SEGMENTS):
            theta0 = two_pi * j / MINOR_SEGMENTS
            theta1 = two_pi * (j + 1) / MINOR_SEGMENTS

            p00 = torus_point(major_radius, minor_radius, phi0, theta0)
            p10 = torus_point(major_radius, minor_radius, phi1, theta0)
            p01 = torus_point(major_radius, minor_radius, phi0, theta1)

            vertices.append(Vertex.at(p00, TOROIDAL_LINE_COLOR))
            vertices.append(Vertex.at(p10, TOROIDAL_LINE_COLOR))
            vertices.append(Vertex.at(p00, POLOIDAL_LINE_COLOR))
            vertices.append(Vertex.at(p01, POLOIDAL_LINE_COLOR))
    return vertices


def frame_vertices(frame: ReplayFrame, max_particles: int) -> list[Vertex]:
    """Return coloured point vertices for at most max_particles (at least one) particles."""
    limit = max(1, max_particles)
    return [
        Vertex.at(particle.position_m, species_color(particle.species))
        for particle in frame.particles[:limit]
    ]