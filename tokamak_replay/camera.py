"""Vector and matrix helpers plus an orbiting camera for replay rendering."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

_MIN_PITCH = -1.4
_MAX_PITCH = 1.4
_ROTATE_SENSITIVITY = 0.006
_ZOOM_BASE = 0.92
_MIN_DISTANCE = 0.8
_MAX_DISTANCE = 20.0
_FOV_Y_DEGREES = 45.0
_NEAR_PLANE = 0.01
_FAR_PLANE = 100.0


@dataclass(frozen=True)
class Vec3:
    """An immutable three-component vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vec3) -> Vec3:
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vec3) -> Vec3:
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> Vec3:
        return Vec3(self.x * scalar, self.y * scalar, self.z * scalar)

    __rmul__ = __mul__

    def __neg__(self) -> Vec3:
        return Vec3(-self.x, -self.y, -self.z)

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z

    def dot(self, other: Vec3) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vec3) -> Vec3:
        return Vec3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def magnitude(self) -> float:
        return math.sqrt(self.dot(self))

    def normalized(self) -> Vec3:
        """Return a unit vector in the same direction; a zero vector stays zero."""
        length = self.magnitude()
        if length == 0.0:
            return Vec3()
        return self * (1.0 / length)


@dataclass(frozen=True)
class Mat4:
    """A 4x4 matrix stored as 16 floats in column-major order."""

    elements: tuple[float, ...] = field(default=(0.0,) * 16)

    def __post_init__(self) -> None:
        values = tuple(float(v) for v in self.elements)
        if len(values) != 16:
            raise ValueError(f"Mat4 needs 16 elements, got {len(values)}")
        object.__setattr__(self, "elements", values)

    @staticmethod
    def identity() -> Mat4:
        return Mat4(tuple(1.0 if col == row else 0.0 for col in range(4) for row in range(4)))

    def __getitem__(self, index: int) -> float:
        return self.elements[index]

    def __iter__(self):
        return iter(self.elements)

    def __len__(self) -> int:
        return 16


def multiply(a: Mat4, b: Mat4) -> Mat4:
    """Return the matrix product a * b."""
    return Mat4(
        tuple(
            sum(a[k * 4 + row] * b[col * 4 + k] for k in range(4))
            for col in range(4)
            for row in range(4)
        )
    )


def perspective(fov_y_radians: float, aspect: float, near_plane: float, far_plane: float) -> Mat4:
    """Build a right-handed perspective projection matrix."""
    tan_half = math.tan(fov_y_radians * 0.5)
    out = [0.0] * 16
    out[0] = 1.0 / (aspect * tan_half)
    out[5] = 1.0 / tan_half
    out[10] = -(far_plane + near_plane) / (far_plane - near_plane)
    out[11] = -1.0
    out[14] = -(2.0 * far_plane * near_plane) / (far_plane - near_plane)
    return Mat4(tuple(out))


def look_at(eye: Vec3, center: Vec3, up: Vec3) -> Mat4:
    """Build a view matrix looking from eye towards center."""
    f = (center - eye).normalized()
    s = f.cross(up).normalized()
    u = s.cross(f)

    out = list(Mat4.identity().elements)
    out[0], out[4], out[8] = s.x, s.y, s.z
    out[1], out[5], out[9] = u.x, u.y, u.z
    out[2], out[6], out[10] = -f.x, -f.y, -f.z
    out[12] = -s.dot(eye)
    out[13] = -u.dot(eye)
    out[14] = f.dot(eye)
    return Mat4(tuple(out))


class OrbitCamera:
    """A camera orbiting a target point, driven by mouse drags and scrolling."""

    def __init__(
        self,
        distance: float = 6.0,
        yaw: float = 0.0,
        pitch: float = 0.35,
        target: Vec3 = Vec3(),
    ) -> None:
        self.distance = distance
        self.yaw = yaw
        self.pitch = pitch
        self.target = target
        self.viewport_width = 1600
        self.viewport_height = 900
        self.rotating = False
        self._last_x = 0.0
        self._last_y = 0.0

    def set_viewport(self, width: int, height: int) -> None:
        self.viewport_width = max(1, width)
        self.viewport_height = max(1, height)

    def begin_rotate(self, x: float, y: float) -> None:
        self.rotating = True
        self._last_x = x
        self._last_y = y

    def end_rotate(self) -> None:
        self.rotating = False

    def on_cursor_move(self, x: float, y: float) -> None:
        if not self.rotating:
            return
        delta_x = x - self._last_x
        delta_y = y - self._last_y
        self._last_x = x
        self._last_y = y

        self.yaw += delta_x * _ROTATE_SENSITIVITY
        self.pitch += -delta_y * _ROTATE_SENSITIVITY
        self.pitch = max(_MIN_PITCH, min(_MAX_PITCH, self.pitch))

    def on_scroll(self, delta_y: float) -> None:
        self.distance *= _ZOOM_BASE**delta_y
        self.distance = max(_MIN_DISTANCE, min(_MAX_DISTANCE, self.distance))

    @property
    def eye(self) -> Vec3:
        c_pitch = math.cos(self.pitch)
        return Vec3(
            self.target.x + self.distance * c_pitch * math.cos(self.yaw),
            self.target.y + self.distance * c_pitch * math.sin(self.yaw),
            self.target.z + self.distance * math.sin(self.pitch),
        )

    def view_projection_matrix(self) -> Mat4:
        aspect = self.viewport_width / self.viewport_height
        projection = perspective(math.radians(_FOV_Y_DEGREES), aspect, _NEAR_PLANE, _FAR_PLANE)
        view = look_at(self.eye, self.target, Vec3(0.0, 0.0, 1.0))
        return multiply(projection, view)