"""Geometry and density rules behind digging and filling terrain."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable

from voxelterra.mesh import ZONE_SIZE, Box, Vec3
from voxelterra.voxel_index import VoxelIndex

# Voxels this far beyond an edit's extent are still visited.
EDIT_MARGIN = 20.0
# Noise used by edits is sampled with these scales.
NOISE_POSITION_SCALE = 0.5
NOISE_VALUE_SCALE = 0.05

_ANGLE_TOLERANCE = 1e-4
_NEIGHBOUR_OFFSETS = (-1, 0, 1)
_COMPLEX_EXPAND = 50.0
_COMPLEX_FALLOFF = 100.0
_COMPLEX_FACE_THRESHOLD = 50.0

Matrix = tuple[Vec3, Vec3, Vec3]
NoiseFunction = Callable[[Vec3], float]


def _sigmoid(t: float) -> float:
    """``1 / (1 + exp(t))`` without overflowing for large ``t``."""
    if t > 700.0:
        return 0.0
    return 1.0 / (1.0 + math.exp(t))


def _dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _clamp_axis(angle: float) -> float:
    angle = math.fmod(angle, 360.0)
    return angle + 360.0 if angle < 0.0 else angle


@dataclass(frozen=True)
class Rotator:
    """A rotation given as pitch, yaw and roll in degrees."""

    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0

    def is_zero(self) -> bool:
        """True when every angle is a whole number of turns."""
        return all(
            abs(_clamp_axis(a)) <= _ANGLE_TOLERANCE
            for a in (self.pitch, self.yaw, self.roll)
        )

    def _matrix(self) -> Matrix:
        sp, cp = math.sin(math.radians(self.pitch)), math.cos(math.radians(self.pitch))
        sy, cy = math.sin(math.radians(self.yaw)), math.cos(math.radians(self.yaw))
        sr, cr = math.sin(math.radians(self.roll)), math.cos(math.radians(self.roll))
        return (
            (cp * cy, cp * sy, sp),
            (sr * sp * cy - cr * sy, sr * sp * sy + cr * cy, -sr * cp),
            (-(cr * sp * cy + sr * sy), cy * sr - cr * sp * sy, cr * cp),
        )

    @classmethod
    def _from_matrix(cls, m: Matrix) -> Rotator:
        x_axis, y_axis, z_axis = m
        pitch = math.degrees(math.atan2(x_axis[2], math.hypot(x_axis[0], x_axis[1])))
        yaw = math.degrees(math.atan2(x_axis[1], x_axis[0]))
        sy_axis = cls(pitch, yaw, 0.0)._matrix()[1]
        roll = math.degrees(math.atan2(_dot(z_axis, sy_axis), _dot(y_axis, sy_axis)))
        return cls(pitch, yaw, roll)

    def inverse(self) -> Rotator:
        """The rotation that undoes this one."""
        m = self._matrix()
        transposed = tuple(tuple(m[r][c] for r in range(3)) for c in range(3))
        return Rotator._from_matrix(transposed)

    def rotate_vector(self, v: Vec3) -> Vec3:
        """Apply the rotation to ``v``."""
        m = self._matrix()
        x, y, z = v
        return tuple(x * m[0][c] + y * m[1][c] + z * m[2][c] for c in range(3))


def zone_pos(index: VoxelIndex) -> Vec3:
    """The world position of a zone's centre."""
    return (index.x * ZONE_SIZE, index.y * ZONE_SIZE, index.z * ZONE_SIZE)


def sphere_intersects_box(center: Vec3, radius: float, lower: Vec3, upper: Vec3) -> bool:
    """True when a sphere touches or overlaps an axis-aligned box."""
    dist_sq = 0.0
    for c, lo, hi in zip(center, lower, upper):
        if c < lo:
            dist_sq += (c - lo) ** 2
        elif c > hi:
            dist_sq += (c - hi) ** 2
    return dist_sq <= radius * radius


def zones_in_reach(base_index: VoxelIndex, origin: Vec3, extend: float) -> list[VoxelIndex]:
    """The zones around ``base_index`` that an edit at ``origin`` can touch."""
    half = ZONE_SIZE / 2
    reach = extend * 2.0
    result = []
    for dx in _NEIGHBOUR_OFFSETS:
        for dy in _NEIGHBOUR_OFFSETS:
            for dz in _NEIGHBOUR_OFFSETS:
                index = base_index + VoxelIndex(dx, dy, dz)
                centre = zone_pos(index)
                lower = tuple(c - half for c in centre)
                upper = tuple(c + half for c in centre)
                if sphere_intersects_box(origin, reach, lower, upper):
                    result.append(index)
    return result


def dig_sphere_density(rel: Vec3, extend: float, noise: float = 0.0) -> float | None:
    """Density a spherical hole leaves at ``rel`` (relative to its centre).

    None when the point is out of reach. The caller keeps the lower of this
    and the old density.
    """
    r = math.sqrt(_dot(rel, rel))
    if r >= extend + EDIT_MARGIN:
        return None
    return _sigmoid((extend - r) / 10.0) + noise


def dig_cylinder_density(
    rel: Vec3, radius: float, length: float, noise: float = 0.0
) -> float | None:
    """Density a cylindrical hole along the local Z axis leaves at ``rel``."""
    x, y, z = rel
    r = math.sqrt(x * x + y * y)
    if not (r < radius + EDIT_MARGIN and -length < z < length):
        return None
    return _sigmoid((radius - r) / 10.0) + noise


def dig_cube_density(rel: Vec3, extend: float, noise: float = 0.0) -> float | None:
    """Density a cube hole of half-size ``extend`` leaves at ``rel``."""
    limit = extend + EDIT_MARGIN
    if not all(-limit <= c <= limit for c in rel):
        return None
    density = 1.0
    for c in rel:
        density *= _sigmoid((extend - c) / 10.0) * _sigmoid((-extend - c) / 10.0)
    return density + noise


def _near_face(p: float, upper: float, lower: float) -> bool:
    return (
        abs(p - upper) < _COMPLEX_FACE_THRESHOLD
        or abs(-p + lower) < _COMPLEX_FACE_THRESHOLD
    )


def _face_density(p: float, upper: float, lower: float) -> float:
    return _sigmoid((upper - p) / _COMPLEX_FALLOFF) + _sigmoid((-lower + p) / _COMPLEX_FALLOFF)


def dig_cube_complex_density(
    rel: Vec3,
    box: Box,
    noise: NoiseFunction | None = None,
    noise_at: Vec3 = (0.0, 0.0, 0.0),
) -> float | None:
    """Density an arbitrary box hole leaves at ``rel``, clamped to 0..1.

    ``noise`` is sampled at ``noise_at`` (the voxel's world position) near
    the X and Y faces; the Z faces get no noise.
    """
    lower = tuple(c - _COMPLEX_EXPAND for c in box.min)
    upper = tuple(c + _COMPLEX_EXPAND for c in box.max)
    if not all(lo <= c <= hi for c, lo, hi in zip(rel, lower, upper)):
        return None

    def sample() -> float:
        return noise(noise_at) if noise is not None else 0.0

    px, py, pz = rel
    r = 0.0
    if _near_face(px, box.max[0], box.min[0]):
        r = _face_density(px, box.max[0], box.min[0]) + sample()
    if _near_face(py, box.max[1], box.min[1]) and r < 0.5:
        r = _face_density(py, box.max[1], box.min[1]) + sample()
    if _near_face(pz, box.max[2], box.min[2]) and r < 0.5:
        r = _face_density(pz, box.max[2], box.min[2])
    return min(max(r, 0.0), 1.0)


def fill_cube(rel: Vec3, extend: float) -> tuple[bool, bool]:
    """Whether a cube fill makes ``rel`` solid, and whether it sets its material."""
    solid = all(-extend < c < extend for c in rel)
    margin = extend + EDIT_MARGIN
    material = all(-margin < c < margin for c in rel)
    return solid, material


def fill_round_density(
    rel: Vec3, extend: float, density: float, strength: float
) -> tuple[float | None, bool]:
    """New density from a round fill (None if unchanged) and whether material is set."""
    rl = math.sqrt(_dot(rel, rel))
    new_density = None
    if rl < extend:
        new_density = math.inf if rl == 0.0 else density + strength / rl
    return new_density, rl < extend + EDIT_MARGIN