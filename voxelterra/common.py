"""Shared terrain records: foliage, materials, map info and zone file headers."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from voxelterra.mesh import Vec3

_UINT32_MAX = 0xFFFFFFFF
_ZONE_HEADER = struct.Struct("<II")
_INSTANT_MESH = struct.Struct("<9f")


class FoliageType(IntEnum):
    """Kinds of foliage the generator can place."""

    GRASS = 0
    TREE = 1
    CAVE = 2
    CUSTOM = 3
    BUSH = 4
    FLOWER = 5
    FOREST_FOLIAGE = 6


@dataclass
class SandboxFoliage:
    """How one foliage type is spawned and drawn."""

    type: FoliageType = FoliageType.GRASS
    mesh_variants: list[Any] = field(default_factory=list)
    spawn_step: int = 25
    probability: float = 1.0
    start_cull_distance: int = 100
    end_cull_distance: int = 500
    offset_range: float = 10.0
    scale_min_z: float = 0.5
    scale_max_z: float = 1.0


@dataclass
class UndergroundLayer:
    """A material layer starting at a given depth below ground."""

    mat_id: int = 0
    start_depth: float = 0.0
    name: str = ""


class TerrainMaterialType(IntEnum):
    SOIL = 0
    ROCK = 1


@dataclass
class TerrainMaterial:
    """A terrain material and its textures."""

    name: str = ""
    type: TerrainMaterialType = TerrainMaterialType.SOIL
    texture_diffuse: Any = None
    texture_normal: Any = None


@dataclass
class MapInfo:
    """Metadata stored alongside a saved map."""

    format_version: int = 0
    format_subversion: int = 0
    save_timestamp: float = 0.0
    status: str = ""
    world_seed: int = 0


@dataclass
class TerrainDebugInfo:
    """Counts of live terrain objects and queued work."""

    count_vd: int = 0
    count_md: int = 0
    count_cd: int = 0
    conveyor_size: int = 0
    task_pool_size: int = 0
    out_of_sync: int = 0
    count_zones: int = 0


def mesh_type_code(mesh_type_id: int, mesh_variant_id: int) -> int:
    """Combine a type id (low 32 bits) and a variant id (high 32 bits)."""
    for name, value in (("mesh_type_id", mesh_type_id), ("mesh_variant_id", mesh_variant_id)):
        if not 0 <= value <= _UINT32_MAX:
            raise ValueError(f"{name} {value} is out of the 32-bit range")
    return mesh_type_id | (mesh_variant_id << 32)


@dataclass
class InstancedMeshType:
    """A mesh placed many times in a zone, such as trees or rocks."""

    mesh_type_id: int = 0
    mesh_variant_id: int = 0
    mesh: Any = None
    start_cull_distance: int = 4000
    end_cull_distance: int = 8000
    sandbox_class_id: int = 0

    def mesh_type_code(self) -> int:
        return mesh_type_code(self.mesh_type_id, self.mesh_variant_id)


@dataclass
class InstanceMeshArray:
    """All placements of one instanced mesh type."""

    transforms: list[Any] = field(default_factory=list)
    mesh_type: InstancedMeshType = field(default_factory=InstancedMeshType)


class ZoneFlag(IntEnum):
    """Bit positions in a zone file header."""

    GENERATED = 0
    NO_MESH = 1
    NO_VOXEL_DATA = 2
    INTERNAL_SOLID = 3


@dataclass
class ZoneFileHeader:
    """Flags and mesh-data length at the start of a zone record."""

    flags: int = 0
    len_md: int = 0

    SIZE = _ZONE_HEADER.size

    def is_set(self, flag: ZoneFlag) -> bool:
        return bool((self.flags >> int(flag)) & 1)

    def set_flag(self, flag: ZoneFlag) -> None:
        self.flags |= 1 << int(flag)

    def pack(self) -> bytes:
        return _ZONE_HEADER.pack(self.flags, self.len_md)

    @classmethod
    def unpack(cls, data: bytes) -> ZoneFileHeader:
        """Read a header from the first bytes of ``data``."""
        if len(data) < _ZONE_HEADER.size:
            raise ValueError(
                f"zone header needs {_ZONE_HEADER.size} bytes, got {len(data)}"
            )
        return cls(*_ZONE_HEADER.unpack_from(data))


@dataclass
class ZoneModificationData:
    """Version stamp of a zone, bumped on every edit."""

    vstamp: int = 0


@dataclass
class InstantMeshData:
    """Stored placement of one mesh instance."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    scale_z: float = 1.0

    SIZE = _INSTANT_MESH.size

    @property
    def location(self) -> Vec3:
        return (self.x, self.y, self.z)

    @property
    def scale(self) -> Vec3:
        return (self.scale_x, self.scale_y, self.scale_z)

    def pack(self) -> bytes:
        return _INSTANT_MESH.pack(
            self.x, self.y, self.z,
            self.roll, self.pitch, self.yaw,
            self.scale_x, self.scale_y, self.scale_z,
        )

    @classmethod
    def unpack(cls, data: bytes) -> InstantMeshData:
        if len(data) < _INSTANT_MESH.size:
            raise ValueError(
                f"instance record needs {_INSTANT_MESH.size} bytes, got {len(data)}"
            )
        return cls(*_INSTANT_MESH.unpack_from(data))


@dataclass
class TerrainRegion:
    """A region of zones and whether it has been generated."""

    x: int = 0
    y: int = 0
    generated: bool = False


@dataclass
class SwapAreaParams:
    """Size of the area kept loaded around a player."""

    radius: float = 3000.0
    terrain_size_min_z: int = -5
    terrain_size_max_z: int = 5