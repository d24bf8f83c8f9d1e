"""Procedural mesh data: vertices, sections, material containers and LOD sets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from voxelterra.serialization import Deserializer, Serializer

LOD_ARRAY_SIZE = 6
ZONE_SIZE = 1000.0
VD_UNGENERATED_LOD = 2
ENABLE_LOD = True
TRANSITION_PATCH_COUNT = 6

Vec3 = tuple[float, float, float]
ZERO: Vec3 = (0.0, 0.0, 0.0)

_PARAMS_FORMAT = "i6f"
_VERTEX_FORMAT = "3d3di4x"
_MAX_TRANSITION_MATERIALS = 4
_UINT16_MAX = 0xFFFF


def _vec(values: Iterable[float]) -> Vec3:
    x, y, z = values
    return (float(x), float(y), float(z))


@dataclass
class MeshVertex:
    """One mesh vertex: position, normal and material index (-1 for none)."""

    pos: Vec3 = ZERO
    normal: Vec3 = ZERO
    mat_idx: int = -1

    def __add__(self, other: MeshVertex) -> MeshVertex:
        if not isinstance(other, MeshVertex):
            return NotImplemented
        return MeshVertex(
            _vec(a + b for a, b in zip(self.pos, other.pos)),
            _vec(a + b for a, b in zip(self.normal, other.normal)),
            -1,
        )

    def __truediv__(self, k: float) -> MeshVertex:
        return MeshVertex(
            _vec(a / k for a in self.pos),
            _vec(a / k for a in self.normal),
            -1,
        )


@dataclass
class Box:
    """An axis-aligned bounding box; invalid until the first point is added."""

    min: Vec3 = ZERO
    max: Vec3 = ZERO
    is_valid: bool = False

    def add_point(self, point: Vec3) -> None:
        """Grow the box to contain ``point``."""
        point = _vec(point)
        if self.is_valid:
            self.min = _vec(min(a, b) for a, b in zip(self.min, point))
            self.max = _vec(max(a, b) for a, b in zip(self.max, point))
        else:
            self.min = point
            self.max = point
            self.is_valid = True


@dataclass
class ProcMeshSection:
    """Vertex and index buffers of one mesh section plus its local bounds."""

    vertices: list[MeshVertex] = field(default_factory=list)
    indices: list[int] = field(default_factory=list)
    local_box: Box = field(default_factory=Box)

    def reset(self) -> None:
        """Clear all mesh data."""
        self.vertices.clear()
        self.indices.clear()
        self.local_box = Box()

    def add_vertex(self, vertex: MeshVertex) -> None:
        """Append a vertex and grow the bounds around it."""
        self.vertices.append(vertex)
        self.local_box.add_point(vertex.pos)

    def serialize(self, serializer: Serializer) -> None:
        """Write vertex count, bounds (max then min), vertices and indices."""
        box = self.local_box
        serializer.write(_PARAMS_FORMAT, len(self.vertices), *box.max, *box.min)
        for vertex in self.vertices:
            serializer.write(_VERTEX_FORMAT, *vertex.pos, *vertex.normal, vertex.mat_idx)
        serializer.write("i", len(self.indices))
        if self.indices:
            serializer.write(f"{len(self.indices)}I", *self.indices)

    def deserialize(self, deserializer: Deserializer) -> None:
        """Replace this section's contents with data written by :meth:`serialize`."""
        vertex_num, *bounds = deserializer.read(_PARAMS_FORMAT)
        if vertex_num < 0:
            raise ValueError(f"negative vertex count {vertex_num}")
        upper, lower = _vec(bounds[:3]), _vec(bounds[3:])
        vertices = []
        for _ in range(vertex_num):
            values = deserializer.read(_VERTEX_FORMAT)
            vertices.append(MeshVertex(_vec(values[0:3]), _vec(values[3:6]), values[6]))
        index_num = deserializer.read_one("i")
        if index_num < 0:
            raise ValueError(f"negative index count {index_num}")
        indices = list(deserializer.read(f"{index_num}I")) if index_num else []
        self.vertices = vertices
        self.indices = indices
        self.local_box = Box(lower, upper, True)


@dataclass
class MeshMaterialSection:
    """The mesh drawn with one material."""

    material_id: int = 0
    mesh: ProcMeshSection = field(default_factory=ProcMeshSection)
    vertex_index_counter: int = 0


@dataclass
class MeshMaterialTransitionSection(MeshMaterialSection):
    """A mesh section blending several materials."""

    transition_code: int = 0
    material_ids: set[int] = field(default_factory=set)


def transition_code(material_ids: Iterable[int]) -> int:
    """Pack the four smallest material ids into a 64-bit code; unused slots are 0."""
    ids = sorted(set(material_ids))[:_MAX_TRANSITION_MATERIALS]
    code = 0
    for slot, material_id in enumerate(ids):
        if not 0 <= material_id <= _UINT16_MAX:
            raise ValueError(f"material id {material_id} is out of the 16-bit range")
        code |= material_id << (16 * slot)
    return code


def decode_transition_code(code: int) -> tuple[int, int, int, int]:
    """Split a transition code back into its four 16-bit material slots."""
    if not 0 <= code < 1 << 64:
        raise ValueError(f"transition code {code} is out of the 64-bit range")
    return tuple((code >> (16 * slot)) & _UINT16_MAX for slot in range(4))


@dataclass
class MeshContainer:
    """Single-material and blended-material sections of one mesh."""

    material_sections: dict[int, MeshMaterialSection] = field(default_factory=dict)
    transition_sections: dict[int, MeshMaterialTransitionSection] = field(
        default_factory=dict
    )


def _patches() -> list[MeshContainer]:
    return [MeshContainer() for _ in range(TRANSITION_PATCH_COUNT)]


@dataclass
class MeshLodSection:
    """The meshes of one level of detail."""

    whole_mesh: ProcMeshSection = field(default_factory=ProcMeshSection)
    regular: MeshContainer = field(default_factory=MeshContainer)
    transition_patches: list[MeshContainer] = field(default_factory=_patches)
    debug_points: list[Vec3] = field(default_factory=list)


def _lod_sections() -> list[MeshLodSection]:
    return [MeshLodSection() for _ in range(LOD_ARRAY_SIZE)]


@dataclass
class MeshData:
    """A complete zone mesh over all levels of detail."""

    lod_sections: list[MeshLodSection] = field(default_factory=_lod_sections)
    collision_mesh: ProcMeshSection | None = None
    timestamp: float = 0.0
    vstamp: int = 0
    base_material_id: int = 0


@dataclass
class VoxelDataParam:
    """Options for generating a mesh from voxel data."""

    generate_lod: bool = False
    collision_lod: int = 0
    z_cut_level: float = 0.0
    z_cut: bool = False
    force_no_cache: bool = False