"""Binary and JSON encodings of zone meshes, objects and map metadata."""

from __future__ import annotations

import json
import logging
import struct
import zlib
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Mapping

from voxelterra.common import (
    InstanceMeshArray,
    InstancedMeshType,
    InstantMeshData,
    MapInfo,
    SandboxFoliage,
    ZoneFileHeader,
    ZoneModificationData,
    mesh_type_code,
)
from voxelterra.mesh import (
    TRANSITION_PATCH_COUNT,
    MeshContainer,
    MeshData,
    MeshMaterialSection,
    MeshMaterialTransitionSection,
)
from voxelterra.serialization import Deserializer, Serializer
from voxelterra.voxel_index import VoxelIndex

log = logging.getLogger(__name__)

# Voxel data larger than its header plus one 32-bit word is stored compressed.
VOXEL_DATA_COMPRESS_THRESHOLD = 16

METADATA_VERSION = 0

_JSON_KEYS = {
    "format_version": "formatVersion",
    "format_subversion": "formatSubversion",
    "save_timestamp": "saveTimestamp",
    "status": "status",
    "world_seed": "worldSeed",
}


# --------------------------------------------------------------- compression


def compress(data: bytes) -> bytes:
    """Compress ``data`` with zlib."""
    return zlib.compress(bytes(data))


def decompress(data: bytes) -> bytes:
    """Inflate zlib data; data that is not compressed yields empty bytes."""
    try:
        return zlib.decompress(bytes(data))
    except zlib.error:
        log.debug("data was not compressed")
        return b""


# --------------------------------------------------------------- mesh data


def serialize_mesh_container(container: MeshContainer, serializer: Serializer) -> None:
    """Write the regular and then the transition sections of ``container``."""
    serializer.write("i", len(container.material_sections))
    for material_id, section in container.material_sections.items():
        serializer.write("H", material_id)
        section.mesh.serialize(serializer)

    serializer.write("i", len(container.transition_sections))
    for material_id, section in container.transition_sections.items():
        serializer.write("H", material_id)
        ids = sorted(section.material_ids)
        serializer.write("i", len(ids))
        for element in ids:
            serializer.write("H", element)
        section.mesh.serialize(serializer)


def deserialize_mesh_container(container: MeshContainer, deserializer: Deserializer) -> None:
    """Read sections written by :func:`serialize_mesh_container` into ``container``."""
    regular_count = deserializer.read_one("i")
    for _ in range(regular_count):
        material_id = deserializer.read_one("H")
        section = container.material_sections.setdefault(material_id, MeshMaterialSection())
        section.material_id = material_id
        section.mesh.deserialize(deserializer)

    transition_count = deserializer.read_one("i")
    for _ in range(transition_count):
        material_id = deserializer.read_one("H")
        set_size = deserializer.read_one("i")
        material_ids = {deserializer.read_one("H") for _ in range(set_size)}
        section = container.transition_sections.setdefault(
            material_id, MeshMaterialTransitionSection()
        )
        section.material_id = material_id
        section.material_ids = material_ids
        section.mesh.deserialize(deserializer)


def serialize_mesh_data(mesh_data: MeshData) -> bytes:
    """Encode every LOD of ``mesh_data`` and compress the result."""
    serializer = Serializer()
    serializer.write("i", len(mesh_data.lod_sections))
    for lod_index, lod in enumerate(mesh_data.lod_sections):
        serializer.write("i", lod_index)
        lod.whole_mesh.serialize(serializer)
        serialize_mesh_container(lod.regular, serializer)
        if lod_index > 0:
            for patch in lod.transition_patches[:TRANSITION_PATCH_COUNT]:
                serialize_mesh_container(patch, serializer)
    return compress(serializer.getvalue())


def deserialize_mesh_data(data: bytes, collision_lod_index: int) -> MeshData:
    """Decode uncompressed mesh bytes; the collision mesh is that LOD's whole mesh."""
    mesh_data = MeshData()
    lod_count = len(mesh_data.lod_sections)
    if not 0 <= collision_lod_index < lod_count:
        raise ValueError(f"collision LOD {collision_lod_index} is out of range")

    deserializer = Deserializer(data)
    stored = deserializer.read_one("i")
    for position in range(stored):
        lod_index = deserializer.read_one("i")
        if not 0 <= lod_index < lod_count:
            raise ValueError(f"LOD index {lod_index} is out of range")
        lod = mesh_data.lod_sections[lod_index]
        lod.whole_mesh.deserialize(deserializer)
        deserialize_mesh_container(lod.regular, deserializer)
        if position > 0:
            for patch in lod.transition_patches:
                deserialize_mesh_container(patch, deserializer)

    mesh_data.collision_mesh = mesh_data.lod_sections[collision_lod_index].whole_mesh
    return mesh_data


# --------------------------------------------------------------- zone records


def encode_zone_record(header: ZoneFileHeader, mesh_bytes: bytes | None) -> bytes:
    """A zone header followed by the compressed mesh bytes, if any."""
    return header.pack() + (bytes(mesh_bytes) if mesh_bytes else b"")


def decode_zone_record(data: bytes) -> tuple[ZoneFileHeader, bytes | None]:
    """Split a zone record into its header and compressed mesh bytes."""
    header = ZoneFileHeader.unpack(data)
    if header.len_md == 0:
        return header, None
    deserializer = Deserializer(data, ZoneFileHeader.SIZE)
    return header, deserializer.read_bytes(header.len_md)


# --------------------------------------------------------------- instanced meshes


def serialize_instanced_meshes(instance_map: Mapping[int, InstanceMeshArray]) -> bytes:
    """Encode mesh placements; each transform must be an :class:`InstantMeshData`."""
    serializer = Serializer()
    serializer.write("i", len(instance_map))
    for array in instance_map.values():
        mesh_type = array.mesh_type
        serializer.write(
            "IIi", mesh_type.mesh_type_id, mesh_type.mesh_variant_id, len(array.transforms)
        )
        for transform in array.transforms:
            if not isinstance(transform, InstantMeshData):
                raise TypeError(
                    f"transforms must be InstantMeshData, not {type(transform).__name__}"
                )
            serializer.write_bytes(transform.pack())
    return serializer.getvalue()


def _resolve_mesh_type(
    type_id: int,
    variant_id: int,
    foliage_map: Mapping[int, SandboxFoliage],
    mesh_types: Mapping[int, InstancedMeshType],
) -> InstancedMeshType:
    mesh_type = InstancedMeshType()
    foliage = foliage_map.get(type_id)
    if foliage is not None:
        if len(foliage.mesh_variants) > variant_id:
            mesh_type.mesh = foliage.mesh_variants[variant_id]
            mesh_type.mesh_type_id = type_id
            mesh_type.mesh_variant_id = variant_id
            mesh_type.start_cull_distance = foliage.start_cull_distance
            mesh_type.end_cull_distance = foliage.end_cull_distance
    else:
        known = mesh_types.get(mesh_type_code(type_id, variant_id))
        if known is not None:
            mesh_type = replace(known)
    return mesh_type


def deserialize_instanced_meshes(
    data: bytes,
    foliage_map: Mapping[int, SandboxFoliage],
    mesh_types: Mapping[int, InstancedMeshType],
) -> dict[int, InstanceMeshArray]:
    """Decode placements, keeping only those whose mesh is known."""
    result: dict[int, InstanceMeshArray] = {}
    deserializer = Deserializer(data)
    mesh_count = deserializer.read_one("i")
    for _ in range(mesh_count):
        type_id, variant_id, instance_count = deserializer.read("IIi")
        mesh_type = _resolve_mesh_type(type_id, variant_id, foliage_map, mesh_types)
        array = result.setdefault(mesh_type.mesh_type_code(), InstanceMeshArray())
        array.mesh_type = mesh_type
        for _ in range(instance_count):
            placement = InstantMeshData.unpack(deserializer.read_bytes(InstantMeshData.SIZE))
            if mesh_type.mesh is not None:
                array.transforms.append(placement)
    return result


# --------------------------------------------------------------- metadata files


def save_terrain_metadata(path, vstamps: Mapping[VoxelIndex, ZoneModificationData]) -> None:
    """Write the version stamp of every zone to ``path``."""
    serializer = Serializer()
    serializer.write("ii", METADATA_VERSION, len(vstamps))
    for index, modification in vstamps.items():
        serializer.write("iiiI", index.x, index.y, index.z, modification.vstamp)
    Path(path).write_bytes(serializer.getvalue())


def load_terrain_metadata(path) -> dict[VoxelIndex, ZoneModificationData]:
    """Read zone version stamps; a missing or empty file yields an empty map."""
    try:
        data = Path(path).read_bytes()
    except OSError:
        data = b""
    if not data:
        log.warning("Unable to load metadata!")
        return {}

    deserializer = Deserializer(data)
    _version, size = deserializer.read("ii")
    result: dict[VoxelIndex, ZoneModificationData] = {}
    for _ in range(size):
        x, y, z, vstamp = deserializer.read("iiiI")
        result[VoxelIndex(x, y, z)] = ZoneModificationData(vstamp)
    return result


def save_map_info(path, map_info: MapInfo) -> None:
    """Write ``map_info`` as a JSON object."""
    values = asdict(map_info)
    document = {_JSON_KEYS[name]: values[name] for name in _JSON_KEYS}
    Path(path).write_text(json.dumps(document, indent="\t"), encoding="utf-8")


def load_map_info(path) -> MapInfo | None:
    """Read map info; None when the file cannot be read, ValueError when malformed."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError:
        log.warning("Error loading json file")
        return None
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"malformed map info in {path}") from exc
    if not isinstance(document, dict):
        raise ValueError(f"map info in {path} is not a JSON object")

    lowered = {str(key).lower(): value for key, value in document.items()}
    info = MapInfo()
    for field_info in fields(MapInfo):
        key = _JSON_KEYS[field_info.name].lower()
        if key not in lowered:
            continue
        value = lowered[key]
        current = getattr(info, field_info.name)
        try:
            converted = type(current)(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"bad value for {field_info.name}: {value!r}") from exc
        setattr(info, field_info.name, converted)
    return info