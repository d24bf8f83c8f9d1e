"""On-disk storage of zones: headers with meshes, voxel data and placed objects."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from voxelterra.codec import (
    VOXEL_DATA_COMPRESS_THRESHOLD,
    compress,
    decode_zone_record,
    decompress,
    deserialize_instanced_meshes,
    deserialize_mesh_data,
    encode_zone_record,
    serialize_instanced_meshes,
    serialize_mesh_data,
)
from voxelterra.common import (
    InstanceMeshArray,
    InstancedMeshType,
    SandboxFoliage,
    ZoneFileHeader,
    ZoneFlag,
)
from voxelterra.kvdb import KvFile, KvFileError
from voxelterra.mesh import MeshData
from voxelterra.voxel_index import VoxelIndex

log = logging.getLogger(__name__)

TERRAIN_FILE = "terrain.dat"
VOXEL_DATA_FILE = "terrain_voxeldata.dat"
OBJECTS_FILE = "terrain_objects.dat"
MAP_INFO_FILE = "terrain.json"
METADATA_FILE = "terrain_meta.dat"


def _open_kv_file(kv_file: KvFile, path: Path) -> None:
    if not path.exists():
        KvFile.create(path, {})
    kv_file.open(path)


class TerrainStorage:
    """The three store files of a saved map, kept in one directory."""

    def __init__(self, save_dir) -> None:
        self.save_dir = Path(save_dir)
        self._terrain = KvFile()
        self._voxels = KvFile()
        self._objects = KvFile()

    @property
    def map_info_path(self) -> Path:
        return self.save_dir / MAP_INFO_FILE

    @property
    def metadata_path(self) -> Path:
        return self.save_dir / METADATA_FILE

    # ----------------------------------------------------------- lifecycle

    def open(self) -> None:
        """Create the save directory and store files as needed, then open them."""
        try:
            self.save_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise KvFileError(f"unable to create save directory {self.save_dir}") from exc
        log.info("%s", self.save_dir)
        try:
            _open_kv_file(self._terrain, self.save_dir / TERRAIN_FILE)
            _open_kv_file(self._voxels, self.save_dir / VOXEL_DATA_FILE)
            _open_kv_file(self._objects, self.save_dir / OBJECTS_FILE)
        except Exception:
            self.close()
            raise

    def close(self) -> None:
        """Close all store files; safe to call twice."""
        self._terrain.close()
        self._voxels.close()
        self._objects.close()

    def __enter__(self) -> TerrainStorage:
        self.open()
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # -------------------------------------------------------------- writes

    def save_zone(
        self,
        index: VoxelIndex,
        voxel_data: bytes | None = None,
        mesh_data: MeshData | None = None,
        object_data: Mapping[int, InstanceMeshArray] | None = None,
        internal_solid: bool = False,
    ) -> ZoneFileHeader:
        """Write one zone; returns the header stored in the terrain file.

        ``voxel_data`` is the serialized voxel block; it is compressed when it
        is larger than a bare header. ``internal_solid`` is recorded only for
        zones without a mesh.
        """
        header = ZoneFileHeader()
        stored_voxels = None
        if voxel_data is None:
            header.set_flag(ZoneFlag.NO_VOXEL_DATA)
        else:
            stored_voxels = bytes(voxel_data)
            if len(stored_voxels) > VOXEL_DATA_COMPRESS_THRESHOLD:
                stored_voxels = compress(stored_voxels)

        mesh_bytes = serialize_mesh_data(mesh_data) if mesh_data is not None else None
        if mesh_bytes:
            header.len_md = len(mesh_bytes)
        else:
            header.set_flag(ZoneFlag.NO_MESH)
            if internal_solid:
                header.set_flag(ZoneFlag.INTERNAL_SOLID)

        self._terrain.save(index, encode_zone_record(header, mesh_bytes))
        if stored_voxels is not None:
            self._voxels.save(index, stored_voxels)
        if object_data is not None:
            self._objects.save(index, serialize_instanced_meshes(object_data))
        return header

    def save_objects(
        self, index: VoxelIndex, object_data: Mapping[int, InstanceMeshArray]
    ) -> None:
        """Write only the placed objects of a zone."""
        self._objects.save(index, serialize_instanced_meshes(object_data))

    # --------------------------------------------------------------- reads

    def zone_header(self, index: VoxelIndex) -> ZoneFileHeader | None:
        """The stored header of a zone, or None when the zone was never saved."""
        data = self._terrain.load_data(index)
        if not data:
            return None
        return ZoneFileHeader.unpack(data)

    def load_mesh_and_objects(
        self,
        index: VoxelIndex,
        foliage_map: Mapping[int, SandboxFoliage],
        mesh_types: Mapping[int, InstancedMeshType],
    ) -> tuple[MeshData | None, dict[int, InstanceMeshArray]]:
        """The stored mesh (None if absent) and object placements of a zone."""
        data = self._terrain.load_data(index)
        if not data:
            return None, {}

        mesh_data = None
        _header, mesh_bytes = decode_zone_record(data)
        if mesh_bytes:
            mesh_data = deserialize_mesh_data(decompress(mesh_bytes), 0)

        objects: dict[int, InstanceMeshArray] = {}
        object_bytes = self._objects.load_data(index)
        if object_bytes:
            objects = deserialize_instanced_meshes(object_bytes, foliage_map, mesh_types)
        return mesh_data, objects

    def load_voxel_data(self, index: VoxelIndex) -> bytes | None:
        """The serialized voxel block of a zone, decompressed, or None."""
        data = self._voxels.load_data(index)
        if not data:
            log.warning("no voxel data found in file for %s", index)
            return None
        if len(data) > VOXEL_DATA_COMPRESS_THRESHOLD:
            return decompress(data)
        return data