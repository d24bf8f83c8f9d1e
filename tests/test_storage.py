import zlib

import pytest

from voxelterra.common import (
    InstanceMeshArray,
    InstancedMeshType,
    InstantMeshData,
    SandboxFoliage,
    ZoneFlag,
    mesh_type_code,
)
from voxelterra.kvdb import KvFile, KvFileError
from voxelterra.mesh import MeshData, MeshVertex
from voxelterra.storage import (
    OBJECTS_FILE,
    TERRAIN_FILE,
    VOXEL_DATA_FILE,
    TerrainStorage,
)
from voxelterra.voxel_index import VoxelIndex

INDEX = VoxelIndex(1, -2, 3)


def _mesh():
    mesh = MeshData()
    whole = mesh.lod_sections[0].whole_mesh
    whole.add_vertex(MeshVertex((1.0, 2.0, 3.0), (0.0, 0.0, 1.0), 0))
    whole.add_vertex(MeshVertex((4.0, 5.0, 6.0), (0.0, 1.0, 0.0), 0))
    whole.indices.extend([0, 1, 0])
    return mesh


def _objects():
    mesh_type = InstancedMeshType(mesh_type_id=7, mesh_variant_id=0, mesh="rock")
    placement = InstantMeshData(1.5, 2.5, 3.5, 0.0, 90.0, 0.0, 1.0, 1.0, 2.0)
    return {mesh_type.mesh_type_code(): InstanceMeshArray([placement], mesh_type)}


def test_open_creates_directory_and_files(tmp_path):
    save_dir = tmp_path / "Map" / "World 0"
    with TerrainStorage(save_dir):
        names = sorted(p.name for p in save_dir.iterdir())
    assert names == sorted([TERRAIN_FILE, VOXEL_DATA_FILE, OBJECTS_FILE])


def test_missing_zone(tmp_path):
    with TerrainStorage(tmp_path) as storage:
        assert storage.zone_header(INDEX) is None
        assert storage.load_voxel_data(INDEX) is None
        assert storage.load_mesh_and_objects(INDEX, {}, {}) == (None, {})


def test_mesh_round_trip(tmp_path):
    original = _mesh()
    with TerrainStorage(tmp_path) as storage:
        written = storage.save_zone(INDEX, b"\x01" * 64, original, None)
        header = storage.zone_header(INDEX)
        loaded, objects = storage.load_mesh_and_objects(INDEX, {}, {})
    assert header == written
    assert header.len_md > 0
    assert not header.is_set(ZoneFlag.NO_MESH)
    assert not header.is_set(ZoneFlag.NO_VOXEL_DATA)
    assert objects == {}
    whole = loaded.lod_sections[0].whole_mesh
    assert whole.vertices == original.lod_sections[0].whole_mesh.vertices
    assert whole.indices == [0, 1, 0]
    assert loaded.collision_mesh is whole


def test_large_voxel_data_is_stored_compressed(tmp_path):
    voxels = b"\x07" * 500
    with TerrainStorage(tmp_path) as storage:
        storage.save_zone(INDEX, voxels, None, None)
    with KvFile() as raw:
        raw.open(tmp_path / VOXEL_DATA_FILE)
        stored = raw.load_data(INDEX)
    assert len(stored) < len(voxels)
    assert zlib.decompress(stored) == voxels


def test_flags_without_mesh_or_voxels(tmp_path):
    with TerrainStorage(tmp_path) as storage:
        storage.save_zone(INDEX, None, None, None, internal_solid=True)
        header = storage.zone_header(INDEX)
    assert header.is_set(ZoneFlag.NO_MESH)
    assert header.is_set(ZoneFlag.NO_VOXEL_DATA)
    assert header.is_set(ZoneFlag.INTERNAL_SOLID)
    assert header.len_md == 0


def test_internal_solid_ignored_with_mesh(tmp_path):
    with TerrainStorage(tmp_path) as storage:
        header = storage.save_zone(INDEX, b"v", _mesh(), None, internal_solid=True)
    assert not header.is_set(ZoneFlag.INTERNAL_SOLID)
    assert not header.is_set(ZoneFlag.NO_MESH)


def test_objects_round_trip_with_known_mesh_types(tmp_path):
    objects = _objects()
    mesh_types = {code: array.mesh_type for code, array in objects.items()}
    with TerrainStorage(tmp_path) as storage:
        storage.save_zone(INDEX, None, None, objects)
        mesh, loaded = storage.load_mesh_and_objects(INDEX, {}, mesh_types)
    assert mesh is None
    code = mesh_type_code(7, 0)
    assert list(loaded) == [code]
    assert loaded[code].transforms == objects[code].transforms
    assert loaded[code].mesh_type.mesh == "rock"


def test_objects_resolved_through_foliage(tmp_path):
    foliage = {7: SandboxFoliage(mesh_variants=["grass"], start_cull_distance=11)}
    with TerrainStorage(tmp_path) as storage:
        storage.save_zone(INDEX, None, None, _objects())
        _, loaded = storage.load_mesh_and_objects(INDEX, foliage, {})
    array = loaded[mesh_type_code(7, 0)]
    assert array.mesh_type.mesh == "grass"
    assert array.mesh_type.start_cull_distance == 11
    assert len(array.transforms) == 1


def test_save_objects_replaces_objects(tmp_path):
    objects = _objects()
    mesh_types = {code: array.mesh_type for code, array in objects.items()}
    with TerrainStorage(tmp_path) as storage:
        storage.save_zone(INDEX, None, None, objects)
        storage.save_objects(INDEX, {})
        _, loaded = storage.load_mesh_and_objects(INDEX, {}, mesh_types)
    assert loaded == {}


def test_data_persists_across_reopen(tmp_path):
    with TerrainStorage(tmp_path) as storage:
        storage.save_zone(INDEX, b"persisted voxel block data", _mesh(), None)
    with TerrainStorage(tmp_path) as storage:
        assert storage.load_voxel_data(INDEX) == b"persisted voxel block data"
        mesh, _ = storage.load_mesh_and_objects(INDEX, {}, {})
    assert len(mesh.lod_sections[0].whole_mesh.vertices) == 2


def test_save_after_close_raises(tmp_path):
    storage = TerrainStorage(tmp_path)
    with storage:
        pass
    with pytest.raises(KvFileError):
        storage.save_zone(INDEX, b"v", None, None)


def test_paths_live_in_save_dir(tmp_path):
    storage = TerrainStorage(tmp_path)
    assert storage.map_info_path == tmp_path / "terrain.json"
    assert storage.metadata_path == tmp_path / "terrain_meta.dat"