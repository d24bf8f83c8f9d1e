# voxelterra

Building blocks for a chunked voxel terrain: integer zone indexes, a
file-backed key/value store keyed by those indexes, mesh data and its binary
encoding, per-zone storage in a map directory, caching of material instances
and the density functions used to dig holes in and fill terrain.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests, install with the `test` extra and run `pytest`:

```
pip install ".[test]"
pytest
```

## Modules

### `voxelterra.voxel_index`

`VoxelIndex(x, y, z)` and `VoxelIndex4(x, y, z, w)` are frozen, hashable
dataclasses. `VoxelIndex` supports `+` and `-` with another index, `*` by an
integer and `/` by an integer (each component divided, truncating toward
zero). `to_bytes()` packs it as three little-endian signed 32-bit integers
(12 bytes, raising `OverflowError` if a component does not fit) and
`VoxelIndex.from_bytes()` reverses that. `VoxelIndex4` supports `+` and `-`,
and `VoxelIndex4.uniform(value)` builds one with all components equal.

### `voxelterra.serialization`

`Serializer` appends values packed with `struct` formats (`write(fmt, *args)`,
`write_bytes(data)`, `getvalue()`). `Deserializer(data, position=0)` reads
them back in order with `read(fmt)`, `read_one(fmt)`, `read_bytes(size)` and
`skip(size)`; reading past the end raises `EOFError`. Formats without a byte
order prefix are little-endian with no padding.

### `voxelterra.kvdb`

`KvFile` maps `VoxelIndex` keys to byte values in a single file made of a
header and a chain of key tables (1000 entries each). New values are
appended to the file; erased values leave their space for reuse by a later
value that fits, and a new table is added when the free entries run out.

- `KvFile.create(path, items)` writes a new file holding `items`, replacing
  any file at `path`.
- `open(path)` and `close()`; `KvFile` is also a context manager that closes
  on exit.
- `save(key, value)` stores a value; saving an empty value erases an
  existing key. `erase(key)` removes a key.
- `load_data(key)` returns the bytes or `None`; `key in kv`, `len(kv)` and
  `keys()` describe the live keys.

`KvFile(reserved_value_size)` rounds the space given to each new value up in
blocks of that size. Failing to open, create or read a file, or writing to a
store that is not open, raises `KvFileError`. Keys that are not
`VoxelIndex` raise `TypeError`.

### `voxelterra.mesh`

`MeshVertex` (position, normal, material index), `Box` (an axis-aligned box
grown with `add_point`), and `ProcMeshSection`, which holds vertex and index
lists with their bounds and can `serialize` to a `Serializer` and
`deserialize` from a `Deserializer`. `MeshMaterialSection`,
`MeshMaterialTransitionSection`, `MeshContainer`, `MeshLodSection` (with six
transition patches) and `MeshData` (six levels of detail) group sections
together. `transition_code(material_ids)` packs the four smallest material
ids of a set into a 64-bit code and `decode_transition_code(code)` splits it
into its four slots. `VoxelDataParam` holds mesh generation options.

### `voxelterra.common`

Shared records: `FoliageType`, `SandboxFoliage`, `UndergroundLayer`,
`TerrainMaterialType`, `TerrainMaterial`, `MapInfo`, `TerrainDebugInfo`,
`InstancedMeshType`, `InstanceMeshArray`, `ZoneModificationData`,
`InstantMeshData` (a packed instance placement), `TerrainRegion` and
`SwapAreaParams`. `mesh_type_code(type_id, variant_id)` combines two 32-bit
ids into one 64-bit code. `ZoneFileHeader` carries `ZoneFlag` bits and the
length of the stored mesh, with `is_set`, `set_flag`, `pack` and `unpack`.

### `voxelterra.materials`

`MaterialCache(material_map, regular_base, transition_base)` hands out one
`MaterialInstance` per regular material id (`regular`) and one per set of
blended material ids (`transition`), binding the textures of the materials
found in `material_map` as parameters. Without the matching base material
these return `None`. `material_info(material_id)` looks up a material.

### `voxelterra.codec`

- `compress` / `decompress` (zlib; data that is not compressed decompresses
  to empty bytes).
- `serialize_mesh_container`, `deserialize_mesh_container`,
  `serialize_mesh_data` (compressed) and `deserialize_mesh_data(data,
  collision_lod_index)` (takes uncompressed bytes).
- `encode_zone_record` / `decode_zone_record`: a zone header followed by
  compressed mesh bytes.
- `serialize_instanced_meshes` / `deserialize_instanced_meshes(data,
  foliage_map, mesh_types)`; on reading, placements whose mesh cannot be
  resolved from the foliage map or the known mesh types are dropped.
- `save_terrain_metadata` / `load_terrain_metadata`: the version stamp of
  every zone in a binary file; a missing or empty file loads as an empty map.
- `save_map_info` / `load_map_info`: `MapInfo` as a JSON object.
  `load_map_info` returns `None` when the file cannot be read and raises
  `ValueError` when it is malformed.

### `voxelterra.storage`

`TerrainStorage(save_dir)` keeps the three store files of a map
(`terrain.dat`, `terrain_voxeldata.dat`, `terrain_objects.dat`) in one
directory. `open()` creates the directory and any missing file; used as a
context manager it opens on entry and closes on exit.

- `save_zone(index, voxel_data, mesh_data, object_data, internal_solid)`
  writes a zone and returns the header it stored. `voxel_data` is a
  serialized voxel block as bytes and is compressed when longer than 16
  bytes.
- `save_objects(index, object_data)` writes only the placed objects.
- `zone_header(index)`, `load_mesh_and_objects(index, foliage_map,
  mesh_types)` and `load_voxel_data(index)` read a zone back.
- `map_info_path` and `metadata_path` give the locations of `terrain.json`
  and `terrain_meta.dat`, for use with the functions in `codec`.

### `voxelterra.edit`

`Rotator(pitch, yaw, roll)` in degrees, with `is_zero`, `inverse` and
`rotate_vector`. `zone_pos(index)` is a zone's centre (zones are 1000 units
wide), `sphere_intersects_box` tests a sphere against a box, and
`zones_in_reach(base_index, origin, extend)` lists the neighbouring zones an
edit can touch. The density functions take a point relative to the edit's
origin:

- `dig_sphere_density`, `dig_cylinder_density`, `dig_cube_density` and
  `dig_cube_complex_density` return the density a hole leaves at the point,
  or `None` when the point is out of reach; the caller keeps the lower of
  that and the old density.
- `fill_cube` tells whether a cube fill makes the point solid and whether it
  sets its material; `fill_round_density` returns the new density (or
  `None`) and whether the material is set.

## Example

```python
from voxelterra.kvdb import KvFile
from voxelterra.voxel_index import VoxelIndex

KvFile.create("zones.dat", {})
with KvFile() as kv:
    kv.open("zones.dat")
    kv.save(VoxelIndex(1, 2, 3), b"zone payload")
    assert VoxelIndex(1, 2, 3) in kv
    print(kv.load_data(VoxelIndex(1, 2, 3)))
```

Storing a whole zone:

```python
from voxelterra.storage import TerrainStorage
from voxelterra.voxel_index import VoxelIndex

with TerrainStorage("saves/World 0") as storage:
    storage.save_zone(VoxelIndex(0, 0, 0), None, None, None, False)
    header = storage.zone_header(VoxelIndex(0, 0, 0))
```

## What the package does not do

- It has no voxel grid type: voxel data is stored and loaded as opaque
  bytes, and the density functions in `edit` work on single points that the
  caller supplies.
- It does not generate terrain, noise or meshes; `MeshData` is filled by the
  caller.
- It does not render, simulate physics, stream zones around players or sync
  terrain over a network, and it has no command-line program.