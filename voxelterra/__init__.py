"""Voxel terrain zone indexes, key/value zone files, mesh encoding, material caching and dig/fill densities."""

__version__ = "0.1.0"
__all__ = [
    "codec",
    "common",
    "edit",
    "kvdb",
    "materials",
    "mesh",
    "serialization",
    "storage",
    "voxel_index",
]