"""
Submap buffer for a chunked world map.

Keeps submaps in memory, loads missing ones from region files on demand
and saves them back one region at a time.
"""

from mapbuffer.buffer import MapBuffer, SaveResult
from mapbuffer.coords import (
    REGION_SIZE,
    SEGMENT_SIZE,
    Tripoint,
    as_tripoint,
    region_of,
    segment_of,
)
from mapbuffer.errors import (
    EmptyOwnershipError,
    MapBufferError,
    RegionFormatError,
    RegionWriteError,
    SaveError,
    SubmapFormatError,
    SubmapInUseError,
)
from mapbuffer.handle import OwnedSubmap, SubmapHandle
from mapbuffer.region import (
    REGION_FILE_EXTENSION,
    REGION_FORMAT_VERSION,
    RegionPayload,
    decode_region,
    encode_region,
)
from mapbuffer.storage import FilesystemRegionStore, MemoryRegionStore, RegionStore
from mapbuffer.submap import SUBMAP_SIZE, Submap, SubmapCodec

__all__ = [
    "MapBuffer",
    "SaveResult",
    "Tripoint",
    "as_tripoint",
    "region_of",
    "segment_of",
    "OwnedSubmap",
    "SubmapHandle",
    "RegionPayload",
    "encode_region",
    "decode_region",
    "RegionStore",
    "MemoryRegionStore",
    "FilesystemRegionStore",
    "Submap",
    "SubmapCodec",
    "MapBufferError",
    "SubmapFormatError",
    "RegionFormatError",
    "RegionWriteError",
    "SubmapInUseError",
    "EmptyOwnershipError",
    "SaveError",
    "REGION_SIZE",
    "SEGMENT_SIZE",
    "SUBMAP_SIZE",
    "REGION_FILE_EXTENSION",
    "REGION_FORMAT_VERSION",
]
