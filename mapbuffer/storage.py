"""
Region storage backends.

Provides abstract API for reading and writing region payloads.
The actual storage backend can be filesystem, memory, etc.
"""

from __future__ import annotations

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union

from mapbuffer import log
from mapbuffer.coords import REGION_SIZE, SEGMENT_SIZE, Tripoint, as_tripoint, segment_of
from mapbuffer.errors import RegionFormatError, RegionWriteError
from mapbuffer.region import REGION_FILE_EXTENSION, RegionPayload, decode_region, encode_region


class RegionStore(ABC):
    """
    Abstract storage of region payloads.

    One storage unit per region coordinate, holding every stored submap of
    that region. write_region replaces the unit as a whole.
    """

    region_size: int = REGION_SIZE

    # === Abstract API ===

    @abstractmethod
    def read_region(self, region: Tripoint) -> Optional[RegionPayload]:
        """
        Read a region.

        Returns:
            Stored payload or None if nothing is stored for the region.

        Raises:
            RegionFormatError: If stored data is malformed.
        """

    @abstractmethod
    def write_region(self, region: Tripoint, payload: RegionPayload) -> None:
        """
        Replace the stored region with payload.

        Raises:
            OSError, RegionWriteError: If the write failed. The previously
                stored region stays intact.
        """

    @abstractmethod
    def delete_region(self, region: Tripoint) -> None:
        """Delete the stored region, if any."""

    @abstractmethod
    def list_regions(self) -> List[Tripoint]:
        """List all stored regions, sorted."""


class MemoryRegionStore(RegionStore):
    """
    In-memory storage.

    Keeps encoded region files, so every read decodes a fresh payload.
    Records read and write calls; regions listed in fail_writes raise
    RegionWriteError on write.
    """

    def __init__(self, region_size: int = REGION_SIZE) -> None:
        self.region_size = region_size
        self._files: Dict[Tripoint, bytes] = {}
        self.reads: List[Tripoint] = []
        self.writes: List[Tripoint] = []
        self.fail_writes: set = set()

    def read_region(self, region: Tripoint) -> Optional[RegionPayload]:
        region = as_tripoint(region)
        self.reads.append(region)
        content = self._files.get(region)
        if content is None:
            return None
        return decode_region(content, region, self.region_size)

    def write_region(self, region: Tripoint, payload: RegionPayload) -> None:
        region = as_tripoint(region)
        self.writes.append(region)
        if region in self.fail_writes:
            raise RegionWriteError(f"Write of region {region} rejected")
        if payload.region != region:
            raise RegionWriteError(f"Payload of region {payload.region} written as {region}")
        self._files[region] = encode_region(payload)

    def delete_region(self, region: Tripoint) -> None:
        self._files.pop(as_tripoint(region), None)

    def list_regions(self) -> List[Tripoint]:
        return sorted(self._files)

    def raw_region(self, region: Tripoint) -> Optional[bytes]:
        """Stored bytes of a region, as they would be on disk."""
        return self._files.get(as_tripoint(region))

    def write_raw_region(self, region: Tripoint, content: bytes) -> None:
        """Store bytes for a region as is, without encoding."""
        self._files[as_tripoint(region)] = bytes(content)


class FilesystemRegionStore(RegionStore):
    """
    Filesystem-based storage.

    Structure:
        {root}/maps/{sx}.{sy}.{sz}/{rx}.{ry}.{rz}.map

    where (sx, sy, sz) is the directory segment of region (rx, ry, rz).
    """

    _root: Path

    def __init__(
        self,
        root: Union[str, Path],
        region_size: int = REGION_SIZE,
        segment_size: int = SEGMENT_SIZE,
    ) -> None:
        self._root = Path(root)
        self.region_size = region_size
        self.segment_size = segment_size

    @property
    def root(self) -> Path:
        return self._root

    @property
    def maps_dir(self) -> Path:
        return self._root / "maps"

    def region_path(self, region: Tripoint) -> Path:
        """Get full path of a region file."""
        region = as_tripoint(region)
        sx, sy, sz = segment_of(region, self.segment_size)
        rx, ry, rz = region
        return self.maps_dir / f"{sx}.{sy}.{sz}" / f"{rx}.{ry}.{rz}{REGION_FILE_EXTENSION}"

    def read_region(self, region: Tripoint) -> Optional[RegionPayload]:
        path = self.region_path(region)
        try:
            content = path.read_bytes()
        except FileNotFoundError:
            return None
        try:
            return decode_region(content, region, self.region_size)
        except RegionFormatError as e:
            log.error(e, f"RegionStore: bad region file {path}")
            raise

    def write_region(self, region: Tripoint, payload: RegionPayload) -> None:
        region = as_tripoint(region)
        if payload.region != region:
            raise RegionWriteError(f"Payload of region {payload.region} written as {region}")

        path = self.region_path(region)
        content = encode_region(payload)

        dir_path = path.parent
        dir_path.mkdir(parents=True, exist_ok=True)

        # Atomic write via temp file
        f = tempfile.NamedTemporaryFile(
            mode="wb", suffix=".tmp", dir=str(dir_path), delete=False
        )
        temp_path = f.name
        try:
            with f:
                f.write(content)
            os.replace(temp_path, str(path))
        except OSError:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def delete_region(self, region: Tripoint) -> None:
        path = self.region_path(region)
        try:
            path.unlink()
        except FileNotFoundError:
            return

    def list_regions(self) -> List[Tripoint]:
        if not self.maps_dir.exists():
            return []
        regions = []
        for path in self.maps_dir.glob(f"*/*{REGION_FILE_EXTENSION}"):
            region = _parse_triple(path.name[: -len(REGION_FILE_EXTENSION)])
            if region is None:
                log.warn(f"RegionStore: ignoring unexpected file {path}")
                continue
            regions.append(region)
        return sorted(regions)

    def get_info(self) -> dict:
        """
        Summarize the store without decoding submaps.

        Returns:
            Dict with region_count, submap_count, bounds_min, bounds_max
            (bounds in submap coordinates, None if the store is empty).

        Raises:
            RegionFormatError: If a region file is malformed.
        """
        regions = self.list_regions()
        submap_count = 0
        bounds_min = None
        bounds_max = None

        for region in regions:
            payload = self.read_region(region)
            if payload is None:
                continue
            submap_count += len(payload)
            for p in payload.coordinates():
                if bounds_min is None:
                    bounds_min = list(p)
                    bounds_max = list(p)
                else:
                    for i in range(3):
                        bounds_min[i] = min(bounds_min[i], p[i])
                        bounds_max[i] = max(bounds_max[i], p[i])

        return {
            "region_count": len(regions),
            "submap_count": submap_count,
            "bounds_min": bounds_min,
            "bounds_max": bounds_max,
        }


def _parse_triple(text: str) -> Optional[Tripoint]:
    parts = text.split(".")
    if len(parts) != 3:
        return None
    try:
        return Tripoint(int(parts[0]), int(parts[1]), int(parts[2]))
    except ValueError:
        return None
