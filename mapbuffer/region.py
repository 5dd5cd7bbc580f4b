"""
Region payloads and their file encoding.

A region payload is the unit of storage I/O: the serialized bytes of every
stored submap of one region, keyed by submap coordinate.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Iterable, Iterator, Optional

from mapbuffer.coords import REGION_SIZE, Tripoint, as_tripoint, region_of
from mapbuffer.errors import RegionFormatError

REGION_FILE_EXTENSION = ".map"
REGION_FORMAT_VERSION = "1.0"


class RegionPayload:
    """
    Ordered (coordinate, bytes) entries of one region.

    Every entry must belong to the payload's region; a coordinate can
    appear only once.
    """

    __slots__ = ("_region", "_region_size", "_entries")

    def __init__(
        self,
        region,
        entries: Iterable[tuple] = (),
        region_size: int = REGION_SIZE,
    ) -> None:
        self._region = as_tripoint(region)
        self._region_size = region_size
        self._entries: dict[Tripoint, bytes] = {}
        for p, data in entries:
            self.add(p, data)

    @property
    def region(self) -> Tripoint:
        return self._region

    @property
    def region_size(self) -> int:
        return self._region_size

    def add(self, p, data: bytes) -> None:
        """
        Append an entry.

        Raises:
            RegionFormatError: If p is outside the region or already present.
        """
        p = as_tripoint(p)
        if region_of(p, self._region_size) != self._region:
            raise RegionFormatError(f"Submap {p} does not belong to region {self._region}")
        if p in self._entries:
            raise RegionFormatError(f"Duplicate submap {p} in region {self._region}")
        self._entries[p] = bytes(data)

    def get(self, p) -> Optional[bytes]:
        return self._entries.get(as_tripoint(p))

    def coordinates(self) -> list[Tripoint]:
        return list(self._entries)

    def __iter__(self) -> Iterator[tuple[Tripoint, bytes]]:
        yield from self._entries.items()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, p) -> bool:
        return as_tripoint(p) in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegionPayload):
            return NotImplemented
        return self._region == other._region and self._entries == other._entries

    __hash__ = None

    def __repr__(self) -> str:
        return f"RegionPayload(region={self._region}, entries={len(self._entries)})"

    def ordered(self) -> RegionPayload:
        """Copy with entries in coordinate order."""
        return RegionPayload(self._region, sorted(self._entries.items()), self._region_size)

    def merged_with(self, existing: Optional[RegionPayload]) -> RegionPayload:
        """
        Combine with a previously stored payload of the same region.

        Entries of self replace stored ones; stored entries missing from
        self are kept. The result is sorted.
        """
        if existing is None:
            return self.ordered()
        if existing.region != self._region:
            raise RegionFormatError(f"Cannot merge region {existing.region} into {self._region}")
        merged = dict(existing._entries)
        merged.update(self._entries)
        return RegionPayload(self._region, sorted(merged.items()), self._region_size)


def encode_region(payload: RegionPayload) -> bytes:
    """
    Encode payload as a region file.

    Format:
    {
        "version": "1.0",
        "region": [x, y, z],
        "submaps": [{"coordinates": [x, y, z], "data": "<base64>"}, ...]
    }
    """
    data = {
        "version": REGION_FORMAT_VERSION,
        "region": list(payload.region),
        "submaps": [
            {"coordinates": list(p), "data": base64.b64encode(raw).decode("ascii")}
            for p, raw in payload.ordered()
        ],
    }
    return json.dumps(data, indent=1).encode("utf-8")


def decode_region(content: bytes, region=None, region_size: int = REGION_SIZE) -> RegionPayload:
    """
    Decode a region file.

    Args:
        content: File contents.
        region: Expected region, or None to accept the one in the file.
        region_size: Region edge length used to validate entries.

    Raises:
        RegionFormatError: If the file is malformed, has an unsupported
            version, or holds another region.
    """
    try:
        data = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise RegionFormatError(f"Region file is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise RegionFormatError("Region file must contain an object")

    version = str(data.get("version", ""))
    if not version.startswith("1."):
        raise RegionFormatError(f"Unsupported region format version: {version}")

    try:
        stored_region = as_tripoint(data["region"])
    except (KeyError, TypeError) as e:
        raise RegionFormatError(f"Region file has no valid region: {e}") from e

    if region is not None and stored_region != as_tripoint(region):
        raise RegionFormatError(f"Region file holds {stored_region}, expected {as_tripoint(region)}")

    submaps = data.get("submaps", [])
    if not isinstance(submaps, list):
        raise RegionFormatError(f"Region file {stored_region} has no submap list")

    payload = RegionPayload(stored_region, region_size=region_size)
    for entry in submaps:
        try:
            p = as_tripoint(entry["coordinates"])
            raw = base64.b64decode(entry["data"], validate=True)
        except (KeyError, TypeError, binascii.Error) as e:
            raise RegionFormatError(f"Bad submap entry in region {stored_region}: {e}") from e
        payload.add(p, raw)
    return payload
