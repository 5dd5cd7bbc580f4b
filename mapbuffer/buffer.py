"""
MapBuffer: store, buffer, save and load the entire world map.

Submaps live in a resident set keyed by absolute submap coordinate.
Misses are loaded from the region store one whole region at a time;
saves write one region per storage call.
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from mapbuffer import log
from mapbuffer.coords import Tripoint, as_tripoint, region_of
from mapbuffer.errors import (
    MapBufferError,
    RegionFormatError,
    SaveError,
    SubmapFormatError,
    SubmapInUseError,
)
from mapbuffer.handle import OwnedSubmap, SubmapHandle
from mapbuffer.region import RegionPayload
from mapbuffer.storage import FilesystemRegionStore, RegionStore
from mapbuffer.submap import SubmapCodec


@dataclass
class SaveResult:
    """
    Outcome of MapBuffer.save().

    Attributes:
        written: Regions written successfully.
        failures: {region: exception} for regions that failed.
        evicted: Submaps removed from memory after saving.
        retained: Submaps saved but kept in memory because a handle
            to them was still held.
    """

    written: List[Tripoint] = field(default_factory=list)
    failures: Dict[Tripoint, BaseException] = field(default_factory=dict)
    evicted: List[Tripoint] = field(default_factory=list)
    retained: List[Tripoint] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        """Raise SaveError if any region failed."""
        if self.failures:
            raise SaveError(self.failures)


class MapBuffer:
    """
    Resident set of submaps backed by a region store.

    Ownership rules:
    - add_submap takes a submap out of an OwnedSubmap; on failure the box
      is left untouched.
    - lookup_submap hands out SubmapHandle leases. A submap with a live
      lease is never evicted.
    - All removal goes through save(delete_after_save=True) and clear().

    Not thread-safe; callers serialize access.
    """

    _instances: Dict[str, "MapBuffer"] = {}

    @classmethod
    def for_world(cls, save_dir: Union[str, Path]) -> "MapBuffer":
        """
        Get buffer instance for a save directory.

        Creates a buffer over FilesystemRegionStore on first use.
        """
        key = str(Path(save_dir).resolve())
        if key not in cls._instances:
            cls._instances[key] = cls(FilesystemRegionStore(save_dir))
        return cls._instances[key]

    @classmethod
    def clear_instance(cls, save_dir: Union[str, Path]) -> None:
        """Remove cached instance for a save directory."""
        cls._instances.pop(str(Path(save_dir).resolve()), None)

    def __init__(self, store: RegionStore, codec: Optional[Any] = None) -> None:
        self._store = store
        self._codec = codec if codec is not None else SubmapCodec()
        self._submaps: Dict[Tripoint, Any] = {}
        self._leases: Dict[Tripoint, "weakref.WeakSet[SubmapHandle]"] = {}

    @property
    def store(self) -> RegionStore:
        return self._store

    @property
    def region_size(self) -> int:
        return self._store.region_size

    @property
    def submap_count(self) -> int:
        """Number of resident submaps."""
        return len(self._submaps)

    # ----------------------------------------------------------------
    # Insert / lookup
    # ----------------------------------------------------------------

    def add_submap(self, p, owned: OwnedSubmap) -> bool:
        """
        Add a new submap to the buffer.

        Args:
            p: Absolute position in submap coordinates.
            owned: The submap. If it has been added, the box is emptied.

        Returns:
            True if the submap has been stored here. False if there is
            already a submap at p; the submap is not stored and the box
            keeps ownership.
        """
        if not isinstance(owned, OwnedSubmap):
            raise TypeError(f"add_submap takes an OwnedSubmap, got {type(owned).__name__}")
        p = as_tripoint(p)
        if p in self._submaps:
            log.debug(f"MapBuffer: submap {p} already resident, insert rejected")
            return False
        self._submaps[p] = owned.take()
        return True

    def lookup_submap(self, p) -> Optional[SubmapHandle]:
        """
        Get or load a submap.

        A miss loads the whole region containing p from the store, so this
        call can add many submaps to the resident set.

        Returns:
            Lease on the submap, or None if it is neither resident nor
            stored. The caller is expected to generate and add it.

        Raises:
            RegionFormatError: If the region could not be decoded. Nothing
                from that region is added.
        """
        p = as_tripoint(p)
        submap = self._submaps.get(p)
        if submap is None:
            self._load_region(region_of(p, self.region_size))
            submap = self._submaps.get(p)
            if submap is None:
                return None
        return self._lease(p, submap)

    def is_submap_loaded(self, p) -> bool:
        """True if p is resident now. Never touches the store."""
        return as_tripoint(p) in self._submaps

    def __contains__(self, p) -> bool:
        return self.is_submap_loaded(p)

    def _load_region(self, region: Tripoint) -> int:
        payload = self._store.read_region(region)
        if payload is None:
            return 0

        # Decode everything before touching the resident set.
        loaded = []
        for p, data in payload:
            if p in self._submaps:
                log.debug(f"MapBuffer: submap {p} already loaded, keeping resident copy")
                continue
            try:
                loaded.append((p, self._codec.deserialize(data)))
            except (SubmapFormatError, ValueError) as e:
                raise RegionFormatError(f"Submap {p} of region {region}: {e}") from e

        for p, submap in loaded:
            self._submaps[p] = submap
        log.debug(f"MapBuffer: loaded {len(loaded)} submap(s) from region {region}")
        return len(loaded)

    # ----------------------------------------------------------------
    # Leases
    # ----------------------------------------------------------------

    def _lease(self, p: Tripoint, submap: Any) -> SubmapHandle:
        handle = SubmapHandle(self, p, submap)
        leases = self._leases.get(p)
        if leases is None:
            leases = weakref.WeakSet()
            self._leases[p] = leases
        leases.add(handle)
        return handle

    def _release_handle(self, handle: SubmapHandle) -> None:
        leases = self._leases.get(handle.pos)
        if leases is None:
            return
        leases.discard(handle)
        if not leases:
            del self._leases[handle.pos]

    def lease_count(self, p) -> int:
        """Number of live handles to the submap at p."""
        leases = self._leases.get(as_tripoint(p))
        return len(leases) if leases is not None else 0

    def is_referenced(self, p) -> bool:
        return self.lease_count(p) > 0

    # ----------------------------------------------------------------
    # Save / remove
    # ----------------------------------------------------------------

    def save(self, delete_after_save: bool = False) -> SaveResult:
        """
        Store all submaps into the region store.

        Submaps are grouped by region; each region is one write. Stored
        submaps of a region that are not resident are carried over into
        the write, so a partly loaded region never loses data.

        A failure on one region is logged and recorded in the result;
        the remaining regions are still written.

        Args:
            delete_after_save: Remove saved submaps from the buffer. Submaps
                with live handles stay resident (SaveResult.retained).
        """
        result = SaveResult()

        by_region: Dict[Tripoint, List[Tripoint]] = {}
        for p in sorted(self._submaps):
            by_region.setdefault(region_of(p, self.region_size), []).append(p)

        for region in sorted(by_region):
            members = by_region[region]
            try:
                self._save_region(region, members)
            except (OSError, MapBufferError) as e:
                log.error(e, f"MapBuffer: failed to save region {region}")
                result.failures[region] = e
                continue
            result.written.append(region)

            if not delete_after_save:
                continue
            for p in members:
                if self.is_referenced(p):
                    result.retained.append(p)
                    continue
                self._remove_submap(p)
                result.evicted.append(p)

        if result.retained:
            log.warn(f"MapBuffer: {len(result.retained)} saved submap(s) still in use, not evicted")
        log.info(
            f"MapBuffer: saved {len(result.written)} region(s), "
            f"{len(result.failures)} failed, {len(result.evicted)} submap(s) evicted"
        )
        return result

    def _save_region(self, region: Tripoint, members: List[Tripoint]) -> None:
        payload = RegionPayload(region, region_size=self.region_size)
        for p in members:
            payload.add(p, self._codec.serialize(self._submaps[p]))
        stored = self._store.read_region(region)
        self._store.write_region(region, payload.merged_with(stored))

    def _remove_submap(self, p) -> None:
        p = as_tripoint(p)
        if p not in self._submaps:
            raise KeyError(p)
        if self.is_referenced(p):
            raise SubmapInUseError(f"Submap {p} has {self.lease_count(p)} live handle(s)")
        del self._submaps[p]
        self._leases.pop(p, None)

    def clear(self) -> None:
        """
        Delete all buffered submaps without saving.

        Outstanding handles are detached: they keep their submap object
        but no longer pin it.
        """
        for leases in self._leases.values():
            for handle in list(leases):
                handle._detach()
        self._leases.clear()
        self._submaps.clear()

    # ----------------------------------------------------------------
    # Iteration
    # ----------------------------------------------------------------

    def coordinates(self) -> List[Tripoint]:
        """Resident coordinates, sorted."""
        return sorted(self._submaps)

    def __iter__(self) -> Iterator[tuple[Tripoint, Any]]:
        """(coordinate, submap) pairs in coordinate order. Submaps are not leased."""
        for p in sorted(self._submaps):
            yield p, self._submaps[p]

    def __len__(self) -> int:
        return len(self._submaps)
