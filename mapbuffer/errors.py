"""Exceptions raised by the map buffer and its storage backends."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict

if TYPE_CHECKING:
    from mapbuffer.coords import Tripoint


class MapBufferError(Exception):
    """Base error of the map buffer."""


class SubmapFormatError(MapBufferError):
    """Serialized submap bytes could not be decoded."""


class RegionFormatError(MapBufferError):
    """A region payload or region file is malformed."""


class RegionWriteError(MapBufferError):
    """A region could not be written to the backing store."""


class SubmapInUseError(MapBufferError):
    """A submap cannot be removed while a handle to it is still held."""


class EmptyOwnershipError(MapBufferError):
    """The owning box no longer holds a submap."""


class SaveError(MapBufferError):
    """
    One or more regions failed to save.

    Attributes:
        failures: {region: exception} for every failed region.
    """

    def __init__(self, failures: Dict["Tripoint", BaseException]) -> None:
        self.failures = dict(failures)
        regions = ", ".join(str(tuple(r)) for r in sorted(self.failures))
        super().__init__(f"{len(self.failures)} region(s) failed to save: {regions}")
