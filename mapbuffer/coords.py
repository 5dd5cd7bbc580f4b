"""
Submap and region coordinates.

Submap coordinates are absolute world positions in submap units.
A region is a REGION_SIZE x REGION_SIZE block of submaps on one z-level;
regions are the unit of storage I/O. Regions are grouped into directory
segments of SEGMENT_SIZE x SEGMENT_SIZE regions by the filesystem store.
"""

from __future__ import annotations

import operator
from typing import NamedTuple

REGION_SIZE = 2
SEGMENT_SIZE = 32


class Tripoint(NamedTuple):
    """Integer (x, y, z) position. Ordered and hashable."""

    x: int
    y: int
    z: int

    def __str__(self) -> str:
        return f"({self.x},{self.y},{self.z})"


def as_tripoint(p) -> Tripoint:
    """
    Convert a coordinate to the canonical Tripoint.

    Accepts a Tripoint, any 3-element sequence of integers, or a wrapper
    object whose raw() returns one of those.

    Raises:
        TypeError: If p is not a coordinate or has non-integer components.
    """
    if isinstance(p, Tripoint):
        return p
    raw = getattr(p, "raw", None)
    if callable(raw):
        p = raw()
    try:
        x, y, z = p
    except (TypeError, ValueError):
        raise TypeError(f"Expected an (x, y, z) coordinate, got {p!r}") from None
    # operator.index rejects floats but accepts numpy integers
    return Tripoint(operator.index(x), operator.index(y), operator.index(z))


def region_of(p, region_size: int = REGION_SIZE) -> Tripoint:
    """
    Region containing submap p.

    Python floor division rounds toward minus infinity, so negative
    coordinates land in the right region: -1 // 2 = -1.
    """
    p = as_tripoint(p)
    return Tripoint(p.x // region_size, p.y // region_size, p.z)


def segment_of(region, segment_size: int = SEGMENT_SIZE) -> Tripoint:
    """Directory segment containing the given region."""
    region = as_tripoint(region)
    return Tripoint(region.x // segment_size, region.y // segment_size, region.z)
