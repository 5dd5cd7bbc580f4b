"""
Ownership boxes and leases for submaps.

OwnedSubmap: the caller's exclusive ownership of a submap that is not yet
in a buffer. MapBuffer.add_submap empties the box when it takes the submap.

SubmapHandle: a lease on a resident submap, returned by
MapBuffer.lookup_submap. While a handle is alive (not released and not
garbage-collected) the buffer refuses to evict the submap.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, Optional, TypeVar

from mapbuffer.errors import EmptyOwnershipError

if TYPE_CHECKING:
    from mapbuffer.buffer import MapBuffer
    from mapbuffer.coords import Tripoint

T = TypeVar("T")


class OwnedSubmap(Generic[T]):
    """
    Exclusive owner of a submap.

    Usage:
        owned = OwnedSubmap(Submap())
        if buffer.add_submap(p, owned):
            assert not owned      # the buffer owns it now
        else:
            owned.submap          # still ours, untouched
    """

    __slots__ = ("_submap",)

    def __init__(self, submap: T):
        if submap is None:
            raise ValueError("OwnedSubmap needs a submap")
        self._submap: Optional[T] = submap

    @property
    def submap(self) -> Optional[T]:
        """Owned submap or None after ownership was transferred."""
        return self._submap

    def take(self) -> T:
        """
        Give up ownership and return the submap.

        Raises:
            EmptyOwnershipError: If the box is already empty.
        """
        if self._submap is None:
            raise EmptyOwnershipError("OwnedSubmap is empty; the submap was already transferred")
        submap = self._submap
        self._submap = None
        return submap

    def __bool__(self) -> bool:
        return self._submap is not None

    def __repr__(self) -> str:
        return f"OwnedSubmap({self._submap!r})"


class SubmapHandle(Generic[T]):
    """
    Non-owning lease on a resident submap.

    The handle keeps a reference to the submap, so its data stays readable
    even after the buffer drops it (clear()); is_attached then turns False.
    """

    __slots__ = ("_buffer", "_pos", "_submap", "_attached", "__weakref__")

    def __init__(self, buffer: "MapBuffer", pos: "Tripoint", submap: T):
        self._buffer: Optional["MapBuffer"] = buffer
        self._pos = pos
        self._submap = submap
        self._attached = True

    @property
    def pos(self) -> "Tripoint":
        """Submap coordinate."""
        return self._pos

    @property
    def submap(self) -> T:
        return self._submap

    @property
    def is_attached(self) -> bool:
        """True while the handle pins its submap in the buffer that issued it."""
        return self._attached

    def release(self) -> None:
        """Drop the lease. Safe to call more than once."""
        if self._buffer is not None:
            self._buffer._release_handle(self)
        self._detach()

    def _detach(self) -> None:
        self._attached = False
        self._buffer = None

    def __enter__(self) -> "SubmapHandle[T]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "attached" if self._attached else "detached"
        return f"SubmapHandle({self._pos}, {state})"
