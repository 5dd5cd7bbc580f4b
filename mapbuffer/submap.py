"""
Submap: world data of one SUBMAP_SIZE×SUBMAP_SIZE map square.
"""

from __future__ import annotations

import base64
import gzip
import json
import zlib

import numpy as np

from mapbuffer.errors import SubmapFormatError

SUBMAP_SIZE = 12

# Little-endian on disk regardless of host.
_DTYPE = np.dtype("<u2")


def _pack(array: np.ndarray) -> str:
    # mtime=0 keeps the gzip header stable: equal arrays give equal bytes
    compressed = gzip.compress(array.astype(_DTYPE).tobytes(), mtime=0)
    return base64.b64encode(compressed).decode("ascii")


def _unpack(text: str) -> np.ndarray:
    raw = gzip.decompress(base64.b64decode(text, validate=True))
    return np.frombuffer(raw, dtype=_DTYPE).reshape(SUBMAP_SIZE, SUBMAP_SIZE)


class Submap:
    """
    Submap of SUBMAP_SIZE² tiles.

    Stores terrain and furniture ids as uint16:
    - terrain 0 is "null terrain"
    - furniture 0 is "no furniture"

    The map buffer treats a submap as opaque; only the codec looks inside.
    """

    __slots__ = ("_ter", "_furn", "turn_last_touched")

    def __init__(self, ter: int = 0) -> None:
        self._ter: np.ndarray = np.full((SUBMAP_SIZE, SUBMAP_SIZE), ter, dtype=np.uint16)
        self._furn: np.ndarray = np.zeros((SUBMAP_SIZE, SUBMAP_SIZE), dtype=np.uint16)
        self.turn_last_touched: int = 0

    @property
    def terrain(self) -> np.ndarray:
        """Direct access to the terrain layer."""
        return self._ter

    @property
    def furniture(self) -> np.ndarray:
        """Direct access to the furniture layer."""
        return self._furn

    def get_ter(self, x: int, y: int) -> int:
        return int(self._ter[x, y])

    def set_ter(self, x: int, y: int, ter: int) -> None:
        self._ter[x, y] = ter

    def get_furn(self, x: int, y: int) -> int:
        return int(self._furn[x, y])

    def set_furn(self, x: int, y: int, furn: int) -> None:
        self._furn[x, y] = furn

    def fill_ter(self, ter: int) -> None:
        """Set the whole terrain layer to one id."""
        self._ter.fill(ter)

    @property
    def is_uniform(self) -> bool:
        """True if all terrain is the same and there is no furniture."""
        return bool((self._ter == self._ter[0, 0]).all() and not self._furn.any())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Submap):
            return NotImplemented
        return (
            self.turn_last_touched == other.turn_last_touched
            and np.array_equal(self._ter, other._ter)
            and np.array_equal(self._furn, other._furn)
        )

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        return f"Submap(turn_last_touched={self.turn_last_touched}, uniform={self.is_uniform})"

    def serialize(self) -> dict:
        """Serialize submap into a dict."""
        return {
            "ter": _pack(self._ter),
            "furn": _pack(self._furn),
            "turn_last_touched": self.turn_last_touched,
        }

    @classmethod
    def deserialize(cls, data: dict) -> Submap:
        """Deserialize submap from a dict produced by serialize()."""
        sm = cls()
        sm._ter = _unpack(data["ter"]).astype(np.uint16)
        sm._furn = _unpack(data["furn"]).astype(np.uint16)
        sm.turn_last_touched = int(data.get("turn_last_touched", 0))
        return sm


class SubmapCodec:
    """
    Converts submaps to bytes and back.

    The buffer only forwards the bytes; any object with the same
    serialize/deserialize pair can be used instead.
    """

    def serialize(self, submap: Submap) -> bytes:
        return json.dumps(submap.serialize(), sort_keys=True, separators=(",", ":")).encode("utf-8")

    def deserialize(self, data: bytes) -> Submap:
        """
        Raises:
            SubmapFormatError: If data is not a serialized submap.
        """
        try:
            return Submap.deserialize(json.loads(data.decode("utf-8")))
        except (ValueError, KeyError, TypeError, OSError, EOFError, zlib.error) as e:
            raise SubmapFormatError(f"Cannot decode submap: {e}") from e
