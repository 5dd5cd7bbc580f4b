"""
Tests for Submap and SubmapCodec.
"""

import base64
import gzip
import json
import unittest

from mapbuffer.errors import SubmapFormatError
from mapbuffer.submap import SUBMAP_SIZE, Submap, SubmapCodec


def _sample_submap() -> Submap:
    sm = Submap(ter=3)
    sm.set_ter(0, 0, 7)
    sm.set_ter(SUBMAP_SIZE - 1, SUBMAP_SIZE - 1, 65535)
    sm.set_furn(5, 6, 12)
    sm.turn_last_touched = 4242
    return sm


class SubmapTest(unittest.TestCase):

    def test_new_submap_is_uniform(self):
        sm = Submap(ter=1)
        self.assertTrue(sm.is_uniform)
        self.assertEqual(sm.get_ter(3, 4), 1)
        self.assertEqual(sm.get_furn(3, 4), 0)
        self.assertEqual(sm.terrain.shape, (SUBMAP_SIZE, SUBMAP_SIZE))

    def test_terrain_change_breaks_uniformity(self):
        sm = Submap(ter=1)
        sm.set_ter(2, 2, 5)
        self.assertFalse(sm.is_uniform)
        self.assertEqual(sm.get_ter(2, 2), 5)

    def test_furniture_breaks_uniformity(self):
        sm = Submap(ter=1)
        sm.set_furn(0, 0, 9)
        self.assertFalse(sm.is_uniform)

    def test_fill_ter(self):
        sm = Submap()
        sm.set_ter(1, 1, 8)
        sm.fill_ter(2)
        self.assertTrue(sm.is_uniform)
        self.assertEqual(sm.get_ter(1, 1), 2)

    def test_equality(self):
        self.assertEqual(_sample_submap(), _sample_submap())
        other = _sample_submap()
        other.set_furn(0, 0, 1)
        self.assertNotEqual(_sample_submap(), other)
        self.assertNotEqual(Submap(), 5)

    def test_dict_roundtrip(self):
        sm = _sample_submap()
        restored = Submap.deserialize(sm.serialize())
        self.assertEqual(restored, sm)
        self.assertEqual(restored.get_ter(SUBMAP_SIZE - 1, SUBMAP_SIZE - 1), 65535)

    def test_restored_arrays_are_writable(self):
        restored = Submap.deserialize(_sample_submap().serialize())
        restored.set_ter(1, 1, 2)
        self.assertEqual(restored.get_ter(1, 1), 2)


class SubmapCodecTest(unittest.TestCase):

    def setUp(self):
        self.codec = SubmapCodec()

    def test_roundtrip(self):
        sm = _sample_submap()
        data = self.codec.serialize(sm)
        self.assertIsInstance(data, bytes)
        self.assertEqual(self.codec.deserialize(data), sm)

    def test_deterministic(self):
        """Equal submaps always encode to equal bytes."""
        self.assertEqual(
            self.codec.serialize(_sample_submap()),
            self.codec.serialize(_sample_submap()),
        )

    def test_not_json(self):
        with self.assertRaises(SubmapFormatError):
            self.codec.deserialize(b"not json at all")

    def test_not_utf8(self):
        with self.assertRaises(SubmapFormatError):
            self.codec.deserialize(b"\xff\xfe\xfd")

    def test_missing_layer(self):
        data = json.dumps({"ter": Submap().serialize()["ter"]}).encode()
        with self.assertRaises(SubmapFormatError):
            self.codec.deserialize(data)

    def test_not_an_object(self):
        with self.assertRaises(SubmapFormatError):
            self.codec.deserialize(b"[1, 2, 3]")

    def test_bad_base64(self):
        data = json.dumps({"ter": "x", "furn": "x"}).encode()
        with self.assertRaises(SubmapFormatError):
            self.codec.deserialize(data)

    def test_bad_gzip(self):
        junk = base64.b64encode(b"definitely not gzip").decode("ascii")
        data = json.dumps({"ter": junk, "furn": junk}).encode()
        with self.assertRaises(SubmapFormatError):
            self.codec.deserialize(data)

    def test_wrong_layer_size(self):
        small = base64.b64encode(gzip.compress(bytes(10))).decode("ascii")
        data = json.dumps({"ter": small, "furn": small}).encode()
        with self.assertRaises(SubmapFormatError):
            self.codec.deserialize(data)


if __name__ == "__main__":
    unittest.main()
