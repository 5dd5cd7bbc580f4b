"""
Tests for RegionPayload and region file encoding.
"""

import json
import unittest

from mapbuffer.coords import Tripoint
from mapbuffer.errors import RegionFormatError
from mapbuffer.region import (
    REGION_FORMAT_VERSION,
    RegionPayload,
    decode_region,
    encode_region,
)


class RegionPayloadTest(unittest.TestCase):

    def test_add_and_get(self):
        payload = RegionPayload((0, 0, 0))
        payload.add((1, 0, 0), b"a")
        payload.add((0, 1, 0), b"b")

        self.assertEqual(len(payload), 2)
        self.assertIn((1, 0, 0), payload)
        self.assertNotIn((1, 1, 0), payload)
        self.assertEqual(payload.get((0, 1, 0)), b"b")
        self.assertIsNone(payload.get((1, 1, 0)))
        self.assertEqual(payload.coordinates(), [Tripoint(1, 0, 0), Tripoint(0, 1, 0)])

    def test_rejects_foreign_submap(self):
        payload = RegionPayload((0, 0, 0))
        with self.assertRaises(RegionFormatError):
            payload.add((2, 0, 0), b"x")
        with self.assertRaises(RegionFormatError):
            payload.add((0, 0, 1), b"x")

    def test_rejects_duplicate(self):
        payload = RegionPayload((0, 0, 0), [((0, 0, 0), b"a")])
        with self.assertRaises(RegionFormatError):
            payload.add((0, 0, 0), b"b")
        self.assertEqual(payload.get((0, 0, 0)), b"a")

    def test_negative_region(self):
        payload = RegionPayload((-1, -1, 0))
        payload.add((-1, -2, 0), b"a")
        payload.add((-2, -1, 0), b"b")
        self.assertEqual(len(payload), 2)

    def test_ordered(self):
        payload = RegionPayload((0, 0, 0), [((1, 1, 0), b"d"), ((0, 0, 0), b"a"), ((1, 0, 0), b"c")])
        self.assertEqual(
            payload.ordered().coordinates(),
            [Tripoint(0, 0, 0), Tripoint(1, 0, 0), Tripoint(1, 1, 0)],
        )

    def test_merge_keeps_stored_siblings(self):
        """Resident entries replace stored ones; stored-only entries survive."""
        resident = RegionPayload((0, 0, 0), [((1, 0, 0), b"new")])
        stored = RegionPayload((0, 0, 0), [((0, 0, 0), b"old0"), ((1, 0, 0), b"old1")])

        merged = resident.merged_with(stored)

        self.assertEqual(merged.coordinates(), [Tripoint(0, 0, 0), Tripoint(1, 0, 0)])
        self.assertEqual(merged.get((0, 0, 0)), b"old0")
        self.assertEqual(merged.get((1, 0, 0)), b"new")

    def test_merge_with_nothing(self):
        resident = RegionPayload((0, 0, 0), [((1, 0, 0), b"b"), ((0, 0, 0), b"a")])
        self.assertEqual(resident.merged_with(None), resident)

    def test_merge_other_region(self):
        with self.assertRaises(RegionFormatError):
            RegionPayload((0, 0, 0)).merged_with(RegionPayload((1, 0, 0)))


class RegionEncodingTest(unittest.TestCase):

    def _payload(self):
        return RegionPayload((1, 0, 0), [((3, 1, 0), b"\x00\x01"), ((2, 0, 0), b"hello")])

    def test_roundtrip(self):
        payload = self._payload()
        restored = decode_region(encode_region(payload), (1, 0, 0))
        self.assertEqual(restored, payload)
        self.assertEqual(restored.region, Tripoint(1, 0, 0))

    def test_encoding_ignores_insertion_order(self):
        a = RegionPayload((0, 0, 0), [((0, 0, 0), b"a"), ((1, 1, 0), b"b")])
        b = RegionPayload((0, 0, 0), [((1, 1, 0), b"b"), ((0, 0, 0), b"a")])
        self.assertEqual(encode_region(a), encode_region(b))

    def test_file_layout(self):
        data = json.loads(encode_region(self._payload()).decode("utf-8"))
        self.assertEqual(data["version"], REGION_FORMAT_VERSION)
        self.assertEqual(data["region"], [1, 0, 0])
        self.assertEqual([e["coordinates"] for e in data["submaps"]], [[2, 0, 0], [3, 1, 0]])

    def test_region_taken_from_file(self):
        restored = decode_region(encode_region(self._payload()))
        self.assertEqual(restored.region, Tripoint(1, 0, 0))

    def test_wrong_region(self):
        with self.assertRaises(RegionFormatError):
            decode_region(encode_region(self._payload()), (0, 0, 0))

    def test_bad_json(self):
        with self.assertRaises(RegionFormatError):
            decode_region(b"{not json")

    def test_not_an_object(self):
        with self.assertRaises(RegionFormatError):
            decode_region(b"[]")

    def test_unsupported_version(self):
        content = json.dumps({"version": "2.0", "region": [0, 0, 0], "submaps": []}).encode()
        with self.assertRaises(RegionFormatError):
            decode_region(content)

    def test_missing_region(self):
        content = json.dumps({"version": "1.0", "submaps": []}).encode()
        with self.assertRaises(RegionFormatError):
            decode_region(content)

    def test_bad_entry(self):
        content = json.dumps({
            "version": "1.0",
            "region": [0, 0, 0],
            "submaps": [{"coordinates": [0, 0, 0], "data": "!!!"}],
        }).encode()
        with self.assertRaises(RegionFormatError):
            decode_region(content)

    def test_entry_outside_region(self):
        content = json.dumps({
            "version": "1.0",
            "region": [0, 0, 0],
            "submaps": [{"coordinates": [5, 0, 0], "data": ""}],
        }).encode()
        with self.assertRaises(RegionFormatError):
            decode_region(content)

    def test_submaps_not_a_list(self):
        for submaps in (None, 5, "abc", {"0,0,0": ""}):
            content = json.dumps({"version": "1.0", "region": [0, 0, 0], "submaps": submaps}).encode()
            with self.subTest(submaps=submaps):
                with self.assertRaises(RegionFormatError):
                    decode_region(content)

    def test_entry_not_an_object(self):
        content = json.dumps({"version": "1.0", "region": [0, 0, 0], "submaps": [7]}).encode()
        with self.assertRaises(RegionFormatError):
            decode_region(content)


if __name__ == "__main__":
    unittest.main()
