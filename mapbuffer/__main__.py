"""
Command-line inspection of a map save directory.

Usage:
    python -m mapbuffer path/to/save
    python -m mapbuffer path/to/save --region 0 0 0
"""

import argparse
import sys
from pathlib import Path

from mapbuffer.errors import RegionFormatError
from mapbuffer.storage import FilesystemRegionStore


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="mapbuffer",
        description="Inspect region files of a map save directory",
    )
    parser.add_argument(
        "save_dir",
        type=str,
        help="Path to save directory (the one containing maps/)",
    )
    parser.add_argument(
        "--region", "-r",
        type=int,
        nargs=3,
        metavar=("X", "Y", "Z"),
        default=None,
        help="List the submaps stored in one region",
    )

    args = parser.parse_args(argv)

    save_dir = Path(args.save_dir)
    if not save_dir.is_dir():
        print(f"Error: Save directory does not exist: {save_dir}")
        return 1

    store = FilesystemRegionStore(save_dir)

    try:
        if args.region is not None:
            payload = store.read_region(tuple(args.region))
            if payload is None:
                print(f"Region {tuple(args.region)}: not stored")
                return 0
            print(f"Region {payload.region}: {len(payload)} submap(s)")
            for p, data in payload.ordered():
                print(f"  {p}  {len(data)} bytes")
            return 0

        info = store.get_info()
    except RegionFormatError as e:
        print(f"Error: {e}")
        return 1

    print(f"Save directory: {save_dir}")
    print(f"  regions: {info['region_count']}")
    print(f"  submaps: {info['submap_count']}")
    if info["bounds_min"] is not None:
        print(f"  bounds:  {tuple(info['bounds_min'])} .. {tuple(info['bounds_max'])}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
