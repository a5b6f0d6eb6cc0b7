#!/usr/bin/env python3
"""
Counts files above a size threshold in one directory (not recursive).

Usage:
  python count_large.py <dir> [--threshold 10M] [-j 1000]
"""
import argparse
import logging
import sys
from pathlib import Path

from image_sieve.core import ImageSieveApp, ScanConfig
from image_sieve.exceptions import ImageSieveError
from image_sieve.filters.constraints import parse_filters


def count_large(root: Path, threshold: str = "10M", workers: int = 1000) -> int:
    cfg = ScanConfig(
        root=root,
        filters=parse_filters([f"filesize>{threshold}"]),
        mode='count',
        recursive=False,
        capacity=workers,
    )
    return ImageSieveApp().scan(cfg).matched


def main(argv=None):
    p = argparse.ArgumentParser(description="Count files larger than a size threshold.")
    p.add_argument("src", type=Path, help="Directory to scan")
    p.add_argument("--threshold", default="10M", help="Size with optional unit B/K/M/G (default: 10M)")
    p.add_argument("-j", "--workers", type=int, default=1000, help="Files checked at once")
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(asctime)s [%(levelname)s] %(message)s")
    try:
        large = count_large(args.src, args.threshold, args.workers)
    except ImageSieveError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"filesize>{args.threshold} : {large}")


if __name__ == "__main__":
    main()
