#!/usr/bin/env python3
"""
Counts images whose short edge is below a threshold in one directory (not recursive).
Only image headers are read.

Usage:
  python count_small.py <dir> [--threshold 512] [-j 1000]
"""
import argparse
import logging
import sys
from pathlib import Path

from image_sieve.core import ImageSieveApp, ScanConfig
from image_sieve.exceptions import ImageSieveError
from image_sieve.filters.constraints import parse_filters
from image_sieve.models import ScanReport


def count_small(root: Path, threshold: int = 512, workers: int = 1000, show_progress: bool = False) -> ScanReport:
    cfg = ScanConfig(
        root=root,
        filters=parse_filters([f"short<{threshold}"]),
        mode='count',
        recursive=False,
        capacity=workers,
        show_progress=show_progress,
    )
    return ImageSieveApp().scan(cfg)


def main(argv=None):
    p = argparse.ArgumentParser(description="Count images with a short edge below a threshold.")
    p.add_argument("src", type=Path, help="Directory to scan")
    p.add_argument("--threshold", type=int, default=512, help="Short-edge threshold in pixels (default: 512)")
    p.add_argument("-j", "--workers", type=int, default=1000, help="Files checked at once")
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(asctime)s [%(levelname)s] %(message)s")
    try:
        report = count_small(args.src, args.threshold, args.workers, show_progress=True)
    except ImageSieveError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"total {report.total}")
    print(f"image short<{args.threshold} : {report.matched}")
    if report.failures:
        print(f"unreadable : {report.failures}")


if __name__ == "__main__":
    main()
