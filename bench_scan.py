import argparse
import json
import time
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from image_sieve.core import ImageSieveApp, ScanConfig
from image_sieve.filters.constraints import parse_filters
from image_sieve.models import ScanReport


def run_once(src: Path, filters: Sequence[str], workers: int, recursive: bool) -> Tuple[float, ScanReport]:
    cfg = ScanConfig(
        root=src,
        filters=parse_filters(filters),
        mode='count',
        recursive=recursive,
        capacity=workers,
    )
    t0 = time.perf_counter()
    report = ImageSieveApp().scan(cfg)
    return time.perf_counter() - t0, report


def benchmark(src: Path, filters: Sequence[str], workers: Iterable[int], repeats: int, recursive: bool, out_file: Path):
    """
    Scans src `repeats` times per cap. The matched count must not depend on
    the cap; any cap that disagrees with the others is flagged in the output.
    """
    worker_list = list(workers)
    results = []
    for w in worker_list:
        runs = [run_once(src, filters, w, recursive) for _ in range(repeats)]
        times: List[float] = [elapsed for elapsed, _ in runs]
        matched = sorted({report.matched for _, report in runs})
        last = runs[-1][1]

        warm = times[1:]
        warm_avg = sum(warm) / len(warm) if warm else None
        timing = f"{times[0]:.2f}s cold" + (f", {warm_avg:.2f}s warm avg" if warm else "")
        print(f"{w} workers: {timing}; {last.matched}/{last.total} matched, {last.failures} failed")

        results.append(
            {
                "workers": w,
                "times": times,
                "cold": times[0],
                "warm_avg": warm_avg,
                "total": last.total,
                "matched": matched,
                "failures": last.failures,
            }
        )

    distinct = {tuple(r["matched"]) for r in results}
    consistent = len(distinct) == 1
    if not consistent:
        print(f"WARNING: matched counts differ between caps: {sorted(distinct)}")

    out_file.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "timestamp": datetime.now().isoformat(),
        "src": str(src),
        "filters": list(filters),
        "recursive": recursive,
        "repeats": repeats,
        "workers": worker_list,
        "consistent": consistent,
        "results": results,
    }
    out_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Wrote results to {out_file}")
    return payload


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Benchmark a count scan with different concurrency caps.")
    p.add_argument("src", type=Path, help="Directory to scan")
    p.add_argument("filters", nargs="*", default=["short<512"], help="Filter expressions (default: short<512)")
    p.add_argument("--workers", type=int, nargs="+", default=[1, 10, 100, 1000], help="Concurrency caps to test")
    p.add_argument("--repeats", type=int, default=3, help="Runs per cap; first is treated as cold")
    p.add_argument("--flat", action="store_true", help="Only scan the top level of src")
    p.add_argument("--output", type=Path, default=Path("bench_scan_results.json"), help="Path to write JSON results")
    return p.parse_args(argv)


def main():
    args = parse_args()
    benchmark(args.src, args.filters, args.workers, args.repeats, not args.flat, args.output)


if __name__ == "__main__":
    main()
