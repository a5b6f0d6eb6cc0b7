import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from . import config
from .aggregation import FailureTally, FirstMatchAggregator, make_aggregator
from .exceptions import EntryError
from .filters.constraints import FilterSet
from .filters.predicate import PredicateEvaluator
from .metadata.decode import PillowDecoder
from .models import ScanReport
from .scanning.dispatcher import BoundedDispatcher
from .scanning.filesystem import DirectoryEnumerator, LocalFilesystem

MODES = ('count', 'list', 'any')


@dataclass(frozen=True)
class ScanConfig:
    """
    Everything a run needs, fixed before the scan starts.
    """
    root: Path
    filters: FilterSet = field(default_factory=FilterSet)
    mode: str = 'count'                 # count/list/any
    recursive: bool = True
    capacity: int = config.DEFAULT_CAPACITY
    deadline: Optional[float] = None    # seconds
    show_progress: bool = False

    def __post_init__(self):
        if self.mode not in MODES:
            raise ValueError(f"unknown mode '{self.mode}' (expected one of {', '.join(MODES)})")


class ImageSieveApp:
    def __init__(self, filesystem=None, decoder=None):
        """
        Args:
            filesystem: Provides stat(path) and open(path). Defaults to the local disk.
            decoder: Provides decode_header(stream) and decode_full(stream). Defaults to Pillow.
        """
        self.fs = filesystem or LocalFilesystem()
        self.decoder = decoder or PillowDecoder()

    def scan(self, cfg: ScanConfig) -> ScanReport:
        """
        Executes one scan.
        1. Enumerate (fatal on an unreadable root)
        2. Dispatch one bounded task per file
        3. Read the aggregate after the barrier

        Raises:
            EnumerationError: The root could not be listed. Nothing was launched.
        """
        t0 = time.perf_counter()
        root = Path(cfg.root)

        logging.info(f"Listing {root} (recursive={cfg.recursive})...")
        paths = DirectoryEnumerator(recursive=cfg.recursive).list_files(root)
        logging.info(f"{len(paths)} files found. Filters: {cfg.filters.describe()}")

        evaluator = PredicateEvaluator(cfg.filters, self.fs, self.decoder)
        aggregator = make_aggregator(cfg.mode)
        failures = FailureTally()
        stop = aggregator.stop if isinstance(aggregator, FirstMatchAggregator) else None

        progress_lock = threading.Lock()
        with tqdm(total=len(paths), desc=f"Scanning ({cfg.mode})", unit="file",
                  disable=not cfg.show_progress) as bar:

            def check(path: Path):
                try:
                    if evaluator.evaluate(path):
                        aggregator.add(path)
                except EntryError as e:
                    failures.record(path, e)
                except Exception as e:
                    logging.exception(f"Unexpected error while checking {path}")
                    failures.record(path, e)
                finally:
                    with progress_lock:
                        bar.update(1)
                        if cfg.show_progress:
                            bar.set_postfix(matched=aggregator.count, refresh=False)

            dispatcher = BoundedDispatcher(capacity=cfg.capacity, deadline=cfg.deadline)
            outcome = dispatcher.run(paths, check, stop=stop)

        value = aggregator.result()
        elapsed = time.perf_counter() - t0

        if cfg.mode == 'count':
            matched, found, first = value, None, None
        elif cfg.mode == 'list':
            matched, found, first = len(value), value, None
        else:
            matched, found, first = (0 if value is None else 1), None, value

        report = ScanReport(
            mode=cfg.mode,
            root=root,
            total=len(paths),
            launched=outcome.launched,
            matched=matched,
            failures=failures.count,
            partial=outcome.partial,
            paths=found,
            first_match=first,
            elapsed_sec=elapsed,
        )
        logging.info(f"Scan complete in {elapsed:.2f}s. {matched} matched, {report.failures} failed.")
        return report
