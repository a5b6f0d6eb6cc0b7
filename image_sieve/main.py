import argparse
import logging
import sys
import tempfile
from pathlib import Path

from . import config
from .core import MODES, ImageSieveApp, ScanConfig
from .exceptions import ConstraintSpecError, EnumerationError
from .filters.constraints import parse_filters
from .reporting import ReportPrinter


def setup_logging(error_log: Path, verbose: bool):
    """Console logging for the run, plus a file that only receives per-file failures."""
    log_level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-file errors can number in the thousands; keep them off the console
    failure_log = logging.getLogger(config.FAILURE_LOGGER)
    failure_log.propagate = False
    for handler in list(failure_log.handlers):
        failure_log.removeHandler(handler)
        handler.close()
    error_log.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(error_log, mode='w', encoding='utf-8')
    handler.setFormatter(logging.Formatter("%(message)s"))
    failure_log.addHandler(handler)
    failure_log.setLevel(logging.WARNING)

    # Silence chatty libraries
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Image Sieve: count, list or find images in a directory by size, dimensions, format, channels or validity.",
        epilog="Filters: png | jpg | rgb | rgba | gray | graya | valid | invalid | "
               "filesize>10.5M | width<640 | height>=128 | long>=500 | short==400. "
               "Prefix with ! to negate.",
    )

    p.add_argument("mode", choices=MODES, help="count matches, list them, or stop at the first one (any)")
    p.add_argument("src", type=Path, help="Directory to scan")
    p.add_argument("filters", nargs="*", help="Filter expressions; all must hold")

    p.add_argument("--flat", action="store_true", help="Only scan the top level of src")
    p.add_argument("-j", "--workers", type=int, default=config.DEFAULT_CAPACITY,
                   help=f"Maximum files checked at once (default: {config.DEFAULT_CAPACITY})")
    p.add_argument("--deadline", type=float, default=None,
                   help="Stop after this many seconds and report partial results")
    p.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    p.add_argument("--error-log", type=Path, default=None,
                   help=f"Where per-file errors are written (default: <tmp>/{config.ERROR_LOG_NAME})")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    args = p.parse_args(argv)
    if args.workers < 1:
        p.error("--workers must be at least 1")
    if args.deadline is not None and args.deadline < 0:
        p.error("--deadline must not be negative")
    return args


def main(argv=None):
    args = parse_args(argv)

    # 1. Setup
    error_log = args.error_log or Path(tempfile.gettempdir()) / config.ERROR_LOG_NAME
    setup_logging(error_log, args.verbose)

    src_root = args.src.resolve()
    logging.info(f"Mode:   {args.mode}")
    logging.info(f"Source: {src_root}")

    # 2. Config (filters are validated before any file is touched)
    try:
        filters = parse_filters(args.filters)
    except ConstraintSpecError as e:
        logging.error(str(e))
        sys.exit(1)

    cfg = ScanConfig(
        root=src_root,
        filters=filters,
        mode=args.mode,
        recursive=not args.flat,
        capacity=args.workers,
        deadline=args.deadline,
        show_progress=not args.no_progress,
    )

    # 3. Execution
    app = ImageSieveApp()
    try:
        report = app.scan(cfg)
    except EnumerationError as e:
        logging.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)
    except Exception:
        logging.exception("Fatal error during scan.")
        sys.exit(1)

    ReportPrinter().print_report(report, error_log=error_log)


if __name__ == "__main__":
    main()
