"""
Thread-safe result accumulation.

Every worker thread reports matches through `Aggregator.add`; the main thread
reads the settled result once, after the dispatcher's barrier.
"""
import logging
import threading
from pathlib import Path
from typing import FrozenSet, Optional, Union

from . import config
from .exceptions import AggregationError


class Aggregator:
    """
    Base class. Subclasses implement `_add` and `_value`; locking and the
    read-once rule live here.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sealed = False

    def add(self, path: Path) -> None:
        with self._lock:
            # Late adds from tasks abandoned at a deadline are dropped
            if self._sealed:
                return
            self._add(path)

    def result(self):
        """Seals the aggregate and returns it. Only valid once."""
        with self._lock:
            if self._sealed:
                raise AggregationError("aggregate has already been read")
            self._sealed = True
            return self._value()

    @property
    def count(self) -> int:
        with self._lock:
            return self._count()

    def _add(self, path: Path) -> None:
        raise NotImplementedError

    def _value(self):
        raise NotImplementedError

    def _count(self) -> int:
        raise NotImplementedError


class CountAggregator(Aggregator):
    def __init__(self):
        super().__init__()
        self._n = 0

    def _add(self, path: Path) -> None:
        self._n += 1

    def _value(self) -> int:
        return self._n

    def _count(self) -> int:
        return self._n


class CollectAggregator(Aggregator):
    def __init__(self):
        super().__init__()
        self._paths: set[Path] = set()

    def _add(self, path: Path) -> None:
        self._paths.add(path)

    def _value(self) -> FrozenSet[Path]:
        return frozenset(self._paths)

    def _count(self) -> int:
        return len(self._paths)


class FirstMatchAggregator(Aggregator):
    """
    Keeps the first path reported and sets `stop` so the dispatcher
    launches nothing further.
    """

    def __init__(self):
        super().__init__()
        self.stop = threading.Event()
        self._first: Optional[Path] = None

    def _add(self, path: Path) -> None:
        if self._first is None:
            self._first = path
            self.stop.set()

    def _value(self) -> Optional[Path]:
        return self._first

    def _count(self) -> int:
        return 0 if self._first is None else 1


def make_aggregator(mode: str) -> Union[CountAggregator, CollectAggregator, FirstMatchAggregator]:
    if mode == 'count':
        return CountAggregator()
    if mode == 'list':
        return CollectAggregator()
    if mode == 'any':
        return FirstMatchAggregator()
    raise ValueError(f"unknown mode: {mode}")


class FailureTally:
    """
    Counts per-entry soft failures and writes one line per failure to the
    failure log.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._n = 0
        self._log = logging.getLogger(config.FAILURE_LOGGER)

    def record(self, path: Path, error: BaseException) -> None:
        with self._lock:
            self._n += 1
        self._log.warning(f"[error] {path} {error}")

    @property
    def count(self) -> int:
        with self._lock:
            return self._n
