from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import FrozenSet, Optional


class Stage(IntEnum):
    """How much I/O is needed to evaluate a constraint, cheapest first."""
    PATH = 0      # extension only
    STAT = 1      # filesystem stat
    HEADER = 2    # image header decode
    CONTENT = 3   # full pixel decode


@dataclass(frozen=True)
class ImageInfo:
    """
    What the decoder reports about an image.
    """
    width: int
    height: int
    mode: str               # Pillow mode: RGB/RGBA/L/LA/...
    format: Optional[str] = None


@dataclass
class Metadata:
    """
    Per-entry facts gathered for predicate evaluation.
    Filled stage by stage; anything the filters don't need stays None.
    """
    path: Path
    size_bytes: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    mode: Optional[str] = None

    # Only set when a validity filter asked for a full decode and it failed
    decode_error: Optional[str] = None

    @property
    def long_edge(self) -> Optional[int]:
        if self.width is None or self.height is None:
            return None
        return max(self.width, self.height)

    @property
    def short_edge(self) -> Optional[int]:
        if self.width is None or self.height is None:
            return None
        return min(self.width, self.height)


@dataclass(frozen=True)
class ScanReport:
    """
    Settled outcome of a scan, read after every task has finished.
    """
    mode: str               # count/list/any
    root: Path
    total: int              # entries enumerated
    launched: int           # tasks started
    matched: int
    failures: int
    partial: bool = False   # deadline hit before all entries were evaluated
    paths: Optional[FrozenSet[Path]] = None     # list mode
    first_match: Optional[Path] = None          # any mode
    elapsed_sec: float = 0.0
