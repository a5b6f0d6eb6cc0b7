import os
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, List

from ..exceptions import EnumerationError, OpenError


class LocalFilesystem:
    """
    Filesystem collaborator used by the predicate evaluator.
    Errors surface as OpenError so callers only deal with one per-entry type.
    """

    def stat(self, path: Path) -> int:
        """Returns the size in bytes."""
        try:
            return path.stat().st_size
        except OSError as e:
            raise OpenError(f"cannot stat {path}: {e}") from e

    @contextmanager
    def open(self, path: Path) -> Iterator[BinaryIO]:
        try:
            f = path.open('rb')
        except OSError as e:
            raise OpenError(f"cannot open {path}: {e}") from e
        with f:
            yield f


class DirectoryEnumerator:
    def __init__(self, recursive: bool = True):
        self.recursive = recursive

    def list_files(self, root: Path) -> List[Path]:
        """
        Returns every regular file under root (or directly in it, when flat).
        Order is not meaningful.

        Raises:
            EnumerationError: root is missing, not a directory, or unreadable.
        """
        root = Path(root)
        if not root.exists():
            raise EnumerationError(f"Scan root {root} does not exist.")
        if not root.is_dir():
            raise EnumerationError(f"Scan root {root} is not a directory.")

        # Read the root eagerly so an unreadable root fails before anything runs
        try:
            with os.scandir(root) as it:
                top = list(it)
        except OSError as e:
            raise EnumerationError(f"Cannot read scan root {root}: {e}") from e

        files: List[Path] = []
        stack: List[Path] = []
        self._split(top, files, stack)

        if self.recursive:
            while stack:
                current = stack.pop()
                try:
                    with os.scandir(current) as it:
                        entries = list(it)
                except OSError:
                    logging.warning(f"Permission denied: {current}")
                    continue
                self._split(entries, files, stack)

        return files

    def _split(self, entries: List[os.DirEntry], files: List[Path], dirs: List[Path]):
        """Sorts scandir entries into files and subdirectories. Symlinks are skipped."""
        for e in entries:
            try:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    files.append(Path(e.path))
            except OSError:
                logging.debug(f"Skipping entry that vanished or cannot be inspected: {e.path}")
