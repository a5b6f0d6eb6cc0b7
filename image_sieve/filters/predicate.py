import logging
from pathlib import Path

from ..exceptions import DecodeError
from ..models import Metadata, Stage
from .constraints import FilterSet


class PredicateEvaluator:
    """
    Decides whether one file passes a FilterSet, doing as little I/O as the
    constraints allow.

    Stages run cheapest first and stop at the first failing constraint:
      PATH    -> extension checks, no I/O
      STAT    -> size checks, one stat call
      HEADER  -> dimension/channel checks, header decode only
      CONTENT -> validity checks, full decode
    """

    def __init__(self, filters: FilterSet, filesystem, decoder):
        self.filters = filters
        self.fs = filesystem
        self.decoder = decoder

    def evaluate(self, path: Path) -> bool:
        """
        Returns True if path satisfies every constraint.

        Raises:
            OpenError: The file could not be stat'ed or opened.
            DecodeError: The image could not be decoded and no validity
                         filter is present to make that a regular outcome.
        """
        meta = Metadata(path=path)

        if not self._passes(meta, Stage.PATH):
            return False

        if self.filters.needs(Stage.STAT):
            meta.size_bytes = self.fs.stat(path)
            if not self._passes(meta, Stage.STAT):
                return False

        deepest = self.filters.stage
        if deepest is not None and deepest >= Stage.HEADER:
            self._decode(meta, full=deepest >= Stage.CONTENT)
            if not self._passes(meta, Stage.HEADER):
                return False
            if not self._passes(meta, Stage.CONTENT):
                return False

        return True

    def _passes(self, meta: Metadata, stage: Stage) -> bool:
        return all(c.matches(meta) for c in self.filters.at_stage(stage))

    def _decode(self, meta: Metadata, full: bool):
        with self.fs.open(meta.path) as stream:
            try:
                if full:
                    info = self.decoder.decode_full(stream)
                else:
                    info = self.decoder.decode_header(stream)
            except DecodeError as e:
                # A validity filter turns a decode failure into an answer
                if not full:
                    raise
                meta.decode_error = str(e)
                info = e.info
                if info is None:
                    return

        logging.debug(f"{meta.path}: {info.format} {info.width}x{info.height} {info.mode}")
        meta.width = info.width
        meta.height = info.height
        meta.mode = info.mode
