"""
Custom exception hierarchy for the image sieve.

Fatal errors (enumeration, filter parsing) abort a run before any work is
scheduled. Entry errors are per-file and only ever reach the failure tally.
"""


class ImageSieveError(Exception):
    """Base exception for all image sieve errors."""
    pass


class EnumerationError(ImageSieveError):
    """Raised when the scan root is missing, not a directory, or unreadable."""
    pass


class ConstraintSpecError(ImageSieveError):
    """Raised when a filter expression cannot be parsed."""

    def __init__(self, expression: str, reason: str):
        super().__init__(f"invalid filter '{expression}': {reason}")
        self.expression = expression
        self.reason = reason


class EntryError(ImageSieveError):
    """Base for per-entry failures that exclude a file without aborting the run."""
    pass


class OpenError(EntryError):
    """Raised when a file cannot be opened or stat'ed."""
    pass


class DecodeError(EntryError):
    """
    Raised when image data cannot be decoded.

    `info` holds whatever the header already told us (an ImageInfo), or None
    when even the header was unreadable.
    """

    def __init__(self, message: str, info=None):
        super().__init__(message)
        self.info = info


class AggregationError(ImageSieveError):
    """Raised when an aggregate is read more than once."""
    pass
