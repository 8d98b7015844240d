"""Error kinds raised by the analysis core.

Each one aborts only the operation that raised it: a bad upload fails its
session, an empty segment yields an empty analysis, a failed export skips
one sample of a batch.
"""


class AlchemistError(Exception):
    """Base class for all service errors."""


class DecodeError(AlchemistError):
    """Uploaded audio could not be read or contains no samples."""


class AnalysisError(AlchemistError):
    """Analysis hit a degenerate input (empty segment, missing audio)."""


class ExportError(AlchemistError):
    """A sample region could not be rendered to an audio file."""


class SelectionError(AlchemistError):
    """An operation was requested on too few (or incompatible) samples."""
