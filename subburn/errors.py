"""
Utility: errors.py
------------------
Exception types raised inside the burn-in pipeline. The orchestrator in
burn_utils catches all of them and turns them into state updates.
"""


class SubburnError(RuntimeError):
    """Base class for every pipeline failure."""


class FormatError(SubburnError, ValueError):
    """Raised when a timestamp string is not hh:mm:ss."""


class ValidationError(SubburnError, ValueError):
    """Raised for malformed colours, bad style values or negative seeks."""


class MissingInputError(SubburnError):
    """Raised when the video or the subtitle input is missing."""


class EngineInitError(SubburnError):
    """Raised when the engine core cannot be fetched or loaded."""


class AssetLoadError(SubburnError):
    """Raised when a font cannot be fetched or staged."""


class ExecutionError(SubburnError):
    """Raised when an engine command fails."""
