"""
Exception types for Notatio Sinistra.

Only malformed source input is meant to reach the end user as a blocking
failure; everything else is either a programming error (NotationError)
or local to a single render/export call.
"""


class NotatioError(Exception):
    """Base class for all Notatio Sinistra errors."""


class NotationError(NotatioError):
    """A score violates one of the notation model invariants."""


class SourceFormatError(NotatioError):
    """A source file could not be turned into a complete Score."""


class UnsupportedFormatError(SourceFormatError):
    """The source file type is not handled by any adapter."""


class RenderError(NotatioError):
    """Rendering could not proceed (e.g. no drawing target available)."""


class ExportError(NotatioError):
    """Converting rendered output into a file format failed."""
