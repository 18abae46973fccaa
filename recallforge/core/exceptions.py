"""Exceptions raised by the recallforge engine."""


class RecallForgeError(Exception):
    """Base class for engine errors."""


class IngestError(RecallForgeError):
    """Raised when a raw payload cannot be turned into domain records."""


class LifecycleError(RecallForgeError):
    """Raised when a page cycle transition is not allowed in its current phase."""
