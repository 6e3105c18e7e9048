"""Exception hierarchy for run-level and per-entity failures."""


class StructflowError(Exception):
    """Base class for all structflow errors."""


class ConfigurationError(StructflowError):
    """Raised for invalid or incomplete run configuration."""


class RunAbortedError(StructflowError):
    """Raised when a run must stop before any entity is dispatched."""


class NameResolutionError(StructflowError):
    """Raised when no molecule name can be derived from a path."""


class CandidateIOError(StructflowError):
    """Raised when an alignment candidate directory cannot be read."""


class ExecutionError(StructflowError):
    """Raised when an external tool invocation fails."""
