"""
structflow: parallel per-molecule structure prediction and alignment.

This package fans out one AlphaFold prediction (submitted to Slurm) or
one PyMOL alignment per molecule, isolates the failure of any single
molecule, and reports an outcome for every input.
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy import modules only when accessed."""
    if name == "RunConfig":
        from structflow.config import RunConfig

        return RunConfig
    elif name == "RunMode":
        from structflow.config import RunMode

        return RunMode
    elif name == "AlphaFoldConfig":
        from structflow.config import AlphaFoldConfig

        return AlphaFoldConfig
    elif name == "StepDescriptor":
        from structflow.step import StepDescriptor

        return StepDescriptor
    elif name == "ExecutorClass":
        from structflow.step import ExecutorClass

        return ExecutorClass
    elif name == "WorkOutcome":
        from structflow._parallel import WorkOutcome

        return WorkOutcome
    elif name == "dispatch":
        from structflow._parallel import dispatch

        return dispatch
    elif name == "run":
        from structflow.orchestrator import run

        return run
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "RunConfig",
    "RunMode",
    "AlphaFoldConfig",
    "StepDescriptor",
    "ExecutorClass",
    "WorkOutcome",
    "dispatch",
    "run",
]
