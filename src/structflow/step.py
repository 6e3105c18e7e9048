"""Declarative descriptors for external tool invocations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, List, Mapping, Union

PathLike = Union[str, Path]

# Dependency placeholder: the step needs its environment, but no
# specific executable can be named for it.
IMPLICIT_DEPENDENCY = "!"


class ExecutorClass(str, Enum):
    """Execution backends a step can target."""

    DIRECT = "direct"
    SLURM = "slurm"


def _paths(values: Iterable[PathLike]) -> frozenset:
    return frozenset(Path(v) for v in values)


@dataclass(frozen=True)
class StepDescriptor:
    """One external invocation, described but not executed.

    The script body references its inputs as shell variables; the
    ``variables`` mapping supplies their values.  Instances are
    immutable and carry no behaviour beyond accessors.
    """

    name: str
    executor: ExecutorClass
    script: str
    arguments: tuple[str, ...] = ()
    inputs: frozenset = field(default_factory=frozenset)
    outputs: frozenset = field(default_factory=frozenset)
    dependencies: frozenset = field(default_factory=frozenset)
    variables: Mapping[str, str] = field(default_factory=dict, hash=False)
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("StepDescriptor requires a non-empty name")
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "executor", ExecutorClass(self.executor))
        object.__setattr__(self, "arguments", tuple(self.arguments))
        object.__setattr__(self, "inputs", _paths(self.inputs))
        object.__setattr__(self, "outputs", _paths(self.outputs))
        object.__setattr__(
            self, "dependencies", frozenset(self.dependencies)
        )
        object.__setattr__(
            self,
            "variables",
            MappingProxyType({str(k): str(v) for k, v in self.variables.items()}),
        )

    @property
    def named_dependencies(self) -> List[str]:
        """Dependency names without the implicit placeholder."""
        return sorted(
            dep for dep in self.dependencies if dep != IMPLICIT_DEPENDENCY
        )

    @property
    def requires_implicit(self) -> bool:
        return IMPLICIT_DEPENDENCY in self.dependencies
