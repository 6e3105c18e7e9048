"""Execution service: turns step descriptors into running processes."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Protocol, Sequence, Tuple, Union

from structflow.errors import ExecutionError
from structflow.step import ExecutorClass, StepDescriptor

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ExecutionService(Protocol):
    """Runs one step to completion and returns its output paths."""

    def execute(self, step: StepDescriptor) -> Tuple[Path, ...]:
        ...


class ProcessExecutionService:
    """Run steps as local shell scripts or blocking Slurm submissions.

    Every step gets its own directory under ``work_dir`` named after the
    step, so relative outputs of different steps never collide.  The
    step's ``variables`` are exported into the script's environment.
    Slurm steps are submitted with ``sbatch --wait``, which blocks until
    the job finishes and propagates its exit code.
    """

    def __init__(
        self,
        work_dir: PathLike = ".",
        sbatch_args: Sequence[str] = (),
    ):
        self.work_dir = Path(work_dir)
        self.sbatch_args = tuple(sbatch_args)

    def step_dir(self, step: StepDescriptor) -> Path:
        return self.work_dir.absolute() / step.name

    def _check_dependencies(self, step: StepDescriptor) -> None:
        missing = [
            dep for dep in step.named_dependencies if shutil.which(dep) is None
        ]
        if missing:
            raise ExecutionError(
                f"{step.name}: required tool(s) not found on PATH: "
                f"{', '.join(missing)}"
            )

    def _command(self, step: StepDescriptor, script_path: Path) -> list:
        if step.executor == ExecutorClass.SLURM:
            return [
                "sbatch",
                "--wait",
                "--job-name",
                step.name,
                *self.sbatch_args,
                str(script_path),
            ]
        return ["bash", str(script_path)]

    def _resolve_output(self, step_dir: Path, output: Path) -> Path:
        return output if output.is_absolute() else step_dir / output

    def execute(self, step: StepDescriptor) -> Tuple[Path, ...]:
        """Run *step* and return its declared outputs.

        Raises
        ------
        ExecutionError
            If a dependency is missing, the process exits non-zero, or a
            declared output does not exist afterwards.
        """
        self._check_dependencies(step)

        step_dir = self.step_dir(step)
        step_dir.mkdir(parents=True, exist_ok=True)
        script_path = step_dir / f"{step.name}.sh"
        script_path.write_text("#!/bin/bash\nset -e\n" + step.script)
        log_path = step_dir / f"{step.name}.log"

        env = dict(os.environ)
        env.update(step.variables)

        command = self._command(step, script_path)
        logger.debug(f"{step.name}: running {' '.join(command)} in {step_dir}")
        try:
            with open(log_path, "w") as log:
                completed = subprocess.run(
                    command,
                    cwd=step_dir,
                    env=env,
                    stdout=log,
                    stderr=subprocess.STDOUT,
                )
        except OSError as exc:
            raise ExecutionError(f"{step.name}: could not start: {exc}") from exc

        if completed.returncode != 0:
            raise ExecutionError(
                f"{step.name}: exited with status {completed.returncode} "
                f"(see {log_path})"
            )

        outputs = tuple(
            self._resolve_output(step_dir, output)
            for output in sorted(step.outputs)
        )
        missing = [str(path) for path in outputs if not path.exists()]
        if missing:
            raise ExecutionError(
                f"{step.name}: declared output(s) missing: {', '.join(missing)}"
            )
        logger.info(f"{step.name}: finished")
        return outputs
