"""Mode selection and per-entity work for prediction and alignment runs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from structflow._parallel import WorkOutcome, dispatch
from structflow._progress import DispatchProgress
from structflow.builders import (
    build_alignment_step,
    build_prediction_step,
    molecule_name,
)
from structflow.config import RunConfig, RunMode, parse_mode
from structflow.errors import NameResolutionError, RunAbortedError
from structflow.execution import ExecutionService

logger = logging.getLogger(__name__)

Announce = Callable[[str], None]


def _announce_default(message: str) -> None:
    logger.info(message)


def list_inputs(input_dir: Path) -> List[Path]:
    """Return the files in *input_dir*, sorted by name.

    Raises
    ------
    RunAbortedError
        If the directory cannot be read.
    """
    try:
        entries = sorted(Path(input_dir).iterdir())
    except OSError as exc:
        raise RunAbortedError(
            f"input_dir could not be read: {input_dir}: {exc}"
        ) from exc
    files = []
    for entry in entries:
        if entry.is_dir():
            logger.debug(f"Skipping directory {entry}")
            continue
        files.append(entry)
    return files


def find_name_collisions(paths: Sequence[Path]) -> Dict[int, Path]:
    """Map each position whose molecule name was already taken to the
    earlier path that took it.

    Paths without a resolvable name are skipped; they fail on their own
    when their work runs.
    """
    claimed: Dict[str, Path] = {}
    collisions: Dict[int, Path] = {}
    for index, path in enumerate(paths):
        try:
            molecule = molecule_name(path)
        except NameResolutionError:
            continue
        if molecule in claimed:
            collisions[index] = claimed[molecule]
        else:
            claimed[molecule] = Path(path)
    return collisions


def _resolve_molecule(
    index: int, path: Path, collisions: Dict[int, Path]
) -> str:
    molecule = molecule_name(path)
    if index in collisions:
        raise NameResolutionError(
            f"Molecule name {molecule!r} of {path} is already used by "
            f"{collisions[index]}"
        )
    return molecule


def run_predict(
    config: RunConfig,
    service: ExecutionService,
    *,
    announce: Optional[Announce] = None,
    show_progress: bool = False,
) -> List[WorkOutcome]:
    """Predict the structure of every file in ``config.input_dir``."""
    announce = announce or _announce_default
    if config.input_dir is None:
        raise RunAbortedError("predict mode requires input_dir")
    inputs = list_inputs(config.input_dir)
    collisions = find_name_collisions(inputs)
    logger.info(f"Dispatching {len(inputs)} prediction(s)")

    def _work(entry: Tuple[int, Path]) -> Tuple[Path, ...]:
        index, path = entry
        molecule = _resolve_molecule(index, path, collisions)
        announce(f"Started workflow {molecule!r}")
        step = build_prediction_step(
            path,
            molecule,
            scratch_dir=config.scratch_dir,
            sif_path=config.sif_path,
            db_dir=config.db_dir,
            out_dir=config.out_dir,
            config=config.alphafold,
        )
        return service.execute(step)

    with DispatchProgress(enabled=show_progress) as progress:
        return dispatch(
            list(enumerate(inputs)),
            _work,
            label=lambda entry: str(entry[1]),
            max_workers=config.workers,
            progress=progress,
        )


def run_align(
    config: RunConfig,
    service: ExecutionService,
    *,
    announce: Optional[Announce] = None,
    show_progress: bool = False,
) -> List[WorkOutcome]:
    """Align each input structure against its paired candidate directory."""
    announce = announce or _announce_default
    if len(config.input_pdbs) != len(config.alignment_dirs):
        raise RunAbortedError(
            "input_pdbs and alignment_dirs must be equal in length "
            f"({len(config.input_pdbs)} != {len(config.alignment_dirs)})"
        )
    pairs = list(zip(config.input_pdbs, config.alignment_dirs))
    collisions = find_name_collisions(config.input_pdbs)
    logger.info(f"Dispatching {len(pairs)} alignment(s)")

    def _work(entry: Tuple[int, Tuple[Path, Path]]) -> Tuple[Path, ...]:
        index, (reference, candidate_dir) = entry
        molecule = _resolve_molecule(index, reference, collisions)
        announce(f"Started workflow {molecule!r}")
        step = build_alignment_step(
            reference, candidate_dir, molecule, config.extension
        )
        return service.execute(step)

    with DispatchProgress(enabled=show_progress) as progress:
        return dispatch(
            list(enumerate(pairs)),
            _work,
            label=lambda entry: str(entry[1][0]),
            max_workers=config.workers,
            progress=progress,
        )


_RUNNERS = {
    RunMode.PREDICT: run_predict,
    RunMode.ALIGN: run_align,
}


def run(
    config: RunConfig,
    service: ExecutionService,
    *,
    announce: Optional[Announce] = None,
    show_progress: bool = False,
) -> List[WorkOutcome]:
    """Run the mode selected by ``config.mode``.

    Raises
    ------
    ConfigurationError
        For an unknown mode.
    RunAbortedError
        For conditions that stop the run before any dispatch.
    """
    runner = _RUNNERS[parse_mode(config.mode)]
    return runner(
        config, service, announce=announce, show_progress=show_progress
    )
