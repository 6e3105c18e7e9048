"""Step builders for structure prediction and structure alignment."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from structflow.config import AlphaFoldConfig
from structflow.errors import CandidateIOError, NameResolutionError
from structflow.pymol_script import (
    DEFAULT_EXTENSION,
    REPORT_FILENAME,
    list_candidates,
    render_alignment_script,
)
from structflow.step import IMPLICIT_DEPENDENCY, ExecutorClass, StepDescriptor

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

PREDICTION_FILENAME = "ranked_0.pdb"

_ALIGNMENT_WRAPPER = """\
printf '%s\\n' "$pymol_script" > pymol_script.py
pymol -cq pymol_script.py
"""


def molecule_name(path: PathLike) -> str:
    """Derive the molecule name from the stem of *path*."""
    path = Path(path)
    if path.name in ("", ".", "..") or not path.stem:
        raise NameResolutionError(
            f"No resolvable file name in path {str(path)!r}"
        )
    return path.stem


def prediction_output(out_dir: PathLike, molecule: str) -> Path:
    """Location of the top-ranked model AlphaFold writes for *molecule*."""
    return Path(out_dir) / molecule / PREDICTION_FILENAME


def _alphafold_script(config: AlphaFoldConfig) -> str:
    binds = " ".join(f"-B {mount}" for mount in config.bind_mounts)
    db = '"$db_dir"'
    return f"""\
apptainer exec --nv \\
  {binds} \\
  --home="$scratch_dir" \\
  "$sif_path" \\
  python {config.alphafold_script} \\
    --fasta_paths="$input" \\
    --output_dir="$out_dir" \\
    --data_dir={db} \\
    --db_preset={config.db_preset} \\
    --model_preset={config.model_preset} \\
    --bfd_database_path={db}/{config.bfd_database} \\
    --mgnify_database_path={db}/{config.mgnify_database} \\
    --template_mmcif_dir={db}/{config.template_mmcif_dir} \\
    --obsolete_pdbs_path={db}/{config.obsolete_pdbs} \\
    --pdb70_database_path={db}/{config.pdb70_database} \\
    --uniref30_database_path={db}/{config.uniref30_database} \\
    --uniref90_database_path={db}/{config.uniref90_database} \\
    --max_template_date={config.max_template_date} \\
    --use_gpu_relax={config.use_gpu_relax}
"""


def build_prediction_step(
    input_file: PathLike,
    molecule: str,
    *,
    scratch_dir: PathLike,
    sif_path: PathLike,
    db_dir: PathLike,
    out_dir: PathLike = "out",
    config: AlphaFoldConfig = AlphaFoldConfig(),
) -> StepDescriptor:
    """Describe an AlphaFold prediction of one FASTA file on Slurm."""
    input_file = Path(input_file).absolute()
    scratch_dir = Path(scratch_dir).absolute()
    sif_path = Path(sif_path).absolute()
    db_dir = Path(db_dir).absolute()
    out_dir = Path(out_dir).absolute()

    return StepDescriptor(
        name=f"alphafold_{molecule}",
        executor=ExecutorClass.SLURM,
        script=_alphafold_script(config),
        inputs=[input_file, scratch_dir, sif_path, db_dir],
        outputs=[prediction_output(out_dir, molecule)],
        dependencies=[IMPLICIT_DEPENDENCY, "apptainer"],
        variables={
            "input": input_file,
            "scratch_dir": scratch_dir,
            "sif_path": sif_path,
            "db_dir": db_dir,
            "out_dir": out_dir,
        },
        description="Runs AlphaFold to predict the structure of a FASTA file",
    )


def build_alignment_step(
    reference: PathLike,
    candidate_dir: PathLike,
    molecule: str,
    extension: str = DEFAULT_EXTENSION,
) -> StepDescriptor:
    """Describe a PyMOL alignment of *reference* against a directory.

    Raises
    ------
    CandidateIOError
        If *candidate_dir* cannot be listed.
    """
    reference = Path(reference).absolute()
    try:
        candidates = list_candidates(
            Path(candidate_dir).absolute(), extension
        )
    except OSError as exc:
        raise CandidateIOError(
            f"Could not read candidate directory {candidate_dir}: {exc}"
        ) from exc
    logger.debug(
        f"{molecule}: {len(candidates)} candidate(s) in {candidate_dir}"
    )

    script = render_alignment_script(reference, candidates)
    return StepDescriptor(
        name=f"pymol_{molecule}",
        executor=ExecutorClass.DIRECT,
        script=_ALIGNMENT_WRAPPER,
        arguments=(script,),
        inputs=[reference, *(c.path for c in candidates)],
        outputs=[REPORT_FILENAME],
        dependencies=["pymol"],
        variables={"pymol_script": script},
        description=(
            "Runs PyMOL to align a reference structure against one or "
            "more test structures"
        ),
    )
