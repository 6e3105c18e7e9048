"""Example usage of the structflow Python API.

Builds the step descriptors without running anything, then runs an
alignment batch through a custom execution service that only prints
what it would do.
"""

from pathlib import Path

from structflow.builders import (
    build_alignment_step,
    build_prediction_step,
    molecule_name,
)
from structflow.config import RunConfig, RunMode
from structflow.orchestrator import run
from structflow.report import format_outcomes

# ---------------------------------------------------------------
# 1. Inspect a prediction step
# ---------------------------------------------------------------

fasta = Path("fasta/fusion_a.fasta")
step = build_prediction_step(
    fasta,
    molecule_name(fasta),
    scratch_dir="/scratch/me",
    sif_path="/containers/alphafold.sif",
    db_dir="/data/alphafold_db",
)
print(step.name, step.executor.value, sorted(step.outputs))
print(step.script)

# ---------------------------------------------------------------
# 2. Inspect an alignment script
# ---------------------------------------------------------------

align_step = build_alignment_step(
    "fusions/fusion_a.pdb", "predictions/fusion_a/", "fusion_a"
)
print(align_step.arguments[0])


# ---------------------------------------------------------------
# 3. Dry-run a batch with a custom execution service
# ---------------------------------------------------------------


class DryRunService:
    def execute(self, step):
        print(f"would run {step.name} via {step.executor.value}")
        return tuple(sorted(step.outputs))


config = RunConfig(
    mode=RunMode.ALIGN,
    input_pdbs=["fusions/fusion_a.pdb", "fusions/fusion_b.pdb"],
    alignment_dirs=["predictions/fusion_a/", "predictions/fusion_b/"],
)
outcomes = run(config, DryRunService(), announce=print)
print(format_outcomes(outcomes))
