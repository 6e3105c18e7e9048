#!/usr/bin/env python
"""structflow CLI - parallel AlphaFold prediction and PyMOL alignment."""

import logging
from pathlib import Path
from typing import List, Optional

import typer

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="structflow",
    help=(
        "Run per-molecule structure prediction or structure alignment "
        "jobs in parallel.\n\n"
        "Each molecule is processed independently: a failure for one "
        "molecule is reported at the end and never stops the others.\n\n"
        "By default, commands run quietly with minimal output. Use "
        "--verbose to enable detailed logging."
    ),
    no_args_is_help=True,
    add_completion=False,
)


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------


def _setup_logging(verbose: bool) -> None:
    """Configure logging for the CLI.

    Default (non-verbose) runs only show warnings and errors, which
    includes one warning per failed molecule.  With --verbose, debug
    logs from all components are enabled.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,  # Override any existing handlers
    )
    if verbose:
        logging.captureWarnings(True)
    else:
        logging.getLogger("omegaconf").setLevel(logging.ERROR)


def _make_service(work_dir: Path):
    """Create the execution service used by all commands."""
    from structflow.execution import ProcessExecutionService

    return ProcessExecutionService(work_dir=work_dir)


def _announce(message: str) -> None:
    typer.echo(message)


def _execute(
    config,
    *,
    summary_json: Optional[Path],
    show_progress: bool,
    fail_on_error: bool,
) -> None:
    """Run *config*, print the aggregate report and set the exit code."""
    from structflow.errors import StructflowError
    from structflow.orchestrator import run
    from structflow.report import (
        count_failures,
        format_outcomes,
        write_outcomes_json,
    )

    try:
        config.validate()
        outcomes = run(
            config,
            _make_service(config.work_dir),
            announce=_announce,
            show_progress=show_progress,
        )
    except StructflowError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(format_outcomes(outcomes))
    if summary_json is not None:
        written = write_outcomes_json(outcomes, summary_json)
        typer.echo(f"Summary JSON: {written}")

    if fail_on_error and count_failures(outcomes):
        raise typer.Exit(code=1)


# -------------------------------------------------------------------
# Commands
# -------------------------------------------------------------------


@app.command()
def predict(
    input_dir: Path = typer.Option(
        ..., "--input-dir", help="Directory of FASTA files, one per molecule"
    ),
    scratch_dir: Path = typer.Option(
        ..., "--scratch-dir", help="Scratch directory used as container home"
    ),
    sif_path: Path = typer.Option(
        ..., "--sif-path", help="AlphaFold Apptainer image (.sif)"
    ),
    db_dir: Path = typer.Option(
        ..., "--db-dir", help="AlphaFold reference database directory"
    ),
    out_dir: Path = typer.Option(
        Path("out"), "--out-dir", help="AlphaFold output directory"
    ),
    work_dir: Path = typer.Option(
        Path("."), "--work-dir", help="Directory holding per-step run directories"
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-j",
        min=1,
        help="Number of molecules in flight (default: all at once)",
    ),
    summary_json: Optional[Path] = typer.Option(
        None, "--summary-json", help="Write a JSON summary of all outcomes"
    ),
    no_progress: bool = typer.Option(
        False, "--no-progress", help="Suppress progress bar"
    ),
    fail_on_error: bool = typer.Option(
        False,
        "--fail-on-error",
        help="Exit with status 1 if any molecule failed",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable detailed logging from all components"
    ),
):
    """Predict structures with AlphaFold, one Slurm job per FASTA file."""
    _setup_logging(verbose)

    from structflow.config import RunConfig, RunMode

    config = RunConfig(
        mode=RunMode.PREDICT,
        input_dir=input_dir,
        scratch_dir=scratch_dir,
        sif_path=sif_path,
        db_dir=db_dir,
        out_dir=out_dir,
        work_dir=work_dir,
        workers=workers,
    )
    _execute(
        config,
        summary_json=summary_json,
        show_progress=not no_progress,
        fail_on_error=fail_on_error,
    )


@app.command()
def align(
    input_pdb: Optional[List[Path]] = typer.Option(
        None,
        "--input-pdb",
        "-p",
        help="Reference structure (repeat for several molecules)",
    ),
    alignment_dir: Optional[List[Path]] = typer.Option(
        None,
        "--alignment-dir",
        "-a",
        help="Candidate directory paired with the --input-pdb at the same position",
    ),
    extension: str = typer.Option(
        ".pdb", "--extension", help="Candidate file extension"
    ),
    work_dir: Path = typer.Option(
        Path("."), "--work-dir", help="Directory holding per-step run directories"
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-j",
        min=1,
        help="Number of molecules in flight (default: all at once)",
    ),
    summary_json: Optional[Path] = typer.Option(
        None, "--summary-json", help="Write a JSON summary of all outcomes"
    ),
    no_progress: bool = typer.Option(
        False, "--no-progress", help="Suppress progress bar"
    ),
    fail_on_error: bool = typer.Option(
        False,
        "--fail-on-error",
        help="Exit with status 1 if any molecule failed",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable detailed logging from all components"
    ),
):
    """Align reference structures against candidate directories with PyMOL."""
    _setup_logging(verbose)

    from structflow.config import RunConfig, RunMode

    config = RunConfig(
        mode=RunMode.ALIGN,
        input_pdbs=list(input_pdb or []),
        alignment_dirs=list(alignment_dir or []),
        extension=extension,
        work_dir=work_dir,
        workers=workers,
    )
    _execute(
        config,
        summary_json=summary_json,
        show_progress=not no_progress,
        fail_on_error=fail_on_error,
    )


@app.command(
    context_settings={
        "allow_extra_args": True,
        "allow_interspersed_args": False,
    }
)
def run(
    ctx: typer.Context,
    config_file: Path = typer.Argument(
        ..., metavar="CONFIG", help="YAML run configuration"
    ),
    summary_json: Optional[Path] = typer.Option(
        None, "--summary-json", help="Write a JSON summary of all outcomes"
    ),
    no_progress: bool = typer.Option(
        False, "--no-progress", help="Suppress progress bar"
    ),
    fail_on_error: bool = typer.Option(
        False,
        "--fail-on-error",
        help="Exit with status 1 if any molecule failed",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable detailed logging from all components"
    ),
):
    """Execute a run described by a YAML configuration file.

    Extra arguments are applied as config overrides (key=value syntax).
    Example: structflow run predict.yaml workers=4 out_dir=results/
    """
    _setup_logging(verbose)

    from structflow.config import load_run_config
    from structflow.errors import ConfigurationError

    try:
        config = load_run_config(config_file, overrides=ctx.args or None)
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    _execute(
        config,
        summary_json=summary_json,
        show_progress=not no_progress,
        fail_on_error=fail_on_error,
    )


# -------------------------------------------------------------------
# Entry point
# -------------------------------------------------------------------


def main():
    """CLI entry point (called by ``structflow`` console script)."""
    app()


if __name__ == "__main__":
    main()
