"""Tests for structflow.cli module (Typer-based CLI)."""

import json
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from structflow.cli import app
from structflow.errors import ExecutionError

runner = CliRunner()


@pytest.fixture()
def service(monkeypatch):
    """Replace the process execution service with a mock."""

    def _execute(step):
        if step.name.endswith("_bad"):
            raise ExecutionError(f"{step.name}: exited with status 1")
        return tuple(sorted(step.outputs))

    mock = MagicMock()
    mock.execute.side_effect = _execute
    monkeypatch.setattr("structflow.cli._make_service", lambda work_dir: mock)
    return mock


@pytest.fixture()
def fasta_dir(tmp_path):
    directory = tmp_path / "fasta"
    directory.mkdir()
    for name in ("A.fasta", "B.fasta"):
        (directory / name).write_text(">seq\nMKV\n")
    return directory


def _predict_args(tmp_path, input_dir):
    return [
        "predict",
        "--input-dir",
        str(input_dir),
        "--scratch-dir",
        str(tmp_path / "scratch"),
        "--sif-path",
        str(tmp_path / "af.sif"),
        "--db-dir",
        str(tmp_path / "db"),
        "--no-progress",
    ]


class TestAppStructure:
    """Tests for the CLI app structure and subcommands."""

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "predict" in result.output or "Usage" in result.output

    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "predict" in result.output
        assert "align" in result.output
        assert "run" in result.output


class TestPredict:
    """Tests for the predict subcommand."""

    def test_help(self):
        result = runner.invoke(app, ["predict", "--help"])
        assert result.exit_code == 0
        assert "alphafold" in result.output.lower()

    def test_missing_args(self):
        result = runner.invoke(app, ["predict"])
        assert result.exit_code != 0

    def test_reports_each_entity(self, tmp_path, fasta_dir, service):
        result = runner.invoke(app, _predict_args(tmp_path, fasta_dir))
        assert result.exit_code == 0, result.output
        assert "Started workflow 'A'" in result.output
        assert "Started workflow 'B'" in result.output
        assert "2 succeeded, 0 failed" in result.output
        assert "out/A/ranked_0.pdb" in result.output
        assert service.execute.call_count == 2

    def test_missing_input_dir(self, tmp_path, service):
        result = runner.invoke(
            app, _predict_args(tmp_path, tmp_path / "missing")
        )
        assert result.exit_code == 1
        assert "input_dir could not be read" in result.output
        service.execute.assert_not_called()

    def test_failure_reported(self, tmp_path, service):
        directory = tmp_path / "fasta"
        directory.mkdir()
        (directory / "A.fasta").write_text("")
        (directory / "A_bad.fasta").write_text("")
        result = runner.invoke(app, _predict_args(tmp_path, directory))
        assert result.exit_code == 0
        assert "1 succeeded, 1 failed" in result.output
        assert "exited with status 1" in result.output

    def test_fail_on_error(self, tmp_path, service):
        directory = tmp_path / "fasta"
        directory.mkdir()
        (directory / "A_bad.fasta").write_text("")
        result = runner.invoke(
            app, _predict_args(tmp_path, directory) + ["--fail-on-error"]
        )
        assert result.exit_code == 1

    def test_summary_json(self, tmp_path, fasta_dir, service):
        summary = tmp_path / "summary.json"
        result = runner.invoke(
            app,
            _predict_args(tmp_path, fasta_dir) + ["--summary-json", str(summary)],
        )
        assert result.exit_code == 0
        data = json.loads(summary.read_text())
        assert data["total"] == 2


class TestAlign:
    """Tests for the align subcommand."""

    def test_help(self):
        result = runner.invoke(app, ["align", "--help"])
        assert result.exit_code == 0
        assert "pymol" in result.output.lower()

    def test_single_pair(self, tmp_path, service):
        models = tmp_path / "models"
        models.mkdir()
        (models / "m1.pdb").write_text("")
        result = runner.invoke(
            app,
            [
                "align",
                "-p",
                str(tmp_path / "p1.pdb"),
                "-a",
                str(models),
                "--no-progress",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "Started workflow 'p1'" in result.output
        assert "1 succeeded, 0 failed" in result.output

    def test_mismatched_lengths(self, tmp_path, service):
        result = runner.invoke(
            app,
            [
                "align",
                "-p",
                str(tmp_path / "p1.pdb"),
                "-p",
                str(tmp_path / "p2.pdb"),
                "-a",
                str(tmp_path),
                "--no-progress",
            ],
        )
        assert result.exit_code == 1
        assert "equal in length" in result.output
        service.execute.assert_not_called()

    def test_no_inputs(self, service):
        result = runner.invoke(app, ["align", "--no-progress"])
        assert result.exit_code == 1
        assert "input_pdbs" in result.output


class TestRun:
    """Tests for the run subcommand."""

    def test_missing_config(self, tmp_path, service):
        result = runner.invoke(app, ["run", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_unknown_mode(self, tmp_path, service):
        config = tmp_path / "run.yaml"
        config.write_text("mode: fold\n")
        result = runner.invoke(app, ["run", str(config)])
        assert result.exit_code == 1
        assert "mode must be set" in result.output
        service.execute.assert_not_called()

    def test_predict_from_yaml(self, tmp_path, fasta_dir, service):
        config = tmp_path / "run.yaml"
        config.write_text(
            "mode: predict\n"
            f"input_dir: {fasta_dir}\n"
            "scratch_dir: /scratch\n"
            "sif_path: /af.sif\n"
            "db_dir: /db\n"
        )
        result = runner.invoke(app, ["run", "--no-progress", str(config)])
        assert result.exit_code == 0, result.output
        assert "2 succeeded" in result.output

    def test_overrides(self, tmp_path, fasta_dir, service):
        config = tmp_path / "run.yaml"
        config.write_text(
            "mode: predict\n"
            f"input_dir: {fasta_dir}\n"
            "scratch_dir: /scratch\n"
            "sif_path: /af.sif\n"
            "db_dir: /db\n"
        )
        result = runner.invoke(
            app, ["run", "--no-progress", str(config), "out_dir=results"]
        )
        assert result.exit_code == 0, result.output
        assert "results/A/ranked_0.pdb" in result.output
