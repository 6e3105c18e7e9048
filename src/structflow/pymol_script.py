"""PyMOL alignment script generation.

The generated script loads one reference structure under the ``fusion``
handle, loads every candidate structure under its file name, aligns each
candidate against the reference and writes one RMSD line per candidate
to ``alignment_rmsds.txt``.

Script text is assembled from indented template fragments and then
normalized line by line, so the result never depends on the indentation
of the source that produced it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Union

PathLike = Union[str, Path]

REFERENCE_HANDLE = "fusion"
REPORT_FILENAME = "alignment_rmsds.txt"
DEFAULT_EXTENSION = ".pdb"


@dataclass(frozen=True)
class CandidateFile:
    """A structure file discovered in a candidate directory."""

    path: Path

    @property
    def handle(self) -> str:
        """PyMOL object name used for this candidate."""
        return self.path.name


def _normalize_extension(extension: str) -> str:
    return extension if extension.startswith(".") else f".{extension}"


def list_candidates(
    directory: PathLike, extension: str = DEFAULT_EXTENSION
) -> List[CandidateFile]:
    """List files in *directory* whose suffix equals *extension*.

    The listing is not recursive.  Results are sorted by file name so
    that script output is reproducible across filesystems.  ``OSError``
    from reading the directory propagates to the caller.
    """
    suffix = _normalize_extension(extension)
    candidates = [
        CandidateFile(entry)
        for entry in Path(directory).iterdir()
        if entry.suffix == suffix and entry.is_file()
    ]
    return sorted(candidates, key=lambda c: c.path.name)


def normalize_script(text: str) -> str:
    """Strip every line, drop blank ones and rejoin with newlines."""
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line) + "\n"


def _literal(value: object) -> str:
    """Render *value* as a double-quoted Python string literal."""
    return json.dumps(str(value))


def _load_section(candidates: Sequence[CandidateFile]) -> str:
    return "\n".join(
        f"cmd.load({_literal(c.path)}, {_literal(c.handle)})"
        for c in candidates
    )


def _report_section(candidates: Sequence[CandidateFile]) -> str:
    return "\n".join(
        f"""
            rmsd = cmd.align({_literal(REFERENCE_HANDLE)}, {_literal(c.handle)})[0]
            f.write("RMSD ({REFERENCE_HANDLE} vs %s): %s\\n" % ({_literal(c.path)}, rmsd))
        """
        for c in candidates
    )


def render_alignment_script(
    reference: PathLike, candidates: Sequence[CandidateFile]
) -> str:
    """Build the normalized PyMOL script for one reference structure.

    Parameters
    ----------
    reference : str or Path
        Structure every candidate is aligned against.
    candidates : sequence of CandidateFile
        Structures to align, in the order they appear in the script.
        May be empty, in which case the script only loads the reference
        and writes an empty report.
    """
    script = f"""
        from pymol import cmd
        cmd.load({_literal(reference)}, {_literal(REFERENCE_HANDLE)})
        {_load_section(candidates)}
        f = open({_literal(REPORT_FILENAME)}, "w")
        {_report_section(candidates)}
        f.close()
        cmd.quit()
    """
    return normalize_script(script)
