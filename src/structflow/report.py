"""Rendering and serialization of dispatch results."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Sequence, Union

from structflow._parallel import WorkOutcome

PathLike = Union[str, Path]


def count_failures(outcomes: Sequence[WorkOutcome]) -> int:
    return sum(1 for outcome in outcomes if not outcome.ok)


def format_outcomes(outcomes: Sequence[WorkOutcome]) -> str:
    """One header line plus one line per entity, in dispatch order."""
    failed = count_failures(outcomes)
    lines = [
        f"Processes terminated: {len(outcomes) - failed} succeeded, "
        f"{failed} failed"
    ]
    for outcome in outcomes:
        if outcome.ok:
            paths = ", ".join(str(p) for p in outcome.outputs) or "(no outputs)"
            lines.append(f"  [ok]     {outcome.item}: {paths}")
        else:
            lines.append(f"  [failed] {outcome.item}: {outcome.error}")
    return "\n".join(lines)


def outcomes_to_dict(outcomes: Sequence[WorkOutcome]) -> Dict[str, Any]:
    """Convert outcomes into JSON-serializable data."""
    failed = count_failures(outcomes)
    return {
        "total": len(outcomes),
        "succeeded": len(outcomes) - failed,
        "failed": failed,
        "outcomes": [
            {
                "item": outcome.item,
                "ok": outcome.ok,
                "outputs": [str(p) for p in outcome.outputs],
                "error": outcome.error,
            }
            for outcome in outcomes
        ],
    }


def write_outcomes_json(
    outcomes: Sequence[WorkOutcome], output_path: PathLike
) -> Path:
    """Write the dispatch summary JSON and return the path."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(outcomes_to_dict(outcomes), f, indent=2)
    return path
