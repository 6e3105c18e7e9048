"""Rich-based progress monitoring for entity dispatch."""

from __future__ import annotations

import sys


class DispatchProgress:
    """Context manager wrapping ``rich.progress.Progress``.

    Shows a single bar advanced once per finished entity, with the
    label and status of the most recent one.

    All public methods are safe to call unconditionally; when
    ``enabled=False`` (or non-TTY stderr) every method is a no-op.
    """

    def __init__(self, enabled: bool = True):
        self._enabled = enabled and sys.stderr.isatty()
        self._progress = None
        self._task = None
        self._failed = 0

    def __enter__(self) -> "DispatchProgress":
        if not self._enabled:
            return self

        from rich.progress import (
            BarColumn,
            MofNCompleteColumn,
            Progress,
            SpinnerColumn,
            TextColumn,
            TimeElapsedColumn,
        )

        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(bar_width=35),
            MofNCompleteColumn(),
            TextColumn("{task.fields[status]}"),
            TimeElapsedColumn(),
            transient=False,
            console=self._make_console(),
        )
        self._progress.start()
        return self

    def __exit__(self, *args) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None

    @staticmethod
    def _make_console():
        from rich.console import Console

        return Console(stderr=True)

    @property
    def failed(self) -> int:
        return self._failed

    def start(self, total: int, description: str = "Entities") -> None:
        if self._progress is None:
            return
        self._task = self._progress.add_task(
            description,
            total=total,
            status="",
        )

    def advance(self, label: str, ok: bool) -> None:
        if not ok:
            self._failed += 1
        if self._progress is None or self._task is None:
            return
        status = f"{label} {'done' if ok else 'failed'}"
        if self._failed:
            status += f" ({self._failed} failed)"
        self._progress.update(self._task, advance=1, status=status)

    def finish(self) -> None:
        if self._progress is None or self._task is None:
            return
        self._progress.update(self._task, status="done")
        self._task = None
