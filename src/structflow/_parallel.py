"""Thread-level fan-out of per-entity work.

Each entity's work function spends its time blocked on an external
tool (a local PyMOL process or a Slurm job), so threads are enough to
run them side by side.  Failures are captured per entity and returned
alongside the successes, in input order.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import (
    Callable,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

from structflow._progress import DispatchProgress

logger = logging.getLogger(__name__)

T = TypeVar("T")

WorkReturn = Union[str, Path, Sequence[Union[str, Path]]]


@dataclass(frozen=True)
class WorkOutcome:
    """Result of one entity's work: output paths or an error."""

    item: str
    outputs: Tuple[Path, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def artifact(self) -> Optional[Path]:
        """First produced path, or ``None`` for failures."""
        return self.outputs[0] if self.outputs else None


def _as_outputs(value: WorkReturn) -> Tuple[Path, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, Path)):
        return (Path(value),)
    return tuple(Path(v) for v in value)


def _run_item(
    work: Callable[[T], WorkReturn], item: T, item_label: str
) -> WorkOutcome:
    """Run *work* on one item, converting any exception to an outcome."""
    try:
        return WorkOutcome(item=item_label, outputs=_as_outputs(work(item)))
    except Exception as exc:
        logger.debug(f"{item_label} failed", exc_info=True)
        return WorkOutcome(
            item=item_label, error=f"{type(exc).__name__}: {exc}"
        )


def get_pool(max_workers: int) -> ThreadPoolExecutor:
    """Create the thread pool used by :func:`dispatch`."""
    return ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="structflow"
    )


def dispatch(
    items: Iterable[T],
    work: Callable[[T], WorkReturn],
    *,
    label: Callable[[T], str] = str,
    max_workers: Optional[int] = None,
    progress: Optional[DispatchProgress] = None,
) -> List[WorkOutcome]:
    """Run *work* on every item concurrently and collect the outcomes.

    Parameters
    ----------
    items : iterable
        Work items, consumed once.  Each is attempted exactly once.
    work : callable
        Per-item function returning the produced path(s).  Any exception
        it raises becomes that item's error outcome.
    label : callable, optional
        Names an item in its outcome (default ``str``).
    max_workers : int, optional
        Thread count; defaults to one thread per item.
    progress : DispatchProgress, optional
        Advanced once per finished item.

    Returns
    -------
    list of WorkOutcome
        Same length as *items*; element ``i`` belongs to item ``i``.
    """
    items = list(items)
    total = len(items)
    if total == 0:
        return []

    labels = [label(item) for item in items]
    results: List[WorkOutcome] = [None] * total  # type: ignore

    if progress is not None:
        progress.start(total)

    pool = get_pool(max_workers or total)
    try:
        future_to_idx = {
            pool.submit(_run_item, work, item, labels[idx]): idx
            for idx, item in enumerate(items)
        }
        for future in as_completed(future_to_idx):
            idx = future_to_idx[future]
            outcome = future.result()
            results[idx] = outcome
            if not outcome.ok:
                logger.warning(f"{outcome.item}: {outcome.error}")
            if progress is not None:
                progress.advance(outcome.item, outcome.ok)
    finally:
        pool.shutdown(wait=True)

    if progress is not None:
        progress.finish()
    return results
