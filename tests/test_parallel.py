"""Tests for structflow._parallel module."""

import itertools
import threading
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from structflow._parallel import WorkOutcome, dispatch, get_pool


# ------------------------------------------------------------------
# WorkOutcome dataclass
# ------------------------------------------------------------------


class TestWorkOutcome:
    """Tests for WorkOutcome dataclass."""

    def test_frozen(self):
        outcome = WorkOutcome(item="A")
        with pytest.raises(AttributeError):
            outcome.item = "B"

    def test_defaults(self):
        outcome = WorkOutcome(item="A")
        assert outcome.outputs == ()
        assert outcome.error is None
        assert outcome.ok
        assert outcome.artifact is None

    def test_error_outcome(self):
        outcome = WorkOutcome(item="A", error="ExecutionError: boom")
        assert not outcome.ok
        assert outcome.error == "ExecutionError: boom"

    def test_artifact(self):
        outcome = WorkOutcome(item="A", outputs=(Path("out/A/ranked_0.pdb"),))
        assert outcome.artifact == Path("out/A/ranked_0.pdb")


# ------------------------------------------------------------------
# dispatch
# ------------------------------------------------------------------


class TestDispatch:
    """Tests for dispatch()."""

    def test_empty(self):
        work = MagicMock()
        assert dispatch([], work) == []
        work.assert_not_called()

    def test_length_and_order(self):
        outcomes = dispatch(["a", "b", "c"], lambda x: f"{x}.out")
        assert [o.item for o in outcomes] == ["a", "b", "c"]
        assert [o.artifact for o in outcomes] == [
            Path("a.out"),
            Path("b.out"),
            Path("c.out"),
        ]

    def test_order_independent_of_completion(self):
        delays = {"slow": 0.2, "medium": 0.1, "fast": 0.0}

        def _work(name):
            time.sleep(delays[name])
            return name

        outcomes = dispatch(["slow", "medium", "fast"], _work)
        assert [o.item for o in outcomes] == ["slow", "medium", "fast"]
        assert [o.artifact for o in outcomes] == [
            Path("slow"),
            Path("medium"),
            Path("fast"),
        ]

    @pytest.mark.parametrize(
        "order", list(itertools.permutations(["A", "B", "C"]))
    )
    def test_permutations_keep_correspondence(self, order):
        outcomes = dispatch(list(order), lambda x: f"out/{x}/ranked_0.pdb")
        for item, outcome in zip(order, outcomes):
            assert outcome.item == item
            assert outcome.artifact == Path(f"out/{item}/ranked_0.pdb")

    def test_failure_is_isolated(self):
        def _work(name):
            if name == "bad":
                raise RuntimeError("tool crashed")
            return f"{name}.out"

        outcomes = dispatch(["good1", "bad", "good2"], _work)
        assert len(outcomes) == 3
        assert outcomes[0].ok and outcomes[2].ok
        assert outcomes[1].error == "RuntimeError: tool crashed"
        assert outcomes[1].item == "bad"

    def test_every_item_attempted_once(self):
        calls = []
        lock = threading.Lock()

        def _work(item):
            with lock:
                calls.append(item)
            if item % 2:
                raise ValueError(item)
            return str(item)

        outcomes = dispatch(range(10), _work)
        assert sorted(calls) == list(range(10))
        assert len(outcomes) == 10
        assert sum(1 for o in outcomes if not o.ok) == 5

    def test_runs_concurrently(self):
        barrier = threading.Barrier(3, timeout=5)

        def _work(item):
            barrier.wait()
            return item

        outcomes = dispatch(["a", "b", "c"], _work)
        assert all(o.ok for o in outcomes)

    def test_multiple_outputs(self):
        outcomes = dispatch(["a"], lambda x: ["one", Path("two")])
        assert outcomes[0].outputs == (Path("one"), Path("two"))

    def test_none_result_means_no_outputs(self):
        outcomes = dispatch(["a"], lambda x: None)
        assert outcomes[0].ok
        assert outcomes[0].outputs == ()

    def test_custom_label(self):
        items = [("ref.pdb", "dir1")]
        outcomes = dispatch(items, lambda p: p[0], label=lambda p: p[0])
        assert outcomes[0].item == "ref.pdb"

    def test_max_workers_one(self):
        active = []
        peak = []
        lock = threading.Lock()

        def _work(item):
            with lock:
                active.append(item)
                peak.append(len(active))
            time.sleep(0.01)
            with lock:
                active.remove(item)
            return item

        dispatch(["a", "b", "c"], _work, max_workers=1)
        assert max(peak) == 1

    def test_progress_advanced_per_item(self):
        progress = MagicMock()

        def _work(name):
            if name == "bad":
                raise RuntimeError("x")
            return name

        dispatch(["a", "bad"], _work, progress=progress)
        progress.start.assert_called_once_with(2)
        assert progress.advance.call_count == 2
        progress.finish.assert_called_once()


class TestGetPool:
    def test_pool_runs_work(self):
        pool = get_pool(2)
        try:
            assert pool.submit(lambda: 42).result() == 42
        finally:
            pool.shutdown(wait=True)
