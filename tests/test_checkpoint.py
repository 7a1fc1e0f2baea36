"""Tests for checkpoint persistence and the worker pool."""

from __future__ import annotations

import threading

import pytest

from mistranslate.checkpoint import (
    CheckpointState,
    contiguous_prefix,
    load_checkpoint,
    save_checkpoint,
)
from mistranslate.workers import WorkCursor, run_with_concurrency


class TestCheckpoint:
    @pytest.mark.parametrize("count", [0, 1, 3, 7])
    def test_round_trip(self, tmp_path, count):
        path = tmp_path / "checkpoint_data.c"
        results = [f"// line {index}" for index in range(count)] + [None, "// late"]

        assert save_checkpoint(path, results) == count
        state = load_checkpoint(path)
        assert state.index == count
        assert state.previous_data == results[:count]

    def test_gap_stops_the_prefix(self):
        assert contiguous_prefix(["a", "", "c"]) == ["a"]
        assert contiguous_prefix(["a", None, "c"]) == ["a"]

    def test_file_layout(self, tmp_path):
        path = tmp_path / "checkpoint_data.c"
        save_checkpoint(path, ["A;", "B;", None])
        assert path.read_text(encoding="utf-8") == "A;\nB;\n// CONTINUE FROM INDEX 2\n"

    def test_empty_results_write_nothing(self, tmp_path):
        path = tmp_path / "checkpoint_data.c"
        assert save_checkpoint(path, []) is None
        assert not path.exists()

    def test_missing_file_starts_fresh(self, tmp_path):
        assert load_checkpoint(tmp_path / "absent.c") == CheckpointState()

    def test_unmarked_file_starts_fresh(self, tmp_path):
        path = tmp_path / "checkpoint_data.c"
        path.write_text("A;\nB;\n", encoding="utf-8")
        assert load_checkpoint(path) == CheckpointState()


class TestWorkers:
    def test_cursor_hands_out_each_index_once(self):
        cursor = WorkCursor(2, 5)
        assert [cursor.claim() for _ in range(5)] == [2, 3, 4, None, None]

    def test_every_index_handled_once(self):
        seen = []
        lock = threading.Lock()

        def handle(index):
            with lock:
                seen.append(index)

        run_with_concurrency(3, 40, 4, handle, threading.Event())
        assert sorted(seen) == list(range(3, 40))

    def test_cancelled_pool_does_nothing(self):
        cancel = threading.Event()
        cancel.set()
        seen = []
        run_with_concurrency(0, 10, 2, seen.append, cancel)
        assert seen == []

    def test_worker_errors_propagate_and_cancel(self):
        cancel = threading.Event()

        def handle(index):
            raise RuntimeError(f"boom {index}")

        with pytest.raises(RuntimeError):
            run_with_concurrency(0, 10, 2, handle, cancel)
        assert cancel.is_set()
