"""Tests for stepforge.checkpoint."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest

from stepforge.checkpoint import (
    Checkpoint,
    CheckpointStore,
    RestoredProgress,
    default_checkpoint_path,
    find_resume_step,
)


class TestCheckpointStoreSave:
    def test_writes_wire_format(self, tmp_path):
        path = tmp_path / "cp.json"
        CheckpointStore().save(path, ["a", "b"], {"key": "value", "n": 3})

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["executedSteps"] == ["a", "b"]
        assert data["state"] == [["key", "value"], ["n", 3]]
        assert datetime.fromisoformat(data["timestamp"])

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "cp.json"
        CheckpointStore().save(path, ["a"], {})
        assert path.exists()

    def test_overwrites_previous_checkpoint(self, tmp_path):
        path = tmp_path / "cp.json"
        store = CheckpointStore()
        store.save(path, ["a"], {})
        store.save(path, ["a", "b"], {})
        assert json.loads(path.read_text())["executedSteps"] == ["a", "b"]

    def test_unserializable_state_is_stringified(self, tmp_path):
        path = tmp_path / "cp.json"
        CheckpointStore().save(path, [], {"where": Path("/srv/ws")})
        data = json.loads(path.read_text())
        assert data["state"] == [["where", str(Path("/srv/ws"))]]

    def test_indented_json(self, tmp_path):
        path = tmp_path / "cp.json"
        CheckpointStore().save(path, ["a"], {})
        assert '\n  "executedSteps"' in path.read_text()


class TestCheckpointStoreRestore:
    def test_missing_file_returns_empty_progress(self, tmp_path):
        result = CheckpointStore().restore(tmp_path / "missing.json")
        assert result.executed_steps == []
        assert result.state == {}

    def test_restores_from_file(self, tmp_path):
        path = tmp_path / "cp.json"
        path.write_text(
            json.dumps(
                {
                    "executedSteps": ["step1", "step2"],
                    "state": [["key", "value"]],
                    "timestamp": "2024-01-01T00:00:00.000Z",
                }
            )
        )
        result = CheckpointStore().restore(path)
        assert result == RestoredProgress(executed_steps=["step1", "step2"], state={"key": "value"})

    def test_round_trip_preserves_state_order(self, tmp_path):
        path = tmp_path / "cp.json"
        store = CheckpointStore()
        store.save(path, ["x"], {"z": 1, "a": 2, "m": 3})
        assert list(store.restore(path).state) == ["z", "a", "m"]

    def test_malformed_file_raises(self, tmp_path):
        path = tmp_path / "cp.json"
        path.write_text('{"executedSteps": "not-a-list"}')
        with pytest.raises(ValueError):
            CheckpointStore().restore(path)

    def test_load_missing_returns_none(self, tmp_path):
        assert CheckpointStore().load(tmp_path / "missing.json") is None

    def test_load_returns_model(self, tmp_path):
        path = tmp_path / "cp.json"
        CheckpointStore().save(path, ["a"], {"k": "v"})
        checkpoint = CheckpointStore().load(path)
        assert isinstance(checkpoint, Checkpoint)
        assert checkpoint.executed_steps == ["a"]


class TestCheckpointStoreClear:
    def test_clear_removes_file(self, tmp_path):
        path = tmp_path / "cp.json"
        store = CheckpointStore()
        store.save(path, ["a"], {})
        assert store.clear(path) is True
        assert not path.exists()

    def test_clear_missing_returns_false(self, tmp_path):
        assert CheckpointStore().clear(tmp_path / "missing.json") is False


class TestHelpers:
    def test_default_checkpoint_path(self, tmp_path):
        assert default_checkpoint_path(tmp_path, "acme") == tmp_path / ".acme.checkpoint"

    def test_resume_from_first_unexecuted(self):
        assert find_resume_step(["a", "b"], ["a", "b", "c", "d"]) == "c"

    def test_resume_none_when_complete(self):
        assert find_resume_step(["a", "b"], ["a", "b"]) is None

    def test_resume_from_start_when_nothing_ran(self):
        assert find_resume_step([], ["a", "b"]) == "a"
