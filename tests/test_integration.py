"""End-to-end integration test for stepforge."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

import stepforge.hcl as hcl
from stepforge import (
    Action,
    ActionType,
    DryRunAction,
    DryRunExecutor,
    ExecutionContext,
    StepExecutor,
    default_checkpoint_path,
    find_resume_step,
)
from stepforge.steps import _action_registry


class MakeDir(Action[dict]):
    """Create a directory, or record the intent during a dry run."""

    def __init__(self, path: str):
        self.path = Path(path)

    def execute(self, ctx: ExecutionContext[dict]) -> None:
        if ctx.is_dry_run:
            ctx.record_action(DryRunAction(type=ActionType.CREATE, target=str(self.path), description="Create dir"))
            return
        self.path.mkdir(parents=True)

    def rollback(self, ctx: ExecutionContext[dict]) -> None:
        self.path.rmdir()


class Explode(Action[dict]):
    """Fail while the state flag ``explode`` is set."""

    def execute(self, ctx: ExecutionContext[dict]) -> None:
        if ctx.state.get("explode"):
            raise RuntimeError("boom")


def _write_hcl(tmp_path: Path, filename: str, content: str) -> Path:
    f = tmp_path / filename
    f.write_text(content)
    return f


class TestEndToEnd:
    def setup_method(self):
        self._saved = _action_registry.copy()
        _action_registry.clear()
        _action_registry["mkdir"] = MakeDir
        _action_registry["explode"] = Explode

    def teardown_method(self):
        _action_registry.clear()
        _action_registry.update(self._saved)

    @pytest.fixture
    def pipeline_dir(self, tmp_path) -> Path:
        d = tmp_path / "pipeline"
        d.mkdir()
        _write_hcl(
            d,
            "10-layout.hcl",
            """
            step "create-root" {
                action = "mkdir"
                description = "Create workspace root"
                path = "{{ root }}"
            }
            step "create-apps" {
                action = "mkdir"
                path = "{{ root }}/apps"
            }
        """,
        )
        _write_hcl(
            d,
            "20-finish.hcl",
            """
            step "maybe-fail" { action = "explode" }
            step "create-libs" {
                action = "mkdir"
                path = "{{ root }}/libs"
            }
        """,
        )
        return d

    def test_full_pipeline(self, tmp_path, pipeline_dir):
        """Load pipeline files, run them, verify side effects and checkpoint."""
        root = tmp_path / "acme"
        executor = StepExecutor()
        hcl.scan(pipeline_dir, variables={"root": str(root)}).install(executor)
        ctx = ExecutionContext({}, checkpoint_path=default_checkpoint_path(tmp_path, "acme"))

        executor.execute(ctx)

        assert (root / "apps").is_dir()
        assert (root / "libs").is_dir()
        data = json.loads((tmp_path / ".acme.checkpoint").read_text())
        assert data["executedSteps"] == ["create-root", "create-apps", "maybe-fail", "create-libs"]

    def test_fail_then_resume(self, tmp_path, pipeline_dir):
        """A failed run leaves a checkpoint that a second run resumes from."""
        root = tmp_path / "acme"
        executor = StepExecutor()
        hcl.scan(pipeline_dir, variables={"root": str(root)}).install(executor)
        ctx = ExecutionContext({}, checkpoint_path=tmp_path / "cp.json", state={"explode": True})

        with pytest.raises(RuntimeError, match="boom"):
            executor.execute(ctx)
        assert not (root / "libs").exists()

        progress = executor.restore_checkpoint(ctx.checkpoint_path)
        assert progress.executed_steps == ["create-root", "create-apps"]

        start = find_resume_step(progress.executed_steps, executor.get_step_names())
        assert start == "maybe-fail"

        ctx.state["explode"] = False
        executor.execute(ctx, start_at=start)

        assert (root / "libs").is_dir()
        assert executor.executed_steps == ["maybe-fail", "create-libs"]

    def test_rollback_after_failure(self, tmp_path, pipeline_dir):
        root = tmp_path / "acme"
        executor = StepExecutor()
        hcl.scan(pipeline_dir, variables={"root": str(root)}).install(executor)
        ctx = ExecutionContext({}, checkpoint_path=tmp_path / "cp.json", state={"explode": True})

        with pytest.raises(RuntimeError):
            executor.execute(ctx)
        executor.rollback(ctx)

        assert not root.exists()

    def test_dry_run_touches_nothing(self, tmp_path, pipeline_dir):
        root = tmp_path / "acme"
        executor = DryRunExecutor()
        hcl.scan(pipeline_dir, variables={"root": str(root)}).install(executor)
        ctx = ExecutionContext({}, checkpoint_path=tmp_path / "cp.json", state={"explode": True})

        executor.execute(ctx)

        assert not root.exists()
        assert not ctx.checkpoint_path.exists()
        report = executor.get_report()
        assert report.summary.files_created == 3
        assert [a.target for a in report.actions] == [str(root), str(root / "apps"), str(root / "libs")]
        assert executor.executed_steps == ["create-root", "create-apps", "create-libs"]
