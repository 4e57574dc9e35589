"""StepExecutor: the public entry point for running a step pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .checkpoint import CheckpointStore, RestoredProgress
from .context import ExecutionContext
from .messages import Messages
from .plugins import PluginRegistry
from .runner import EffectPolicy, RealRunner, Runner, RunProgress, RunState, StepState
from .steps import Step

logger = logging.getLogger(__name__)


class StepExecutor:
    """Runs plugin steps followed by explicitly added steps, with checkpoints.

    The executor never resumes on its own; pass ``start_at`` to ``execute`` to
    continue from a step, typically one found via ``restore_checkpoint``.
    """

    def __init__(
        self,
        registry: PluginRegistry | None = None,
        *,
        runner: Runner | None = None,
        store: CheckpointStore | None = None,
        messages: Messages | None = None,
    ) -> None:
        self._messages = messages or Messages()
        self.registry = registry if registry is not None else PluginRegistry(self._messages)
        self._runner = runner or RealRunner()
        self._store = store or CheckpointStore()
        self._steps: list[Step] = []
        self._last_pipeline: list[Step] = []
        self._progress = RunProgress()

    def add_step(self, step: Step) -> None:
        self._steps.append(step)

    def pipeline(self) -> list[Step]:
        """Return the effective pipeline: plugin steps, then explicit steps."""
        return [*self.registry.get_steps(), *self._steps]

    def get_step_names(self) -> list[str]:
        return [step.name for step in self.pipeline()]

    @property
    def state(self) -> RunState:
        return self._progress.state

    @property
    def step_states(self) -> dict[str, StepState]:
        return dict(self._progress.steps)

    @property
    def executed_steps(self) -> list[str]:
        """Names of the steps completed by the most recent run."""
        return list(self._progress.executed)

    def execute(self, context: ExecutionContext[Any], start_at: str | None = None) -> None:
        """Run the pipeline, optionally starting at the first step named ``start_at``.

        Raises InvalidStartStepError before anything runs if ``start_at`` is
        unknown; re-raises the first step failure after ``on_error`` fires
        unless the runner only records effects.
        """
        self._last_pipeline = self.pipeline()
        self._progress = RunProgress()
        self._runner.run(
            self._last_pipeline,
            context,
            self.registry,
            progress=self._progress,
            store=self._store,
            start_at=start_at,
            messages=self._messages,
        )

    def _find_step(self, name: str) -> Step | None:
        for step in self._last_pipeline:
            if step.name == name:
                return step
        return None

    def rollback(self, context: ExecutionContext[Any]) -> None:
        """Undo completed steps in reverse order; failures are logged, never raised.

        Steps completed under a recording runner were only simulated, so there
        is nothing to undo and no rollback callable is invoked.
        """
        if self._runner.policy is EffectPolicy.RECORD:
            logger.info(self._messages.format("rollback.simulated"))
            return
        logger.warning(self._messages.format("rollback.start"))

        for name in reversed(self._progress.executed):
            step = self._find_step(name)
            if step is None or step.rollback is None:
                continue
            try:
                logger.info(self._messages.format("rollback.step", description=step.description))
                step.rollback(context)
            except Exception as exc:
                logger.error(self._messages.format("rollback.failed", description=step.description, error=exc))

    def restore_checkpoint(self, path: str | Path) -> RestoredProgress:
        return self._store.restore(path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(steps={len(self._steps)}, plugins={len(self.registry)}, state={self.state})"
