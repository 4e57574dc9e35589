"""The pipeline algorithm and the strategies that run it.

``run_pipeline`` is the single implementation of the step loop. Runners
decide how it is applied: ``RealRunner`` performs side effects and lets step
failures propagate; the dry-run strategy lives in ``stepforge.dryrun``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from .checkpoint import CheckpointStore
from .context import ExecutionContext
from .hooks import AfterGeneration, AfterStep, BeforeGeneration, BeforeStep, OnError
from .messages import Messages
from .plugins import PluginRegistry
from .steps import Step

logger = logging.getLogger(__name__)


class InvalidStartStepError(ValueError):
    """The requested start step is not part of the pipeline."""

    def __init__(self, start_at: str) -> None:
        super().__init__(f"Invalid start step: {start_at}")
        self.start_at = start_at


class RunState(StrEnum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StepState(StrEnum):
    PENDING = "pending"
    SKIPPED = "skipped"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class EffectPolicy(StrEnum):
    """Whether the engine's own side effects (checkpoints) are performed."""

    PERFORM = "perform"
    RECORD = "record"


@dataclass
class RunProgress:
    """Bookkeeping for one pipeline run."""

    executed: list[str] = field(default_factory=list)
    steps: dict[str, StepState] = field(default_factory=dict)
    state: RunState = RunState.NOT_STARTED

    def mark(self, name: str, state: StepState) -> None:
        self.steps[name] = state


def find_start_index(steps: Sequence[Step], start_at: str | None) -> int:
    """Index of the first step named ``start_at`` (0 if not given)."""
    if start_at is None:
        return 0
    for index, step in enumerate(steps):
        if step.name == start_at:
            return index
    raise InvalidStartStepError(start_at)


def run_pipeline(
    steps: Sequence[Step],
    context: ExecutionContext[Any],
    hooks: PluginRegistry,
    *,
    progress: RunProgress,
    store: CheckpointStore,
    start_at: str | None = None,
    policy: EffectPolicy = EffectPolicy.PERFORM,
    messages: Messages | None = None,
) -> None:
    """Run ``steps`` in order from ``start_at``, firing hooks and checkpointing.

    A step failure fires ``on_error``. Under ``PERFORM`` it is re-raised
    unchanged and nothing after the failing step runs. Under ``RECORD`` it is
    logged as a warning, the remaining steps are still attempted and the run
    ends ``FAILED``.
    """
    messages = messages or Messages()
    start_index = find_start_index(steps, start_at)
    total = len(steps)
    failed = False

    for step in steps[start_index:]:
        progress.mark(step.name, StepState.PENDING)
    progress.state = RunState.RUNNING

    logger.info(messages.format("generation.start", count=total - start_index))
    hooks.invoke(BeforeGeneration(context))

    for index in range(start_index, total):
        step = steps[index]
        try:
            if step.should_skip(context):
                logger.info(messages.format("step.skipped", description=step.description))
                progress.mark(step.name, StepState.SKIPPED)
                continue

            hooks.invoke(BeforeStep(context, step.name))
            logger.info(messages.format("step.progress", index=index + 1, total=total, description=step.description))
            progress.mark(step.name, StepState.RUNNING)
            step.execute(context)

            progress.executed.append(step.name)
            progress.mark(step.name, StepState.SUCCEEDED)
            if policy is EffectPolicy.PERFORM:
                store.save(context.checkpoint_path, progress.executed, context.state)
            logger.info(messages.format("step.completed", description=step.description))
            hooks.invoke(AfterStep(context, step.name))
        except Exception as exc:
            if progress.steps.get(step.name) is not StepState.SUCCEEDED:
                progress.mark(step.name, StepState.FAILED)
            if policy is EffectPolicy.RECORD:
                logger.warning(messages.format("dryrun.error", error=exc))
                failed = True
                hooks.invoke(OnError(context, exc))
                continue
            logger.error(messages.format("step.failed", description=step.description))
            progress.state = RunState.FAILED
            hooks.invoke(OnError(context, exc))
            raise

    hooks.invoke(AfterGeneration(context))
    progress.state = RunState.FAILED if failed else RunState.COMPLETED
    logger.info(messages.format("generation.complete"))


class Runner(Protocol):
    """Strategy that applies ``run_pipeline`` to one execution."""

    policy: EffectPolicy

    def run(
        self,
        steps: Sequence[Step],
        context: ExecutionContext[Any],
        hooks: PluginRegistry,
        *,
        progress: RunProgress,
        store: CheckpointStore,
        start_at: str | None = None,
        messages: Messages | None = None,
    ) -> None: ...


class RealRunner:
    """Performs every side effect; step failures reach the caller."""

    policy = EffectPolicy.PERFORM

    def run(
        self,
        steps: Sequence[Step],
        context: ExecutionContext[Any],
        hooks: PluginRegistry,
        *,
        progress: RunProgress,
        store: CheckpointStore,
        start_at: str | None = None,
        messages: Messages | None = None,
    ) -> None:
        run_pipeline(
            steps,
            context,
            hooks,
            progress=progress,
            store=store,
            start_at=start_at,
            policy=self.policy,
            messages=messages,
        )
