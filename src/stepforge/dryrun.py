"""Dry-run actions, reports, and the simulating runner.

A dry run executes the same pipeline against a derived context flagged with
``dry_run``. Steps that cooperate check ``ctx.is_dry_run`` and call
``ctx.record_action(...)`` instead of touching the filesystem; the engine
itself writes no checkpoint. Step failures are logged and the run still ends
with a report.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, Sequence
from enum import StrEnum
from typing import Any, TextIO

from pydantic import BaseModel, Field

from .checkpoint import CheckpointStore
from .context import DRY_RUN_ACTIONS_KEY, DRY_RUN_KEY, ExecutionContext
from .executor import StepExecutor
from .messages import Messages
from .plugins import PluginRegistry
from .runner import EffectPolicy, RunProgress, run_pipeline
from .steps import Step

logger = logging.getLogger(__name__)


class ActionType(StrEnum):
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    COMMAND = "command"


_ICONS: dict[ActionType, str] = {
    ActionType.CREATE: "+",
    ActionType.MODIFY: "~",
    ActionType.DELETE: "-",
    ActionType.COMMAND: "$",
}


class DryRunAction(BaseModel):
    """One side effect a step would have performed."""

    type: ActionType
    target: str
    description: str
    content: str | None = None

    @property
    def icon(self) -> str:
        return _ICONS[self.type]


class DryRunSummary(BaseModel):
    files_created: int = 0
    files_modified: int = 0
    files_deleted: int = 0
    commands_executed: int = 0


class DryRunReport(BaseModel):
    actions: list[DryRunAction] = Field(default_factory=list)
    summary: DryRunSummary = Field(default_factory=DryRunSummary)

    @classmethod
    def from_actions(cls, actions: Sequence[DryRunAction]) -> DryRunReport:
        def count(kind: ActionType) -> int:
            return sum(1 for a in actions if a.type is kind)

        return cls(
            actions=list(actions),
            summary=DryRunSummary(
                files_created=count(ActionType.CREATE),
                files_modified=count(ActionType.MODIFY),
                files_deleted=count(ActionType.DELETE),
                commands_executed=count(ActionType.COMMAND),
            ),
        )


class ActionLog:
    """Append-only log of recorded dry-run actions."""

    def __init__(self) -> None:
        self._actions: list[DryRunAction] = []

    def record(self, action: DryRunAction) -> None:
        self._actions.append(action)
        logger.debug("  %s %s", action.icon, action.description)

    def __iter__(self) -> Iterator[DryRunAction]:
        return iter(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def report(self) -> DryRunReport:
        return DryRunReport.from_actions(self._actions)


def format_report(report: DryRunReport, messages: Messages | None = None) -> str:
    """Render a report as plain text."""
    messages = messages or Messages()
    title = messages.format("dryrun.summary")
    summary = report.summary
    lines = [
        title,
        "-" * len(title),
        messages.format("dryrun.created", count=summary.files_created),
        messages.format("dryrun.modified", count=summary.files_modified),
        messages.format("dryrun.deleted", count=summary.files_deleted),
        messages.format("dryrun.commands", count=summary.commands_executed),
    ]
    if report.actions:
        lines.append("")
        lines.append(messages.format("dryrun.actions"))
        lines.extend(f"  {a.icon} {a.target}: {a.description}" for a in report.actions)
    return "\n".join(lines)


class SimulatingRunner:
    """Runs the pipeline against a dry-run context and never raises step errors."""

    policy = EffectPolicy.RECORD

    def __init__(self, log: ActionLog | None = None) -> None:
        self.log = log if log is not None else ActionLog()

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
        messages = messages or Messages()
        logger.info(messages.format("dryrun.start"))
        dry_context = context.derive(dry_run=True, **{DRY_RUN_KEY: True, DRY_RUN_ACTIONS_KEY: self.log})

        try:
            run_pipeline(
                steps,
                dry_context,
                hooks,
                progress=progress,
                store=store,
                start_at=start_at,
                policy=self.policy,
                messages=messages,
            )
        except Exception as exc:
            logger.warning(messages.format("dryrun.error", error=exc))

        for line in format_report(self.log.report(), messages).splitlines():
            logger.info(line)


class DryRunExecutor(StepExecutor):
    """A StepExecutor wired to the simulating runner."""

    def __init__(
        self,
        registry: PluginRegistry | None = None,
        *,
        store: CheckpointStore | None = None,
        messages: Messages | None = None,
    ) -> None:
        self._log = ActionLog()
        super().__init__(registry, runner=SimulatingRunner(self._log), store=store, messages=messages)

    def record_action(self, action: DryRunAction) -> None:
        self._log.record(action)

    def get_report(self) -> DryRunReport:
        return self._log.report()

    @staticmethod
    def print_report(report: DryRunReport, file: TextIO | None = None) -> None:
        print(format_report(report), file=file or sys.stdout)
