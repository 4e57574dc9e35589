"""Step model, Action base class, and action registration."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from .context import ExecutionContext

logger = logging.getLogger(__name__)

P = TypeVar("P")

StepFn = Callable[[ExecutionContext[Any]], Any]
SkipFn = Callable[[ExecutionContext[Any]], bool]

_action_registry: dict[str, type[Action]] = {}


def action(name: str):
    """Register an Action class as a pipeline-file step type."""

    def decorator(cls):
        _action_registry[name] = cls
        return cls

    return decorator


class Action(ABC, Generic[P]):
    """Base class for reusable units of step work.

    Subclasses may also define ``rollback(ctx)``; it becomes the compensating
    action of any step built from the instance.
    """

    @abstractmethod
    def execute(self, ctx: ExecutionContext[P]) -> None:
        """Perform the work (or record it when ``ctx.is_dry_run``)."""


class Step(BaseModel):
    """One named, described unit of pipeline work."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str = ""
    execute: StepFn
    rollback: StepFn | None = None
    skip: SkipFn | None = None

    def should_skip(self, ctx: ExecutionContext[Any]) -> bool:
        return self.skip is not None and bool(self.skip(ctx))

    @classmethod
    def from_action(
        cls,
        name: str,
        action: Action[Any],
        *,
        description: str | None = None,
        skip: SkipFn | None = None,
    ) -> Step:
        """Wrap an Action instance as a Step."""
        logger.debug("Building step '%s' from %s", name, type(action).__name__)
        return cls(
            name=name,
            description=description if description is not None else name,
            execute=action.execute,
            rollback=getattr(action, "rollback", None),
            skip=skip,
        )
