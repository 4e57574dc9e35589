"""Lifecycle hook kinds, typed hook events, and per-plugin hook tables."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict

from .context import ExecutionContext


class HookKind(StrEnum):
    """The closed set of lifecycle extension points."""

    BEFORE_GENERATION = "before_generation"
    AFTER_GENERATION = "after_generation"
    BEFORE_STEP = "before_step"
    AFTER_STEP = "after_step"
    ON_ERROR = "on_error"


@dataclass(frozen=True)
class HookEvent:
    """Base payload for a hook invocation; the context is always passed last."""

    kind: ClassVar[HookKind]

    context: ExecutionContext[Any]

    def args(self) -> tuple[Any, ...]:
        """Positional arguments that precede the context."""
        return ()


@dataclass(frozen=True)
class BeforeGeneration(HookEvent):
    kind: ClassVar[HookKind] = HookKind.BEFORE_GENERATION


@dataclass(frozen=True)
class AfterGeneration(HookEvent):
    kind: ClassVar[HookKind] = HookKind.AFTER_GENERATION


@dataclass(frozen=True)
class BeforeStep(HookEvent):
    kind: ClassVar[HookKind] = HookKind.BEFORE_STEP

    step_name: str

    def args(self) -> tuple[Any, ...]:
        return (self.step_name,)


@dataclass(frozen=True)
class AfterStep(HookEvent):
    kind: ClassVar[HookKind] = HookKind.AFTER_STEP

    step_name: str

    def args(self) -> tuple[Any, ...]:
        return (self.step_name,)


@dataclass(frozen=True)
class OnError(HookEvent):
    kind: ClassVar[HookKind] = HookKind.ON_ERROR

    error: BaseException

    def args(self) -> tuple[Any, ...]:
        return (self.error,)


_EVENT_TYPES: dict[HookKind, type[HookEvent]] = {
    HookKind.BEFORE_GENERATION: BeforeGeneration,
    HookKind.AFTER_GENERATION: AfterGeneration,
    HookKind.BEFORE_STEP: BeforeStep,
    HookKind.AFTER_STEP: AfterStep,
    HookKind.ON_ERROR: OnError,
}


def make_event(kind: HookKind | str, context: ExecutionContext[Any], *args: Any) -> HookEvent:
    """Build a typed event from a hook name and its positional payload.

    Raises ValueError for unknown hook names or a payload of the wrong size.
    """
    try:
        hook_kind = HookKind(kind)
    except ValueError:
        raise ValueError(f"Unknown hook: '{kind}'") from None
    event_type = _EVENT_TYPES[hook_kind]
    try:
        return event_type(context, *args)
    except TypeError as exc:
        raise ValueError(f"Bad arguments for hook '{hook_kind}': {exc}") from exc


class PluginHooks(BaseModel):
    """Optional callables, one per hook kind."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    before_generation: Callable[..., Any] | None = None
    after_generation: Callable[..., Any] | None = None
    before_step: Callable[..., Any] | None = None
    after_step: Callable[..., Any] | None = None
    on_error: Callable[..., Any] | None = None

    def get(self, kind: HookKind) -> Callable[..., Any] | None:
        return getattr(self, kind.value)
