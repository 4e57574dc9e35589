"""Plugin model and the registry that dispatches lifecycle hooks."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .context import ExecutionContext
from .hooks import HookEvent, HookKind, PluginHooks, make_event
from .messages import Messages
from .steps import Step

logger = logging.getLogger(__name__)


class TemplateProvider(ABC):
    """Side-channel template metadata contributed by a plugin."""

    @abstractmethod
    def get_templates_dir(self) -> str | Path:
        """Directory holding the plugin's templates."""

    def get_variables(self, ctx: ExecutionContext[Any]) -> dict[str, Any]:
        """Extra template variables (none by default)."""
        return {}


class TemplateDir(TemplateProvider):
    """A fixed template directory with a static variable mapping."""

    def __init__(self, path: str | Path, variables: dict[str, Any] | None = None) -> None:
        self.path = Path(path)
        self.variables = variables or {}

    def get_templates_dir(self) -> Path:
        return self.path

    def get_variables(self, ctx: ExecutionContext[Any]) -> dict[str, Any]:
        return dict(self.variables)


class Plugin(BaseModel):
    """A third-party bundle of steps, hooks, and templates."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    version: str
    hooks: PluginHooks = Field(default_factory=PluginHooks)
    steps: list[Step] = Field(default_factory=list)
    templates: TemplateProvider | None = None


class PluginRegistry:
    """Ordered collection of registered plugins.

    Duplicate plugin names are allowed; both plugins stay registered.
    """

    def __init__(self, messages: Messages | None = None) -> None:
        self._plugins: list[Plugin] = []
        self._messages = messages or Messages()

    def register(self, plugin: Plugin) -> None:
        logger.info(self._messages.format("plugin.registered", name=plugin.name, version=plugin.version))
        self._plugins.append(plugin)

    def get_plugins(self) -> list[Plugin]:
        return list(self._plugins)

    def __iter__(self) -> Iterator[Plugin]:
        return iter(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    def get_steps(self) -> list[Step]:
        """Return all plugin steps, in registration order."""
        return [step for plugin in self._plugins for step in plugin.steps]

    def invoke(self, event: HookEvent) -> None:
        """Call the hook for ``event.kind`` on every plugin that defines it.

        Each call is isolated; a failing hook is logged as a warning and
        neither stops the remaining plugins nor reaches the caller.
        """
        for plugin in self._plugins:
            hook = plugin.hooks.get(event.kind)
            if hook is None:
                continue
            try:
                hook(*event.args(), event.context)
            except Exception as exc:
                logger.warning(
                    self._messages.format("hook.failed", plugin=plugin.name, hook=event.kind.value, error=exc)
                )

    def execute_hook(self, kind: HookKind | str, context: ExecutionContext[Any], *args: Any) -> None:
        """Invoke a hook by name; ``args`` precede the context in the call."""
        self.invoke(make_event(kind, context, *args))

    def get_template_variables(self, ctx: ExecutionContext[Any]) -> dict[str, Any]:
        """Merge template variables from all providers; later plugins win."""
        variables: dict[str, Any] = {}
        for plugin in self._plugins:
            if plugin.templates is not None:
                variables.update(plugin.templates.get_variables(ctx))
        return variables

    def get_template_dirs(self) -> list[str | Path]:
        return [p.templates.get_templates_dir() for p in self._plugins if p.templates is not None]

    def __repr__(self) -> str:
        return f"PluginRegistry(plugins={len(self._plugins)})"
