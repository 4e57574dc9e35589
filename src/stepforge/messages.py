"""Display strings for engine log output.

The engine never looks strings up from process-wide state; a Messages catalog
is handed to the executor, registry, and runners that need one. Unknown keys
render as the key itself so display text can never affect step ordering or
checkpointing.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import jinja2

logger = logging.getLogger(__name__)

DEFAULT_MESSAGES: dict[str, str] = {
    "plugin.registered": "Registering plugin: {{ name }} v{{ version }}",
    "hook.failed": "Plugin {{ plugin }} hook {{ hook }} failed: {{ error }}",
    "generation.start": "Starting generation ({{ count }} steps)",
    "generation.complete": "Generation complete!",
    "step.skipped": "Skipping: {{ description }}",
    "step.progress": "[{{ index }}/{{ total }}] {{ description }}",
    "step.completed": "Completed: {{ description }}",
    "step.failed": "Failed: {{ description }}",
    "rollback.start": "Rolling back changes...",
    "rollback.step": "Rolling back: {{ description }}",
    "rollback.failed": "Rollback failed for: {{ description }}: {{ error }}",
    "rollback.simulated": "Dry run: nothing to roll back",
    "dryrun.start": "Dry Run Mode - No files will be created",
    "dryrun.error": "Dry run encountered error: {{ error }}",
    "dryrun.summary": "Dry Run Summary",
    "dryrun.created": "Files to create: {{ count }}",
    "dryrun.modified": "Files to modify: {{ count }}",
    "dryrun.deleted": "Files to delete: {{ count }}",
    "dryrun.commands": "Commands to run: {{ count }}",
    "dryrun.actions": "Actions:",
}


class Messages:
    """A catalog of Jinja2 message templates keyed by message id."""

    def __init__(self, overrides: Mapping[str, str] | None = None) -> None:
        sources = dict(DEFAULT_MESSAGES)
        if overrides:
            sources.update(overrides)
        env = jinja2.Environment(autoescape=False, keep_trailing_newline=False)
        self._templates: dict[str, jinja2.Template] = {}
        for key, source in sources.items():
            try:
                self._templates[key] = env.from_string(source)
            except jinja2.TemplateError as exc:
                raise ValueError(f"message '{key}': {exc}") from exc

    def __contains__(self, key: object) -> bool:
        return key in self._templates

    def format(self, key: str, **params: Any) -> str:
        """Render the message for ``key`` with ``params``."""
        template = self._templates.get(key)
        if template is None:
            logger.debug("No message defined for '%s'", key)
            return key
        return template.render(params)
