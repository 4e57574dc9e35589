"""HCL loading engine: parse .hcl pipeline files into Steps and Plugins."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import hcl2
import jinja2

from .plugins import Plugin
from .steps import SkipFn, Step, _action_registry

if TYPE_CHECKING:
    from .executor import StepExecutor

logger = logging.getLogger(__name__)

_RESERVED_STEP_KEYS = {"action", "description", "skip_if", "skip_unless"}


@dataclass
class PipelineDefinition:
    """Steps and plugins declared across one or more pipeline files."""

    steps: list[Step] = field(default_factory=list)
    plugins: list[Plugin] = field(default_factory=list)

    def install(self, executor: StepExecutor) -> None:
        """Register the plugins and append the steps to ``executor``."""
        for plugin in self.plugins:
            executor.registry.register(plugin)
        for step in self.steps:
            executor.add_step(step)


_jinja_env = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


def _strip_meta(value: Any) -> Any:
    """Recursively drop parser metadata keys (``__start_line__`` and friends)."""
    if isinstance(value, dict):
        return {k: _strip_meta(v) for k, v in value.items() if not k.startswith("__")}
    if isinstance(value, list):
        return [_strip_meta(item) for item in value]
    return value


def load(
    file: Path,
    *,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Render a pipeline file through Jinja2, then parse it as HCL.

    Template and syntax errors are raised as ValueError naming the file.
    """
    try:
        text = _jinja_env.from_string(file.read_text(encoding="utf-8")).render(context or {})
    except jinja2.TemplateError as exc:
        raise ValueError(f"{file}: {exc}") from exc
    try:
        data = hcl2.loads(text)
    except Exception as exc:
        raise ValueError(f"{file}: invalid HCL: {exc}") from exc
    return _strip_meta(data)


def _skip_predicate(skip_if: str | None, skip_unless: str | None) -> SkipFn | None:
    """Build a skip predicate from state keys."""
    if skip_if is None and skip_unless is None:
        return None

    def skip(ctx) -> bool:
        if skip_if is not None and ctx.state.get(skip_if):
            return True
        return skip_unless is not None and not ctx.state.get(skip_unless)

    return skip


def _build_step(name: str, attrs: dict[str, Any]) -> Step:
    """Build a Step from a ``step "name" { action = "..." ... }`` block."""
    action_name = attrs.get("action")
    if action_name is None:
        raise ValueError(f"Step '{name}' does not declare an action")
    if action_name not in _action_registry:
        raise ValueError(f"Unknown action type: '{action_name}'")
    action_cls = _action_registry[action_name]
    logger.debug("Decoding step '%s' -> %s", name, action_cls.__name__)

    # Pass through non-structural fields
    action_kwargs = {k: v for k, v in attrs.items() if k not in _RESERVED_STEP_KEYS}
    return Step.from_action(
        name,
        action_cls(**action_kwargs),
        description=attrs.get("description", name),
        skip=_skip_predicate(attrs.get("skip_if"), attrs.get("skip_unless")),
    )


def _parse_steps(block_data: dict[str, Any]) -> list[Step]:
    """Parse step blocks from a file or plugin block.

    HCL2 structure for step blocks:
        {"step": [{"create-root": {"action": "mkdir", ...}}, ...]}
    """
    steps: list[Step] = []
    for step_block in block_data.get("step", []):
        # Each step_block is {"step_name": {attrs}}
        for step_name, attrs in step_block.items():
            steps.append(_build_step(step_name, attrs))
    return steps


def _build_plugin(name: str, attrs: dict[str, Any]) -> Plugin:
    """Build a Plugin from a ``plugin "name" { version = "..." step ... }`` block."""
    logger.debug("Building plugin '%s'", name)
    return Plugin(
        name=name,
        version=str(attrs.get("version", "0.0.0")),
        steps=_parse_steps(attrs),
    )


def load_pipeline(
    files: Iterable[Path],
    *,
    variables: dict[str, Any] | None = None,
) -> PipelineDefinition:
    """Load pipeline files in order and collect their steps and plugins.

    Raises ValueError if a plugin name is declared more than once.
    """
    pipeline = PipelineDefinition()
    seen_plugins: set[str] = set()

    for file in files:
        logger.debug("Loading pipeline file '%s'", file)
        data = load(file, context=variables)

        for plugin_block in data.get("plugin", []):
            for plugin_name, plugin_data in plugin_block.items():
                if plugin_name in seen_plugins:
                    raise ValueError(f"Duplicate plugin: '{plugin_name}'")
                seen_plugins.add(plugin_name)
                pipeline.plugins.append(_build_plugin(plugin_name, plugin_data))

        pipeline.steps.extend(_parse_steps(data))

    logger.debug(
        "Loaded %d step(s) and %d plugin(s)",
        len(pipeline.steps),
        len(pipeline.plugins),
    )
    return pipeline


def scan(
    path: str | Path,
    *,
    recurse: bool = True,
    variables: dict[str, Any] | None = None,
) -> PipelineDefinition:
    """Scan a directory for .hcl files (sorted by path) and load them as one pipeline."""
    root = Path(path)
    pattern = "**/*.hcl" if recurse else "*.hcl"
    files = sorted(root.glob(pattern))
    logger.debug("Found %d pipeline file(s) under '%s'", len(files), root)
    return load_pipeline(files, variables=variables)
