"""Checkpoint persistence and resume helpers."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

logger = logging.getLogger(__name__)


class Checkpoint(BaseModel):
    """Snapshot of run progress.

    On disk this is JSON with camelCase keys::

        {"executedSteps": [...], "state": [[key, value], ...], "timestamp": "..."}
    """

    model_config = ConfigDict(populate_by_name=True)

    executed_steps: list[str] = Field(default_factory=list, alias="executedSteps")
    state: list[tuple[str, Any]] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat()


@dataclass
class RestoredProgress:
    """Executed step names and state recovered from a checkpoint file."""

    executed_steps: list[str] = field(default_factory=list)
    state: dict[str, Any] = field(default_factory=dict)


class CheckpointStore:
    """Reads and writes one JSON checkpoint file per run."""

    def save(self, path: str | Path, executed_steps: Sequence[str], state: Mapping[str, Any]) -> Checkpoint:
        """Write a fresh checkpoint, replacing any previous one at ``path``.

        State values that are not JSON-serializable are stored as strings.
        """
        checkpoint = Checkpoint(executed_steps=list(executed_steps), state=list(state.items()))
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = checkpoint.model_dump(by_alias=True)
        path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
        logger.debug("Saved checkpoint '%s' (%d step(s))", path, len(checkpoint.executed_steps))
        return checkpoint

    def load(self, path: str | Path) -> Checkpoint | None:
        """Parse the checkpoint at ``path``; None if there is no file.

        Raises ValueError if the file is not a valid checkpoint.
        """
        path = Path(path)
        if not path.exists():
            logger.debug("No checkpoint at '%s'", path)
            return None
        return Checkpoint.model_validate_json(path.read_text(encoding="utf-8"))

    def restore(self, path: str | Path) -> RestoredProgress:
        checkpoint = self.load(path)
        if checkpoint is None:
            return RestoredProgress()
        logger.debug("Restored checkpoint '%s' from %s", path, checkpoint.timestamp.isoformat())
        return RestoredProgress(
            executed_steps=list(checkpoint.executed_steps),
            state=dict(checkpoint.state),
        )

    def clear(self, path: str | Path) -> bool:
        """Delete the checkpoint at ``path``; return whether one existed."""
        path = Path(path)
        if not path.exists():
            return False
        path.unlink()
        logger.debug("Removed checkpoint '%s'", path)
        return True


def default_checkpoint_path(parent_dir: str | Path, workspace_name: str) -> Path:
    """Return the conventional checkpoint location for a workspace."""
    return Path(parent_dir) / f".{workspace_name}.checkpoint"


def find_resume_step(executed_steps: Iterable[str], step_names: Sequence[str]) -> str | None:
    """Return the first pipeline step not yet executed, or None if all are done."""
    done = set(executed_steps)
    for name in step_names:
        if name not in done:
            return name
    return None
