"""Runtime execution context for the step pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from .dryrun import DryRunAction

DRY_RUN_KEY = "dry_run"
DRY_RUN_ACTIONS_KEY = "dry_run_actions"

P = TypeVar("P")


class ExecutionContext(Generic[P]):
    """Runtime state passed through every step and hook of one run.

    ``config`` is opaque to the engine. ``state`` is the shared scratchpad that
    steps and hooks read and write; it keeps insertion order and is what ends
    up in the checkpoint file.
    """

    def __init__(
        self,
        config: P,
        *,
        checkpoint_path: str | Path,
        state: dict[str, Any] | None = None,
        dry_run: bool = False,
    ) -> None:
        self.config = config
        self.state: dict[str, Any] = state if state is not None else {}
        self.checkpoint_path = Path(checkpoint_path)
        self.dry_run = dry_run

    @property
    def is_dry_run(self) -> bool:
        """True when either the flag or the state marks this run as simulated."""
        return self.dry_run or bool(self.state.get(DRY_RUN_KEY))

    def derive(self, *, dry_run: bool | None = None, **extra_state: Any) -> ExecutionContext[P]:
        """Return a new context with a copy of the state extended by ``extra_state``.

        The original context and its state mapping are left untouched.
        """
        state = dict(self.state)
        state.update(extra_state)
        return ExecutionContext(
            self.config,
            checkpoint_path=self.checkpoint_path,
            state=state,
            dry_run=self.dry_run if dry_run is None else dry_run,
        )

    def record_action(self, action: DryRunAction) -> bool:
        """Hand an intended action to the attached dry-run log.

        Returns False if no log is attached, i.e. the caller should perform
        the side effect for real.
        """
        log = self.state.get(DRY_RUN_ACTIONS_KEY)
        if log is None:
            return False
        log.record(action)
        return True

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(checkpoint_path={str(self.checkpoint_path)!r}, "
            f"dry_run={self.dry_run}, state_keys={len(self.state)})"
        )
