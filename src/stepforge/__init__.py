"""stepforge - A checkpointed, pluggable step pipeline engine for workspace scaffolding."""

from .checkpoint import Checkpoint as Checkpoint
from .checkpoint import CheckpointStore as CheckpointStore
from .checkpoint import RestoredProgress as RestoredProgress
from .checkpoint import default_checkpoint_path as default_checkpoint_path
from .checkpoint import find_resume_step as find_resume_step
from .context import ExecutionContext as ExecutionContext
from .dryrun import ActionType as ActionType
from .dryrun import DryRunAction as DryRunAction
from .dryrun import DryRunExecutor as DryRunExecutor
from .dryrun import DryRunReport as DryRunReport
from .executor import StepExecutor as StepExecutor
from .hooks import HookKind as HookKind
from .hooks import PluginHooks as PluginHooks
from .messages import Messages as Messages
from .plugins import Plugin as Plugin
from .plugins import PluginRegistry as PluginRegistry
from .plugins import TemplateDir as TemplateDir
from .plugins import TemplateProvider as TemplateProvider
from .runner import InvalidStartStepError as InvalidStartStepError
from .runner import RunState as RunState
from .runner import StepState as StepState
from .steps import Action as Action
from .steps import Step as Step
from .steps import action as action
