"""Workflow runner package for sequential step execution."""

from .catalog import StepCatalog, default_catalog
from .errors import InvalidStateError, MissingInputError, StepExecutionError, WorkflowRunnerError
from .executor import DelayStepExecutor, StepExecutor
from .file_gate import FileGate
from .history import RunHistory
from .runner import WorkflowRunner

__all__ = [
    "StepCatalog",
    "default_catalog",
    "WorkflowRunnerError",
    "InvalidStateError",
    "MissingInputError",
    "StepExecutionError",
    "StepExecutor",
    "DelayStepExecutor",
    "FileGate",
    "RunHistory",
    "WorkflowRunner",
]
