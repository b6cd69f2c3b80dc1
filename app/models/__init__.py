"""Data models package."""

from .workflow import (
    ExpectedFile,
    FileUploadRequest,
    RunHistoryEntry,
    RunOutcome,
    RunState,
    RunStatusResponse,
    StateTransition,
    StepDefinition,
    StepExecutionRecord,
    StepKind,
    StepStatus,
    StepStatusResponse,
    UploadedFileRef,
)

__all__ = [
    "StepKind",
    "StepStatus",
    "ExpectedFile",
    "StepDefinition",
    "StepExecutionRecord",
    "UploadedFileRef",
    "StateTransition",
    "RunState",
    "RunOutcome",
    "RunHistoryEntry",
    "FileUploadRequest",
    "StepStatusResponse",
    "RunStatusResponse",
]
