"""Workflow models and schemas for the sequential step runner."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Timezone-aware current time used for every runner timestamp."""
    return datetime.now(timezone.utc)


class StepKind(str, Enum):
    """Declared type of a catalog step."""

    INPUT = "input"
    COHERENCE_CHECK = "coherence_check"
    AI_PROCESSING = "ai_processing"
    OUTPUT = "output"


class StepStatus(str, Enum):
    """Individual step execution states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    NEEDS_REVIEW = "needs_review"


class ExpectedFile(BaseModel):
    """File an Input step expects the caller to upload before a run."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Canonical file name")
    extensions: List[str] = Field(default_factory=list)

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        """Store extensions lower-cased with a leading dot."""
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    def accepts(self, file_name: str) -> bool:
        """Return True when ``file_name`` carries one of the accepted extensions."""
        lowered = file_name.lower()
        return any(lowered.endswith(ext) for ext in self.extensions)


class StepDefinition(BaseModel):
    """Immutable catalog entry describing one unit of work."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique step identifier")
    name: str = Field(..., description="Human-readable step name")
    kind: StepKind
    simulated_duration_ms: int = Field(default=0, ge=0)
    description: str = ""
    subtitle: str = ""
    prompt: Optional[str] = Field(None, description="Short summary of the AI task")
    expected_file: Optional[ExpectedFile] = None
    requires_review: bool = Field(
        default=False, description="Stop in needs_review instead of auto-completing"
    )


class StepExecutionRecord(BaseModel):
    """Mutable per-run record of one step's progress."""

    step_id: str
    status: StepStatus = StepStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    logs: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class UploadedFileRef(BaseModel):
    """Reference to an input file supplied before a run."""

    name: str = Field(..., min_length=1)
    size_bytes: int = Field(default=0, ge=0)
    uploaded_at: datetime = Field(default_factory=utc_now)


class StateTransition(BaseModel):
    """Step status transition record."""

    step_id: str
    from_status: StepStatus
    to_status: StepStatus
    timestamp: datetime = Field(default_factory=utc_now)


class RunState(BaseModel):
    """Runtime state of the single run owned by a runner."""

    is_running: bool = False
    is_paused: bool = False
    is_completed: bool = False
    current_step_index: int = -1
    executions: Dict[str, StepExecutionRecord] = Field(default_factory=dict)
    uploaded_files: Dict[str, UploadedFileRef] = Field(default_factory=dict)
    started_at: Optional[datetime] = None
    total_elapsed_ms: int = 0
    error: Optional[str] = None
    transitions: List[StateTransition] = Field(default_factory=list)


class RunOutcome(str, Enum):
    """Terminal outcome of a finished run."""

    COMPLETED = "completed"
    FAILED = "failed"


class RunHistoryEntry(BaseModel):
    """Summary of a finished run kept in the in-memory history."""

    id: str
    workflow_name: str
    started_at: datetime
    duration_ms: int = Field(ge=0)
    status: RunOutcome
    steps_completed: int = Field(ge=0)
    total_steps: int = Field(ge=0)


class FileUploadRequest(BaseModel):
    """API request registering an uploaded input file."""

    name: str = Field(..., min_length=1, max_length=255)
    size_bytes: int = Field(default=0, ge=0)


class StepStatusResponse(BaseModel):
    """API response for a single step status lookup."""

    step_id: str
    status: StepStatus


class RunStatusResponse(BaseModel):
    """API response for the current run status."""

    workflow_name: str
    is_running: bool
    is_paused: bool
    is_completed: bool
    current_step_index: int
    current_step: Optional[str]
    progress_percent: float = Field(ge=0.0, le=100.0)
    started_at: Optional[datetime]
    elapsed_ms: int
    steps_completed: int
    steps_total: int
    executions: List[StepExecutionRecord]
    error: Optional[str] = None
