"""Workflow API endpoints for running the step catalog and tracking progress."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from loguru import logger

from ..config import RunnerSettings, get_settings
from ..models.workflow import (
    FileUploadRequest,
    RunOutcome,
    RunStatusResponse,
    StepDefinition,
    StepStatus,
    StepStatusResponse,
    UploadedFileRef,
)
from ..workflows.catalog import StepCatalog, default_catalog
from ..workflows.errors import InvalidStateError, MissingInputError
from ..workflows.executor import DelayStepExecutor
from ..workflows.history import RunHistory
from ..workflows.runner import WorkflowRunner

router = APIRouter(prefix="/api/v1/workflow", tags=["workflow"])

# Global instance (initialized on first request)
_runner: Optional[WorkflowRunner] = None


def build_runner(settings: RunnerSettings) -> WorkflowRunner:
    """Create a runner wired from service settings."""
    if settings.catalog_path:
        catalog = StepCatalog.from_yaml(settings.catalog_path)
    else:
        catalog = default_catalog()

    return WorkflowRunner(
        catalog,
        executor=DelayStepExecutor(time_scale=settings.time_scale),
        history=RunHistory(max_entries=settings.history_size),
        workflow_name=settings.workflow_name,
        require_inputs=settings.require_inputs,
    )


def get_workflow_runner() -> WorkflowRunner:
    """Get or create the workflow runner instance."""
    global _runner

    if not _runner:
        _runner = build_runner(get_settings())

    return _runner


@router.get(
    "/steps",
    response_model=List[StepDefinition],
    summary="List catalog steps in execution order",
)
async def list_steps() -> List[StepDefinition]:
    """Return the step catalog in the order every run traverses it."""
    runner = get_workflow_runner()
    return runner.catalog.list_steps()


@router.get(
    "/status",
    response_model=RunStatusResponse,
    summary="Get the current run status",
)
async def get_run_status() -> RunStatusResponse:
    """
    Get the current status of the workflow run.

    Returns:
    - Run flags (running, paused for review, completed)
    - Index and id of the step being executed
    - Progress percentage based on completed steps
    - Elapsed time (live while running, final once the run ends)
    - Execution records in catalog order
    - Error details if the run failed
    """
    try:
        runner = get_workflow_runner()
        state = runner.snapshot()
        catalog = runner.catalog

        total_steps = len(catalog)
        completed_steps = len(
            [r for r in state.executions.values() if r.status == StepStatus.COMPLETED]
        )
        progress = (completed_steps / total_steps * 100) if total_steps > 0 else 0.0

        current_step = None
        if 0 <= state.current_step_index < total_steps:
            current_step = catalog[state.current_step_index].id

        executions = [
            state.executions[step.id] for step in catalog if step.id in state.executions
        ]

        return RunStatusResponse(
            workflow_name=runner.workflow_name,
            is_running=state.is_running,
            is_paused=state.is_paused,
            is_completed=state.is_completed,
            current_step_index=state.current_step_index,
            current_step=current_step,
            progress_percent=round(progress, 2),
            started_at=state.started_at,
            elapsed_ms=runner.elapsed_ms,
            steps_completed=completed_steps,
            steps_total=total_steps,
            executions=executions,
            error=state.error,
        )

    except Exception as e:
        logger.error(f"Failed to get run status: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retrieve run status: {str(e)}",
        )


@router.get(
    "/steps/{step_id}/status",
    response_model=StepStatusResponse,
    summary="Get one step's status",
)
async def get_step_status(step_id: str) -> StepStatusResponse:
    """Return the status of a single step; untouched steps are pending."""
    runner = get_workflow_runner()

    if runner.catalog.get(step_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Step not found: {step_id}",
        )

    return StepStatusResponse(step_id=step_id, status=runner.status_of(step_id))


@router.post(
    "/run",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start a workflow run",
)
async def start_run() -> dict:
    """
    Start a run of the step catalog.

    The run advances in the background; poll /status to follow it.
    Fails with 409 when a run is already in progress and with 422 when strict
    input gating is enabled and required files are missing.
    """
    try:
        runner = get_workflow_runner()
        runner.start()

        return {
            "workflow_name": runner.workflow_name,
            "is_running": runner.is_running,
            "is_completed": runner.is_completed,
            "current_step_index": runner.current_step_index,
            "message": "Workflow run started",
        }

    except InvalidStateError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    except MissingInputError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "missing": e.missing},
        )
    except Exception as e:
        logger.error(f"Failed to start workflow run: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to start workflow run: {str(e)}",
        )


@router.post(
    "/resume/{index}",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Resume a run paused for review",
)
async def resume_run(index: int) -> dict:
    """Approve the step awaiting review at ``index`` and continue the run."""
    try:
        runner = get_workflow_runner()
        runner.resume_from(index)

        return {
            "resumed_from": index,
            "is_running": runner.is_running,
            "is_completed": runner.is_completed,
            "message": "Workflow run resumed",
        }

    except (InvalidStateError, ValueError) as e:
        # Not paused, or paused on a different step than requested
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )


@router.post(
    "/reset",
    summary="Reset the workflow run",
)
async def reset_run() -> dict:
    """Abandon any run, clear uploaded files and return to the idle state."""
    runner = get_workflow_runner()
    runner.reset()

    return {
        "is_running": runner.is_running,
        "is_completed": runner.is_completed,
        "current_step_index": runner.current_step_index,
        "message": "Workflow run reset",
    }


@router.get(
    "/files",
    summary="List uploaded input files",
)
async def list_files() -> dict:
    """List uploaded inputs together with the inputs still missing."""
    runner = get_workflow_runner()
    files = runner.files()

    return {
        "total": len(files),
        "files": [f.model_dump(mode="json") for f in files],
        "missing": runner.missing_inputs(),
        "can_start": runner.can_start(),
    }


@router.post(
    "/files",
    response_model=UploadedFileRef,
    status_code=status.HTTP_201_CREATED,
    summary="Register an uploaded input file",
)
async def add_file(request: FileUploadRequest) -> UploadedFileRef:
    """Register an input file; a file with the same name is replaced."""
    runner = get_workflow_runner()
    ref = UploadedFileRef(name=request.name, size_bytes=request.size_bytes)

    try:
        runner.add_file(ref)
    except InvalidStateError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )

    return ref


@router.delete(
    "/files/{name}",
    summary="Remove an uploaded input file",
)
async def remove_file(name: str) -> dict:
    """Remove an uploaded input file by name."""
    runner = get_workflow_runner()

    try:
        removed = runner.remove_file(name)
    except InvalidStateError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )

    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"File not found: {name}",
        )

    return {"name": name, "message": "File removed"}


@router.get(
    "/history",
    summary="List finished runs",
)
async def list_history(
    status_filter: Optional[RunOutcome] = None,
    limit: int = Query(50, ge=1),
) -> dict:
    """
    List finished runs, newest first.

    Parameters:
    - status_filter: only runs that ended with this outcome
    - limit: Maximum number of results (default: 50)
    """
    runner = get_workflow_runner()
    entries = runner.history.list_entries(status=status_filter, limit=limit)

    return {
        "total": len(entries),
        "runs": [e.model_dump(mode="json") for e in entries],
    }
