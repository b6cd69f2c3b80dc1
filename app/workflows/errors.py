"""Exceptions raised by the workflow runner."""

from typing import List, Optional


class WorkflowRunnerError(Exception):
    """Base class for runner errors."""


class InvalidStateError(WorkflowRunnerError):
    """Command issued while the run is in a state that does not allow it."""


class MissingInputError(WorkflowRunnerError):
    """Run start requested before every required input file was uploaded."""

    def __init__(self, missing: List[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required inputs: {', '.join(self.missing)}")


class StepExecutionError(WorkflowRunnerError):
    """A step's unit of work failed; advancement halts at this step."""

    def __init__(self, step_id: str, message: str, cause: Optional[BaseException] = None) -> None:
        self.step_id = step_id
        self.message = message
        self.cause = cause
        super().__init__(f"Step {step_id} failed: {message}")
