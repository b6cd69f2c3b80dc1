"""Sequential workflow runner implemented as a step state machine."""

import asyncio
from datetime import datetime
from typing import Callable, List, Optional

from loguru import logger

from ..models.workflow import (
    RunOutcome,
    RunState,
    StateTransition,
    StepDefinition,
    StepExecutionRecord,
    StepStatus,
    UploadedFileRef,
    utc_now,
)
from .catalog import StepCatalog
from .errors import InvalidStateError, MissingInputError, StepExecutionError
from .executor import DelayStepExecutor, StepExecutor
from .file_gate import FileGate
from .history import RunHistory

Listener = Callable[[], None]


class WorkflowRunner:
    """
    State machine that walks a step catalog in order.

    Features:
    - Step transitions (pending → running → completed/failed/needs_review)
    - One advancement task per run, steps never overlap
    - Pluggable step executor (pure delay by default)
    - Optional strict input gating before a run starts
    - Pause on steps that require review, resume from the paused index
    - Change notification after every mutation

    The runner is the only writer of its RunState. Readers use the query
    properties or ``snapshot()`` and issue commands; they never mutate records.
    """

    def __init__(
        self,
        catalog: StepCatalog,
        executor: Optional[StepExecutor] = None,
        history: Optional[RunHistory] = None,
        workflow_name: str = "Workflow",
        require_inputs: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.catalog = catalog
        self.executor: StepExecutor = executor or DelayStepExecutor()
        self.history = history if history is not None else RunHistory()
        self.workflow_name = workflow_name
        self.require_inputs = require_inputs
        self._clock = clock
        self._state = RunState()
        self._gate = FileGate(self._state.uploaded_files)
        self._listeners: List[Listener] = []
        self._task: Optional[asyncio.Task] = None
        # Bumped by start() and reset(); a task from an older run stops mutating.
        self._generation = 0

    # -- queries -----------------------------------------------------------

    @property
    def state(self) -> RunState:
        """Live run state. Treat as read-only."""
        return self._state

    def snapshot(self) -> RunState:
        """Deep copy of the run state, safe to hand to other code."""
        return self._state.model_copy(deep=True)

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def is_paused(self) -> bool:
        return self._state.is_paused

    @property
    def is_completed(self) -> bool:
        return self._state.is_completed

    @property
    def current_step_index(self) -> int:
        return self._state.current_step_index

    @property
    def elapsed_ms(self) -> int:
        """Milliseconds since the run started; frozen once the run ends."""
        state = self._state
        if state.started_at is None:
            return 0
        if state.is_running:
            return self._ms_since(state.started_at)
        return state.total_elapsed_ms

    def status_of(self, step_id: str) -> StepStatus:
        """Status of ``step_id`` in the current run, pending if untouched."""
        record = self._state.executions.get(step_id)
        return record.status if record else StepStatus.PENDING

    def files(self) -> List[UploadedFileRef]:
        return self._gate.files()

    def missing_inputs(self) -> List[str]:
        """Expected input names not yet matched by an uploaded file."""
        return [self._describe_input(step) for step in self._gate.missing_inputs(self.catalog)]

    def can_start(self) -> bool:
        """
        Input precondition for ``start()``.

        Always true unless strict gating is enabled, in which case every Input
        step needs a matching uploaded file.
        """
        if not self.require_inputs:
            return True
        return self._gate.satisfies(self.catalog)

    # -- notifications -----------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"State change listener failed: {e}")

    # -- commands ----------------------------------------------------------

    def start(self) -> Optional[asyncio.Task]:
        """
        Start a new run.

        The first step is marked running before this returns; the rest of the
        run advances in a background task, which is returned (None when the
        catalog is empty and the run completed immediately).

        Raises:
            InvalidStateError: a run is already in progress.
            MissingInputError: strict gating is on and inputs are missing.
        """
        loop = asyncio.get_running_loop()

        if self._state.is_running:
            raise InvalidStateError("Workflow run already in progress")

        if self.require_inputs:
            missing = self.missing_inputs()
            if missing:
                raise MissingInputError(missing)

        self._generation += 1
        state = self._state
        state.executions = {}
        state.transitions = []
        state.is_running = True
        state.is_paused = False
        state.is_completed = False
        state.current_step_index = 0 if len(self.catalog) else -1
        state.started_at = self._clock()
        state.total_elapsed_ms = 0
        state.error = None

        generation = self._generation
        logger.info(f"Starting workflow run: {self.workflow_name} ({len(self.catalog)} steps)")
        self._notify()
        if generation != self._generation:
            return None

        return self._launch(0, loop)

    def resume_from(self, index: int) -> Optional[asyncio.Task]:
        """
        Continue a run paused for review.

        The step at ``index`` must be the one the run paused on. It is approved
        (needs_review → completed) and advancement continues at ``index + 1``;
        records of earlier steps are left untouched.

        Raises:
            InvalidStateError: the run is not paused for review.
            ValueError: ``index`` is not the paused step.
        """
        loop = asyncio.get_running_loop()
        state = self._state

        if not state.is_paused:
            raise InvalidStateError("Workflow run is not waiting for review")
        if index != state.current_step_index:
            raise ValueError(
                f"Cannot resume from step index {index}; run is paused at {state.current_step_index}"
            )

        step = self.catalog[index]
        generation = self._generation
        state.is_paused = False
        logger.info(f"Resuming workflow run after review of step {step.id}")

        if self.status_of(step.id) == StepStatus.NEEDS_REVIEW:
            self._transition(step.id, StepStatus.COMPLETED)
        else:
            self._notify()
        if generation != self._generation:
            return None

        return self._launch(index + 1, loop)

    def reset(self) -> None:
        """Abandon any run and restore the initial state. Never fails."""
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

        self._state = RunState()
        self._gate = FileGate(self._state.uploaded_files)

        logger.info("Workflow run reset")
        self._notify()

    def add_file(self, ref: UploadedFileRef) -> None:
        """Register an uploaded input, replacing any file with the same name."""
        self._ensure_not_running("add files")
        self._gate.add(ref)
        self._notify()

    def remove_file(self, name: str) -> bool:
        """Forget the uploaded input ``name``; return whether it was present."""
        self._ensure_not_running("remove files")
        removed = self._gate.remove(name)
        if removed:
            self._notify()
        return removed

    async def wait_until_idle(self) -> None:
        """Wait for the current advancement task, if any, to stop."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    # -- advancement loop --------------------------------------------------

    def _launch(self, index: int, loop: asyncio.AbstractEventLoop) -> Optional[asyncio.Task]:
        if index >= len(self.catalog):
            self._finish(RunOutcome.COMPLETED)
            return None

        generation = self._generation
        self._enter_step(index)
        if generation != self._generation:
            return None

        task = loop.create_task(self._advance(index, generation))
        self._task = task
        return task

    async def _advance(self, index: int, generation: int) -> None:
        """Run steps from ``index`` (already marked running) to the end."""
        try:
            while True:
                step = self.catalog[index]

                try:
                    logs = await self.executor.execute(step)
                except StepExecutionError as e:
                    if generation == self._generation:
                        self._fail_step(step, e)
                    return
                except Exception as e:
                    if generation == self._generation:
                        self._fail_step(
                            step, StepExecutionError(step.id, str(e) or type(e).__name__, cause=e)
                        )
                    return

                if generation != self._generation:
                    return

                if step.requires_review:
                    self._pause_for_review(step, logs)
                    return

                self._transition(step.id, StepStatus.COMPLETED, logs=logs)
                if generation != self._generation:
                    return

                index += 1
                if index >= len(self.catalog):
                    self._finish(RunOutcome.COMPLETED)
                    return

                self._enter_step(index)
                if generation != self._generation:
                    return
        finally:
            if self._task is asyncio.current_task():
                self._task = None

    def _enter_step(self, index: int) -> None:
        step = self.catalog[index]
        self._state.current_step_index = index
        logger.info(f"Executing step {index + 1}/{len(self.catalog)}: {step.name} (ID: {step.id})")
        self._transition(step.id, StepStatus.RUNNING)

    def _pause_for_review(self, step: StepDefinition, logs: Optional[List[str]]) -> None:
        self._state.is_paused = True
        logger.info(f"Step {step.id} requires review, pausing workflow run")
        self._transition(step.id, StepStatus.NEEDS_REVIEW, logs=logs)

    def _fail_step(self, step: StepDefinition, error: StepExecutionError) -> None:
        logger.error(f"Step execution failed: {step.id} - {error.message}")
        generation = self._generation
        self._transition(step.id, StepStatus.FAILED, error=error.message)
        if generation == self._generation:
            self._finish(RunOutcome.FAILED, error=str(error))

    def _transition(
        self,
        step_id: str,
        status: StepStatus,
        logs: Optional[List[str]] = None,
        error: Optional[str] = None,
    ) -> None:
        """Move one record to ``status``, keeping its timestamps consistent."""
        state = self._state
        record = state.executions.get(step_id) or StepExecutionRecord(step_id=step_id)
        previous = record.status
        now = self._clock()

        record.status = status
        if status == StepStatus.RUNNING and record.started_at is None:
            record.started_at = now
        if status in (StepStatus.COMPLETED, StepStatus.FAILED):
            record.completed_at = now
        if logs:
            record.logs.extend(logs)
        if error:
            record.error = error

        state.executions[step_id] = record
        state.transitions.append(
            StateTransition(step_id=step_id, from_status=previous, to_status=status, timestamp=now)
        )

        logger.debug(f"Step {step_id}: {previous.value} -> {status.value}")
        self._notify()

    def _finish(self, outcome: RunOutcome, error: Optional[str] = None) -> None:
        state = self._state
        now = self._clock()
        started_at = state.started_at or now

        state.is_running = False
        state.is_paused = False
        state.is_completed = outcome == RunOutcome.COMPLETED
        state.error = error
        state.total_elapsed_ms = self._ms_since(started_at, now)

        steps_completed = sum(
            1 for record in state.executions.values() if record.status == StepStatus.COMPLETED
        )
        self.history.record(
            workflow_name=self.workflow_name,
            started_at=started_at,
            duration_ms=state.total_elapsed_ms,
            status=outcome,
            steps_completed=steps_completed,
            total_steps=len(self.catalog),
        )

        if outcome == RunOutcome.COMPLETED:
            logger.info(f"Workflow run completed in {state.total_elapsed_ms}ms")
        else:
            logger.error(f"Workflow run failed after {state.total_elapsed_ms}ms: {error}")
        self._notify()

    # -- helpers -----------------------------------------------------------

    def _ensure_not_running(self, action: str) -> None:
        if self._state.is_running:
            raise InvalidStateError(f"Cannot {action} while a workflow run is in progress")

    def _ms_since(self, start: datetime, end: Optional[datetime] = None) -> int:
        end = end or self._clock()
        return max(int((end - start).total_seconds() * 1000), 0)

    @staticmethod
    def _describe_input(step: StepDefinition) -> str:
        return step.expected_file.name if step.expected_file else step.id
