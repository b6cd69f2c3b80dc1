"""Pluggable units of work executed for each catalog step."""

import asyncio
from typing import List, Protocol

from loguru import logger

from ..models.workflow import StepDefinition


class StepExecutor(Protocol):
    """
    Performs the work of one step.

    Implementations return the log lines produced by the step and raise
    ``StepExecutionError`` when the step fails. Any other exception is treated
    as a failure of the step by the runner.
    """

    async def execute(self, step: StepDefinition) -> List[str]:
        ...


class DelayStepExecutor:
    """Stand-in executor that waits for the step's simulated duration."""

    def __init__(self, time_scale: float = 1.0) -> None:
        if time_scale < 0:
            raise ValueError("time_scale must be non-negative")
        self.time_scale = time_scale

    async def execute(self, step: StepDefinition) -> List[str]:
        """Sleep for the scaled simulated duration of ``step``."""
        delay_seconds = step.simulated_duration_ms * self.time_scale / 1000.0
        logger.debug(f"Simulating step {step.id} for {delay_seconds:.3f}s")

        await asyncio.sleep(delay_seconds)

        return [
            f"Started {step.name} ({step.kind.value})",
            f"{step.name} finished in {step.simulated_duration_ms}ms",
        ]
