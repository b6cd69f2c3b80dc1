"""Local test configuration for the workflow runner service."""

from __future__ import annotations

import asyncio
import sys
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient

# -- Path management ------------------------------------------------------
# The service uses a classic ``app/`` package layout instead of the ``src/``
# layout that editable installs automatically expose on ``sys.path``. Adding
# the service root as the very first entry keeps ``import app`` working when
# pytest runs from a clean checkout.
SERVICE_ROOT = Path(__file__).resolve().parent.parent
if str(SERVICE_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICE_ROOT))

from app.config import RunnerSettings
from app.main import create_app
from app.models.workflow import StepDefinition, StepKind
from app.workflows.catalog import StepCatalog


class GatedExecutor:
    """Executor whose steps finish only when the test releases them."""

    def __init__(self, failures: Dict[str, BaseException] | None = None) -> None:
        self.gates: Dict[str, asyncio.Event] = defaultdict(asyncio.Event)
        self.failures = failures or {}
        self.calls: List[str] = []

    async def execute(self, step: StepDefinition) -> List[str]:
        self.calls.append(step.id)
        await self.gates[step.id].wait()
        if step.id in self.failures:
            raise self.failures[step.id]
        return [f"ran {step.id}"]

    def release(self, step_id: str) -> None:
        self.gates[step_id].set()


class TickClock:
    """Deterministic clock advancing by a fixed step on every read."""

    def __init__(self, step_ms: int = 5) -> None:
        self.current = datetime(2024, 11, 28, 10, 0, tzinfo=timezone.utc)
        self.step = timedelta(milliseconds=step_ms)

    def __call__(self) -> datetime:
        self.current += self.step
        return self.current


async def settle(rounds: int = 5) -> None:
    """Give background advancement tasks a few loop iterations to progress."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_step(step_id: str, kind: StepKind = StepKind.AI_PROCESSING, **kwargs) -> StepDefinition:
    return StepDefinition(id=step_id, name=step_id.upper(), kind=kind, **kwargs)


@pytest.fixture
def test_settings():
    """Provide test-specific settings."""
    return RunnerSettings(
        app_name="workflow-runner-test",
        cors_origins=["http://localhost:3000", "http://localhost:8000"],
        workflow_name="Test Report",
        time_scale=0.0,
    )


@pytest.fixture
def app(test_settings):
    """Create FastAPI app with test settings."""
    return create_app(test_settings)


@pytest.fixture
def client(app):
    """Provide TestClient for the runner service."""
    return TestClient(app)


@pytest.fixture
def three_step_catalog() -> StepCatalog:
    """Input → processing → output catalog with tiny simulated durations."""
    return StepCatalog(
        [
            make_step("s1", StepKind.INPUT, simulated_duration_ms=10),
            make_step("s2", StepKind.AI_PROCESSING, simulated_duration_ms=10),
            make_step("s3", StepKind.OUTPUT, simulated_duration_ms=10),
        ]
    )


@pytest.fixture
def gated_executor() -> GatedExecutor:
    return GatedExecutor()


@pytest.fixture
def tick_clock() -> TickClock:
    return TickClock()
