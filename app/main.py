"""FastAPI entry point for the workflow runner service."""

from typing import Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import RunnerSettings, get_settings
from .routers import workflows


def create_app(settings: Optional[RunnerSettings] = None) -> FastAPI:
    """Create a FastAPI application exposing the workflow runner."""

    resolved_settings = settings or get_settings()

    app = FastAPI(title=resolved_settings.app_name)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=resolved_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(workflows.router)

    @app.get("/health", tags=["health"])
    def health_check() -> Dict[str, Optional[str]]:
        """Report service status and the configured workflow."""

        return {
            "status": "ok",
            "service": resolved_settings.app_name,
            "workflow": resolved_settings.workflow_name,
        }

    @app.get("/ready", tags=["health"])
    def readiness_check() -> Dict[str, object]:
        """Readiness check endpoint for Kubernetes."""

        return {
            "status": "ready",
            "service": resolved_settings.app_name,
            "runner_ready": True,
            "strict_input_gating": resolved_settings.require_inputs,
        }

    @app.get("/metrics", tags=["monitoring"])
    def metrics() -> Dict[str, object]:
        """Basic metrics endpoint."""

        runner = workflows.get_workflow_runner()
        return {
            "service": resolved_settings.app_name,
            "version": "0.1.0",
            "steps_total": len(runner.catalog),
            "runs_recorded": len(runner.history),
            "capabilities": ["sequential_runner", "input_gating", "review_pause", "run_history"],
        }

    return app


app = create_app()
