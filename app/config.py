"""Configuration utilities for the workflow runner service."""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RunnerSettings(BaseSettings):
    """Settings definition with inline documentation for future maintainers."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "workflow-runner"
    cors_origins: List[str] = ["http://localhost:3000"]
    workflow_name: str = "Monthly FP&A Report"
    # YAML step catalog; the built-in reporting workflow is used when unset.
    catalog_path: Optional[str] = None
    # Refuse to start a run until every Input step has a matching upload.
    require_inputs: bool = False
    # Multiplier applied to simulated step durations (0 runs steps back to back).
    time_scale: float = Field(default=1.0, ge=0.0)
    history_size: int = Field(default=100, ge=1)


@lru_cache
def get_settings() -> RunnerSettings:
    """Return cached RunnerSettings to avoid repeated environment parsing."""

    return RunnerSettings()
