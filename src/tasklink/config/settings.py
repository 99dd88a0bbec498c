"""Process settings read from TASKLINK_* environment variables.

Project configuration (providers, labels, task root) lives in tasklink.yml;
these settings only cover how a single invocation runs.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TASKLINK_")

    project_root: Path = Field(
        default=Path(),
        description="Path to project root containing tasklink.yml",
    )
    verbose: int = Field(default=0, ge=0)
    log_file: Path | None = None
    provider: Literal["github", "shortcut"] | None = Field(
        default=None,
        description="Provider synced when neither --github nor --shortcut is given",
    )
