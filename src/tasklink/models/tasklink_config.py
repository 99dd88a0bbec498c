"""Configuration models for tasklink.yml."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_LABEL = "tasklink"


def _validate_label(value: str, name: str = "Label") -> str:
    """Validate a label name usable as a metadata namespace prefix."""
    if not value:
        raise ValueError(f"{name} cannot be empty")
    if not all(c.isalnum() or c in "-_" for c in value):
        raise ValueError(f"{name} must be alphanumeric with dashes or underscores only")
    return value


class GitHubSyncConfig(BaseModel):
    """GitHub Issues sync settings."""

    enabled: bool = False
    owner: str | None = Field(
        default=None, description="Repository owner (inferred from git remote when unset)"
    )
    repo: str | None = Field(
        default=None, description="Repository name (inferred from git remote when unset)"
    )
    base_url: str = Field(
        default="api.github.com", description="API host, override for GitHub Enterprise"
    )
    token_env: str = Field(default="GITHUB_TOKEN", description="Environment variable with token")
    label_prefix: str = DEFAULT_LABEL

    @field_validator("label_prefix")
    @classmethod
    def validate_label_prefix(cls, v: str) -> str:
        return _validate_label(v, "Label prefix")


class ShortcutSyncConfig(BaseModel):
    """Shortcut Stories sync settings."""

    enabled: bool = False
    token_env: str = Field(
        default="SHORTCUT_API_TOKEN", description="Environment variable with token"
    )
    workspace: str | None = Field(
        default=None, description="Workspace slug (fetched from the API when unset)"
    )
    team: str | None = Field(default=None, description="Team mention name or UUID")
    workflow: int | None = Field(
        default=None, description="Workflow id (team default workflow when unset)"
    )
    label: str = DEFAULT_LABEL

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        return _validate_label(v)


class SyncConfig(BaseModel):
    """Per-provider sync configuration."""

    github: GitHubSyncConfig = Field(default_factory=GitHubSyncConfig)
    shortcut: ShortcutSyncConfig = Field(default_factory=ShortcutSyncConfig)


class TasklinkConfig(BaseModel):
    """Root configuration from tasklink.yml."""

    version: int = 1
    task_root: str = Field(default=".tasks", description="Relative path to tasks directory")
    sync: SyncConfig = Field(default_factory=SyncConfig)

    @field_validator("task_root")
    @classmethod
    def validate_task_root(cls, v: str) -> str:
        """Validate task_root is a relative path."""
        path = Path(v)
        if path.is_absolute():
            raise ValueError("task_root must be a relative path")
        # Check for path traversal attempts (e.g., "../other")
        try:
            resolved = Path().resolve() / path
            resolved.resolve().relative_to(Path().resolve())
        except ValueError as err:
            raise ValueError("task_root must be within the project directory") from err
        return v

    @classmethod
    def default(cls) -> "TasklinkConfig":
        """Return default configuration."""
        return cls()
