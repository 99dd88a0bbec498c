"""Data models."""

from .sync import (
    RemoteSnapshot,
    SyncOutcome,
    SyncPhase,
    SyncProgress,
    SyncRunSummary,
    WorkflowState,
)
from .task import CommitMetadata, RemoteLink, Task, TaskCollection
from .tasklink_config import (
    GitHubSyncConfig,
    ShortcutSyncConfig,
    SyncConfig,
    TasklinkConfig,
)

__all__ = [
    "CommitMetadata",
    "GitHubSyncConfig",
    "RemoteLink",
    "RemoteSnapshot",
    "ShortcutSyncConfig",
    "SyncConfig",
    "SyncOutcome",
    "SyncPhase",
    "SyncProgress",
    "SyncRunSummary",
    "Task",
    "TaskCollection",
    "TasklinkConfig",
    "WorkflowState",
]
