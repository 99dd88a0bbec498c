"""Sync reconciliation between local tasks and remote trackers."""

from .changes import needs_update
from .engine import GitHubReconciler, ShortcutReconciler, SyncReconciler
from .errors import (
    MetadataParseError,
    RemoteAuthError,
    RemoteError,
    RemoteNotFoundError,
    SyncConfigError,
    SyncError,
)
from .registry import SyncRegistry

__all__ = [
    "GitHubReconciler",
    "MetadataParseError",
    "RemoteAuthError",
    "RemoteError",
    "RemoteNotFoundError",
    "ShortcutReconciler",
    "SyncConfigError",
    "SyncError",
    "SyncReconciler",
    "SyncRegistry",
    "needs_update",
]
