"""Shortcut Stories integration."""

from .adapter import ShortcutStoriesAdapter
from .client import (
    ShortcutAuthError,
    ShortcutClient,
    ShortcutClientError,
    ShortcutForbiddenError,
    ShortcutNotFoundError,
    ShortcutRateLimitError,
)

__all__ = [
    "ShortcutAuthError",
    "ShortcutClient",
    "ShortcutClientError",
    "ShortcutForbiddenError",
    "ShortcutNotFoundError",
    "ShortcutRateLimitError",
    "ShortcutStoriesAdapter",
]
