"""Task storage backends."""

from .filesystem import FilesystemTaskStore
from .protocol import TaskStoreProtocol

__all__ = ["FilesystemTaskStore", "TaskStoreProtocol"]
