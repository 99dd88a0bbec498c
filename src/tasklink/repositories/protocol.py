"""Store protocol consumed by the sync layer."""

from typing import Any, Protocol

from ..models import Task, TaskCollection


class TaskStoreProtocol(Protocol):
    """Interface for local task storage.

    The sync layer reads a full snapshot before a run and writes link
    metadata and pulled fields back through ``update``.
    """

    def get(self, task_id: str) -> Task | None:
        """Get a single task by id.

        Returns:
            The task if found, None otherwise.
        """
        ...

    def update(self, task_id: str, fields: dict[str, Any]) -> Task:
        """Apply field updates to an existing task and persist it.

        Raises:
            KeyError: If the task does not exist.
        """
        ...

    def create(self, fields: dict[str, Any]) -> Task:
        """Create and persist a new task, assigning an id when missing."""
        ...

    def get_children(self, task_id: str) -> list[Task]:
        """Direct children of a task."""
        ...

    def read(self) -> TaskCollection:
        """Load a snapshot of every task."""
        ...

    def write(self, collection: TaskCollection) -> None:
        """Persist every task in the collection."""
        ...
