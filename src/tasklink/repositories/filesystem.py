"""Filesystem-based store for task files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import frontmatter
import yaml
from pydantic import ValidationError

from ..models import Task, TaskCollection
from ..utils.datetime import now_utc
from ..utils.ids import generate_task_id, is_valid_task_id

logger = logging.getLogger(__name__)


class FilesystemTaskStore:
    """
    Store for task files on the filesystem.

    Each task is an ``<id>.md`` file with YAML front matter; the markdown
    body is the task description.
    """

    def __init__(self, task_root: Path) -> None:
        """
        Initialize the store.

        Args:
            task_root: Path to the tasks directory (e.g., .tasks/)
        """
        self.task_root = task_root

    def ensure_directory(self) -> None:
        """Create the tasks directory if it doesn't exist."""
        self.task_root.mkdir(parents=True, exist_ok=True)

    def validate(self) -> tuple[bool, str | None]:
        """Check that the task root is usable."""
        if self.task_root.exists() and not self.task_root.is_dir():
            return False, f"Task root is not a directory: {self.task_root}"
        return True, None

    # --- Reads ---

    def read(self) -> TaskCollection:
        """Load every task file into a collection."""
        if not self.task_root.exists():
            return TaskCollection()

        tasks: list[Task] = []
        for filepath in sorted(self.task_root.glob("*.md")):
            task = self._parse_task_file(filepath)
            if task is not None:
                tasks.append(task)
        logger.debug("Loaded %d tasks from %s", len(tasks), self.task_root)
        return TaskCollection(tasks=tasks)

    def get(self, task_id: str) -> Task | None:
        filepath = self._path_for(task_id)
        if not filepath.exists():
            return None
        return self._parse_task_file(filepath)

    def get_children(self, task_id: str) -> list[Task]:
        children = self.read().children_index().get(task_id, [])
        return sorted(children, key=lambda t: (t.priority, t.id))

    # --- Writes ---

    def create(self, fields: dict[str, Any]) -> Task:
        """Create a task file. Assigns a fresh id unless one is given."""
        data = dict(fields)
        if not data.get("id"):
            existing = {p.stem for p in self.task_root.glob("*.md")}
            data["id"] = generate_task_id(existing)
        task = Task(**data)
        self.save(task)
        return task

    def update(self, task_id: str, fields: dict[str, Any]) -> Task:
        """Apply field updates to a stored task and rewrite its file."""
        current = self.get(task_id)
        if current is None:
            raise KeyError(f"Task not found: {task_id}")
        # Round-trip through the model so nested values are validated
        data = current.model_dump()
        data.update(fields)
        task = Task(**data)
        self.save(task)
        return task

    def save(self, task: Task) -> Task:
        """Write a task to its markdown file."""
        if not is_valid_task_id(task.id):
            raise ValueError(f"Invalid task id: {task.id!r}")
        self.ensure_directory()
        post = frontmatter.Post(task.description, **task.to_frontmatter())
        self._path_for(task.id).write_text(frontmatter.dumps(post, sort_keys=False) + "\n")
        return task

    def write(self, collection: TaskCollection) -> None:
        for task in collection.tasks:
            self.save(task)

    def delete(self, task_id: str) -> None:
        """Delete a task file. Missing files are ignored."""
        filepath = self._path_for(task_id)
        if filepath.exists():
            filepath.unlink()

    def touch(self, task_id: str) -> Task:
        """Bump updated_at on a task."""
        return self.update(task_id, {"updated_at": now_utc()})

    # --- Internal ---

    def _path_for(self, task_id: str) -> Path:
        return self.task_root / f"{task_id}.md"

    def _parse_task_file(self, filepath: Path) -> Task | None:
        """Parse a task file. Unreadable files are logged and skipped."""
        try:
            post = frontmatter.load(filepath)
            return Task.from_frontmatter(filepath.stem, dict(post.metadata), post.content)
        except (yaml.YAMLError, ValidationError, OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable task file %s: %s", filepath.name, e)
            return None
