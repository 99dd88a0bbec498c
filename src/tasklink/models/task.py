"""Task domain model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ..utils.datetime import now_utc, parse_optional
from .compat import normalize_task_data
from .sync import WorkflowState


class CommitMetadata(BaseModel):
    """Commit that resolved a task."""

    sha: str
    message: str | None = None
    branch: str | None = None
    url: str | None = None
    timestamp: str | None = None


class RemoteLink(BaseModel):
    """Link between a local task and its remote item in one provider.

    The stored ``state`` is the last state observed after a successful sync.
    It is the only memory the reconciler keeps between runs.
    """

    identifier: int | str  # Issue number (GitHub) or story id (Shortcut)
    url: str = ""
    target: str = ""  # "owner/repo" or workspace slug
    state: WorkflowState = WorkflowState.UNSTARTED


class Task(BaseModel):
    """A single local task, stored as one markdown file."""

    id: str
    name: str
    description: str = ""
    priority: int = 1  # Lower is more urgent
    parent_id: str | None = None
    completed: bool = False
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: str | None = None
    commit: CommitMetadata | None = None
    links: dict[str, RemoteLink] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def normalize_legacy(cls, data: Any) -> Any:
        """Migrate legacy record shapes before field validation."""
        if isinstance(data, dict):
            return normalize_task_data(data)
        return data

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def parse_required_datetime(cls, v: Any) -> Any:
        parsed = parse_optional(v)
        return parsed if parsed is not None else now_utc()

    @field_validator("started_at", "completed_at", mode="before")
    @classmethod
    def parse_optional_datetime(cls, v: Any) -> Any:
        return parse_optional(v)

    @property
    def is_root(self) -> bool:
        """Root tasks have no parent and map to exactly one remote item."""
        return self.parent_id is None

    def link_for(self, provider_id: str) -> RemoteLink | None:
        """Get the stored remote link for a provider, if any."""
        return self.links.get(provider_id)

    def with_link(self, provider_id: str, link: RemoteLink) -> Task:
        """Return a copy with the provider link set."""
        return self.model_copy(update={"links": {**self.links, provider_id: link}})

    def without_link(self, provider_id: str) -> Task:
        """Return a copy with the provider link removed."""
        links = {k: v for k, v in self.links.items() if k != provider_id}
        return self.model_copy(update={"links": links})

    def to_frontmatter(self) -> dict:
        """Convert to dict suitable for YAML front matter.

        The description is the markdown body and is not included.
        """
        data: dict = {"name": self.name, "priority": self.priority}
        if self.parent_id:
            data["parent_id"] = self.parent_id
        data["completed"] = self.completed
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        if self.started_at:
            data["started_at"] = self.started_at.isoformat()
        if self.completed_at:
            data["completed_at"] = self.completed_at.isoformat()
        if self.result:
            data["result"] = self.result
        if self.commit:
            data["commit"] = self.commit.model_dump(exclude_none=True)
        if self.links:
            data["links"] = {
                provider: link.model_dump(mode="json") for provider, link in self.links.items()
            }
        return data

    @classmethod
    def from_frontmatter(cls, task_id: str, metadata: dict, body: str) -> Task:
        """Create Task from parsed front matter and markdown body."""
        data = {**metadata, "id": task_id}
        # Legacy records carry the body in front matter as "context"
        if "context" not in data:
            data["description"] = body.strip("\n")
        return cls(**data)


class TaskCollection(BaseModel):
    """Snapshot of every task in the local store."""

    tasks: list[Task] = Field(default_factory=list)

    def get(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def roots(self) -> list[Task]:
        """Tasks without a parent, in store order."""
        return [t for t in self.tasks if t.is_root]

    def children_index(self) -> dict[str, list[Task]]:
        """Map each parent id to its direct children."""
        index: dict[str, list[Task]] = {}
        for task in self.tasks:
            if task.parent_id is not None:
                index.setdefault(task.parent_id, []).append(task)
        return index

    def root_of(self, task: Task) -> Task | None:
        """Walk up parent links to the root task.

        Returns None when a parent is missing or the chain loops.
        """
        by_id = {t.id: t for t in self.tasks}
        seen: set[str] = set()
        current = task
        while current.parent_id is not None:
            if current.id in seen:
                return None
            seen.add(current.id)
            parent = by_id.get(current.parent_id)
            if parent is None:
                return None
            current = parent
        return current

    def replace(self, task: Task) -> TaskCollection:
        """Return a new collection with one task swapped in by id."""
        return TaskCollection(tasks=[task if t.id == task.id else t for t in self.tasks])

    def validate_references(self) -> list[str]:
        """Check id uniqueness and that every parent exists.

        Returns:
            List of problems found (empty when the collection is consistent)
        """
        problems: list[str] = []
        seen: set[str] = set()
        for task in self.tasks:
            if task.id in seen:
                problems.append(f"Duplicate task id '{task.id}'")
            seen.add(task.id)
        for task in self.tasks:
            if task.parent_id is not None and task.parent_id not in seen:
                problems.append(f"Task '{task.id}' references missing parent '{task.parent_id}'")
        return problems
