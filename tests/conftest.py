"""Shared fixtures: task builders and an in-memory provider adapter."""

from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from tasklink.models import RemoteSnapshot, Task, TaskCollection, WorkflowState
from tasklink.sync.codec import extract_task_id
from tasklink.sync.errors import RemoteError, RemoteNotFoundError

BASE_TIME = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


class FakeAdapter:
    """In-memory provider that records every write.

    ``collapse_started`` mimics trackers with only open/closed states.
    """

    def __init__(
        self,
        provider_id: str = "github",
        label: str = "tasklink",
        collapse_started: bool = False,
    ) -> None:
        self.provider_id = provider_id
        self.label = label
        self.collapse_started = collapse_started
        self.items: dict[int, RemoteSnapshot] = {}
        self.created: list[dict[str, Any]] = []
        self.updated: list[dict[str, Any]] = []
        self.comments: list[tuple[int | str, str]] = []
        self.get_errors: dict[int, Exception] = {}
        self.create_errors: dict[str, Exception] = {}
        self.list_error: Exception | None = None
        self.list_calls = 0
        self.get_calls: list[int | str] = []
        self.closed = False
        self._next_id = 1

    def describe_target(self) -> str:
        return "acme/widgets"

    def url_for(self, identifier: int | str) -> str:
        return f"https://tracker.test/items/{identifier}"

    def is_managed_label(self, label: str) -> bool:
        return label == self.label or label.startswith(f"{self.label}:")

    def coerce_state(self, state: WorkflowState) -> WorkflowState:
        if self.collapse_started and state is WorkflowState.STARTED:
            return WorkflowState.UNSTARTED
        return state

    def seed(
        self,
        body: str,
        state: WorkflowState = WorkflowState.UNSTARTED,
        title: str = "Seeded",
        labels: frozenset[str] | None = None,
        identifier: int | None = None,
    ) -> RemoteSnapshot:
        """Put an item on the fake remote without recording a write."""
        if identifier is None:
            identifier = self._next_id
        self._next_id = max(self._next_id, identifier + 1)
        snapshot = RemoteSnapshot(
            identifier=identifier,
            title=title,
            body=body,
            state=state,
            labels=labels if labels is not None else frozenset({self.label}),
            url=self.url_for(identifier),
            task_id=extract_task_id(body),
        )
        self.items[identifier] = snapshot
        return snapshot

    async def get_by_id(self, identifier: int | str) -> RemoteSnapshot:
        self.get_calls.append(identifier)
        number = int(identifier)
        if number in self.get_errors:
            raise self.get_errors[number]
        if number not in self.items:
            raise RemoteNotFoundError(f"Item {identifier} not found", status_code=404)
        return self.items[number]

    async def list_by_label(self, label: str) -> list[RemoteSnapshot]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return [item for item in self.items.values() if label in item.labels]

    async def create_item(
        self,
        title: str,
        body: str,
        labels: set[str],
        state: WorkflowState,
        parent: int | str | None = None,
    ) -> RemoteSnapshot:
        if title in self.create_errors:
            raise self.create_errors[title]
        self.created.append(
            {"title": title, "body": body, "labels": set(labels), "state": state, "parent": parent}
        )
        return self.seed(body, state=state, title=title, labels=frozenset(labels))

    async def update_item(
        self,
        identifier: int | str,
        title: str,
        body: str,
        labels: set[str],
        state: WorkflowState | None,
    ) -> RemoteSnapshot:
        number = int(identifier)
        if number not in self.items:
            raise RemoteNotFoundError(f"Item {identifier} not found", status_code=404)
        self.updated.append(
            {
                "identifier": number,
                "title": title,
                "body": body,
                "labels": set(labels),
                "state": state,
            }
        )
        current = self.items[number]
        snapshot = replace(
            current,
            title=title,
            body=body,
            labels=frozenset(labels),
            state=state if state is not None else current.state,
            task_id=extract_task_id(body),
        )
        self.items[number] = snapshot
        return snapshot

    async def add_comment(self, identifier: int | str, body: str) -> None:
        self.comments.append((identifier, body))

    async def aclose(self) -> None:
        self.closed = True


class FailingAdapter(FakeAdapter):
    """Adapter whose reads fail with a transient error."""

    async def get_by_id(self, identifier: int | str) -> RemoteSnapshot:
        raise RemoteError("Service unavailable", status_code=503)


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Build tasks with fixed timestamps so rendered bodies are stable."""

    def _make(task_id: str, name: str | None = None, **fields: Any) -> Task:
        fields.setdefault("created_at", BASE_TIME)
        fields.setdefault("updated_at", BASE_TIME)
        return Task(id=task_id, name=name or f"Task {task_id}", **fields)

    return _make


@pytest.fixture
def make_collection() -> Callable[..., TaskCollection]:
    def _make(*tasks: Task) -> TaskCollection:
        return TaskCollection(tasks=list(tasks))

    return _make


@pytest.fixture
def github_adapter() -> FakeAdapter:
    """Fake adapter that behaves like an open/closed issue tracker."""
    return FakeAdapter(provider_id="github", collapse_started=True)


@pytest.fixture
def shortcut_adapter() -> FakeAdapter:
    """Fake adapter with native started states."""
    return FakeAdapter(provider_id="shortcut")


@pytest.fixture
def later() -> Callable[[int], datetime]:
    """Timestamps after the fixed task time."""

    def _later(minutes: int = 5) -> datetime:
        return BASE_TIME + timedelta(minutes=minutes)

    return _later


@pytest.fixture
def failing_adapter() -> FailingAdapter:
    """Fake issue tracker whose direct reads fail with a 503."""
    return FailingAdapter(provider_id="github", collapse_started=True)
