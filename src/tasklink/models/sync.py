"""Sync-related data models shared by the reconciler and provider adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .task import RemoteLink, Task


class WorkflowState(str, Enum):
    """Provider-neutral workflow state of a remote item.

    States are ordered: UNSTARTED < STARTED < DONE. DONE is terminal.
    """

    UNSTARTED = "unstarted"
    STARTED = "started"
    DONE = "done"

    @property
    def rank(self) -> int:
        return _STATE_RANK[self.value]

    @property
    def is_terminal(self) -> bool:
        return self is WorkflowState.DONE

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, WorkflowState):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, WorkflowState):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, WorkflowState):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, WorkflowState):
            return NotImplemented
        return self.rank >= other.rank


_STATE_RANK = {"unstarted": 0, "started": 1, "done": 2}


class SyncPhase(str, Enum):
    """Progress phase reported for each root task during a sync run."""

    CHECKING = "checking"
    CREATING = "creating"
    UPDATING = "updating"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RemoteSnapshot:
    """What a provider currently holds for one remote item."""

    identifier: int | str
    title: str
    body: str
    state: WorkflowState
    labels: frozenset[str] = frozenset()  # Managed labels only
    url: str = ""
    task_id: str | None = None  # Task id embedded in the body, if any


@dataclass
class SyncProgress:
    """Progress event passed to the on_progress callback."""

    index: int  # 1-based position among root tasks
    total: int
    task: Task
    phase: SyncPhase


@dataclass
class SyncOutcome:
    """Result of reconciling one task against one provider."""

    task_id: str
    created: bool = False
    skipped: bool = False
    link: RemoteLink | None = None  # Link metadata to persist on the task
    subtask_outcomes: list[SyncOutcome] = field(default_factory=list)
    local_updates: dict[str, Any] | None = None  # Remote-newer fields to apply locally
    pulled_from_remote: bool = False
    not_closing_reason: str | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        """Whether reconciling this task raised an error."""
        return self.error is not None

    @property
    def updated(self) -> bool:
        """Whether an existing remote item was written."""
        return not (self.created or self.skipped or self.failed)


@dataclass
class SyncRunSummary:
    """Aggregated result of one provider's sync run."""

    provider_id: str
    outcomes: list[SyncOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)  # Run-level and per-task error messages

    def add(self, outcome: SyncOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.error:
            self.errors.append(f"{outcome.task_id}: {outcome.error}")

    @property
    def created_count(self) -> int:
        return sum(1 for o in self.outcomes if o.created)

    @property
    def updated_count(self) -> int:
        return sum(1 for o in self.outcomes if o.updated)

    @property
    def skipped_count(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped and not o.pulled_from_remote)

    @property
    def pulled_count(self) -> int:
        return sum(1 for o in self.outcomes if o.pulled_from_remote)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def has_errors(self) -> bool:
        """Whether any errors occurred."""
        return len(self.errors) > 0
