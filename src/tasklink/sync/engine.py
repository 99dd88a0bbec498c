"""Sync reconciler: decides create / update / skip for each root task."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..models import (
    RemoteLink,
    RemoteSnapshot,
    SyncOutcome,
    SyncPhase,
    SyncProgress,
    Task,
    TaskCollection,
    WorkflowState,
)
from ..utils.git import is_commit_on_remote
from .adapter import ProviderAdapter
from .changes import needs_update
from .codec import ParsedTaskFields
from .errors import RemoteAuthError, RemoteError, RemoteNotFoundError, SyncConfigError
from .rendering import (
    collect_descendants,
    parse_issue_body,
    parse_root_metadata,
    render_issue_body,
    render_story_body,
)

logger = logging.getLogger(__name__)

CommitVerifier = Callable[[str], bool]
ProgressCallback = Callable[[SyncProgress], None]
PhaseReporter = Callable[[SyncPhase], None]

# Errors that abort a whole provider run instead of one task
FATAL_ERRORS = (RemoteAuthError, SyncConfigError)


@dataclass
class _RunContext:
    collection: TaskCollection
    cache: dict[str, RemoteSnapshot] | None
    skip_unchanged: bool


@dataclass
class _Located:
    """Result of looking up a task's remote item.

    ``identifier`` None means the item must be created. ``snapshot`` None with
    an identifier means the item exists but its current state is unknown.
    """

    identifier: int | str | None = None
    snapshot: RemoteSnapshot | None = None


class SyncReconciler:
    """Reconciles local tasks against one provider.

    Subclasses choose how a task renders (body, labels) and may add
    descendant syncing or pulling newer remote state back to local tasks.
    The workflow-state rules live here and are shared by every provider.
    """

    display_name = "Remote"

    def __init__(
        self,
        adapter: ProviderAdapter,
        label: str,
        commit_verifier: CommitVerifier | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            adapter: Provider adapter that performs all remote I/O
            label: Managed label used to find items created by this tool
            commit_verifier: Returns True when a commit sha is on the remote
                branch (default: git merge-base check against origin/HEAD)
        """
        self.adapter = adapter
        self.label = label
        self._verify_commit = commit_verifier or is_commit_on_remote

    @property
    def id(self) -> str:
        return self.adapter.provider_id

    async def aclose(self) -> None:
        await self.adapter.aclose()

    # --- Policy ---

    def is_done(self, task: Task) -> bool:
        """Completed, and its commit (if any) is verified on the remote."""
        if not task.completed:
            return False
        if task.commit is None:
            return True
        return self._verify_commit(task.commit.sha)

    def desired_state(self, task: Task) -> WorkflowState:
        if self.is_done(task):
            return WorkflowState.DONE
        if task.started_at is not None:
            return WorkflowState.STARTED
        return WorkflowState.UNSTARTED

    def not_closing_reason(self, task: Task) -> str | None:
        """Why a completed task is held in a non-terminal state, if it is."""
        if task.completed and task.commit is not None and not self.is_done(task):
            return f"commit {task.commit.sha[:7]} not pushed to remote"
        return None

    def render_title(self, task: Task) -> str:
        return task.name

    def render_body(self, task: Task, collection: TaskCollection) -> str:
        return render_story_body(task)

    def managed_labels(self, task: Task, state: WorkflowState) -> set[str]:
        return {self.label}

    def build_link(self, snapshot: RemoteSnapshot) -> RemoteLink:
        return RemoteLink(
            identifier=snapshot.identifier,
            url=snapshot.url or self.adapter.url_for(snapshot.identifier),
            target=self.adapter.describe_target(),
            state=snapshot.state,
        )

    # --- Public API ---

    async def sync_all(
        self,
        collection: TaskCollection,
        on_progress: ProgressCallback | None = None,
        skip_unchanged: bool = True,
    ) -> list[SyncOutcome]:
        """Sync every root task.

        The provider's managed items are listed once up front; a failure to
        list them aborts the run. Failures on individual tasks are recorded on
        their outcomes and the run continues.

        Raises:
            RemoteAuthError: Credentials were rejected
            RemoteError: The initial listing failed
        """
        cache = await self._fetch_cache()
        ctx = _RunContext(collection=collection, cache=cache, skip_unchanged=skip_unchanged)
        roots = collection.roots()
        total = len(roots)
        outcomes: list[SyncOutcome] = []

        for index, root in enumerate(roots, start=1):
            report = self._reporter(on_progress, index, total, root)
            report(SyncPhase.CHECKING)
            try:
                outcome = await self._reconcile(root, ctx, report)
            except FATAL_ERRORS:
                raise
            except Exception as e:
                error_msg = f"Failed to sync '{root.id}' to {self.display_name}: {e}"
                logger.error(error_msg)
                outcome = SyncOutcome(task_id=root.id, error=str(e))
            outcomes.append(outcome)

        logger.info(
            "%s sync finished: %d roots, %d failed",
            self.display_name,
            total,
            sum(1 for o in outcomes if o.failed),
        )
        return outcomes

    async def sync_task(
        self,
        task: Task,
        collection: TaskCollection,
        skip_unchanged: bool = True,
    ) -> SyncOutcome | None:
        """Sync the root that owns ``task``.

        Subtasks resolve to their root first. Returns None if the task's
        root cannot be found. Errors propagate to the caller.
        """
        root = task if task.is_root else collection.root_of(task)
        if root is None:
            logger.warning("No root task found for '%s'", task.id)
            return None
        ctx = _RunContext(collection=collection, cache=None, skip_unchanged=skip_unchanged)
        return await self._reconcile(root, ctx, None)

    async def close_remote(self, task: Task) -> RemoteLink | None:
        """Explicitly move a task's linked remote item to the terminal state.

        Used when a task is removed locally. Returns the updated link, or
        None if the task was never linked or the item no longer exists.
        """
        link = task.link_for(self.id)
        if link is None:
            return None
        try:
            current = await self.adapter.get_by_id(link.identifier)
        except RemoteNotFoundError:
            logger.info("Remote item %s for '%s' no longer exists", link.identifier, task.id)
            return None
        if current.state.is_terminal:
            return self.build_link(current)
        snapshot = await self.adapter.update_item(
            link.identifier,
            current.title,
            current.body,
            set(current.labels),
            WorkflowState.DONE,
        )
        logger.info("Closed %s item %s for '%s'", self.display_name, link.identifier, task.id)
        return self.build_link(snapshot)

    # --- Internal: per-item decision ---

    async def _reconcile(
        self,
        task: Task,
        ctx: _RunContext,
        report: PhaseReporter | None,
        parent: int | str | None = None,
    ) -> SyncOutcome:
        report = report or _no_report
        link = task.link_for(self.id)
        desired = self.desired_state(task)
        reason = self.not_closing_reason(task)

        # Fast path: already terminal remotely and locally
        if (
            ctx.skip_unchanged
            and link is not None
            and link.state.is_terminal
            and desired.is_terminal
        ):
            logger.debug("Skipping '%s': already done on %s", task.id, self.display_name)
            report(SyncPhase.SKIPPED)
            return SyncOutcome(task_id=task.id, skipped=True, link=link)

        located = await self._locate(task, link, ctx)

        if located.identifier is None:
            outcome = await self._create(task, ctx, desired, reason, report, parent)
        else:
            if located.snapshot is not None:
                pulled = self._pull_from_remote(task, located.snapshot, ctx.collection)
                if pulled is not None:
                    logger.info("'%s' is newer on %s, pulling", task.id, self.display_name)
                    report(SyncPhase.SKIPPED)
                    return pulled
            outcome = await self._update(task, located, link, ctx, desired, reason, report)

        if outcome.link is not None:
            outcome.subtask_outcomes.extend(
                await self._sync_descendants(task, outcome.link.identifier, ctx)
            )
        return outcome

    async def _create(
        self,
        task: Task,
        ctx: _RunContext,
        desired: WorkflowState,
        reason: str | None,
        report: PhaseReporter,
        parent: int | str | None,
    ) -> SyncOutcome:
        report(SyncPhase.CREATING)
        snapshot = await self.adapter.create_item(
            self.render_title(task),
            self.render_body(task, ctx.collection),
            self.managed_labels(task, desired),
            self.adapter.coerce_state(desired),
            parent=parent,
        )
        logger.info(
            "Created %s item %s for '%s' (%s)",
            self.display_name,
            snapshot.identifier,
            task.id,
            snapshot.state.value,
        )
        await self._after_create(task, snapshot)
        return SyncOutcome(
            task_id=task.id,
            created=True,
            link=self.build_link(snapshot),
            not_closing_reason=reason,
        )

    async def _update(
        self,
        task: Task,
        located: _Located,
        link: RemoteLink | None,
        ctx: _RunContext,
        desired: WorkflowState,
        reason: str | None,
        report: PhaseReporter,
    ) -> SyncOutcome:
        observed = located.snapshot
        effective, write_state = self._resolve_state(desired, observed, link)
        if effective.is_terminal and not desired.is_terminal:
            logger.info(
                "Holding %s item %s for '%s' in terminal state",
                self.display_name,
                located.identifier,
                task.id,
            )
        if effective.is_terminal:
            reason = None

        title = self.render_title(task)
        body = self.render_body(task, ctx.collection)
        labels = self.managed_labels(task, effective)

        if (
            ctx.skip_unchanged
            and observed is not None
            and not needs_update(observed, title, body, labels, write_state)
        ):
            logger.debug("Skipping '%s': unchanged on %s", task.id, self.display_name)
            report(SyncPhase.SKIPPED)
            return SyncOutcome(
                task_id=task.id,
                skipped=True,
                link=self.build_link(observed),
                not_closing_reason=reason,
            )

        report(SyncPhase.UPDATING)
        snapshot = await self.adapter.update_item(
            located.identifier, title, body, labels, write_state
        )
        logger.info(
            "Updated %s item %s for '%s' (%s)",
            self.display_name,
            snapshot.identifier,
            task.id,
            snapshot.state.value,
        )
        # Report what the remote now holds, not what was desired
        return SyncOutcome(
            task_id=task.id, link=self.build_link(snapshot), not_closing_reason=reason
        )

    def _resolve_state(
        self,
        desired: WorkflowState,
        observed: RemoteSnapshot | None,
        link: RemoteLink | None,
    ) -> tuple[WorkflowState, WorkflowState | None]:
        """Apply the regression guard.

        Returns the effective state (drives labels) and the state to write,
        where None leaves the remote state untouched. A remote item seen in
        the terminal state is pinned there. When the current state is
        unknown only a move to terminal is written.
        """
        if observed is not None:
            if observed.state.is_terminal:
                return WorkflowState.DONE, WorkflowState.DONE
            return desired, self.adapter.coerce_state(desired)

        if link is not None and link.state.is_terminal:
            return WorkflowState.DONE, None
        if desired.is_terminal:
            return desired, WorkflowState.DONE
        return desired, None

    async def _locate(self, task: Task, link: RemoteLink | None, ctx: _RunContext) -> _Located:
        """Find the remote item for a task: stored link first, then by embedded id."""
        if link is not None:
            cached = ctx.cache.get(task.id) if ctx.cache is not None else None
            if cached is not None and str(cached.identifier) == str(link.identifier):
                return _Located(identifier=cached.identifier, snapshot=cached)
            try:
                snapshot = await self.adapter.get_by_id(link.identifier)
            except RemoteNotFoundError:
                logger.warning(
                    "%s item %s for '%s' not found, recreating",
                    self.display_name,
                    link.identifier,
                    task.id,
                )
                return _Located()
            except FATAL_ERRORS:
                raise
            except RemoteError as e:
                logger.warning(
                    "Could not fetch %s item %s for '%s' (%s); state unknown",
                    self.display_name,
                    link.identifier,
                    task.id,
                    e,
                )
                return _Located(identifier=link.identifier)
            return _Located(identifier=snapshot.identifier, snapshot=snapshot)

        if ctx.cache is None:
            # Single-task sync: one scan, reused for any descendants
            ctx.cache = await self._fetch_cache()
        cached = ctx.cache.get(task.id)
        if cached is not None:
            logger.debug(
                "Found existing %s item %s for '%s'",
                self.display_name,
                cached.identifier,
                task.id,
            )
            return _Located(identifier=cached.identifier, snapshot=cached)
        return _Located()

    async def _fetch_cache(self) -> dict[str, RemoteSnapshot]:
        """List managed items once and index them by embedded task id."""
        snapshots = await self.adapter.list_by_label(self.label)
        cache: dict[str, RemoteSnapshot] = {}
        for snapshot in snapshots:
            if snapshot.task_id and snapshot.task_id not in cache:
                cache[snapshot.task_id] = snapshot
        logger.info(
            "Fetched %d %s items (%d linked to tasks)",
            len(snapshots),
            self.display_name,
            len(cache),
        )
        return cache

    # --- Internal: provider hooks ---

    async def _after_create(self, task: Task, snapshot: RemoteSnapshot) -> None:
        # Items created already closed get the result as a comment
        if snapshot.state.is_terminal and task.result:
            await self.adapter.add_comment(snapshot.identifier, f"## Result\n\n{task.result}")

    def _pull_from_remote(
        self, task: Task, observed: RemoteSnapshot, collection: TaskCollection
    ) -> SyncOutcome | None:
        return None

    async def _sync_descendants(
        self, task: Task, identifier: int | str, ctx: _RunContext
    ) -> list[SyncOutcome]:
        return []

    @staticmethod
    def _reporter(
        on_progress: ProgressCallback | None, index: int, total: int, task: Task
    ) -> PhaseReporter:
        def report(phase: SyncPhase) -> None:
            if on_progress is not None:
                on_progress(SyncProgress(index=index, total=total, task=task, phase=phase))

        return report


def _no_report(phase: SyncPhase) -> None:
    return None


class GitHubReconciler(SyncReconciler):
    """One issue per root task; descendants are embedded in the issue body.

    Supports pulling newer state back from the issue body when the remote
    copy was updated after the local task.
    """

    display_name = "GitHub"

    def render_body(self, task: Task, collection: TaskCollection) -> str:
        descendants = collect_descendants(collection.tasks, task.id)
        for item in descendants:
            # Descendants only show as completed once their commit is verified
            if item.task.completed and not self.is_done(item.task):
                item.task = item.task.model_copy(update={"completed": False})
        return render_issue_body(task, descendants)

    def managed_labels(self, task: Task, state: WorkflowState) -> set[str]:
        status = {
            WorkflowState.DONE: "completed",
            WorkflowState.STARTED: "in-progress",
            WorkflowState.UNSTARTED: "pending",
        }[state]
        return {
            self.label,
            f"{self.label}:priority-{task.priority}",
            f"{self.label}:{status}",
        }

    def _pull_from_remote(
        self, task: Task, observed: RemoteSnapshot, collection: TaskCollection
    ) -> SyncOutcome | None:
        remote = parse_root_metadata(observed.body)
        if remote is None or remote.updated_at is None:
            return None
        if remote.updated_at <= task.updated_at:
            return None

        subtask_outcomes: list[SyncOutcome] = []
        for descendant in parse_issue_body(observed.body).descendants:
            local = collection.get(descendant.fields.id)
            if local is None or descendant.fields.updated_at is None:
                continue
            if descendant.fields.updated_at > local.updated_at:
                subtask_outcomes.append(
                    SyncOutcome(
                        task_id=local.id,
                        skipped=True,
                        local_updates=_local_updates(local, descendant.fields),
                        pulled_from_remote=True,
                    )
                )

        return SyncOutcome(
            task_id=task.id,
            skipped=True,
            link=self.build_link(observed),
            local_updates=_local_updates(task, remote),
            pulled_from_remote=True,
            subtask_outcomes=subtask_outcomes,
        )


def _local_updates(local: Task, remote: ParsedTaskFields) -> dict[str, Any]:
    """Fields to copy from newer remote metadata onto a local task."""
    updates: dict[str, Any] = {"updated_at": remote.updated_at}
    if remote.completed and not local.completed:
        updates["completed"] = True
        updates["completed_at"] = remote.completed_at
        updates["result"] = remote.result
    if remote.started_at is not None and local.started_at is None:
        updates["started_at"] = remote.started_at
    if remote.commit is not None and local.commit is None:
        updates["commit"] = remote.commit.model_dump()
    return updates


class ShortcutReconciler(SyncReconciler):
    """One story per task; descendants become native sub-stories."""

    display_name = "Shortcut"

    async def _sync_descendants(
        self, task: Task, identifier: int | str, ctx: _RunContext
    ) -> list[SyncOutcome]:
        children = ctx.collection.children_index().get(task.id, [])
        outcomes: list[SyncOutcome] = []
        for child in sorted(children, key=lambda t: (t.priority, t.id)):
            try:
                outcome = await self._reconcile(child, ctx, None, parent=identifier)
            except FATAL_ERRORS:
                raise
            except Exception as e:
                error_msg = f"Failed to sync subtask '{child.id}' to {self.display_name}: {e}"
                logger.error(error_msg)
                outcome = SyncOutcome(task_id=child.id, error=str(e))
            outcomes.append(outcome)
        return outcomes
