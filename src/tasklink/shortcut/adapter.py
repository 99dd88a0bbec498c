"""Shortcut Stories provider adapter."""

from __future__ import annotations

import logging
import re
from typing import Any

from ..models import RemoteSnapshot, WorkflowState
from ..sync.codec import ROOT_NAMESPACE, extract_task_id
from ..sync.errors import SyncConfigError
from .client import ShortcutClient

logger = logging.getLogger(__name__)

_UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.I)

_STATE_TYPES = {
    "unstarted": WorkflowState.UNSTARTED,
    "started": WorkflowState.STARTED,
    "done": WorkflowState.DONE,
}


class ShortcutStoriesAdapter:
    """Maps Shortcut stories to remote snapshots.

    The team and workflow are resolved lazily on first use. Each workflow
    state type maps onto a workflow state; writes use the first state of the
    requested type. Sub-tasks are created with ``parent_story_id``.
    """

    provider_id = "shortcut"

    def __init__(
        self,
        client: ShortcutClient,
        workspace: str,
        team: str,
        label: str,
        workflow_id: int | None = None,
    ) -> None:
        self.client = client
        self.workspace = workspace
        self.team = team
        self.label = label
        self.workflow_id = workflow_id
        self._team_id: str | None = None
        self._state_ids: dict[WorkflowState, int] = {}
        self._states_by_id: dict[int, WorkflowState] = {}
        self._foreign_labels: dict[int, list[str]] = {}

    def describe_target(self) -> str:
        return self.workspace

    def url_for(self, identifier: int | str) -> str:
        return f"https://app.shortcut.com/{self.workspace}/story/{identifier}"

    def is_managed_label(self, label: str) -> bool:
        return label == self.label

    def coerce_state(self, state: WorkflowState) -> WorkflowState:
        return state

    # --- Setup ---

    async def _ensure_resolved(self) -> None:
        if self._team_id is not None:
            return

        groups = await self.client.list_groups()
        team = None
        for group in groups:
            if _UUID_PATTERN.match(self.team):
                if group.get("id") == self.team:
                    team = group
            elif group.get("mention_name") == self.team or group.get("name") == self.team:
                team = group
            if team is not None:
                break
        if team is None:
            raise SyncConfigError(f"Shortcut team '{self.team}' not found")

        workflow_id = self.workflow_id
        if workflow_id is None:
            workflow_ids = team.get("workflow_ids") or []
            if not workflow_ids:
                raise SyncConfigError(f"Shortcut team '{self.team}' has no workflow")
            workflow_id = workflow_ids[0]

        workflow = await self.client.get_workflow(workflow_id)
        state_ids: dict[WorkflowState, int] = {}
        states_by_id: dict[int, WorkflowState] = {}
        for state in sorted(workflow.get("states") or [], key=lambda s: s.get("position", 0)):
            mapped = _STATE_TYPES.get(state.get("type", ""))
            if mapped is None:
                continue
            states_by_id[state["id"]] = mapped
            state_ids.setdefault(mapped, state["id"])

        missing = [s.value for s in WorkflowState if s not in state_ids]
        if missing:
            raise SyncConfigError(
                f"Shortcut workflow {workflow_id} has no state of type: {', '.join(missing)}"
            )

        self._team_id = team["id"]
        self._state_ids = state_ids
        self._states_by_id = states_by_id
        logger.debug("Resolved Shortcut team %s, workflow %s", self._team_id, workflow_id)

    async def aclose(self) -> None:
        await self.client.aclose()

    # --- Reads ---

    async def get_by_id(self, identifier: int | str) -> RemoteSnapshot:
        await self._ensure_resolved()
        return self._to_snapshot(await self.client.get_story(identifier))

    async def list_by_label(self, label: str) -> list[RemoteSnapshot]:
        await self._ensure_resolved()
        stories = await self.client.search_stories(f'label:"{label}"')
        return [self._to_snapshot(story) for story in stories if not story.get("archived")]

    # --- Writes ---

    async def create_item(
        self,
        title: str,
        body: str,
        labels: set[str],
        state: WorkflowState,
        parent: int | str | None = None,
    ) -> RemoteSnapshot:
        await self._ensure_resolved()
        data: dict[str, Any] = {
            "name": title,
            "description": body,
            "story_type": "chore" if parent is not None else "feature",
            "workflow_state_id": self._state_ids[state],
            "labels": [{"name": name} for name in sorted(labels)],
            "group_id": self._team_id,
        }
        if parent is not None:
            data["parent_story_id"] = int(parent)
        return self._to_snapshot(await self.client.create_story(data))

    async def update_item(
        self,
        identifier: int | str,
        title: str,
        body: str,
        labels: set[str],
        state: WorkflowState | None,
    ) -> RemoteSnapshot:
        await self._ensure_resolved()
        story_id = int(identifier)
        if story_id not in self._foreign_labels:
            await self.get_by_id(story_id)
        names = self._foreign_labels.get(story_id, []) + sorted(labels)
        data: dict[str, Any] = {
            "name": title,
            "description": body,
            "labels": [{"name": name} for name in names],
        }
        if state is not None:
            data["workflow_state_id"] = self._state_ids[state]
        return self._to_snapshot(await self.client.update_story(story_id, data))

    async def add_comment(self, identifier: int | str, body: str) -> None:
        await self.client.create_comment(identifier, body)

    # --- Internal ---

    def _to_snapshot(self, story: dict[str, Any]) -> RemoteSnapshot:
        story_id = int(story["id"])
        names = [str(label.get("name", "")) for label in story.get("labels") or []]
        self._foreign_labels[story_id] = [n for n in names if not self.is_managed_label(n)]
        body = story.get("description") or ""
        return RemoteSnapshot(
            identifier=story_id,
            title=story.get("name") or "",
            body=body,
            state=self._story_state(story),
            labels=frozenset(n for n in names if self.is_managed_label(n)),
            url=story.get("app_url") or self.url_for(story_id),
            task_id=extract_task_id(body, ROOT_NAMESPACE),
        )

    def _story_state(self, story: dict[str, Any]) -> WorkflowState:
        state = self._states_by_id.get(story.get("workflow_state_id", -1))
        if state is not None:
            return state
        # Story sits in another workflow; fall back to its flags
        if story.get("completed"):
            return WorkflowState.DONE
        if story.get("started"):
            return WorkflowState.STARTED
        return WorkflowState.UNSTARTED
