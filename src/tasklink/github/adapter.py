"""GitHub Issues provider adapter."""

from __future__ import annotations

import logging
from typing import Any

from ..models import RemoteSnapshot, WorkflowState
from ..sync.codec import ROOT_NAMESPACE, extract_task_id
from ..sync.errors import RemoteNotFoundError
from .client import GitHubClient

logger = logging.getLogger(__name__)


class GitHubIssuesAdapter:
    """Maps GitHub issues to remote snapshots.

    Issues are open or closed, so STARTED is written as open; the
    in-progress distinction is carried by labels. Labels outside the managed
    prefix are remembered from reads and sent back unchanged on update.
    """

    provider_id = "github"

    def __init__(self, client: GitHubClient, owner: str, repo: str, label_prefix: str) -> None:
        self.client = client
        self.owner = owner
        self.repo = repo
        self.label_prefix = label_prefix
        self._foreign_labels: dict[int, list[str]] = {}

    @property
    def _issues_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}/issues"

    def describe_target(self) -> str:
        return f"{self.owner}/{self.repo}"

    def url_for(self, identifier: int | str) -> str:
        return f"{self.client.web_url}/{self.owner}/{self.repo}/issues/{identifier}"

    def is_managed_label(self, label: str) -> bool:
        return label == self.label_prefix or label.startswith(f"{self.label_prefix}:")

    def coerce_state(self, state: WorkflowState) -> WorkflowState:
        return WorkflowState.DONE if state.is_terminal else WorkflowState.UNSTARTED

    async def aclose(self) -> None:
        await self.client.aclose()

    # --- Reads ---

    async def get_by_id(self, identifier: int | str) -> RemoteSnapshot:
        issue = await self.client.get(f"{self._issues_path}/{identifier}")
        if "pull_request" in issue:
            raise RemoteNotFoundError(f"#{identifier} is a pull request, not an issue")
        return self._to_snapshot(issue)

    async def list_by_label(self, label: str) -> list[RemoteSnapshot]:
        items = await self.client.paginate(
            self._issues_path, params={"labels": label, "state": "all"}
        )
        # The issues endpoint also returns pull requests
        return [self._to_snapshot(item) for item in items if "pull_request" not in item]

    # --- Writes ---

    async def create_item(
        self,
        title: str,
        body: str,
        labels: set[str],
        state: WorkflowState,
        parent: int | str | None = None,
    ) -> RemoteSnapshot:
        issue = await self.client.post(
            self._issues_path,
            json={"title": title, "body": body, "labels": sorted(labels)},
        )
        # Issues are always created open
        if state.is_terminal:
            issue = await self.client.patch(
                f"{self._issues_path}/{issue['number']}", json={"state": "closed"}
            )
        return self._to_snapshot(issue)

    async def update_item(
        self,
        identifier: int | str,
        title: str,
        body: str,
        labels: set[str],
        state: WorkflowState | None,
    ) -> RemoteSnapshot:
        number = int(identifier)
        if number not in self._foreign_labels:
            await self.get_by_id(number)
        payload: dict[str, Any] = {
            "title": title,
            "body": body,
            "labels": self._foreign_labels.get(number, []) + sorted(labels),
        }
        if state is not None:
            payload["state"] = "closed" if state.is_terminal else "open"
        issue = await self.client.patch(f"{self._issues_path}/{number}", json=payload)
        return self._to_snapshot(issue)

    async def add_comment(self, identifier: int | str, body: str) -> None:
        await self.client.post(f"{self._issues_path}/{identifier}/comments", json={"body": body})

    # --- Internal ---

    def _to_snapshot(self, issue: dict[str, Any]) -> RemoteSnapshot:
        number = int(issue["number"])
        names = [_label_name(label) for label in issue.get("labels") or []]
        self._foreign_labels[number] = [n for n in names if not self.is_managed_label(n)]
        body = issue.get("body") or ""
        return RemoteSnapshot(
            identifier=number,
            title=issue.get("title") or "",
            body=body,
            state=WorkflowState.DONE if issue.get("state") == "closed" else WorkflowState.UNSTARTED,
            labels=frozenset(n for n in names if self.is_managed_label(n)),
            url=issue.get("html_url") or self.url_for(number),
            task_id=extract_task_id(body, ROOT_NAMESPACE),
        )


def _label_name(label: Any) -> str:
    # REST returns label objects; some payloads carry plain names
    if isinstance(label, dict):
        return str(label.get("name", ""))
    return str(label)
