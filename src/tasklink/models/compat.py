"""Normalization of legacy task record shapes.

Older task files stored remote links under ``metadata`` with provider-specific
keys, used ``status`` instead of ``completed`` and kept the title in
``description`` with the body in ``context``. Everything is normalized here,
once, when a task is loaded; nothing else in the package knows these shapes.
"""

from typing import Any

LEGACY_LINK_STATES = {
    "open": "unstarted",
    "closed": "done",
    "pending": "unstarted",
    "in-progress": "started",
    "completed": "done",
}


def normalize_task_data(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of raw task data with legacy fields migrated."""
    data = dict(data)
    _migrate_status(data)
    _migrate_context(data)

    links: dict[str, Any] = dict(data.get("links") or {})
    metadata = data.pop("metadata", None)
    if isinstance(metadata, dict):
        _migrate_github_metadata(metadata, links)
        _migrate_shortcut_metadata(metadata, links)
        if data.get("commit") is None and metadata.get("commit"):
            data["commit"] = metadata["commit"]

    data["links"] = {provider: normalize_link(link) for provider, link in links.items()}
    return data


def normalize_link(link: Any) -> Any:
    """Map legacy state labels on a stored link to workflow states."""
    if not isinstance(link, dict):
        return link
    state = link.get("state")
    if isinstance(state, str) and state in LEGACY_LINK_STATES:
        link = {**link, "state": LEGACY_LINK_STATES[state]}
    return link


def _migrate_status(data: dict[str, Any]) -> None:
    if "status" not in data:
        return
    status = data.pop("status")
    if "completed" not in data:
        data["completed"] = status == "completed"


def _migrate_context(data: dict[str, Any]) -> None:
    # Old records: description held the title, context held the body
    if "context" not in data:
        return
    context = data.pop("context")
    if "name" not in data:
        data["name"] = data.get("description") or ""
        data["description"] = context or ""


def _migrate_github_metadata(metadata: dict[str, Any], links: dict[str, Any]) -> None:
    if "github" in links:
        return

    github = metadata.get("github")
    if isinstance(github, dict) and github.get("issueNumber"):
        number = github["issueNumber"]
        repo = github.get("repo") or ""
        url = github.get("issueUrl") or (
            f"https://github.com/{repo}/issues/{number}" if repo else ""
        )
        link: dict[str, Any] = {"identifier": number, "url": url, "target": repo}
        if github.get("state"):
            link["state"] = github["state"]
        links["github"] = link
        return

    flat_number = metadata.get("github_issue_number")
    if flat_number:
        links["github"] = {"identifier": flat_number, "url": "", "target": ""}


def _migrate_shortcut_metadata(metadata: dict[str, Any], links: dict[str, Any]) -> None:
    if "shortcut" in links:
        return

    shortcut = metadata.get("shortcut")
    if isinstance(shortcut, dict) and shortcut.get("storyId"):
        link: dict[str, Any] = {
            "identifier": shortcut["storyId"],
            "url": shortcut.get("storyUrl") or "",
            "target": shortcut.get("workspace") or "",
        }
        if shortcut.get("state"):
            link["state"] = shortcut["state"]
        links["shortcut"] = link
