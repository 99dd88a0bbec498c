"""Render a root task and its descendants into one remote body, and back."""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..models import Task
from .codec import (
    ROOT_NAMESPACE,
    SUBTASK_NAMESPACE,
    ParsedTaskFields,
    comment,
    fields_to_metadata,
    parse_field_groups,
    parse_fields,
    strip_fields,
    task_fields,
)
from .errors import MetadataParseError

logger = logging.getLogger(__name__)

TASKS_HEADER = "## Tasks"
COMPLETED_MARK = "\u2705"  # ✅
TREE_MARK = "\u2514\u2500"  # └─
INDENT = "  "

_DETAILS_PATTERN = re.compile(r"<details>\n(.*?)\n</details>", re.DOTALL)
_SUMMARY_PATTERN = re.compile(r"<summary>(.*?)<b>(.*?)</b></summary>")
_SECTION_PATTERN = re.compile(r"^### (Description|Result)\n", re.MULTILINE)


@dataclass
class HierarchicalTask:
    """A descendant of a root task with its position in the tree."""

    task: Task
    depth: int  # 1 = direct child of the root
    parent_id: str


@dataclass
class ParsedDescendant:
    """A descendant recovered from a remote body."""

    fields: ParsedTaskFields
    name: str = ""
    description: str = ""


@dataclass
class ParsedIssueBody:
    """Root metadata, root description and descendants recovered from a body."""

    root: ParsedTaskFields | None = None
    description: str = ""
    descendants: list[ParsedDescendant] = field(default_factory=list)


def collect_descendants(tasks: Iterable[Task], root_id: str) -> list[HierarchicalTask]:
    """Return every descendant of ``root_id`` in pre-order.

    Siblings are ordered by (priority, id). Builds one parent index and walks it
    with an explicit stack, so deep trees do not recurse.
    """
    children: dict[str, list[Task]] = {}
    for task in tasks:
        if task.parent_id is not None:
            children.setdefault(task.parent_id, []).append(task)
    for siblings in children.values():
        siblings.sort(key=lambda t: (t.priority, t.id))

    result: list[HierarchicalTask] = []
    visited = {root_id}
    stack = [(child, 1) for child in reversed(children.get(root_id, []))]
    while stack:
        task, depth = stack.pop()
        if task.id in visited:
            # Parent cycle in the store; each task is emitted once
            continue
        visited.add(task.id)
        result.append(HierarchicalTask(task=task, depth=depth, parent_id=task.parent_id or root_id))
        stack.extend((child, depth + 1) for child in reversed(children.get(task.id, [])))
    return result


def render_task_metadata(task: Task, namespace: str = ROOT_NAMESPACE) -> str:
    """Every metadata key for a task, one comment per line."""
    return "\n".join(comment(namespace, key, value) for key, value in task_fields(task).items())


def _tree_prefix(depth: int) -> str:
    if depth <= 1:
        return ""
    return INDENT * (depth - 2) + TREE_MARK + " "


def _render_descendant(item: HierarchicalTask) -> str:
    task = item.task
    mark = f"{COMPLETED_MARK} " if task.completed else ""
    lines = [
        "<details>",
        f"<summary>{mark}{_tree_prefix(item.depth)}<b>{html.escape(task.name)}</b></summary>",
        render_task_metadata(task, SUBTASK_NAMESPACE),
        "",
    ]
    if task.description.strip():
        lines += ["### Description", "", task.description.strip(), ""]
    if task.result:
        lines += ["### Result", "", task.result.strip(), ""]
    lines.append("</details>")
    return "\n".join(lines)


def render_issue_body(root: Task, descendants: list[HierarchicalTask]) -> str:
    """Render the remote body for a root task and its descendants."""
    parts = [render_task_metadata(root, ROOT_NAMESPACE)]
    if root.description.strip():
        parts.append(root.description.strip())
    if descendants:
        parts.append(TASKS_HEADER)
        parts.extend(_render_descendant(item) for item in descendants)
    return "\n\n".join(parts) + "\n"


def render_story_body(task: Task) -> str:
    """Render a single-task body (no embedded descendants)."""
    parts = [render_task_metadata(task, ROOT_NAMESPACE)]
    if task.description.strip():
        parts.append(task.description.strip())
    return "\n\n".join(parts) + "\n"


def parse_root_metadata(body: str) -> ParsedTaskFields | None:
    """Typed root metadata, or None when absent or malformed."""
    try:
        fields = parse_fields(body, ROOT_NAMESPACE)
        if not fields:
            return None
        return fields_to_metadata(fields)
    except MetadataParseError as e:
        logger.debug("Ignoring malformed root metadata: %s", e)
        return None


def _parse_details_block(block: str) -> tuple[str, str]:
    """Best-effort name and description from one <details> block."""
    name = ""
    summary = _SUMMARY_PATTERN.search(block)
    if summary:
        name = html.unescape(summary.group(2))

    description = ""
    sections = _SECTION_PATTERN.split(block)
    # split yields [prefix, title, content, title, content, ...]
    for title, content in zip(sections[1::2], sections[2::2], strict=False):
        if title == "Description":
            description = strip_fields(content, SUBTASK_NAMESPACE)
    return name, description


def parse_issue_body(body: str) -> ParsedIssueBody:
    """Inverse of ``render_issue_body``.

    Only metadata comments are authoritative. Descendant records that fail
    to parse are dropped.
    """
    parsed = ParsedIssueBody(root=parse_root_metadata(body))

    head, _, _ = body.partition(f"\n{TASKS_HEADER}\n")
    parsed.description = strip_fields(head, ROOT_NAMESPACE)

    blocks: dict[str, tuple[str, str]] = {}
    for match in _DETAILS_PATTERN.finditer(body):
        block = match.group(1)
        try:
            block_id = parse_fields(block, SUBTASK_NAMESPACE).get("id")
        except MetadataParseError:
            continue
        if block_id and block_id not in blocks:
            blocks[block_id] = _parse_details_block(block)

    try:
        groups = parse_field_groups(body, SUBTASK_NAMESPACE)
    except MetadataParseError as e:
        logger.debug("Ignoring malformed descendant metadata: %s", e)
        return parsed

    seen: set[str] = set()
    for group in groups:
        try:
            fields = fields_to_metadata(group)
        except MetadataParseError as e:
            logger.debug("Skipping descendant with bad metadata: %s", e)
            continue
        if fields.id in seen:
            continue
        seen.add(fields.id)
        name, description = blocks.get(fields.id, ("", ""))
        parsed.descendants.append(
            ParsedDescendant(fields=fields, name=name, description=description)
        )
    return parsed
