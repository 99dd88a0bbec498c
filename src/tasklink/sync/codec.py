"""Key/value metadata embedded in remote bodies as HTML comments.

Each field is written as ``<!-- NAMESPACE:key:value -->`` on its own line.
Values that could break the comment (line breaks, ``-->``) are base64
encoded behind a ``base64:`` marker.
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime

from ..models import CommitMetadata, Task
from ..utils.datetime import from_iso
from .errors import MetadataParseError

MARKER = "base64:"

ROOT_NAMESPACE = "tasklink:task"
SUBTASK_NAMESPACE = "tasklink:subtask"
NAMESPACES = (ROOT_NAMESPACE, SUBTASK_NAMESPACE)

FIELD_KEYS = (
    "id",
    "parent_id",
    "priority",
    "completed",
    "created_at",
    "updated_at",
    "completed_at",
    "result",
    "commit_sha",
    "commit_message",
    "commit_branch",
    "commit_url",
    "commit_timestamp",
)

# Written after the fixed keys, only when set
OPTIONAL_KEYS = ("started_at",)

# Older spellings, read but never written
LEGACY_KEYS = {"parent": "parent_id", "status": "completed"}
LEGACY_STATUS_VALUES = {"completed": "true", "pending": "false"}

_NULL_VALUES = ("", "null")


def encode(value: str) -> str:
    """Encode a value so it can sit inside a single-line HTML comment."""
    if "\n" in value or "\r" in value or "-->" in value or value.startswith(MARKER):
        return MARKER + base64.b64encode(value.encode("utf-8")).decode("ascii")
    return value


def decode(value: str) -> str:
    """Reverse ``encode``.

    Raises:
        MetadataParseError: If a marked value is not valid base64 UTF-8
    """
    if not value.startswith(MARKER):
        return value
    try:
        return base64.b64decode(value[len(MARKER) :], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise MetadataParseError(f"Invalid encoded value: {e}") from e


def comment(namespace: str, key: str, value: str) -> str:
    """Render one metadata comment."""
    return f"<!-- {namespace}:{key}:{encode(value)} -->"


# Fields only count when the comment is the whole line
def _field_pattern(namespace: str) -> re.Pattern[str]:
    return re.compile(
        rf"^[ \t]*<!-- {re.escape(namespace)}:(\w+):(.*?) -->[ \t\r]*$", re.MULTILINE
    )


def _legacy_id_pattern(namespace: str) -> re.Pattern[str]:
    return re.compile(rf"^[ \t]*<!-- {re.escape(namespace)}:(\w+) -->[ \t\r]*$", re.MULTILINE)


def _iter_fields(text: str, namespace: str) -> Iterator[tuple[str, str]]:
    """Yield normalized (key, decoded value) pairs in document order."""
    for match in _field_pattern(namespace).finditer(text):
        raw_key, raw_value = match.group(1), match.group(2)
        key = LEGACY_KEYS.get(raw_key, raw_key)
        value = decode(raw_value)
        if raw_key == "status":
            value = LEGACY_STATUS_VALUES.get(value, value)
        yield key, value


def parse_fields(text: str, namespace: str) -> dict[str, str]:
    """Collect every field for a namespace. The first occurrence of a key wins.

    Unknown keys are returned as-is; consumers ignore them.

    Raises:
        MetadataParseError: If any value fails to decode
    """
    fields: dict[str, str] = {}
    for key, value in _iter_fields(text, namespace):
        fields.setdefault(key, value)
    return fields


def parse_field_groups(text: str, namespace: str) -> list[dict[str, str]]:
    """Split a namespace's fields into records, one per ``id`` key.

    Fields seen before the first ``id`` are dropped.
    """
    groups: list[dict[str, str]] = []
    for key, value in _iter_fields(text, namespace):
        if key == "id":
            groups.append({"id": value})
        elif groups:
            groups[-1].setdefault(key, value)
    return groups


def strip_fields(text: str, namespace: str | None = None) -> str:
    """Remove metadata comments and return the human-readable remainder."""
    namespaces = (namespace,) if namespace else NAMESPACES
    lines = []
    for line in text.split("\n"):
        stripped = line.strip()
        if any(
            _field_pattern(ns).fullmatch(stripped) or _legacy_id_pattern(ns).fullmatch(stripped)
            for ns in namespaces
        ):
            continue
        lines.append(line)
    remainder = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", remainder).strip()


def extract_task_id(body: str, namespace: str = ROOT_NAMESPACE) -> str | None:
    """Find the task id embedded in a remote body.

    Accepts the current ``id`` field and the legacy id-only comment.
    """
    try:
        task_id = parse_fields(body, namespace).get("id")
    except MetadataParseError:
        task_id = None
    if task_id:
        return task_id
    legacy = _legacy_id_pattern(namespace).search(body)
    return legacy.group(1) if legacy else None


# --- Typed view ---


@dataclass
class ParsedTaskFields:
    """Typed task fields recovered from embedded metadata."""

    id: str
    parent_id: str | None = None
    priority: int = 1
    completed: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    started_at: datetime | None = None
    result: str | None = None
    commit: CommitMetadata | None = None
    extras: dict[str, str] = field(default_factory=dict)


def _optional(fields: dict[str, str], key: str) -> str | None:
    value = fields.get(key)
    if value is None or value in _NULL_VALUES:
        return None
    return value


def _datetime(fields: dict[str, str], key: str) -> datetime | None:
    value = _optional(fields, key)
    if value is None:
        return None
    try:
        return from_iso(value)
    except ValueError as e:
        raise MetadataParseError(f"Invalid {key}: {value!r}") from e


def fields_to_metadata(fields: dict[str, str]) -> ParsedTaskFields:
    """Convert raw fields to typed values.

    Raises:
        MetadataParseError: If the id is missing or a value is malformed
    """
    task_id = _optional(fields, "id")
    if task_id is None:
        raise MetadataParseError("Metadata has no id")

    priority_raw = _optional(fields, "priority")
    try:
        priority = int(priority_raw) if priority_raw is not None else 1
    except ValueError as e:
        raise MetadataParseError(f"Invalid priority: {priority_raw!r}") from e

    completed_raw = _optional(fields, "completed") or "false"
    if completed_raw not in ("true", "false"):
        raise MetadataParseError(f"Invalid completed flag: {completed_raw!r}")

    commit_sha = _optional(fields, "commit_sha")
    commit = None
    if commit_sha:
        commit = CommitMetadata(
            sha=commit_sha,
            message=_optional(fields, "commit_message"),
            branch=_optional(fields, "commit_branch"),
            url=_optional(fields, "commit_url"),
            timestamp=_optional(fields, "commit_timestamp"),
        )

    return ParsedTaskFields(
        id=task_id,
        parent_id=_optional(fields, "parent_id"),
        priority=priority,
        completed=completed_raw == "true",
        created_at=_datetime(fields, "created_at"),
        updated_at=_datetime(fields, "updated_at"),
        completed_at=_datetime(fields, "completed_at"),
        started_at=_datetime(fields, "started_at"),
        result=_optional(fields, "result"),
        commit=commit,
        extras={k: v for k, v in fields.items() if k not in FIELD_KEYS + OPTIONAL_KEYS},
    )


def task_fields(task: Task) -> dict[str, str]:
    """All metadata keys for a task, in write order.

    The fixed keys are always present, empty when absent. Optional keys
    follow only when the task has a value for them.
    """
    commit = task.commit
    fields = {
        "id": task.id,
        "parent_id": task.parent_id or "",
        "priority": str(task.priority),
        "completed": "true" if task.completed else "false",
        "created_at": task.created_at.isoformat(),
        "updated_at": task.updated_at.isoformat(),
        "completed_at": task.completed_at.isoformat() if task.completed_at else "",
        "result": task.result or "",
        "commit_sha": commit.sha if commit else "",
        "commit_message": (commit.message or "") if commit else "",
        "commit_branch": (commit.branch or "") if commit else "",
        "commit_url": (commit.url or "") if commit else "",
        "commit_timestamp": (commit.timestamp or "") if commit else "",
    }
    if task.started_at is not None:
        fields["started_at"] = task.started_at.isoformat()
    return fields
