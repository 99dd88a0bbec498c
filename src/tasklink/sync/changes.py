"""Decide whether a remote item differs from what a task would render to."""

from collections.abc import Iterable

from ..models import RemoteSnapshot, WorkflowState


def needs_update(
    observed: RemoteSnapshot,
    title: str,
    body: str,
    labels: Iterable[str],
    state: WorkflowState | None,
) -> bool:
    """Compare an observed remote item against the desired one.

    Title is compared exactly and body after trimming surrounding whitespace.
    Labels are compared as a set over the managed namespace only. A ``state``
    of None means the desired state is not being asserted.
    """
    if observed.title != title:
        return True
    if observed.body.strip() != body.strip():
        return True
    if state is not None and observed.state != state:
        return True
    return frozenset(labels) != observed.labels
