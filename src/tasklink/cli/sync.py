"""Sync command for mirroring local tasks to remote trackers."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from ..models import SyncOutcome, SyncRunSummary, TaskCollection
from ..repositories import FilesystemTaskStore
from ..services.config_service import ConfigService
from ..sync.errors import RemoteAuthError, RemoteError, SyncConfigError
from ..sync.factory import build_registry
from ..sync.registry import SyncService
from .output import error, header, info, progress, success, summary_line, warning

logger = logging.getLogger(__name__)


def run_sync(
    project_root: Path,
    task_id: str | None = None,
    provider: str | None = None,
    dry_run: bool = False,
) -> int:
    """Sync local tasks to the configured remote trackers.

    Args:
        project_root: Path to project root containing tasklink.yml
        task_id: Sync only the root that owns this task
        provider: Restrict to one provider ("github" or "shortcut")
        dry_run: Show what would sync without contacting any tracker

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    config_service = ConfigService(project_root)
    config_service.get_config()
    if config_service.has_config_error:
        error(config_service.config_error or "Invalid configuration")
        return 1

    store = FilesystemTaskStore(config_service.task_root)
    collection = store.read()
    problems = collection.validate_references()
    if problems:
        for problem in problems:
            error(problem)
        return 1

    if task_id is not None and collection.get(task_id) is None:
        error(f"Task not found: {task_id}")
        return 1

    if dry_run:
        _display_dry_run(collection, task_id)
        return 0

    providers = {provider} if provider else None
    return asyncio.run(_sync(project_root, config_service, store, task_id, providers))


async def _sync(
    project_root: Path,
    config_service: ConfigService,
    store: FilesystemTaskStore,
    task_id: str | None,
    providers: set[str] | None,
) -> int:
    try:
        registry = await build_registry(config_service.get_config(), project_root, providers)
    except SyncConfigError as e:
        error(str(e))
        return 1

    if not registry.has_services():
        error("No sync providers enabled")
        info("Enable sync.github or sync.shortcut in tasklink.yml, or pass --github/--shortcut")
        return 1

    exit_code = 0
    for service in registry.get_all():
        # Re-read so each provider sees links and pulls written by the previous one
        collection = store.read()
        header(f"Syncing to {service.display_name}...")
        try:
            summary = await _sync_provider(service, collection, task_id)
        except RemoteAuthError as e:
            error(f"{service.display_name} authentication failed: {e}")
            exit_code = 1
            continue
        except (SyncConfigError, RemoteError) as e:
            error(f"{service.display_name} sync failed: {e}")
            exit_code = 1
            continue
        finally:
            await service.aclose()

        persist_outcomes(store, service.id, summary.outcomes)
        _display_summary(summary)
        if summary.has_errors:
            exit_code = 1

    return exit_code


async def _sync_provider(
    service: SyncService, collection: TaskCollection, task_id: str | None
) -> SyncRunSummary:
    summary = SyncRunSummary(provider_id=service.id)
    if task_id is not None:
        task = collection.get(task_id)
        outcome = await service.sync_task(task, collection) if task is not None else None
        if outcome is not None:
            summary.add(outcome)
        return summary

    for outcome in await service.sync_all(collection, on_progress=progress):
        summary.add(outcome)
    return summary


def persist_outcomes(
    store: FilesystemTaskStore, provider_id: str, outcomes: list[SyncOutcome]
) -> None:
    """Write returned link metadata and pulled fields back to local tasks."""
    for outcome in outcomes:
        if not outcome.failed:
            task = store.get(outcome.task_id)
            if task is None:
                logger.warning("Task '%s' disappeared during sync", outcome.task_id)
                continue
            fields = dict(outcome.local_updates or {})
            if outcome.link is not None and task.link_for(provider_id) != outcome.link:
                fields["links"] = {**task.links, provider_id: outcome.link}
            if fields:
                store.update(outcome.task_id, fields)
                logger.debug("Saved %s for '%s'", sorted(fields), outcome.task_id)
        persist_outcomes(store, provider_id, outcome.subtask_outcomes)


def _iter_outcomes(outcomes: list[SyncOutcome]):
    for outcome in outcomes:
        yield outcome
        yield from _iter_outcomes(outcome.subtask_outcomes)


def _display_summary(summary: SyncRunSummary) -> None:
    for outcome in _iter_outcomes(summary.outcomes):
        if outcome.not_closing_reason:
            warning(f"{outcome.task_id}: not closed ({outcome.not_closing_reason})")
        if outcome.pulled_from_remote:
            info(f"{outcome.task_id}: pulled newer state from remote")
        if outcome.error:
            error(f"{outcome.task_id}: {outcome.error}")

    if summary.failed_count:
        error(summary_line(summary))
    else:
        success(summary_line(summary))


def _display_dry_run(collection: TaskCollection, task_id: str | None) -> None:
    header("Dry run: nothing will be sent")
    roots = collection.roots()
    if task_id is not None:
        task = collection.get(task_id)
        root = collection.root_of(task) if task is not None else None
        roots = [root] if root is not None else []

    children = collection.children_index()
    for root in roots:
        linked = ", ".join(f"{p}:{link.identifier}" for p, link in sorted(root.links.items()))
        status = f"linked {linked}" if linked else "new"
        subtasks = len(children.get(root.id, []))
        info(f"{root.id} {root.name} ({status}, {subtasks} subtasks)")
    info(f"{len(roots)} root tasks would be synced")
