"""Close command: close a task's remote items and detach its links."""

import asyncio
import logging
from pathlib import Path

from ..models import Task
from ..repositories import FilesystemTaskStore
from ..services.config_service import ConfigService
from ..sync.errors import RemoteError, SyncConfigError
from ..sync.factory import build_registry
from .output import error, info, success

logger = logging.getLogger(__name__)


def run_close(project_root: Path, task_id: str) -> int:
    """Close every linked remote item of a task and remove the links.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    config_service = ConfigService(project_root)
    config_service.get_config()
    if config_service.has_config_error:
        error(config_service.config_error or "Invalid configuration")
        return 1

    store = FilesystemTaskStore(config_service.task_root)
    task = store.get(task_id)
    if task is None:
        error(f"Task not found: {task_id}")
        return 1
    if not task.links:
        info(f"{task_id} is not linked to any tracker")
        return 0

    return asyncio.run(_close(project_root, config_service, store, task))


async def _close(
    project_root: Path, config_service: ConfigService, store: FilesystemTaskStore, task: Task
) -> int:
    try:
        registry = await build_registry(config_service.get_config(), project_root, set(task.links))
    except SyncConfigError as e:
        error(str(e))
        return 1

    exit_code = 0
    for service in registry.get_all():
        try:
            link = await service.close_remote(task)
        except RemoteError as e:
            error(f"Failed to close {service.display_name} item for {task.id}: {e}")
            exit_code = 1
            continue
        finally:
            await service.aclose()

        if link is not None:
            success(f"Closed {link.url or link.identifier}")
        task = task.without_link(service.id)
        store.save(task)

    return exit_code
