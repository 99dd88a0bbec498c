"""Registry of configured sync services, keyed by provider id."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..models import RemoteLink, SyncOutcome, Task, TaskCollection
    from .engine import ProgressCallback


class SyncService(Protocol):
    """What the registry holds. ``SyncReconciler`` satisfies it."""

    @property
    def id(self) -> str: ...

    display_name: str

    async def sync_task(
        self, task: Task, collection: TaskCollection, skip_unchanged: bool = True
    ) -> SyncOutcome | None: ...

    async def sync_all(
        self,
        collection: TaskCollection,
        on_progress: ProgressCallback | None = None,
        skip_unchanged: bool = True,
    ) -> list[SyncOutcome]: ...

    async def close_remote(self, task: Task) -> RemoteLink | None: ...

    async def aclose(self) -> None: ...


class SyncRegistry:
    """Holds at most one service per provider id. Registration order is kept."""

    def __init__(self) -> None:
        self._services: dict[str, SyncService] = {}

    def register(self, service: SyncService) -> None:
        """Add a service, replacing any registered under the same id."""
        self._services[service.id] = service

    def get(self, provider_id: str) -> SyncService | None:
        return self._services.get(provider_id)

    def get_all(self) -> list[SyncService]:
        return list(self._services.values())

    def has_services(self) -> bool:
        return len(self._services) > 0
