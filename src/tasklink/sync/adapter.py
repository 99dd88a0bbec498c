"""Provider adapter contract."""

from typing import Protocol

from ..models import RemoteSnapshot, WorkflowState


class ProviderAdapter(Protocol):
    """Uniform CRUD surface over one remote tracker.

    Adapters are the only code that performs network I/O. They translate
    between provider payloads and ``RemoteSnapshot`` and report failures with
    the exceptions in ``tasklink.sync.errors``. Labels outside the managed
    namespace are preserved on update.
    """

    provider_id: str

    def describe_target(self) -> str:
        """Human-readable target, e.g. "owner/repo" or a workspace slug."""
        ...

    def coerce_state(self, state: WorkflowState) -> WorkflowState:
        """Map a desired state to the closest state the provider can hold."""
        ...

    def is_managed_label(self, label: str) -> bool:
        """Whether a label belongs to the managed namespace."""
        ...

    async def get_by_id(self, identifier: int | str) -> RemoteSnapshot:
        """Fetch one item.

        Raises:
            RemoteNotFoundError: The item does not exist
            RemoteError: Any other failure
        """
        ...

    async def create_item(
        self,
        title: str,
        body: str,
        labels: set[str],
        state: WorkflowState,
        parent: int | str | None = None,
    ) -> RemoteSnapshot:
        """Create an item in the given state and return what was created."""
        ...

    async def update_item(
        self,
        identifier: int | str,
        title: str,
        body: str,
        labels: set[str],
        state: WorkflowState | None,
    ) -> RemoteSnapshot:
        """Update an item. ``state=None`` leaves the remote state untouched."""
        ...

    async def list_by_label(self, label: str) -> list[RemoteSnapshot]:
        """Every item carrying ``label``, across all pages and states."""
        ...

    async def add_comment(self, identifier: int | str, body: str) -> None:
        """Post a comment on an item."""
        ...

    def url_for(self, identifier: int | str) -> str:
        """Web URL of an item."""
        ...

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""
        ...
