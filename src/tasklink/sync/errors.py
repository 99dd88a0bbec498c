"""Sync error taxonomy."""


class SyncError(Exception):
    """Base exception for sync errors."""

    pass


class SyncConfigError(SyncError):
    """Missing credentials or provider settings. Fatal for the provider."""

    pass


class MetadataParseError(SyncError):
    """Embedded metadata could not be decoded. Treated as no metadata."""

    pass


class RemoteError(SyncError):
    """Provider request failed (network error, HTTP error, bad response)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteAuthError(RemoteError):
    """Authentication failed. Aborts the whole run."""

    pass


class RemoteNotFoundError(RemoteError):
    """Remote item does not exist."""

    pass


class RemoteForbiddenError(RemoteError):
    """Permission denied."""

    pass


class RemoteRateLimitError(RemoteError):
    """Rate limit exceeded."""

    pass
