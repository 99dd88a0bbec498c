"""Shortcut REST API client."""

from __future__ import annotations

import logging
import os
import time
from typing import Any

import httpx

from ..sync.errors import (
    RemoteAuthError,
    RemoteError,
    RemoteForbiddenError,
    RemoteNotFoundError,
    RemoteRateLimitError,
)

logger = logging.getLogger(__name__)

API_URL = "https://api.app.shortcut.com/api/v3"
APP_HOST = "https://api.app.shortcut.com"
SEARCH_PAGE_SIZE = 25


class ShortcutClientError(RemoteError):
    """Base exception for Shortcut client errors."""

    pass


class ShortcutAuthError(ShortcutClientError, RemoteAuthError):
    """Authentication failed."""

    pass


class ShortcutNotFoundError(ShortcutClientError, RemoteNotFoundError):
    """Resource not found."""

    pass


class ShortcutForbiddenError(ShortcutClientError, RemoteForbiddenError):
    """Permission denied."""

    pass


class ShortcutRateLimitError(ShortcutClientError, RemoteRateLimitError):
    """Rate limit exceeded."""

    pass


class ShortcutClient:
    """Async client for the Shortcut v3 REST API."""

    def __init__(self, token: str, transport: httpx.AsyncBaseTransport | None = None):
        """Initialize the Shortcut client.

        Args:
            token: Shortcut API token
            transport: Optional httpx transport, used by tests
        """
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=API_URL,
            headers={
                "Shortcut-Token": token,
                "Content-Type": "application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> ShortcutClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    @classmethod
    def from_environment(cls, token_env: str = "SHORTCUT_API_TOKEN") -> ShortcutClient:
        """Create a client from the token environment variable.

        Raises:
            ShortcutAuthError: If the variable is unset
        """
        token = os.environ.get(token_env)
        if not token:
            logger.error("No Shortcut token found in %s", token_env)
            raise ShortcutAuthError(
                f"Shortcut API token not found.\nSet the {token_env} environment variable."
            )
        return cls(token)

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return decoded JSON.

        Raises:
            ShortcutAuthError: Authentication failed
            ShortcutNotFoundError: Resource not found
            ShortcutForbiddenError: Permission denied
            ShortcutRateLimitError: Rate limit exceeded
            ShortcutClientError: Other errors
        """
        start_time = time.monotonic()
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.error("%s %s failed after %.0fms: %s", method, path, elapsed_ms, e)
            raise ShortcutClientError(f"Request failed: {e}") from e

        elapsed_ms = (time.monotonic() - start_time) * 1000
        status = response.status_code

        if status == 401:
            logger.error("%s %s: 401 Unauthorized (%.0fms)", method, path, elapsed_ms)
            raise ShortcutAuthError(
                "Authentication failed. Check your Shortcut API token.", status_code=status
            )
        if status == 429:
            logger.error("%s %s: 429 Rate Limited (%.0fms)", method, path, elapsed_ms)
            raise ShortcutRateLimitError(
                "Shortcut API rate limit exceeded. Try again later.", status_code=status
            )
        if status == 403:
            logger.error("%s %s: 403 Forbidden (%.0fms)", method, path, elapsed_ms)
            raise ShortcutForbiddenError("Permission denied.", status_code=status)
        if status == 404:
            logger.error("%s %s: 404 Not Found (%.0fms)", method, path, elapsed_ms)
            raise ShortcutNotFoundError(f"Resource not found: {path}", status_code=status)
        if status >= 400:
            logger.error("%s %s: HTTP %d (%.0fms)", method, path, status, elapsed_ms)
            raise ShortcutClientError(f"HTTP {status}: {response.text}", status_code=status)

        logger.info("%s %s: %d (%.0fms)", method, path, status, elapsed_ms)
        if status == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ShortcutClientError(f"Invalid JSON response: {e}") from e

    # --- Stories ---

    async def get_story(self, story_id: int | str) -> dict[str, Any]:
        return await self.request("GET", f"/stories/{story_id}")

    async def create_story(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/stories", json=data)

    async def update_story(self, story_id: int | str, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PUT", f"/stories/{story_id}", json=data)

    async def create_comment(self, story_id: int | str, text: str) -> dict[str, Any]:
        return await self.request("POST", f"/stories/{story_id}/comments", json={"text": text})

    async def search_stories(self, query: str) -> list[dict[str, Any]]:
        """Fetch every search result by following the ``next`` cursor."""
        stories: list[dict[str, Any]] = []
        path: str | None = "/search/stories"
        params: dict[str, Any] | None = {
            "query": query,
            "page_size": SEARCH_PAGE_SIZE,
            "detail": "full",
        }
        page = 0

        while path is not None:
            page += 1
            result = await self.request("GET", path, params=params)
            batch = result.get("data") or []
            stories.extend(batch)
            logger.debug("Page %d: fetched %d stories", page, len(batch))
            next_path = result.get("next")
            # "next" is a path with the query string, relative to the API host
            path = f"{APP_HOST}{next_path}" if next_path else None
            params = None

        logger.info("Search %r returned %d stories", query, len(stories))
        return stories

    # --- Workspace ---

    async def get_current_member(self) -> dict[str, Any]:
        return await self.request("GET", "/member")

    async def list_groups(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/groups")

    async def get_workflow(self, workflow_id: int) -> dict[str, Any]:
        return await self.request("GET", f"/workflows/{workflow_id}")
