"""GitHub REST API client."""

from __future__ import annotations

import logging
import os
import subprocess
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

DEFAULT_HOST = "api.github.com"
PAGE_SIZE = 100


class GitHubClientError(RemoteError):
    """Base exception for GitHub client errors."""

    pass


class GitHubAuthError(GitHubClientError, RemoteAuthError):
    """Authentication failed."""

    pass


class GitHubNotFoundError(GitHubClientError, RemoteNotFoundError):
    """Resource not found."""

    pass


class GitHubForbiddenError(GitHubClientError, RemoteForbiddenError):
    """Permission denied."""

    pass


class GitHubRateLimitError(GitHubClientError, RemoteRateLimitError):
    """Rate limit exceeded."""

    pass


def api_root(base_url: str) -> str:
    """REST root for github.com or a GitHub Enterprise host."""
    if base_url == DEFAULT_HOST:
        return f"https://{DEFAULT_HOST}"
    return f"https://{base_url}/api/v3"


def web_root(base_url: str) -> str:
    """Web root matching an API host."""
    if base_url == DEFAULT_HOST:
        return "https://github.com"
    return f"https://{base_url}"


class GitHubClient:
    """Async GitHub REST API client.

    Provides a thin wrapper around the GitHub REST API with:
    - Token authentication (from env var or gh CLI)
    - Enterprise support via custom base_url
    - Link-header pagination
    - Error handling and rate limit awareness
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_HOST,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: GitHub personal access token
            base_url: API host (default: api.github.com, use custom for Enterprise)
            transport: Optional httpx transport, used by tests
        """
        self.token = token
        self.base_url = base_url
        self.web_url = web_root(base_url)
        self._client = httpx.AsyncClient(
            base_url=api_root(base_url),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=30.0,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    @classmethod
    def from_environment(
        cls, base_url: str = DEFAULT_HOST, token_env: str = "GITHUB_TOKEN"
    ) -> GitHubClient:
        """Create a client from environment variables or gh CLI.

        Tries in order:
        1. The ``token_env`` environment variable (GITHUB_TOKEN by default)
        2. gh auth token (if gh CLI is installed and authenticated)

        Raises:
            GitHubAuthError: If no token is available
        """
        token = os.environ.get(token_env)
        if token:
            logger.debug("Using token from %s environment variable", token_env)
            return cls(token, base_url)

        try:
            command = ["gh", "auth", "token"]
            if base_url != DEFAULT_HOST:
                command += ["--hostname", base_url]
            result = subprocess.run(command, capture_output=True, text=True, check=True)
            token = result.stdout.strip()
            if token:
                logger.debug("Using token from gh CLI")
                return cls(token, base_url)
        except (subprocess.CalledProcessError, FileNotFoundError):
            logger.debug("gh CLI not available or not authenticated")

        logger.error("No GitHub token found")
        raise GitHubAuthError(
            "No GitHub token found. Either:\n"
            f"  - Set {token_env} environment variable\n"
            "  - Run 'gh auth login' to authenticate with GitHub CLI"
        )

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request and map error statuses to exceptions.

        Raises:
            GitHubAuthError: Authentication failed
            GitHubNotFoundError: Resource not found
            GitHubForbiddenError: Permission denied
            GitHubRateLimitError: Rate limit exceeded
            GitHubClientError: Other errors
        """
        start_time = time.monotonic()
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.error("%s %s failed after %.0fms: %s", method, path, elapsed_ms, e)
            raise GitHubClientError(f"Request failed: {e}") from e

        elapsed_ms = (time.monotonic() - start_time) * 1000
        status = response.status_code

        if status == 401:
            logger.error("%s %s: 401 Unauthorized (%.0fms)", method, path, elapsed_ms)
            raise GitHubAuthError(
                "Authentication failed. Check your GitHub token.\nRequired scopes: repo",
                status_code=status,
            )
        if status == 429 or (status == 403 and "rate limit" in response.text.lower()):
            logger.error("%s %s: %d Rate Limited (%.0fms)", method, path, status, elapsed_ms)
            raise GitHubRateLimitError(
                "GitHub API rate limit exceeded. Try again later.", status_code=status
            )
        if status == 403:
            logger.error("%s %s: 403 Forbidden (%.0fms)", method, path, elapsed_ms)
            raise GitHubForbiddenError(
                "Permission denied. Check that your token has the 'repo' scope.",
                status_code=status,
            )
        if status in (404, 410):
            logger.error("%s %s: %d Not Found (%.0fms)", method, path, status, elapsed_ms)
            raise GitHubNotFoundError(f"Resource not found: {path}", status_code=status)
        if status >= 400:
            logger.error("%s %s: HTTP %d (%.0fms)", method, path, status, elapsed_ms)
            raise GitHubClientError(f"HTTP {status}: {response.text}", status_code=status)

        logger.info("%s %s: %d (%.0fms)", method, path, status, elapsed_ms)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise GitHubClientError(f"Invalid JSON response: {e}") from e

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self._json(await self.request("GET", path, params=params))

    async def post(self, path: str, json: dict[str, Any]) -> Any:
        return self._json(await self.request("POST", path, json=json))

    async def patch(self, path: str, json: dict[str, Any]) -> Any:
        return self._json(await self.request("PATCH", path, json=json))

    async def paginate(self, path: str, params: dict[str, Any] | None = None) -> list[Any]:
        """Fetch every page of a list endpoint by following Link headers."""
        params = {"per_page": PAGE_SIZE, **(params or {})}
        items: list[Any] = []
        url: str | None = path
        page = 0

        while url is not None:
            page += 1
            # The "next" link already carries the query string
            response = await self.request("GET", url, params=params if page == 1 else None)
            batch = self._json(response)
            if not isinstance(batch, list):
                raise GitHubClientError(f"Expected a list from {path}, got {type(batch).__name__}")
            items.extend(batch)
            logger.debug("Page %d: fetched %d items", page, len(batch))
            url = response.links.get("next", {}).get("url")

        logger.info("Fetched %d items from %s in %d pages", len(items), path, page)
        return items
