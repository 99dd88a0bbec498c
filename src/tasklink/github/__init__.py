"""GitHub Issues integration."""

from .adapter import GitHubIssuesAdapter
from .client import (
    GitHubAuthError,
    GitHubClient,
    GitHubClientError,
    GitHubForbiddenError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from .remote import GitHubRepo, get_github_repo, parse_github_url

__all__ = [
    "GitHubAuthError",
    "GitHubClient",
    "GitHubClientError",
    "GitHubForbiddenError",
    "GitHubIssuesAdapter",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubRepo",
    "get_github_repo",
    "parse_github_url",
]
