"""Build reconcilers and the registry from configuration."""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path

from ..github.adapter import GitHubIssuesAdapter
from ..github.client import GitHubClient
from ..github.remote import get_github_repo
from ..models import GitHubSyncConfig, ShortcutSyncConfig, TasklinkConfig
from ..shortcut.adapter import ShortcutStoriesAdapter
from ..shortcut.client import ShortcutClient
from ..utils.git import is_commit_on_remote
from .engine import CommitVerifier, GitHubReconciler, ShortcutReconciler
from .errors import RemoteAuthError, RemoteError, SyncConfigError
from .registry import SyncRegistry

logger = logging.getLogger(__name__)


def default_commit_verifier(project_root: Path) -> CommitVerifier:
    """Commit check run from the project's git checkout."""
    return partial(is_commit_on_remote, cwd=project_root)


def create_github_reconciler_or_raise(
    config: GitHubSyncConfig,
    project_root: Path,
    commit_verifier: CommitVerifier | None = None,
) -> GitHubReconciler:
    """Build the GitHub reconciler for an explicit sync.

    Raises:
        SyncConfigError: No token, or the repository cannot be determined
    """
    owner, repo = config.owner, config.repo
    if not owner or not repo:
        host = "github.com" if config.base_url == "api.github.com" else config.base_url
        inferred = get_github_repo(project_root, host)
        if inferred is None:
            raise SyncConfigError(
                "GitHub repository not configured.\n"
                "Set sync.github.owner and sync.github.repo in tasklink.yml, "
                "or add a GitHub 'origin' remote."
            )
        owner, repo = inferred.owner, inferred.repo

    try:
        client = GitHubClient.from_environment(config.base_url, config.token_env)
    except RemoteAuthError as e:
        raise SyncConfigError(str(e)) from e

    adapter = GitHubIssuesAdapter(client, owner, repo, config.label_prefix)
    return GitHubReconciler(
        adapter,
        config.label_prefix,
        commit_verifier or default_commit_verifier(project_root),
    )


def create_github_reconciler(
    config: GitHubSyncConfig,
    project_root: Path,
    commit_verifier: CommitVerifier | None = None,
) -> GitHubReconciler | None:
    """Build the GitHub reconciler if enabled. Returns None when unavailable."""
    if not config.enabled:
        return None
    try:
        return create_github_reconciler_or_raise(config, project_root, commit_verifier)
    except SyncConfigError as e:
        logger.warning("GitHub sync enabled but unavailable: %s", e)
        return None


async def create_shortcut_reconciler_or_raise(
    config: ShortcutSyncConfig,
    project_root: Path,
    commit_verifier: CommitVerifier | None = None,
) -> ShortcutReconciler:
    """Build the Shortcut reconciler for an explicit sync.

    Raises:
        SyncConfigError: No token, no team, or the workspace cannot be fetched
    """
    if not config.team:
        raise SyncConfigError(
            "Shortcut team not configured.\nSet sync.shortcut.team in tasklink.yml."
        )
    try:
        client = ShortcutClient.from_environment(config.token_env)
    except RemoteAuthError as e:
        raise SyncConfigError(str(e)) from e

    workspace = config.workspace
    if not workspace:
        try:
            member = await client.get_current_member()
            workspace = member["workspace2"]["url_slug"]
        except (RemoteError, KeyError, TypeError) as e:
            await client.aclose()
            raise SyncConfigError(f"Failed to fetch Shortcut workspace: {e}") from e

    adapter = ShortcutStoriesAdapter(client, workspace, config.team, config.label, config.workflow)
    return ShortcutReconciler(
        adapter,
        config.label,
        commit_verifier or default_commit_verifier(project_root),
    )


async def create_shortcut_reconciler(
    config: ShortcutSyncConfig,
    project_root: Path,
    commit_verifier: CommitVerifier | None = None,
) -> ShortcutReconciler | None:
    """Build the Shortcut reconciler if enabled. Returns None when unavailable."""
    if not config.enabled:
        return None
    try:
        return await create_shortcut_reconciler_or_raise(config, project_root, commit_verifier)
    except SyncConfigError as e:
        logger.warning("Shortcut sync enabled but unavailable: %s", e)
        return None


async def build_registry(
    config: TasklinkConfig,
    project_root: Path,
    providers: set[str] | None = None,
) -> SyncRegistry:
    """Register a reconciler for each requested provider.

    With ``providers`` unset, every enabled provider is registered and
    unavailable ones are skipped with a warning. Naming a provider
    explicitly makes configuration problems fatal.

    Raises:
        SyncConfigError: An explicitly requested provider cannot be built
    """
    registry = SyncRegistry()

    if providers is None:
        github = create_github_reconciler(config.sync.github, project_root)
        if github is not None:
            registry.register(github)
        shortcut = await create_shortcut_reconciler(config.sync.shortcut, project_root)
        if shortcut is not None:
            registry.register(shortcut)
        return registry

    if "github" in providers:
        registry.register(create_github_reconciler_or_raise(config.sync.github, project_root))
    if "shortcut" in providers:
        registry.register(
            await create_shortcut_reconciler_or_raise(config.sync.shortcut, project_root)
        )
    return registry
