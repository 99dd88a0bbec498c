"""Git helpers used by sync."""

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def is_commit_on_remote(sha: str, cwd: Path | None = None) -> bool:
    """Check whether a commit has been pushed to the default remote branch.

    Returns True when ``sha`` is an ancestor of ``origin/HEAD``. Any git
    failure (unknown sha, no remote, git missing) counts as "not pushed".
    """
    try:
        subprocess.run(
            ["git", "merge-base", "--is-ancestor", sha, "origin/HEAD"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError, OSError) as e:
        logger.debug("Commit %s not verified on origin/HEAD: %s", sha[:7], e)
        return False
    return True


def get_git_remote_url(remote: str = "origin", cwd: Path | None = None) -> str | None:
    """Return the URL configured for a git remote, or None."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", remote],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError, OSError):
        logger.debug("No git remote named %s", remote)
        return None
    url = result.stdout.strip()
    return url or None
