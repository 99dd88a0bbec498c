"""Infer the GitHub repository from the local git remote."""

import re
from pathlib import Path
from typing import NamedTuple

from ..utils.git import get_git_remote_url

_OWNER_REPO = r"(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$"
_URL_PATTERNS = (
    re.compile(r"^https?://(?:[^@/]+@)?(?P<host>[^/]+)/" + _OWNER_REPO),
    re.compile(r"^git@(?P<host>[^:]+):" + _OWNER_REPO),
    re.compile(r"^ssh://git@(?P<host>[^/:]+)(?::\d+)?/" + _OWNER_REPO),
)


class GitHubRepo(NamedTuple):
    owner: str
    repo: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_github_url(url: str, host: str = "github.com") -> GitHubRepo | None:
    """Parse an https, scp-style or ssh remote URL pointing at ``host``."""
    url = url.strip()
    for pattern in _URL_PATTERNS:
        match = pattern.match(url)
        if match and match.group("host") == host:
            return GitHubRepo(match.group("owner"), match.group("repo"))
    return None


def get_github_repo(cwd: Path | None = None, host: str = "github.com") -> GitHubRepo | None:
    """Repository of the ``origin`` remote, if it is hosted on ``host``."""
    url = get_git_remote_url("origin", cwd=cwd)
    if url is None:
        return None
    return parse_github_url(url, host)
