"""Clone public GitHub repositories with git via subprocess."""

from __future__ import annotations

import os
import re
import subprocess
from pathlib import Path
from typing import Optional

from ..exceptions import FetchError, FetchErrorKind
from ..logging_config import get_logger

logger = get_logger(__name__)

# https://github.com/<owner>/<repo> with optional .git suffix or trailing slash
_GITHUB_URL_RE = re.compile(
    r"^https://github\.com/[A-Za-z0-9](?:[A-Za-z0-9-]{0,38})/(?P<repo>[A-Za-z0-9._-]+?)(?:\.git)?/?$"
)

# stderr fragments git prints when a repository is missing or needs credentials
_NOT_FOUND_MARKERS = (
    "repository not found",
    "authentication failed",
    "could not read username",
    "terminal prompts disabled",
    "not found",
    "403",
)


class GitHubFetcher:
    """Fetcher for public GitHub repositories.

    Cloning is shallow and non-interactive: private repositories fail fast
    instead of prompting for credentials.
    """

    def __init__(self, git_executable: str = "git", depth: int = 1) -> None:
        self.git_executable = git_executable
        self.depth = depth

    def validate(self, location: str) -> bool:
        match = _GITHUB_URL_RE.match(location.strip())
        # "." and ".." are path segments, not repository names
        return match is not None and match.group("repo").strip(".") != ""

    def clone(self, location: str, dest_dir: Path, timeout: Optional[float] = None) -> None:
        location = location.strip()
        if not self.validate(location):
            raise FetchError(location, FetchErrorKind.INVALID_OR_PRIVATE, "not a GitHub repository URL")

        cmd = [
            self.git_executable,
            "clone",
            "--quiet",
            f"--depth={self.depth}",
            "--",
            location,
            str(dest_dir),
        ]
        env = dict(os.environ, GIT_TERMINAL_PROMPT="0", GIT_ASKPASS="")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=env,
            )
        except subprocess.TimeoutExpired:
            raise FetchError(location, FetchErrorKind.TIMEOUT, f"clone exceeded {timeout:.0f}s")
        except FileNotFoundError:
            raise FetchError(
                location, FetchErrorKind.NETWORK, f"git executable not found: {self.git_executable}"
            )

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            kind = _classify_clone_failure(stderr)
            logger.debug("git clone %s failed (%s): %s", location, kind.value, stderr)
            raise FetchError(location, kind, stderr.splitlines()[-1] if stderr else "")


def _classify_clone_failure(stderr: str) -> FetchErrorKind:
    lowered = stderr.lower()
    if any(marker in lowered for marker in _NOT_FOUND_MARKERS):
        return FetchErrorKind.INVALID_OR_PRIVATE
    return FetchErrorKind.NETWORK
