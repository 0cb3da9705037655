"""Git integration for github-push.

All publishing commands stream their output straight to the operator's
terminal and only report success or failure. The one exception is the remote
URL query, whose output is captured and parsed.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

_SCP_LIKE = re.compile(r"^(?:[^@/]+@)?[^:/]+:(?P<path>[^/].*)$")
_URL_SCHEMES = {"http", "https", "ssh", "git", "git+ssh"}
REDACTED = "***"


def owner_from_remote_url(url: str) -> str:
    """Extract the owner (first path segment) from a git remote URL.

    Handles `https://[user[:pass]@]host/owner/repo(.git)`, `ssh://` URLs and
    scp-style `git@host:owner/repo.git`. Returns an empty string when the URL
    does not have an owner/repo shaped path.
    """
    url = url.strip()
    if not url:
        return ""

    if "://" in url:
        parsed = urlparse(url)
        if parsed.scheme not in _URL_SCHEMES:
            return ""
        path = parsed.path
    else:
        match = _SCP_LIKE.match(url)
        if match is None:
            return ""
        path = match.group("path")

    parts = [p for p in path.strip("/").split("/") if p]
    if len(parts) < 2:
        return ""
    return parts[0]


def _redact(args: Iterable[str], secrets: Iterable[str]) -> list[str]:
    hidden = [s for s in secrets if s]
    redacted: list[str] = []
    for arg in args:
        for secret in hidden:
            arg = arg.replace(secret, REDACTED)
        redacted.append(arg)
    return redacted


class GitRunner:
    """Runs git in a fixed working directory."""

    def __init__(self, cwd: Path, *, secrets: Iterable[str] = ()) -> None:
        self.cwd = cwd
        self._secrets = list(secrets)

    def add_secret(self, value: str) -> None:
        """Hide `value` from every command line that is logged from now on."""

        if value:
            self._secrets.append(value)

    def describe(self, args: Iterable[str]) -> str:
        """The command line as it may be logged, with secrets replaced."""
        return " ".join(["git", *_redact(args, self._secrets)])

    def run(self, *args: str) -> bool:
        """Run a git command with output streamed to the terminal.

        Returns:
            True if git exited with status 0.
        """
        cmd = ["git", *args]
        description = self.describe(args)
        logger.info("Running: %s", description)
        try:
            completed = subprocess.run(cmd, cwd=self.cwd, check=False)
        except OSError as e:
            logger.error("Failed to execute git: %s", e, extra={"command": description})
            return False

        if completed.returncode != 0:
            logger.debug(
                "Command exited non-zero: %s",
                description,
                extra={"returncode": completed.returncode},
            )
            return False
        return True

    def remote_url(self, name: str = "origin") -> str:
        """Return the URL of remote `name`, or an empty string if it cannot be read."""

        cmd = ["git", "-C", str(self.cwd), "remote", "get-url", name]
        try:
            completed = subprocess.run(cmd, check=False, text=True, capture_output=True)
        except OSError as e:
            logger.debug("Failed to execute git: %s", e)
            return ""

        if completed.returncode != 0:
            logger.debug("No %s remote: %s", name, completed.stderr.strip())
            return ""
        return completed.stdout.strip()
