"""Configuration for github-push.

Configuration is loaded from:
- environment variables prefixed with `GITHUB_PUSH_`
- and a local `.env` file (if present)

Every setting has a working default, so a
bare invocation with no environment works. Paths under the home directory are
resolved lazily: a machine without a resolvable home directory is reported as
a fatal `HomeDirectoryError` when the path is first needed, not as a
configuration error.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from github_push.publisher.errors import HomeDirectoryError

# Fixed at build time. This offers no real confidentiality: anyone with this
# source can decrypt the token file. Override with GITHUB_PUSH_SECRET_KEY.
DEFAULT_SECRET_KEY_HEX = b"github-push:fixed-key:0000000001".hex()

DEFAULT_GITIGNORE_ENTRIES: tuple[str, ...] = (
    "/push.exe",
    "/publish.exe",
    "/node_modules/*",
    "/.next",
    "/packages",
    "/chrome",
    "/bin",
    "/*/bin",
    "/*/obj",
)

SECRET_FILE_NAME = "github.sec"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_AES_KEY_SIZES = {16, 24, 32}


def home_directory() -> Path:
    """Return the current user's home directory.

    Raises:
        HomeDirectoryError: If the platform cannot resolve it.
    """
    try:
        return Path.home()
    except (RuntimeError, KeyError, OSError) as e:
        raise HomeDirectoryError(f"Unable to resolve home directory: {e}") from e


class PushSettings(BaseSettings):
    """Settings for a github-push run.

    Environment variables (all optional):
    - GITHUB_PUSH_GITHUB_BASE_URL
    - GITHUB_PUSH_SECRET_FILE / GITHUB_PUSH_SECRET_KEY
    - GITHUB_PUSH_SSH_PUBLIC_KEY_PATH
    - GITHUB_PUSH_DEFAULT_BRANCHES (JSON list)
    - GITHUB_PUSH_LOG_LEVEL / GITHUB_PUSH_LOG_FORMAT

    Notes:
        Tests can bypass the environment entirely by passing keyword arguments
        and `_env_file=None`.
    """

    github_base_url: str = Field(
        default="https://api.github.com",
        description="GitHub API base URL (useful for GitHub Enterprise)",
    )
    git_host: str = Field(
        default="github.com",
        description="Host used when building the HTTPS push URL",
    )

    secret_file: Path | None = Field(
        default=None,
        description="Encrypted token file (defaults to ~/github.sec)",
    )
    secret_key: str = Field(
        default=DEFAULT_SECRET_KEY_HEX,
        description="Hex-encoded AES key (16, 24 or 32 bytes) used for the token file",
    )

    ssh_public_key_path: Path | None = Field(
        default=None,
        description="SSH public key to register (defaults to ~/.ssh/id_rsa.pub)",
    )
    ssh_key_title: str = Field(
        default="rgsshkey",
        description="Title of the SSH key registered with GitHub",
    )

    repository_description: str = Field(
        default="Turing research group.",
        description="Description sent when creating the remote repository",
    )
    commit_message: str = Field(default="Update", description="Message for the pushed commit")
    default_branches: list[str] = Field(
        default_factory=lambda: ["main", "master"],
        description="Remote branches to rebase onto and reset to, in priority order",
    )
    push_branch: str = Field(default="master", description="Branch that is force-pushed")
    reset_mode: Literal["hard", "mixed"] = Field(
        default="hard",
        description="Mode for `git reset` against each default branch",
    )
    gitignore_entries: list[str] = Field(
        default_factory=lambda: list(DEFAULT_GITIGNORE_ENTRIES),
        description="Lines that must be present in .gitignore",
    )

    log_level: str = Field(default="INFO", description="Root logging level")
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format",
    )

    expected_program_name: str | None = Field(
        default=None,
        description="Refuse to run unless invoked under this program name",
    )

    model_config = SettingsConfigDict(
        env_prefix="GITHUB_PUSH_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("secret_key")
    @classmethod
    def _validate_secret_key(cls, value: str) -> str:
        try:
            key = bytes.fromhex(value)
        except ValueError as e:
            raise ValueError("secret_key must be hex encoded") from e
        if len(key) not in _AES_KEY_SIZES:
            raise ValueError("secret_key must decode to 16, 24 or 32 bytes")
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("default_branches")
    @classmethod
    def _validate_branches(cls, value: list[str]) -> list[str]:
        branches = [b.strip() for b in value if b.strip()]
        if not branches:
            raise ValueError("default_branches must name at least one branch")
        return branches

    @property
    def secret_key_bytes(self) -> bytes:
        return bytes.fromhex(self.secret_key)

    def resolve_secret_file(self) -> Path:
        """Path of the encrypted token file."""

        if self.secret_file is not None:
            return self.secret_file.expanduser()
        return home_directory() / SECRET_FILE_NAME

    def resolve_ssh_public_key_path(self) -> Path:
        """Path of the SSH public key that is generated and registered."""

        if self.ssh_public_key_path is not None:
            return self.ssh_public_key_path.expanduser()
        return home_directory() / ".ssh" / "id_rsa.pub"
