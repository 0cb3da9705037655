"""Exception types raised by the publishing pipeline.

Fatal preconditions (missing token, unusable directories, wrong invocation)
are raised out of the pipeline and mapped to exit codes by the CLI. Everything
else is caught at the step boundary and reported as a failed step.
"""

from __future__ import annotations


class GitHubPushError(Exception):
    """Base class for all github-push errors."""


class SecretStoreError(GitHubPushError):
    """Raised when the encrypted token file cannot be read or written."""


class SecretNotFoundError(SecretStoreError):
    """Raised when no token has been stored yet."""


class SecretReadError(SecretStoreError):
    """Raised when the token file exists but cannot be read."""


class SecretWriteError(SecretStoreError):
    """Raised when the token file cannot be written."""


class CorruptSecretError(SecretStoreError):
    """Raised when the token file is not in `<hex nonce>:<hex ciphertext>` form."""


class SecretDecryptionError(SecretStoreError):
    """Raised when the authentication tag does not verify (tampered data or wrong key)."""


class SSHKeyError(GitHubPushError):
    """Raised when the SSH keypair cannot be generated or read."""


class GitHubAPIError(GitHubPushError):
    """Raised when a GitHub REST call does not return the expected status."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        if not self.body:
            return f"{base} (HTTP {self.status_code})"
        return f"{base} (HTTP {self.status_code}): {self.body}"


class MissingTokenError(GitHubPushError):
    """Raised when no usable GitHub token is available."""


class TokenInputError(GitHubPushError):
    """Raised when the token prompt cannot be read from standard input."""


class HomeDirectoryError(GitHubPushError):
    """Raised when the user's home directory cannot be resolved."""


class WorkingDirectoryError(GitHubPushError):
    """Raised when the current directory is unreadable or cannot name a repository."""


class InvalidInvocationError(GitHubPushError):
    """Raised when the tool is started under an unexpected program name."""
