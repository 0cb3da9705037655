"""The publishing pipeline.

A run is strictly sequential:

1. acquire the token (encrypted file, else prompt and persist)
2. ensure an SSH keypair exists
3. register the public key with GitHub
4. create the remote repository
5. reconcile `.gitignore`
6. resolve the authenticated login and the owner of the current `origin`
7. discard local history if that owner is the authenticated user
8. re-initialise git and force-push

Only steps 1 and the directory lookups are fatal; they raise. Every other step
produces a `StepResult` that is logged and collected in the `PublishReport`,
and the pipeline moves on regardless.
"""

from __future__ import annotations

import logging
import shutil
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from github_push.publisher.config import PushSettings
from github_push.publisher.errors import (
    GitHubAPIError,
    MissingTokenError,
    SecretNotFoundError,
    SecretStoreError,
    SSHKeyError,
    TokenInputError,
    WorkingDirectoryError,
)
from github_push.publisher.git import GitRunner, owner_from_remote_url
from github_push.publisher.github.client import GitHubClient
from github_push.publisher.gitignore import reconcile_gitignore
from github_push.publisher.logging import mask_secret
from github_push.publisher.secret_store import SecretStore
from github_push.publisher.ssh_keys import ensure_ssh_key

logger = logging.getLogger(__name__)

TOKEN_PROMPT = "Please enter your github development token:"


class GitCommands(Protocol):
    def add_secret(self, value: str) -> None: ...

    def describe(self, args: list[str]) -> str: ...

    def run(self, *args: str) -> bool: ...

    def remote_url(self, name: str = "origin") -> str: ...


def is_private_name(name: str) -> bool:
    """Repositories whose name starts with an underscore are created private."""

    return name.startswith("_")


@dataclass(frozen=True, slots=True)
class RepositoryTarget:
    """The remote repository a run publishes to."""

    name: str
    private: bool

    @classmethod
    def from_directory(cls, path: Path) -> RepositoryTarget:
        name = path.name
        if not name:
            raise WorkingDirectoryError(f"Cannot derive a repository name from {str(path)!r}")
        return cls(name=name, private=is_private_name(name))


@dataclass(frozen=True, slots=True)
class OwnershipDecision:
    """Whether the local `origin` remote belongs to the authenticated user."""

    authenticated_login: str
    remote_owner: str

    @property
    def resolved(self) -> bool:
        return bool(self.authenticated_login) and bool(self.remote_owner)

    @property
    def owned(self) -> bool:
        return self.resolved and self.authenticated_login.casefold() == self.remote_owner.casefold()


@dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of one best-effort step."""

    name: str
    ok: bool
    detail: str = ""


@dataclass
class PublishReport:
    """Everything a run did, in order."""

    repository: RepositoryTarget
    steps: list[StepResult] = field(default_factory=list)
    ownership: OwnershipDecision | None = None
    history_discarded: bool = False

    @property
    def failed_steps(self) -> list[StepResult]:
        return [s for s in self.steps if not s.ok]

    def add(self, result: StepResult) -> StepResult:
        self.steps.append(result)
        if result.ok:
            logger.info("Step %s succeeded", result.name, extra={"detail": result.detail})
        else:
            logger.error("Step %s failed: %s", result.name, result.detail)
        return result


def read_token_from_stdin() -> str:
    """Prompt on stdout and read one line from stdin.

    Raises:
        TokenInputError: On end of input or a read error.
    """
    print(TOKEN_PROMPT, flush=True)
    try:
        line = sys.stdin.readline()
    except OSError as e:
        raise TokenInputError(f"Failed to read token: {e}") from e
    if not line:
        raise TokenInputError("Failed to read token: end of input")
    return line


def build_push_url(*, token: str, host: str, owner: str, repository: str) -> str:
    """HTTPS remote URL that authenticates with the token as the user part."""

    return f"https://{quote(token, safe='')}@{host}/{owner}/{repository}.git"


def build_git_sequence(settings: PushSettings, *, push_url: str) -> list[list[str]]:
    """The git commands run after the ownership gate, in order."""

    commands: list[list[str]] = [["init"], ["remote", "remove", "origin"]]
    for branch in settings.default_branches:
        commands.append(["pull", "--rebase", "origin", branch])
    for branch in settings.default_branches:
        commands.append(["reset", f"--{settings.reset_mode}", f"origin/{branch}"])
    commands.extend(
        [
            ["remote", "add", "origin", push_url],
            ["add", "."],
            ["commit", "-m", settings.commit_message],
            ["push", "-u", "origin", settings.push_branch, "--force"],
        ]
    )
    return commands


class Publisher:
    """Publishes one working directory to GitHub."""

    def __init__(
        self,
        settings: PushSettings,
        *,
        repo_path: Path,
        secret_store: SecretStore,
        git: GitCommands | None = None,
        github_factory: Callable[[str], GitHubClient] | None = None,
        prompt: Callable[[], str] = read_token_from_stdin,
        ssh_key_provider: Callable[[Path], str] = ensure_ssh_key,
    ) -> None:
        self.settings = settings
        self.repo_path = repo_path
        self.secret_store = secret_store
        self.git: GitCommands = git or GitRunner(repo_path)
        self._github_factory = github_factory or self._default_github_factory
        self._prompt = prompt
        self._ssh_key_provider = ssh_key_provider

    def _default_github_factory(self, token: str) -> GitHubClient:
        return GitHubClient(token=token, base_url=self.settings.github_base_url)

    def acquire_token(self) -> str:
        """Load the stored token, or prompt for one and persist it.

        Raises:
            TokenInputError: If prompting fails.
            MissingTokenError: If the resulting token is empty.
        """
        try:
            token = self.secret_store.load()
        except SecretNotFoundError:
            logger.info("No stored token found", extra={"path": str(self.secret_store.path)})
            token = self._prompt_and_store()
        except SecretStoreError as e:
            # Corrupt or undecryptable files are handled like a missing token.
            logger.warning("Stored token unusable, prompting again: %s", e)
            token = self._prompt_and_store()

        token = token.strip()
        if not token:
            raise MissingTokenError("GitHub token is required!")

        logger.info("Token found: %s", mask_secret(token))
        return token

    def _prompt_and_store(self) -> str:
        token = self._prompt().strip()
        if not token:
            return token
        try:
            self.secret_store.store(token)
        except SecretStoreError as e:
            logger.warning("Could not persist token, continuing with it in memory: %s", e)
        return token

    def ensure_ssh_key(self) -> tuple[StepResult, str | None]:
        # Path resolution failures (no home directory) propagate as fatal.
        public_key_path = self.settings.resolve_ssh_public_key_path()
        try:
            key = self._ssh_key_provider(public_key_path)
        except SSHKeyError as e:
            return StepResult("ensure_ssh_key", False, str(e)), None
        return StepResult("ensure_ssh_key", True, str(public_key_path)), key

    def register_ssh_key(self, github: GitHubClient, key: str | None) -> StepResult:
        if key is None:
            return StepResult("register_ssh_key", False, "no SSH public key available")
        try:
            github.add_ssh_key(title=self.settings.ssh_key_title, key=key)
        except GitHubAPIError as e:
            return StepResult("register_ssh_key", False, str(e))
        return StepResult("register_ssh_key", True, self.settings.ssh_key_title)

    def create_remote_repository(self, github: GitHubClient, target: RepositoryTarget) -> StepResult:
        try:
            github.create_repository(
                name=target.name,
                description=self.settings.repository_description,
                private=target.private,
            )
        except GitHubAPIError as e:
            return StepResult("create_repository", False, str(e))
        visibility = "private" if target.private else "public"
        return StepResult("create_repository", True, f"{target.name} ({visibility})")

    def reconcile_gitignore(self) -> StepResult:
        path = self.repo_path / ".gitignore"
        try:
            update = reconcile_gitignore(path, self.settings.gitignore_entries)
        except (OSError, UnicodeDecodeError) as e:
            return StepResult("reconcile_gitignore", False, str(e))
        if update.created:
            detail = "created"
        elif update.added:
            detail = f"added {len(update.added)} line(s)"
        else:
            detail = "up to date"
        return StepResult("reconcile_gitignore", True, detail)

    def resolve_identities(self, github: GitHubClient) -> OwnershipDecision:
        try:
            login = github.get_authenticated_login()
        except GitHubAPIError as e:
            logger.warning("Could not resolve GitHub username: %s", e)
            login = ""
        logger.info("github username: %s", login or "<unknown>")

        remote_owner = owner_from_remote_url(self.git.remote_url("origin"))
        logger.info("origin owner: %s", remote_owner or "<none>")
        return OwnershipDecision(authenticated_login=login, remote_owner=remote_owner)

    def apply_ownership_gate(self, decision: OwnershipDecision) -> tuple[StepResult, bool]:
        """Delete local `.git` when the existing origin belongs to the authenticated user.

        Returns:
            The step result and whether history was discarded.
        """
        git_dir = self.repo_path / ".git"
        if not decision.owned:
            return StepResult("ownership_gate", True, "history kept"), False
        if not git_dir.exists():
            return StepResult("ownership_gate", True, "no local history"), False

        try:
            if git_dir.is_dir() and not git_dir.is_symlink():
                shutil.rmtree(git_dir)
            else:
                git_dir.unlink()
        except OSError as e:
            return StepResult("ownership_gate", False, f"failed to remove {git_dir}: {e}"), False
        logger.warning("Discarded local git history", extra={"path": str(git_dir)})
        return StepResult("ownership_gate", True, "history discarded"), True

    def run_git_sequence(self, *, token: str, login: str, target: RepositoryTarget) -> list[StepResult]:
        if not login:
            logger.warning("GitHub username unknown; the push URL will have no owner")
        push_url = build_push_url(
            token=token,
            host=self.settings.git_host,
            owner=login,
            repository=target.name,
        )

        results = []
        for args in build_git_sequence(self.settings, push_url=push_url):
            ok = self.git.run(*args)
            results.append(StepResult("git", ok, self.git.describe(args)))
        return results

    def run(self) -> PublishReport:
        """Run the whole pipeline once.

        Raises:
            WorkingDirectoryError: If the directory cannot name a repository.
            TokenInputError: If the token prompt cannot be read.
            MissingTokenError: If no token is available.
            HomeDirectoryError: If the SSH key location cannot be resolved.
        """
        target = RepositoryTarget.from_directory(self.repo_path)
        report = PublishReport(repository=target)

        token = self.acquire_token()
        self.git.add_secret(token)

        github = self._github_factory(token)
        try:
            key_result, public_key = self.ensure_ssh_key()
            report.add(key_result)
            report.add(self.register_ssh_key(github, public_key))
            report.add(self.create_remote_repository(github, target))
            report.add(self.reconcile_gitignore())

            decision = self.resolve_identities(github)
        finally:
            github.close()

        report.ownership = decision
        gate, discarded = self.apply_ownership_gate(decision)
        report.add(gate)
        report.history_discarded = discarded

        for result in self.run_git_sequence(
            token=token, login=decision.authenticated_login, target=target
        ):
            report.add(result)

        logger.info(
            "Done",
            extra={
                "repository": target.name,
                "failed_steps": len(report.failed_steps),
            },
        )
        return report
