"""Unit tests for the publishing pipeline (no network, no real git)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock

import pytest

from github_push.publisher.config import PushSettings
from github_push.publisher.errors import (
    GitHubAPIError,
    MissingTokenError,
    SecretNotFoundError,
    SecretWriteError,
    SSHKeyError,
    TokenInputError,
    WorkingDirectoryError,
)
from github_push.publisher.github.client import CreatedRepository, GitHubClient
from github_push.publisher.pipeline import (
    OwnershipDecision,
    Publisher,
    RepositoryTarget,
    build_git_sequence,
    build_push_url,
    is_private_name,
)
from github_push.publisher.secret_store import SecretStore


class FakeGit:
    """Records git commands; fails the ones listed in `failing`."""

    def __init__(self, *, remote: str = "", failing: tuple[str, ...] = ()) -> None:
        self.remote = remote
        self.failing = failing
        self.commands: list[list[str]] = []
        self.secrets: list[str] = []
        self.git_dir_seen: list[bool] = []
        self.repo_path: Path | None = None

    def add_secret(self, value: str) -> None:
        self.secrets.append(value)

    def describe(self, args: list[str]) -> str:
        return " ".join(["git", *args])

    def run(self, *args: str) -> bool:
        self.commands.append(list(args))
        if self.repo_path is not None:
            self.git_dir_seen.append((self.repo_path / ".git").exists())
        return args[0] not in self.failing

    def remote_url(self, name: str = "origin") -> str:
        return self.remote


def _github(login: str = "octocat") -> Mock:
    github = Mock(spec=GitHubClient)
    github.get_authenticated_login.return_value = login
    github.create_repository.return_value = CreatedRepository(
        full_name=f"{login}/x", html_url=None, private=False
    )
    return github


def _publisher(
    settings: PushSettings,
    repo_dir: Path,
    secret_store: SecretStore,
    *,
    github: Mock | None = None,
    git: FakeGit | None = None,
    prompt: Mock | None = None,
    ssh_key: str | Exception = "ssh-rsa AAAA test\n",
) -> Publisher:
    def ssh_key_provider(path: Path) -> str:
        if isinstance(ssh_key, Exception):
            raise ssh_key
        return ssh_key

    gh = github or _github()
    return Publisher(
        settings,
        repo_path=repo_dir,
        secret_store=secret_store,
        git=git or FakeGit(),
        github_factory=lambda token: gh,
        prompt=prompt or Mock(side_effect=AssertionError("unexpected prompt")),
        ssh_key_provider=ssh_key_provider,
    )


@pytest.mark.parametrize(
    ("name", "private"),
    [("_secret", True), ("_", True), ("public", False), ("a_b", False), ("", False)],
)
def test_visibility_rule(name: str, private: bool) -> None:
    assert is_private_name(name) is private


def test_repository_target_from_directory(tmp_path: Path) -> None:
    assert RepositoryTarget.from_directory(tmp_path / "_lab") == RepositoryTarget("_lab", True)
    assert RepositoryTarget.from_directory(tmp_path / "lab") == RepositoryTarget("lab", False)


def test_repository_target_rejects_filesystem_root() -> None:
    with pytest.raises(WorkingDirectoryError):
        RepositoryTarget.from_directory(Path("/"))


@pytest.mark.parametrize(
    ("login", "owner", "owned"),
    [
        ("octocat", "octocat", True),
        ("OctoCat", "octocat", True),
        ("octocat", "someone-else", False),
        ("", "octocat", False),
        ("octocat", "", False),
        ("", "", False),
    ],
)
def test_ownership_decision(login: str, owner: str, owned: bool) -> None:
    assert OwnershipDecision(authenticated_login=login, remote_owner=owner).owned is owned


def test_build_push_url_embeds_token() -> None:
    assert (
        build_push_url(token="ghp_abc123", host="github.com", owner="octocat", repository="x")
        == "https://ghp_abc123@github.com/octocat/x.git"
    )


def test_git_sequence_order(settings: PushSettings) -> None:
    commands = build_git_sequence(settings, push_url="https://t@github.com/o/r.git")

    assert commands == [
        ["init"],
        ["remote", "remove", "origin"],
        ["pull", "--rebase", "origin", "main"],
        ["pull", "--rebase", "origin", "master"],
        ["reset", "--hard", "origin/main"],
        ["reset", "--hard", "origin/master"],
        ["remote", "add", "origin", "https://t@github.com/o/r.git"],
        ["add", "."],
        ["commit", "-m", "Update"],
        ["push", "-u", "origin", "master", "--force"],
    ]


def test_git_sequence_follows_configured_branches() -> None:
    settings = PushSettings(
        _env_file=None,
        default_branches=["trunk"],
        push_branch="trunk",
        reset_mode="mixed",
    )

    commands = build_git_sequence(settings, push_url="u")

    assert ["pull", "--rebase", "origin", "trunk"] in commands
    assert ["reset", "--mixed", "origin/trunk"] in commands
    assert commands[-1] == ["push", "-u", "origin", "trunk", "--force"]
    assert not any("main" in part for cmd in commands for part in cmd)


def test_stored_token_is_used_without_prompt(
    settings: PushSettings, repo_dir: Path, secret_store: SecretStore
) -> None:
    secret_store.store("ghp_stored")

    assert _publisher(settings, repo_dir, secret_store).acquire_token() == "ghp_stored"


def test_missing_token_prompts_and_persists(
    settings: PushSettings, repo_dir: Path, secret_store: SecretStore
) -> None:
    prompt = Mock(return_value="  ghp_typed \n")

    token = _publisher(settings, repo_dir, secret_store, prompt=prompt).acquire_token()

    assert token == "ghp_typed"
    assert secret_store.load() == "ghp_typed"
    prompt.assert_called_once_with()


@pytest.mark.parametrize(
    "content",
    ["00" * 12 + ":" + "00" * 20, "00" + " " * 22 + ":" + "00" * 20],
)
def test_corrupt_token_file_prompts_again(
    settings: PushSettings, repo_dir: Path, secret_store: SecretStore, content: str
) -> None:
    secret_store.path.parent.mkdir(parents=True, exist_ok=True)
    secret_store.path.write_text(content, encoding="utf-8")
    prompt = Mock(return_value="ghp_new\n")

    token = _publisher(settings, repo_dir, secret_store, prompt=prompt).acquire_token()

    assert token == "ghp_new"
    assert secret_store.load() == "ghp_new"


def test_persist_failure_is_not_fatal(settings: PushSettings, repo_dir: Path) -> None:
    store = Mock(spec=SecretStore)
    store.path = Path("/nonexistent/github.sec")
    store.load.side_effect = SecretNotFoundError("not found")
    store.store.side_effect = SecretWriteError("read-only")
    prompt = Mock(return_value="ghp_typed\n")

    token = _publisher(settings, repo_dir, store, prompt=prompt).acquire_token()

    assert token == "ghp_typed"
    store.store.assert_called_once_with("ghp_typed")


def test_empty_token_is_fatal(
    settings: PushSettings, repo_dir: Path, secret_store: SecretStore
) -> None:
    prompt = Mock(return_value="   \n")
    publisher = _publisher(settings, repo_dir, secret_store, prompt=prompt)

    with pytest.raises(MissingTokenError):
        publisher.acquire_token()
    assert not secret_store.exists()


def test_prompt_failure_propagates(
    settings: PushSettings, repo_dir: Path, secret_store: SecretStore
) -> None:
    prompt = Mock(side_effect=TokenInputError("end of input"))

    with pytest.raises(TokenInputError):
        _publisher(settings, repo_dir, secret_store, prompt=prompt).run()


def test_full_run_happy_path(
    settings: PushSettings, repo_dir: Path, secret_store: SecretStore
) -> None:
    secret_store.store("ghp_abc123")
    github = _github("octocat")
    git = FakeGit()

    report = _publisher(settings, repo_dir, secret_store, github=github, git=git).run()

    github.add_ssh_key.assert_called_once_with(title="rgsshkey", key="ssh-rsa AAAA test\n")
    github.create_repository.assert_called_once_with(
        name="my-project", description="Turing research group.", private=False
    )
    github.close.assert_called_once_with()

    assert report.repository == RepositoryTarget("my-project", False)
    assert report.failed_steps == []
    assert report.history_discarded is False
    assert git.secrets == ["ghp_abc123"]
    assert git.commands[0] == ["init"]
    assert ["remote", "add", "origin", "https://ghp_abc123@github.com/octocat/my-project.git"] in (
        git.commands
    )
    assert (repo_dir / ".gitignore").exists()


def test_private_repository_for_underscore_directory(
    settings: PushSettings, tmp_path: Path, secret_store: SecretStore
) -> None:
    repo = tmp_path / "_private-lab"
    repo.mkdir()
    secret_store.store("ghp_abc123")
    github = _github()

    report = _publisher(settings, repo, secret_store, github=github).run()

    assert report.repository.private is True
    github.create_repository.assert_called_once_with(
        name="_private-lab", description="Turing research group.", private=True
    )


def test_best_effort_failures_do_not_stop_the_run(
    settings: PushSettings, repo_dir: Path, secret_store: SecretStore
) -> None:
    secret_store.store("ghp_abc123")
    github = _github()
    github.add_ssh_key.side_effect = GitHubAPIError("Failed to add SSH key", status_code=422)
    github.create_repository.side_effect = GitHubAPIError(
        "Failed to create repository", status_code=422
    )
    git = FakeGit(failing=("pull", "reset"))

    report = _publisher(settings, repo_dir, secret_store, github=github, git=git).run()

    failed = [s.name for s in report.failed_steps]
    assert failed == ["register_ssh_key", "create_repository", "git", "git", "git", "git"]
    assert git.commands[-1] == ["push", "-u", "origin", "master", "--force"]


def test_ssh_key_failure_skips_registration(
    settings: PushSettings, repo_dir: Path, secret_store: SecretStore
) -> None:
    secret_store.store("ghp_abc123")
    github = _github()

    report = _publisher(
        settings, repo_dir, secret_store, github=github, ssh_key=SSHKeyError("ssh-keygen failed")
    ).run()

    github.add_ssh_key.assert_not_called()
    assert [s.name for s in report.failed_steps] == ["ensure_ssh_key", "register_ssh_key"]
    github.create_repository.assert_called_once()


def test_owned_remote_discards_history_before_init(
    settings: PushSettings, repo_dir: Path, secret_store: SecretStore
) -> None:
    secret_store.store("ghp_abc123")
    (repo_dir / ".git" / "objects").mkdir(parents=True)
    (repo_dir / ".git" / "HEAD").write_text("ref: refs/heads/master\n", encoding="utf-8")
    git = FakeGit(remote="https://github.com/OctoCat/my-project.git")
    git.repo_path = repo_dir

    report = _publisher(
        settings, repo_dir, secret_store, github=_github("octocat"), git=git
    ).run()

    assert report.ownership == OwnershipDecision("octocat", "OctoCat")
    assert report.history_discarded is True
    assert git.commands[0] == ["init"]
    assert git.git_dir_seen[0] is False


def test_foreign_remote_keeps_history(
    settings: PushSettings, repo_dir: Path, secret_store: SecretStore
) -> None:
    secret_store.store("ghp_abc123")
    (repo_dir / ".git").mkdir()
    git = FakeGit(remote="git@github.com:someone-else/my-project.git")
    git.repo_path = repo_dir

    report = _publisher(
        settings, repo_dir, secret_store, github=_github("octocat"), git=git
    ).run()

    assert report.history_discarded is False
    assert (repo_dir / ".git").is_dir()
    assert git.git_dir_seen[0] is True


def test_unresolved_login_keeps_history(
    settings: PushSettings, repo_dir: Path, secret_store: SecretStore
) -> None:
    secret_store.store("ghp_abc123")
    (repo_dir / ".git").mkdir()
    github = _github()
    github.get_authenticated_login.side_effect = GitHubAPIError("Failed to get user info")
    git = FakeGit(remote="https://github.com/octocat/my-project.git")

    report = _publisher(settings, repo_dir, secret_store, github=github, git=git).run()

    assert report.ownership is not None
    assert report.ownership.owned is False
    assert (repo_dir / ".git").is_dir()
