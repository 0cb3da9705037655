"""Test configuration and fixtures."""

from pathlib import Path

import pytest

from github_push.publisher.config import PushSettings
from github_push.publisher.secret_store import SecretStore

TEST_KEY = bytes(range(32))


@pytest.fixture
def fake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point Path.home() at a temporary directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    return home


@pytest.fixture
def repo_dir(tmp_path: Path) -> Path:
    """Provide an empty project directory to publish."""
    repo = tmp_path / "my-project"
    repo.mkdir()
    return repo


@pytest.fixture
def settings(tmp_path: Path) -> PushSettings:
    """Provide settings isolated from the environment and the real home directory."""
    return PushSettings(
        _env_file=None,
        secret_file=tmp_path / "secrets" / "github.sec",
        ssh_public_key_path=tmp_path / "ssh" / "id_rsa.pub",
        log_level="DEBUG",
    )


@pytest.fixture
def secret_store(settings: PushSettings) -> SecretStore:
    """Provide a secret store backed by a temporary file."""
    return SecretStore(settings.resolve_secret_file(), TEST_KEY)
