"""Unit tests for SSH key generate-if-absent handling."""

from __future__ import annotations

import os
import stat
import subprocess
from pathlib import Path
from typing import Any

import pytest

from github_push.publisher.errors import SSHKeyError
from github_push.publisher.ssh_keys import ensure_ssh_key, private_key_path


def _fake_keygen(calls: list[list[str]]) -> Any:
    def fake_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        calls.append(cmd)
        private = Path(cmd[cmd.index("-f") + 1])
        private.write_text("PRIVATE", encoding="utf-8")
        Path(f"{private}.pub").write_text("ssh-rsa AAAAB3Nza generated\n", encoding="utf-8")
        return subprocess.CompletedProcess(args=cmd, returncode=0)

    return fake_run


def test_private_key_path_strips_pub_suffix(tmp_path: Path) -> None:
    assert private_key_path(tmp_path / "id_rsa.pub") == tmp_path / "id_rsa"


def test_existing_key_is_read_without_generation(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    public = tmp_path / ".ssh" / "id_rsa.pub"
    public.parent.mkdir()
    public.write_text("ssh-rsa AAAA existing\n", encoding="utf-8")

    def fail_run(*args: Any, **kwargs: Any) -> None:
        raise AssertionError("ssh-keygen must not run")

    monkeypatch.setattr("github_push.publisher.ssh_keys.subprocess.run", fail_run)

    assert ensure_ssh_key(public) == "ssh-rsa AAAA existing\n"


def test_missing_key_is_generated_once(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr("github_push.publisher.ssh_keys.subprocess.run", _fake_keygen(calls))
    public = tmp_path / ".ssh" / "id_rsa.pub"

    key = ensure_ssh_key(public)
    again = ensure_ssh_key(public)

    assert key == again == "ssh-rsa AAAAB3Nza generated\n"
    assert calls == [
        [
            "ssh-keygen",
            "-t",
            "rsa",
            "-b",
            "4096",
            "-f",
            str(tmp_path / ".ssh" / "id_rsa"),
            "-N",
            "",
        ]
    ]


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_key_directory_is_owner_only(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("github_push.publisher.ssh_keys.subprocess.run", _fake_keygen([]))
    public = tmp_path / ".ssh" / "id_rsa.pub"

    old_umask = os.umask(0o022)
    try:
        ensure_ssh_key(public)
    finally:
        os.umask(old_umask)

    assert stat.S_IMODE(public.parent.stat().st_mode) == 0o700


def test_keygen_failure_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "github_push.publisher.ssh_keys.subprocess.run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(args=cmd, returncode=1),
    )

    with pytest.raises(SSHKeyError, match="ssh-keygen failed"):
        ensure_ssh_key(tmp_path / ".ssh" / "id_rsa.pub")


def test_missing_keygen_binary_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(cmd: list[str], **kwargs: Any) -> None:
        raise FileNotFoundError("ssh-keygen")

    monkeypatch.setattr("github_push.publisher.ssh_keys.subprocess.run", fake_run)

    with pytest.raises(SSHKeyError, match="Failed to execute"):
        ensure_ssh_key(tmp_path / ".ssh" / "id_rsa.pub")
