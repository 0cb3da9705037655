"""Generate-if-absent handling for the operator's SSH keypair."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from github_push.publisher.errors import SSHKeyError

logger = logging.getLogger(__name__)

KEY_TYPE = "rsa"
KEY_BITS = 4096


def private_key_path(public_key_path: Path) -> Path:
    """Return the private key path paired with `public_key_path`."""

    if public_key_path.suffix == ".pub":
        return public_key_path.with_suffix("")
    return public_key_path


def generate_ssh_key(public_key_path: Path) -> None:
    """Run ssh-keygen to create an RSA 4096 keypair with no passphrase.

    The enclosing directory is created with owner-only permissions. ssh-keygen
    writes straight to the terminal.

    Raises:
        SSHKeyError: If the directory cannot be created or ssh-keygen fails.
    """
    key_dir = public_key_path.parent
    try:
        key_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise SSHKeyError(f"Failed to create {key_dir}: {e}") from e

    cmd = [
        "ssh-keygen",
        "-t",
        KEY_TYPE,
        "-b",
        str(KEY_BITS),
        "-f",
        str(private_key_path(public_key_path)),
        "-N",
        "",
    ]
    logger.debug("Running: %s", " ".join(cmd))
    try:
        completed = subprocess.run(cmd, check=False)
    except OSError as e:
        raise SSHKeyError(f"Failed to execute ssh-keygen: {e}") from e

    if completed.returncode != 0:
        raise SSHKeyError(f"ssh-keygen failed with exit code {completed.returncode}")


def ensure_ssh_key(public_key_path: Path) -> str:
    """Return the public key text, generating the keypair first if needed.

    Raises:
        SSHKeyError: If generation fails or the public key cannot be read.
    """
    if not public_key_path.exists():
        logger.info("SSH key not found, generating a new one", extra={"path": str(public_key_path)})
        generate_ssh_key(public_key_path)

    try:
        return public_key_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SSHKeyError(f"Failed to read SSH key {public_key_path}: {e}") from e
