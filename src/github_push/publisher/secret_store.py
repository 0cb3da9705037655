"""Encrypted at-rest storage for the GitHub token.

The token is sealed with AES-GCM under a key supplied by the caller and written
as `<hex nonce>:<hex ciphertext+tag>` to a single file readable only by its
owner. A fresh 12-byte nonce is drawn for every write.

The default key is a fixed constant (see `PushSettings.secret_key`), so the
file is obfuscated rather than protected. Changing the key makes previously
written files unreadable; they are treated like a missing token.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from github_push.publisher.errors import (
    CorruptSecretError,
    SecretDecryptionError,
    SecretNotFoundError,
    SecretReadError,
    SecretWriteError,
)

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
TAG_SIZE = 16
DELIMITER = ":"
_NONCE_HEX_WIDTH = NONCE_SIZE * 2
_HEX_RE = re.compile(r"[0-9a-fA-F]*")


class SecretStore:
    """Reads and writes one encrypted string at a fixed path."""

    def __init__(self, path: Path, key: bytes) -> None:
        """Initialize the store.

        Args:
            path: File holding the encrypted blob.
            key: AES key (16, 24 or 32 bytes).

        Raises:
            ValueError: If the key has an unsupported length.
        """
        if len(key) not in (16, 24, 32):
            raise ValueError("AES key must be 16, 24 or 32 bytes")

        self._path = path
        self._aead = AESGCM(key)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def encrypt(self, plaintext: str) -> str:
        """Seal `plaintext` and return the serialised blob."""

        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return nonce.hex() + DELIMITER + ciphertext.hex()

    def decrypt(self, blob: str) -> str:
        """Open a serialised blob.

        Raises:
            CorruptSecretError: If the blob is not well formed.
            SecretDecryptionError: If authentication fails.
        """
        nonce_hex, sep, ciphertext_hex = blob.strip().partition(DELIMITER)
        if not sep:
            raise CorruptSecretError("Stored token has no nonce delimiter")
        if len(nonce_hex) != _NONCE_HEX_WIDTH:
            raise CorruptSecretError(
                f"Stored token nonce must be {_NONCE_HEX_WIDTH} hex characters, got {len(nonce_hex)}"
            )

        # bytes.fromhex skips whitespace, so the fields are matched strictly first.
        if not (_HEX_RE.fullmatch(nonce_hex) and _HEX_RE.fullmatch(ciphertext_hex)):
            raise CorruptSecretError("Stored token is not valid hex")

        try:
            nonce = bytes.fromhex(nonce_hex)
            ciphertext = bytes.fromhex(ciphertext_hex)
        except ValueError as e:
            raise CorruptSecretError(f"Stored token is not valid hex: {e}") from e

        if len(nonce) != NONCE_SIZE:
            raise CorruptSecretError(f"Stored token nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")

        if len(ciphertext) < TAG_SIZE:
            raise CorruptSecretError("Stored token ciphertext is shorter than the authentication tag")

        try:
            plaintext = self._aead.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise SecretDecryptionError(
                "Stored token failed authentication (tampered file or wrong key)"
            ) from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptSecretError("Stored token is not valid UTF-8") from e

    def store(self, plaintext: str) -> None:
        """Encrypt and persist `plaintext`, replacing any previous value.

        Raises:
            SecretWriteError: If the file cannot be written.
        """
        blob = self.encrypt(plaintext)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(blob)
            # An existing file keeps its old mode through O_TRUNC.
            os.chmod(self._path, 0o600)
        except OSError as e:
            raise SecretWriteError(f"Failed to write token file {self._path}: {e}") from e

        logger.info("Token stored", extra={"path": str(self._path)})

    def load(self) -> str:
        """Read and decrypt the stored value.

        Raises:
            SecretNotFoundError: If nothing has been stored.
            SecretReadError: If the file cannot be read.
            CorruptSecretError: If the file content is malformed.
            SecretDecryptionError: If authentication fails.
        """
        try:
            blob = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise SecretNotFoundError(f"No token stored at {self._path}") from e
        except UnicodeDecodeError as e:
            raise CorruptSecretError(f"Token file {self._path} is not text") from e
        except OSError as e:
            raise SecretReadError(f"Failed to read token file {self._path}: {e}") from e

        plaintext = self.decrypt(blob)
        logger.debug("Token loaded", extra={"path": str(self._path)})
        return plaintext
