# -*- coding: utf-8 -*-
"""Encryption at rest for provider credentials."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ..constant import SECRET_KEY_ENV, SECRET_KEY_FILE

logger = logging.getLogger(__name__)

# Marks an encrypted value; anything else is a plaintext key written before
# encryption was enabled and is re-encrypted on the next save.
ENCRYPTED_PREFIX = "enc:"


class CredentialCipher:
    """Fernet wrapper that encrypts single string values."""

    def __init__(self, key: bytes):
        self._fernet = Fernet(key)

    @classmethod
    def for_store(cls, store_path: Path) -> "CredentialCipher":
        """Cipher for the store at *store_path*.

        The key comes from ``$LLMSETTINGS_SECRET_KEY`` or from
        ``providers.key`` beside the store, generated on first use.
        """
        return cls(_load_key(store_path.parent))

    def encrypt(self, value: str) -> str:
        if not value:
            return ""
        token = self._fernet.encrypt(value.encode("utf-8"))
        return ENCRYPTED_PREFIX + token.decode("ascii")

    def decrypt(self, value: str) -> str:
        if not value.startswith(ENCRYPTED_PREFIX):
            return value
        token = value[len(ENCRYPTED_PREFIX):].encode("ascii")
        try:
            return self._fernet.decrypt(token).decode("utf-8")
        except InvalidToken:
            logger.error(
                "Stored API key cannot be decrypted with the current key; "
                "treating it as unset",
            )
            return ""


def is_encrypted(value: str) -> bool:
    return value.startswith(ENCRYPTED_PREFIX)


def _load_key(root: Path, key: Optional[bytes] = None) -> bytes:
    if key is not None:
        return key
    env_key = os.environ.get(SECRET_KEY_ENV)
    if env_key:
        return env_key.encode("utf-8")
    key_path = root / SECRET_KEY_FILE
    if key_path.is_file():
        return key_path.read_bytes().strip()

    generated = Fernet.generate_key()
    root.mkdir(parents=True, exist_ok=True)
    key_path.write_bytes(generated)
    _safe_chmod(key_path)
    logger.info("Generated credential key at %s", key_path)
    return generated


def _safe_chmod(path: Path) -> None:
    try:
        os.chmod(path, 0o600)
    except OSError:
        return
