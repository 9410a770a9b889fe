"""Encryption for secrets stored in the settings record.

The feed reader password is the only secret Blogroll Sync keeps. When
``BLOGROLL_SYNC_ENCRYPTION_KEY`` is set it is encrypted at rest with Fernet
(AES-128-CBC plus HMAC, URL-safe base64 tokens).

Key generation:
    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

import os
import logging
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

ENCRYPTION_KEY_ENV = "BLOGROLL_SYNC_ENCRYPTION_KEY"


class EncryptionService:
    """Encrypt and decrypt short strings with a Fernet key.

    Example:
        >>> service = EncryptionService(Fernet.generate_key().decode())
        >>> service.decrypt(service.encrypt("secret"))
        'secret'
    """

    def __init__(self, encryption_key: Optional[str] = None):
        """Initialize encryption service.

        Args:
            encryption_key: Base64-encoded Fernet key (default: from env var)

        Raises:
            ValueError: If encryption key is not configured or invalid
        """
        key_str = encryption_key or os.getenv(ENCRYPTION_KEY_ENV)

        if not key_str:
            raise ValueError(
                f"Encryption key not configured. Set {ENCRYPTION_KEY_ENV} environment variable."
            )

        try:
            self.cipher = Fernet(key_str.encode("utf-8"))
        except (ValueError, TypeError) as e:
            raise ValueError(
                f"Invalid encryption key format: {e}. "
                "Key must be a valid base64-encoded Fernet key (44 characters)."
            )
        self.key = key_str

    def encrypt(self, plaintext: str) -> str:
        """Encrypt ``plaintext``; the empty string stays empty.

        Raises:
            ValueError: If plaintext is None
        """
        if plaintext is None:
            raise ValueError("Cannot encrypt None value")

        if plaintext == "":
            return ""

        return self.cipher.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a token produced by :meth:`encrypt`.

        Raises:
            ValueError: If ciphertext is None, tampered with, or was
                encrypted with a different key
        """
        if ciphertext is None:
            raise ValueError("Cannot decrypt None value")

        if ciphertext == "":
            return ""

        try:
            return self.cipher.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken:
            logger.error("Decryption failed: Invalid token (wrong key or tampered data)")
            raise ValueError(
                "Failed to decrypt data. The encryption key may have changed; "
                "re-enter the password in Settings."
            )


_encryption_service: Optional[EncryptionService] = None


def get_encryption_service() -> EncryptionService:
    """Return the shared service, rebuilding it if the configured key changed.

    Raises:
        ValueError: If encryption key is not configured
    """
    global _encryption_service

    key = os.getenv(ENCRYPTION_KEY_ENV)
    if _encryption_service is None or _encryption_service.key != key:
        _encryption_service = EncryptionService(key)

    return _encryption_service


def is_encryption_configured() -> bool:
    """True if an encryption key is present in the environment."""
    return bool(os.getenv(ENCRYPTION_KEY_ENV))
