"""
Encrypted archive password at rest.

The configuration may carry 'password_encrypted' instead of 'password'.
Its value is a plain Fernet token as printed by ``vaultkeep
encrypt-password`` (urlsafe base64, starting with ``gAAAAA``). The Fernet
key is derived with PBKDF2-SHA256 from the VAULTKEEP_SECRET_KEY
environment variable, which never lives in the configuration file.
"""

import os
import base64
from typing import Optional

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC


SECRET_KEY_ENV = 'VAULTKEEP_SECRET_KEY'

# Changing either value invalidates every stored token
KDF_SALT = b'vaultkeep_master_key_salt_v1'
KDF_ITERATIONS = 480000


def derive_fernet_key(secret_key: str) -> bytes:
    """Derive the urlsafe-base64 Fernet key for a master secret."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=KDF_SALT,
        iterations=KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret_key.encode()))


class MasterKeyManager:
    """Encrypts and decrypts archive passwords under one master secret."""

    def __init__(self, secret_key: str):
        self._fernet = Fernet(derive_fernet_key(secret_key))

    def encrypt_password(self, password: str) -> str:
        """
        Encrypt a password for the configuration file.

        Returns:
            Fernet token as text
        """
        return self._fernet.encrypt(password.encode()).decode()

    def decrypt_password(self, token: str) -> str:
        """
        Decrypt a 'password_encrypted' value.

        Raises:
            cryptography.fernet.InvalidToken: If the secret key is wrong or the token is corrupted
            ValueError: If the token holds non-ASCII characters
        """
        return self._fernet.decrypt(token.encode('ascii')).decode()


def get_master_key_manager(secret_key: Optional[str] = None) -> MasterKeyManager:
    """
    Create a MasterKeyManager from an explicit secret or $VAULTKEEP_SECRET_KEY.

    Raises:
        RuntimeError: If no secret key is available
    """
    secret_key = secret_key or os.environ.get(SECRET_KEY_ENV)

    if not secret_key:
        raise RuntimeError(f"{SECRET_KEY_ENV} not set - cannot initialize MasterKeyManager")

    return MasterKeyManager(secret_key)
