"""
At-rest encryption for the GitHub token kept in the sync config.

A stored token is urlsafe base64 of ``salt | iv | AES-256-CBC ciphertext``.
The AES key comes from the master key through PBKDF2-SHA256 with the
per-token salt, so two saves of the same token never look alike.
"""

import base64
import binascii
import os
from typing import Optional, Tuple

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

SALT_SIZE = 16
IV_SIZE = 16
KDF_ITERATIONS = 100000
BLOCK_BYTES = algorithms.AES.block_size // 8


class EncryptionError(Exception):
    """A token could not be encrypted, or a stored value could not be decrypted."""
    pass


class CredentialEncryption:
    """Encrypts the sync token with a key derived from ``master_key``."""

    def __init__(self, master_key: Optional[str] = None):
        # Without a master key, tokens only survive for this process
        self._master_key = (master_key or base64.urlsafe_b64encode(os.urandom(32)).decode("ascii")).encode("utf-8")
        self._backend = default_backend()

    def _cipher(self, salt: bytes, iv: bytes) -> Cipher:
        key = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=KDF_ITERATIONS,
            backend=self._backend,
        ).derive(self._master_key)
        return Cipher(algorithms.AES(key), modes.CBC(iv), backend=self._backend)

    def encrypt_credential(self, credential: str) -> str:
        """Return the storable form of ``credential``."""
        if not isinstance(credential, str):
            raise EncryptionError("Credential must be a string")
        if not credential.strip():
            raise EncryptionError("Credential cannot be empty")

        salt, iv = os.urandom(SALT_SIZE), os.urandom(IV_SIZE)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        plaintext = padder.update(credential.encode("utf-8")) + padder.finalize()

        encryptor = self._cipher(salt, iv).encryptor()
        ciphertext = encryptor.update(plaintext) + encryptor.finalize()
        return base64.urlsafe_b64encode(salt + iv + ciphertext).decode("ascii")

    def decrypt_credential(self, encrypted_credential: str) -> str:
        """
        Recover a token written by ``encrypt_credential``.

        Raises:
            EncryptionError: for malformed input, or when the value was
                written with another master key
        """
        salt, iv, ciphertext = _split(encrypted_credential)

        try:
            decryptor = self._cipher(salt, iv).decryptor()
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            return (unpadder.update(plaintext) + unpadder.finalize()).decode("utf-8")
        except ValueError as e:
            # Bad padding or bad UTF-8 both mean the key does not match
            raise EncryptionError(f"Failed to decrypt credential: {e}")


def _split(encrypted_credential: str) -> Tuple[bytes, bytes, bytes]:
    if not isinstance(encrypted_credential, str) or not encrypted_credential.strip():
        raise EncryptionError("Encrypted credential must be a non-empty string")

    try:
        raw = base64.urlsafe_b64decode(encrypted_credential.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError):
        raise EncryptionError("Invalid base64 encoding")

    ciphertext = raw[SALT_SIZE + IV_SIZE:]
    if not ciphertext or len(ciphertext) % BLOCK_BYTES:
        raise EncryptionError("Invalid encrypted credential format")
    return raw[:SALT_SIZE], raw[SALT_SIZE:SALT_SIZE + IV_SIZE], ciphertext
