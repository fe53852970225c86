"""Summary: Symmetric encryption for credentials and tokens at rest.

Importance: Keeps app secrets and OAuth tokens unreadable in cookies and the database.
Alternatives: Use Fernet tokens or an external secrets manager.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import secrets
from functools import lru_cache
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from socialpilot.errors import DecryptionError


logger = logging.getLogger(__name__)

IV_LENGTH = 16
TAG_LENGTH = 32
MIN_KEY_LENGTH = 32
DELIMITER = ":"


def generate_encryption_key() -> str:
    """Generate a new random key string suitable for ENCRYPTION_KEY."""

    return secrets.token_bytes(32).hex()


@lru_cache(maxsize=None)
def resolve_encryption_key(configured_key: str | None, key_path: str) -> str:
    """Summary: Resolve the process-wide encryption key.

    Importance: Keeps previously encrypted data readable across restarts.
    Alternatives: Require ENCRYPTION_KEY in every environment.
    """

    if configured_key:
        logger.info("Using configured encryption key (first 8 chars): %s...", configured_key[:8])
        return configured_key
    path = Path(key_path)
    if path.exists():
        stored = path.read_text(encoding="utf-8").strip()
        if len(stored) >= MIN_KEY_LENGTH:
            logger.info("Using encryption key from %s (first 8 chars): %s...", path, stored[:8])
            return stored
        logger.warning("Ignoring encryption key file %s: key is too short.", path)
    key = generate_encryption_key()
    try:
        _write_private_file(path, key)
        logger.info("Generated new encryption key at %s.", path)
    except OSError as exc:
        logger.warning(
            "Failed to write encryption key to %s (%s). "
            "The key will not persist between restarts.",
            path,
            exc,
        )
    return key


def _write_private_file(path: Path, content: str) -> None:
    descriptor = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(descriptor, "w", encoding="utf-8") as handle:
        handle.write(content)


class SecretCipher:
    """Summary: AES-256-CBC encryption with an HMAC-SHA256 integrity tag.

    Importance: Makes wrong-key, truncated, or tampered payloads fail loudly.
    Alternatives: Use AES-GCM or Fernet with a different wire format.
    """

    def __init__(self, key: str) -> None:
        """Summary: Derive the encryption and MAC keys from a key string.

        Importance: Accepts keys of any length from env, file, or generator.
        Alternatives: Require exactly 32 raw bytes.
        """

        if not key:
            raise ValueError("Encryption key must not be empty")
        material = HKDF(
            algorithm=hashes.SHA256(),
            length=64,
            salt=None,
            info=b"socialpilot secret cipher",
        ).derive(key.encode("utf-8"))
        self._enc_key = material[:32]
        self._mac_key = material[32:]

    def encrypt(self, plaintext: str) -> str:
        """Summary: Encrypt text into "<iv hex>:<base64 ciphertext+tag>".

        Importance: A fresh IV per call keeps equal plaintexts unlinkable.
        Alternatives: Use a deterministic nonce derived from the plaintext.
        """

        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._enc_key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        tag = self._tag(iv, ciphertext)
        body = base64.b64encode(ciphertext + tag).decode("ascii")
        return iv.hex() + DELIMITER + body

    def decrypt(self, payload: str) -> str:
        """Summary: Decrypt a payload produced by encrypt.

        Importance: Never returns wrong plaintext; every failure is a DecryptionError.
        Alternatives: Return None on failure and let callers guess why.
        """

        parts = payload.split(DELIMITER)
        if len(parts) != 2:
            raise DecryptionError("Invalid encrypted data format")
        iv_hex, body = parts
        try:
            iv = bytes.fromhex(iv_hex)
        except ValueError as exc:
            raise DecryptionError("Invalid initialization vector") from exc
        if len(iv) != IV_LENGTH:
            raise DecryptionError("Invalid initialization vector")
        try:
            raw = base64.b64decode(body.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise DecryptionError("Invalid ciphertext encoding") from exc
        ciphertext, tag = raw[:-TAG_LENGTH], raw[-TAG_LENGTH:]
        if len(raw) < TAG_LENGTH + IV_LENGTH or len(ciphertext) % IV_LENGTH:
            raise DecryptionError("Truncated ciphertext")
        verifier = hmac.HMAC(self._mac_key, hashes.SHA256())
        verifier.update(iv + ciphertext)
        try:
            verifier.verify(tag)
        except InvalidSignature as exc:
            raise DecryptionError(
                "Failed to decrypt data. This could be due to an encryption key change."
            ) from exc
        decryptor = Cipher(algorithms.AES(self._enc_key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as exc:
            raise DecryptionError("Failed to decrypt data") from exc

    def _tag(self, iv: bytes, ciphertext: bytes) -> bytes:
        signer = hmac.HMAC(self._mac_key, hashes.SHA256())
        signer.update(iv + ciphertext)
        return signer.finalize()
