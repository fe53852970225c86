"""Summary: Tests for the secret cipher and key resolution.

Importance: Stored credentials and tokens are only as safe as this layer.
Alternatives: Trust the cryptography library without integration checks.
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path

import pytest

from socialpilot.cipher import SecretCipher, generate_encryption_key, resolve_encryption_key
from socialpilot.errors import DecryptionError


KEY = "unit-test-key-with-enough-characters-0001"


@pytest.mark.parametrize(
    "plaintext",
    ["", "token", "ünïcødé ✓ 🔐", '{"client_id": "123", "client_secret": "a:b"}', "x" * 1000],
)
def test_roundtrip(plaintext: str) -> None:
    cipher = SecretCipher(KEY)
    assert cipher.decrypt(cipher.encrypt(plaintext)) == plaintext


def test_encrypt_uses_fresh_iv() -> None:
    cipher = SecretCipher(KEY)
    first = cipher.encrypt("same")
    second = cipher.encrypt("same")
    assert first != second
    iv_hex, body = first.split(":")
    assert len(bytes.fromhex(iv_hex)) == 16
    base64.b64decode(body, validate=True)


def test_any_flipped_ciphertext_byte_is_rejected() -> None:
    """Summary: Flip each byte of the encrypted body and expect DecryptionError.

    Importance: Tampered data must never decrypt to wrong plaintext silently.
    Alternatives: Rely on padding errors to catch corruption.
    """

    cipher = SecretCipher(KEY)
    iv_hex, body = cipher.encrypt("sensitive access token").split(":")
    raw = base64.b64decode(body)
    for index in range(len(raw)):
        tampered = bytearray(raw)
        tampered[index] ^= 0x01
        payload = iv_hex + ":" + base64.b64encode(bytes(tampered)).decode("ascii")
        with pytest.raises(DecryptionError):
            cipher.decrypt(payload)


def test_flipped_iv_is_rejected() -> None:
    cipher = SecretCipher(KEY)
    iv_hex, body = cipher.encrypt("value").split(":")
    iv = bytearray(bytes.fromhex(iv_hex))
    iv[0] ^= 0xFF
    with pytest.raises(DecryptionError):
        cipher.decrypt(bytes(iv).hex() + ":" + body)


def test_wrong_key_is_rejected() -> None:
    payload = SecretCipher(KEY).encrypt("value")
    with pytest.raises(DecryptionError):
        SecretCipher("a-different-key-after-a-restart-000000").decrypt(payload)


@pytest.mark.parametrize(
    "payload",
    [
        "no-delimiter",
        "a:b:c",
        "zz:AAAA",
        "00ff:AAAA",
        "00112233445566778899aabbccddeeff:not base64!",
        "00112233445566778899aabbccddeeff:" + base64.b64encode(b"short").decode("ascii"),
        "00112233445566778899aabbccddeeff:",
    ],
)
def test_malformed_payloads_are_rejected(payload: str) -> None:
    with pytest.raises(DecryptionError):
        SecretCipher(KEY).decrypt(payload)


def test_configured_key_wins(tmp_path: Path) -> None:
    key_path = tmp_path / ".encryption_key"
    key_path.write_text("f" * 64, encoding="utf-8")
    assert resolve_encryption_key("configured", str(key_path)) == "configured"


def test_key_file_is_reused(tmp_path: Path) -> None:
    key_path = tmp_path / ".encryption_key"
    key_path.write_text("a" * 40, encoding="utf-8")
    assert resolve_encryption_key(None, str(key_path)) == "a" * 40


def test_short_key_file_is_replaced(tmp_path: Path) -> None:
    key_path = tmp_path / ".encryption_key"
    key_path.write_text("short", encoding="utf-8")
    key = resolve_encryption_key(None, str(key_path))
    assert len(key) == 64
    assert key_path.read_text(encoding="utf-8") == key


def test_generated_key_is_persisted_and_reused(tmp_path: Path) -> None:
    key_path = tmp_path / ".encryption_key"
    key = resolve_encryption_key(None, str(key_path))
    assert key_path.read_text(encoding="utf-8") == key
    resolve_encryption_key.cache_clear()
    assert resolve_encryption_key(None, str(key_path)) == key


def test_unwritable_key_path_falls_back_to_memory(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    key_path = tmp_path / "missing-dir" / ".encryption_key"
    with caplog.at_level(logging.WARNING, logger="socialpilot.cipher"):
        key = resolve_encryption_key(None, str(key_path))
    assert len(key) == 64
    assert not key_path.exists()
    assert "will not persist" in caplog.text


def test_key_resolution_happens_once_per_process(tmp_path: Path) -> None:
    key_path = tmp_path / ".encryption_key"
    first = resolve_encryption_key(None, str(key_path))
    key_path.write_text("b" * 64, encoding="utf-8")
    assert resolve_encryption_key(None, str(key_path)) == first


def test_generate_encryption_key_is_hex() -> None:
    key = generate_encryption_key()
    assert len(bytes.fromhex(key)) == 32
