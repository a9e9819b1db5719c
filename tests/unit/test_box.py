"""Tests for Box encryption."""

import base64

import pytest
from lockbox import Box, KeyMaterial, ProtectedModeGuard, generate_key, get_default_guard, protected_mode
from lockbox.box import NONCE_SIZE, TAG_SIZE
from lockbox.exceptions import ConfigurationError, DecryptionError

KEY = generate_key()


def test_encrypt_decrypt_text():
    box = Box(KEY, encode=True)

    ciphertext = box.encrypt("test@example.org")

    assert isinstance(ciphertext, str)
    assert box.decrypt_str(ciphertext) == "test@example.org"
    assert box.decrypt(ciphertext) == b"test@example.org"


def test_encrypt_binary_envelope():
    """Raw envelope is nonce + ciphertext + tag."""
    box = Box(KEY)

    ciphertext = box.encrypt(b"secret")

    assert isinstance(ciphertext, bytes)
    assert len(ciphertext) == NONCE_SIZE + len(b"secret") + TAG_SIZE
    assert box.decrypt(ciphertext) == b"secret"


def test_encrypt_uses_fresh_nonce():
    box = Box(KEY, encode=True)

    assert box.encrypt("same") != box.encrypt("same")


def test_encoded_ciphertext_is_base64():
    box = Box(KEY, encode=True)

    raw = base64.b64decode(box.encrypt("x"), validate=True)

    assert len(raw) == NONCE_SIZE + 1 + TAG_SIZE


def test_accepts_raw_key_bytes():
    box = Box(bytes.fromhex(KEY), encode=True)

    assert Box(KEY, encode=True).decrypt_str(box.encrypt("hi")) == "hi"


def test_wrong_key_fails():
    ciphertext = Box(KEY, encode=True).encrypt("secret")

    with pytest.raises(DecryptionError, match="Decryption failed"):
        Box(generate_key(), encode=True).decrypt(ciphertext)


def test_tampered_ciphertext_fails():
    box = Box(KEY)
    ciphertext = bytearray(box.encrypt(b"secret"))
    ciphertext[-1] ^= 0x01

    with pytest.raises(DecryptionError):
        box.decrypt(bytes(ciphertext))


@pytest.mark.parametrize(
    "encode,ciphertext",
    [
        pytest.param(True, "not base64!", id="bad-base64"),
        pytest.param(True, base64.b64encode(b"short").decode(), id="too-short-encoded"),
        pytest.param(False, b"short", id="too-short-binary"),
        pytest.param(False, "text", id="text-for-binary"),
    ],
)
def test_malformed_ciphertext_fails(encode, ciphertext):
    with pytest.raises(DecryptionError):
        Box(KEY, encode=encode).decrypt(ciphertext)


def test_previous_versions_decrypt():
    """Old ciphertext still decrypts after rotating to a new key."""
    old_key = generate_key()
    old_ciphertext = Box(old_key, encode=True).encrypt("secret")

    box = Box(KEY, encode=True, previous_versions=[old_key])

    assert box.decrypt_str(old_ciphertext) == "secret"
    # New writes use the primary key
    assert Box(KEY, encode=True).decrypt_str(box.encrypt("new")) == "new"


def test_key_material_candidates():
    old_key = generate_key()
    material = KeyMaterial(key=bytes.fromhex(KEY), previous=(bytes.fromhex(old_key),))

    box = Box(material, encode=True)

    assert box.decrypt_str(Box(old_key, encode=True).encrypt("secret")) == "secret"


def test_decrypt_str_invalid_utf8():
    box = Box(KEY, encode=True)

    with pytest.raises(DecryptionError, match="UTF-8"):
        box.decrypt_str(box.encrypt(b"\xff\xfe"))


def test_unknown_algorithm():
    with pytest.raises(ConfigurationError, match="Unsupported algorithm"):
        Box(KEY, algorithm="xsalsa20")


@pytest.mark.parametrize(
    "key",
    [
        pytest.param("abc", id="short-hex"),
        pytest.param("z" * 64, id="not-hex"),
        pytest.param(b"\x00" * 16, id="short-bytes"),
    ],
)
def test_invalid_key(key):
    with pytest.raises(ConfigurationError):
        Box(key)


def test_repr_has_no_key():
    assert KEY not in repr(Box(KEY))


def test_protected_mode_returns_ciphertext():
    """No decryption while the guard is enabled, the input comes back as is."""
    guard = ProtectedModeGuard(name="test_box")
    box = Box(KEY, encode=True, guard=guard)
    ciphertext = box.encrypt("secret")

    guard.enable()

    assert box.decrypt(ciphertext) == ciphertext
    assert box.decrypt_str(ciphertext) == ciphertext
    assert box.decrypt("not even base64!") == "not even base64!"

    guard.disable()

    assert box.decrypt_str(ciphertext) == "secret"


def test_protected_mode_still_encrypts():
    guard = ProtectedModeGuard(enabled=True, name="test_box")
    box = Box(KEY, encode=True, guard=guard)

    ciphertext = box.encrypt("secret")

    assert Box(KEY, encode=True, guard=ProtectedModeGuard()).decrypt_str(ciphertext) == "secret"


def test_default_guard():
    box = Box(KEY, encode=True)
    ciphertext = box.encrypt("secret")

    assert box.guard is get_default_guard()
    with protected_mode():
        assert box.decrypt_str(ciphertext) == ciphertext
    assert box.decrypt_str(ciphertext) == "secret"
