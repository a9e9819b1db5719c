"""Symmetric authenticated encryption for single values.

A Box encrypts with AES-256-GCM. The stored envelope is
nonce (12 bytes) + ciphertext + tag (16 bytes), optionally base64 encoded so
it fits in a text column.

Example:
    >>> from lockbox import Box, generate_key
    >>> box = Box(key=generate_key(), encode=True)
    >>> ciphertext = box.encrypt("secret")
    >>> box.decrypt_str(ciphertext)
    'secret'
"""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from lockbox.exceptions import ConfigurationError, DecryptionError
from lockbox.keys import KeyMaterial, RawKey, decode_key
from lockbox.protected import ProtectedModeGuard, get_default_guard

ALGORITHM_AES_GCM = "aes-gcm"

NONCE_SIZE = 12
TAG_SIZE = 16


class Box:
    """Encrypt and decrypt values with one key, or several during rotation.

    Args:
        key: 32 raw bytes, 64 hex characters, or a KeyMaterial. A KeyMaterial
            brings its previous keys along for decryption.
        encode: If True, ciphertext is base64 text. Otherwise raw bytes.
        previous_versions: Older keys to try when decrypting, newest first.
        algorithm: Only "aes-gcm" is supported.
        guard: Protected mode guard. While it is enabled, decrypt returns its
            input unchanged. Defaults to the process-wide guard.

    Example:
        >>> key = lockbox.attribute_key(table="users", attribute="email_ciphertext")
        >>> box = Box(key=key, encode=True)
        >>> box.decrypt_str(user.email_ciphertext)
        'test@example.org'
    """

    def __init__(
        self,
        key: RawKey | KeyMaterial,
        encode: bool = False,
        previous_versions: list[RawKey] | tuple[RawKey, ...] | None = None,
        algorithm: str = ALGORITHM_AES_GCM,
        guard: ProtectedModeGuard | None = None,
    ):
        if algorithm != ALGORITHM_AES_GCM:
            raise ConfigurationError(f"Unsupported algorithm: {algorithm}")

        if isinstance(key, KeyMaterial):
            keys = list(key.candidates)
        else:
            keys = [decode_key(key)]
        keys.extend(decode_key(k) for k in previous_versions or ())

        self.encode = encode
        self.algorithm = algorithm
        self.guard = guard if guard is not None else get_default_guard()
        self._ciphers = [AESGCM(k) for k in keys]

    def encrypt(self, message: str | bytes) -> str | bytes:
        """Encrypt a message with the primary key.

        A fresh nonce is used on every call, so encrypting the same message
        twice gives different ciphertexts.

        Args:
            message: Text (encoded as UTF-8) or bytes.

        Returns:
            Base64 text if encode is on, raw envelope bytes otherwise.
        """
        data = message.encode("utf-8") if isinstance(message, str) else bytes(message)
        nonce = os.urandom(NONCE_SIZE)
        envelope = nonce + self._ciphers[0].encrypt(nonce, data, None)
        if self.encode:
            return base64.b64encode(envelope).decode("ascii")
        return envelope

    def decrypt(self, ciphertext: str | bytes) -> str | bytes:
        """Decrypt a ciphertext, trying each key in order.

        In protected mode nothing is decrypted: the ciphertext comes back as is.

        Raises:
            DecryptionError: If the ciphertext is malformed or no key
                authenticates it.
        """
        if self.guard.enabled:
            return ciphertext
        return self._decrypt(ciphertext)

    def _decrypt(self, ciphertext: str | bytes) -> bytes:
        envelope = self._unpack(ciphertext)
        nonce, body = envelope[:NONCE_SIZE], envelope[NONCE_SIZE:]
        for cipher in self._ciphers:
            try:
                return cipher.decrypt(nonce, body, None)
            except InvalidTag:
                continue
        raise DecryptionError("Decryption failed")

    def decrypt_str(self, ciphertext: str | bytes) -> str | bytes:
        """Decrypt a ciphertext into UTF-8 text. Protected mode returns the ciphertext."""
        if self.guard.enabled:
            return ciphertext
        plaintext = self._decrypt(ciphertext)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted value is not valid UTF-8") from e

    def _unpack(self, ciphertext: str | bytes) -> bytes:
        if self.encode:
            try:
                envelope = base64.b64decode(ciphertext, validate=True)
            except (binascii.Error, ValueError) as e:
                raise DecryptionError("Ciphertext is not valid base64") from e
        elif isinstance(ciphertext, str):
            raise DecryptionError("Expected binary ciphertext")
        else:
            envelope = bytes(ciphertext)

        if len(envelope) < NONCE_SIZE + TAG_SIZE:
            raise DecryptionError("Ciphertext is too short")
        return envelope

    def __repr__(self) -> str:
        return f"Box(algorithm={self.algorithm!r}, encode={self.encode})"
