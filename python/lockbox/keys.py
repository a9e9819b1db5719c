"""Key lookup by (table, attribute) coordinate.

Keys are 32 bytes, usually written as 64 hex characters. A KeyResolver hands
out KeyMaterial for a coordinate, either pinned explicitly with register()
or derived from a master key with HKDF-SHA384.

Example:
    >>> from lockbox.keys import KeyResolver, generate_key
    >>> resolver = KeyResolver(master_key=generate_key())
    >>> material = resolver.attribute_key(table="users", attribute="email_ciphertext")
    >>> len(material.key)
    32
"""

from __future__ import annotations

import binascii
import secrets
from dataclasses import dataclass, field
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from lockbox._internal._logging import logger
from lockbox.exceptions import ConfigurationError

KEY_SIZE = 32

RawKey = Union[bytes, str]

# HKDF info prefix, prepended to the attribute name
_INFO_PREFIX = b"\xb4" * 32


def generate_key() -> str:
    """Return a new random key as 64 hex characters."""
    return secrets.token_hex(KEY_SIZE)


def decode_key(key: RawKey) -> bytes:
    """Turn a raw or hex-encoded key into 32 bytes.

    Raises:
        ConfigurationError: If the key isn't 32 bytes or 64 hex characters.
    """
    if isinstance(key, str):
        if len(key) != KEY_SIZE * 2:
            raise ConfigurationError("Key must be 64 hex characters")
        try:
            return binascii.unhexlify(key)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError("Key must be 64 hex characters") from e
    if isinstance(key, (bytes, bytearray)):
        if len(key) != KEY_SIZE:
            raise ConfigurationError(f"Key must be {KEY_SIZE} bytes")
        return bytes(key)
    raise ConfigurationError(f"Unsupported key type: {type(key).__name__}")


def derive_key(master_key: RawKey, table: str, attribute: str) -> bytes:
    """Derive the key for one coordinate from a master key.

    Args:
        master_key: Master key, raw or hex.
        table: Table name, used as the HKDF salt.
        attribute: Attribute name, mixed into the HKDF info.

    Returns:
        32 derived key bytes.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA384(),
        length=KEY_SIZE,
        salt=table.encode("utf-8"),
        info=_INFO_PREFIX + attribute.encode("utf-8"),
    )
    return hkdf.derive(decode_key(master_key))


@dataclass(frozen=True)
class KeyMaterial:
    """Key bytes for one coordinate.

    Only `key` encrypts. Decryption tries `candidates` in order, newest first.
    """

    key: bytes
    previous: tuple[bytes, ...] = field(default=())

    @property
    def candidates(self) -> tuple[bytes, ...]:
        return (self.key, *self.previous)

    def __repr__(self) -> str:
        return f"KeyMaterial(previous={len(self.previous)})"


class KeyResolver:
    """Maps (table, attribute) coordinates to KeyMaterial.

    Explicitly registered keys win over master key derivation.

    Args:
        master_key: Master key to derive per-coordinate keys from.
        previous_master_keys: Older master keys, newest first. Each one
            derives a previous key for every coordinate.
        keys: Explicit keys as {(table, attribute): key}.

    Example:
        >>> resolver = KeyResolver(
        ...     master_key=new_master,
        ...     previous_master_keys=[old_master],
        ... )
        >>> material = resolver.attribute_key("users", "email_ciphertext")
        >>> len(material.candidates)
        2
    """

    def __init__(
        self,
        master_key: RawKey | None = None,
        previous_master_keys: list[RawKey] | tuple[RawKey, ...] = (),
        keys: dict[tuple[str, str], RawKey] | None = None,
    ):
        self._master_key = decode_key(master_key) if master_key is not None else None
        self._previous_master_keys = tuple(decode_key(k) for k in previous_master_keys)
        self._registered: dict[tuple[str, str], KeyMaterial] = {}
        self._derived: dict[tuple[str, str], KeyMaterial] = {}
        for (table, attribute), key in (keys or {}).items():
            self.register(table, attribute, key)

    @property
    def has_master_key(self) -> bool:
        return self._master_key is not None

    def register(
        self,
        table: str,
        attribute: str,
        key: RawKey,
        previous_versions: list[RawKey] | tuple[RawKey, ...] = (),
    ) -> None:
        """Pin an explicit key (and optional previous keys) to a coordinate."""
        self._registered[(table, attribute)] = KeyMaterial(
            key=decode_key(key),
            previous=tuple(decode_key(k) for k in previous_versions),
        )

    def attribute_key(self, table: str, attribute: str) -> KeyMaterial:
        """Return the key material for a coordinate.

        Raises:
            ConfigurationError: If no key is registered and there is no master key.
        """
        coordinate = (table, attribute)
        material = self._registered.get(coordinate)
        if material is not None:
            return material

        material = self._derived.get(coordinate)
        if material is not None:
            return material

        if self._master_key is None:
            raise ConfigurationError(f"No key configured for {table}.{attribute}")

        material = KeyMaterial(
            key=derive_key(self._master_key, table, attribute),
            previous=tuple(
                derive_key(old, table, attribute) for old in self._previous_master_keys
            ),
        )
        self._derived[coordinate] = material
        logger.debug("derived key for %s.%s", table, attribute)
        return material
