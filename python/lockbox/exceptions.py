"""Custom exceptions for lockbox.

Every error raised by lockbox derives from LockboxError, so callers can
catch the whole family in one place.

Example:
    >>> from lockbox.exceptions import LockboxError, ProtectedModeError
    >>>
    >>> try:
    ...     user.update(email="new@example.com", strict=True)
    ... except ProtectedModeError as e:
    ...     print(f"Blocked: {e}")
"""

from __future__ import annotations


class LockboxError(Exception):
    """Base class for all lockbox errors."""


class ConfigurationError(LockboxError):
    """Missing or invalid configuration, usually a key that can't be resolved."""


class EncryptionError(LockboxError):
    """A plaintext value can't be serialized for encryption."""


class DecryptionError(LockboxError):
    """Ciphertext failed authentication or is malformed for every candidate key."""


class ProtectedModeError(LockboxError):
    """A plaintext write to an encrypted attribute was attempted in protected mode."""

    def __init__(self, model: str, attributes: list[str]):
        self.model = model
        self.attributes = attributes
        names = ", ".join(attributes)
        super().__init__(f"{model}: can't write encrypted attributes in protected mode: {names}")


class TableNotFoundError(LockboxError):
    """The storage table doesn't exist."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Table not found: {table}")


class ItemAlreadyExistsError(LockboxError):
    """A row with the same key is already stored."""

    def __init__(self, table: str, key: dict[str, object]):
        self.table = table
        self.key = key
        super().__init__(f"Item already exists in {table}: {key}")


class ItemNotFoundError(LockboxError):
    """No stored row matches the given key."""

    def __init__(self, table: str, key: dict[str, object]):
        self.table = table
        self.key = key
        super().__init__(f"Item not found in {table}: {key}")


__all__ = [
    "LockboxError",
    "ConfigurationError",
    "EncryptionError",
    "DecryptionError",
    "ProtectedModeError",
    "TableNotFoundError",
    "ItemAlreadyExistsError",
    "ItemNotFoundError",
]
