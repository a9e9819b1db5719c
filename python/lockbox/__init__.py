"""lockbox - Field-level encryption for Python models, with protected mode.

Example:
    >>> from lockbox import DatabaseClient, KeyResolver, generate_key
    >>> from lockbox import set_default_client, set_default_key_resolver
    >>> set_default_client(DatabaseClient("sqlite:///app.db"))
    >>> set_default_key_resolver(KeyResolver(master_key=generate_key()))

    >>> from lockbox import Model, ModelConfig
    >>> from lockbox.attributes import StringAttribute, EncryptedAttribute
    >>> class User(Model):
    ...     model_config = ModelConfig(table="users")
    ...     pk = StringAttribute(hash_key=True)
    ...     email = EncryptedAttribute()
    >>> User.create_table()
    >>> user = User.create(pk="USER#1", email="john@example.org")

    >>> # Protected mode: reads return ciphertext, encrypting writes are rejected
    >>> from lockbox import protected_mode
    >>> with protected_mode():
    ...     user.email == user.email_ciphertext
    ...     user.update(email="jane@example.org")
    True
    False

    >>> # Standalone encryption
    >>> from lockbox import Box, attribute_key
    >>> box = Box(attribute_key(table="users", attribute="email_ciphertext"), encode=True)
    >>> box.decrypt_str(user.email_ciphertext)
    'john@example.org'
"""

from __future__ import annotations

from lockbox.box import Box
from lockbox.client import DatabaseClient
from lockbox.config import (
    ModelConfig,
    clear_default_client,
    clear_default_key_resolver,
    get_default_client,
    get_default_key_resolver,
    set_default_client,
    set_default_key_resolver,
)
from lockbox.exceptions import (
    ConfigurationError,
    DecryptionError,
    EncryptionError,
    ItemAlreadyExistsError,
    ItemNotFoundError,
    LockboxError,
    ProtectedModeError,
    TableNotFoundError,
)
from lockbox.keys import KeyMaterial, KeyResolver, generate_key
from lockbox.model import Model
from lockbox.protected import (
    ProtectedModeGuard,
    disable_protected_mode,
    enable_protected_mode,
    get_default_guard,
    is_protected_mode,
    protected_mode,
)
from lockbox.query import ScanResult

__version__ = "0.1.0"


def attribute_key(table: str, attribute: str) -> KeyMaterial:
    """Look up the key for a (table, attribute) coordinate.

    Uses the default key resolver. Pass the result to Box to encrypt or
    decrypt outside a model.

    Args:
        table: Table name, e.g. "users".
        attribute: Ciphertext column name, e.g. "email_ciphertext".

    Raises:
        ConfigurationError: If no key is configured for the coordinate.
    """
    return get_default_key_resolver().attribute_key(table, attribute)


__all__ = [
    # Encryption
    "Box",
    "KeyMaterial",
    "KeyResolver",
    "attribute_key",
    "generate_key",
    # Protected mode
    "ProtectedModeGuard",
    "disable_protected_mode",
    "enable_protected_mode",
    "get_default_guard",
    "is_protected_mode",
    "protected_mode",
    # Client
    "DatabaseClient",
    "ScanResult",
    # Model ORM
    "Model",
    "ModelConfig",
    # Defaults
    "set_default_client",
    "get_default_client",
    "clear_default_client",
    "set_default_key_resolver",
    "get_default_key_resolver",
    "clear_default_key_resolver",
    # Errors
    "ConfigurationError",
    "DecryptionError",
    "EncryptionError",
    "ItemAlreadyExistsError",
    "ItemNotFoundError",
    "LockboxError",
    "ProtectedModeError",
    "TableNotFoundError",
    # Version
    "__version__",
]
