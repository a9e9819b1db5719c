"""Model configuration and process-wide defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

from lockbox.exceptions import ConfigurationError
from lockbox.keys import KeyResolver
from lockbox.settings import LockboxSettings

if TYPE_CHECKING:
    from .client import DatabaseClient
    from .protected import ProtectedModeGuard


# Global defaults
_default_client: Optional["DatabaseClient"] = None
_default_key_resolver: Optional[KeyResolver] = None


def set_default_client(client: "DatabaseClient") -> None:
    """Set the default client for all models.

    Call this once at app startup. All models without an explicit client
    will use this one.

    Args:
        client: The DatabaseClient to use as default.

    Example:
        >>> from lockbox import DatabaseClient, set_default_client
        >>> client = DatabaseClient("postgresql://app@localhost/app")
        >>> set_default_client(client)
    """
    global _default_client
    _default_client = client


def get_default_client() -> Optional["DatabaseClient"]:
    """Get the default client.

    Returns:
        The default client if set, None otherwise.
    """
    return _default_client


def clear_default_client() -> None:
    """Clear the default client.

    Useful for testing to reset state between tests.
    """
    global _default_client
    _default_client = None


def set_default_key_resolver(resolver: KeyResolver) -> None:
    """Set the key resolver used by models without their own.

    Example:
        >>> from lockbox import KeyResolver, set_default_key_resolver
        >>> set_default_key_resolver(KeyResolver(master_key=os.environ["APP_MASTER_KEY"]))
    """
    global _default_key_resolver
    _default_key_resolver = resolver


def get_default_key_resolver() -> KeyResolver:
    """Get the default key resolver.

    If none was set, one is built from LOCKBOX_MASTER_KEY and
    LOCKBOX_PREVIOUS_MASTER_KEYS.

    Raises:
        ConfigurationError: If the environment holds an invalid key.
    """
    global _default_key_resolver
    if _default_key_resolver is None:
        try:
            settings = LockboxSettings()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid lockbox settings: {e}") from e
        master_key = settings.master_key.get_secret_value() if settings.master_key else None
        _default_key_resolver = KeyResolver(
            master_key=master_key,
            previous_master_keys=[k.get_secret_value() for k in settings.previous_master_keys],
        )
    return _default_key_resolver


def clear_default_key_resolver() -> None:
    """Clear the default key resolver.

    Useful for testing to reset state between tests.
    """
    global _default_key_resolver
    _default_key_resolver = None


@dataclass
class ModelConfig:
    """Type-safe model configuration.

    Args:
        table: Table name (required). Also the default table part of key
            coordinates.
        client: DatabaseClient to use. If None, uses the default client.
        key_resolver: KeyResolver to use. If None, uses the default one.
        guard: ProtectedModeGuard to use. If None, uses the process-wide guard.
        skip_hooks: Skip lifecycle hooks by default (default: False).

    Example:
        >>> from lockbox import DatabaseClient, Model, ModelConfig
        >>> from lockbox.attributes import StringAttribute, EncryptedAttribute
        >>>
        >>> client = DatabaseClient("sqlite:///app.db")
        >>>
        >>> class User(Model):
        ...     model_config = ModelConfig(
        ...         table="users",
        ...         client=client,
        ...     )
        ...     pk = StringAttribute(hash_key=True)
        ...     email = EncryptedAttribute()
    """

    table: str
    client: Optional["DatabaseClient"] = field(default=None)
    key_resolver: Optional[KeyResolver] = field(default=None)
    guard: Optional["ProtectedModeGuard"] = field(default=None)
    skip_hooks: bool = field(default=False)
