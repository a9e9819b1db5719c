"""Attribute types for Model definitions."""

from __future__ import annotations

import json
import struct
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from lockbox.exceptions import ConfigurationError, EncryptionError

if TYPE_CHECKING:
    from lockbox.keys import RawKey
    from lockbox.model import Model

T = TypeVar("T")

__all__ = [
    "Attribute",
    "StringAttribute",
    "NumberAttribute",
    "BooleanAttribute",
    "BinaryAttribute",
    "JSONAttribute",
    "DatetimeAttribute",
    "EncryptedAttribute",
    "CiphertextAttribute",
    "PLAINTEXT_TYPES",
]


class Attribute(Generic[T]):
    """Base attribute class for Model fields.

    Attributes define the columns of a stored row. One of them must be
    marked as hash_key; range_key is optional and forms a composite key.

    Example:
        >>> class User(Model):
        ...     pk = StringAttribute(hash_key=True)
        ...     sk = StringAttribute(range_key=True)
        ...     name = StringAttribute()
        ...     age = NumberAttribute()
    """

    attr_type: str = "S"  # Default to string

    def __init__(
        self,
        hash_key: bool = False,
        range_key: bool = False,
        default: T | None = None,
        null: bool = True,
    ):
        """Create an attribute.

        Args:
            hash_key: True if this is the partition key.
            range_key: True if this is the sort key.
            default: Default value when not provided.
            null: Whether None is allowed.
        """
        self.hash_key = hash_key
        self.range_key = range_key
        self.default = default
        self.null = null
        self.attr_name: str | None = None

    def serialize(self, value: T | None) -> Any:
        """Convert Python value to storage format."""
        return value

    def deserialize(self, value: Any) -> T | None:
        """Convert storage value to Python format."""
        return value  # type: ignore[no-any-return]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.attr_name!r})"


class StringAttribute(Attribute[str]):
    """String attribute (stored as text)."""

    attr_type = "S"


class NumberAttribute(Attribute[float]):
    """Number attribute.

    Stores both int and float values.
    """

    attr_type = "N"


class BooleanAttribute(Attribute[bool]):
    """Boolean attribute."""

    attr_type = "BOOL"


class BinaryAttribute(Attribute[bytes]):
    """Binary attribute."""

    attr_type = "B"


class JSONAttribute(Attribute[dict[str, Any] | list[Any]]):
    """Store dict/list as JSON string.

    Example:
        >>> class Config(Model):
        ...     model_config = ModelConfig(table="configs")
        ...     pk = StringAttribute(hash_key=True)
        ...     settings = JSONAttribute()
        >>>
        >>> config = Config(pk="CFG#1", settings={"theme": "dark", "notifications": True})
        >>> config.save()
        >>> # Stored as string '{"theme": "dark", "notifications": true}'
    """

    attr_type = "S"

    def serialize(self, value: dict[str, Any] | list[Any] | None) -> str | None:
        if value is None:
            return None
        return json.dumps(value)

    def deserialize(self, value: Any) -> dict[str, Any] | list[Any] | None:
        if value is None:
            return None
        if isinstance(value, (dict, list)):
            return value
        result: dict[str, Any] | list[Any] = json.loads(value)
        return result


class DatetimeAttribute(Attribute[datetime]):
    """Store datetime as ISO 8601 string.

    Naive datetimes (without timezone) are treated as UTC.
    """

    attr_type = "S"

    def serialize(self, value: datetime | None) -> str | None:
        if value is None:
            return None
        # Treat naive datetime as UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()

    def deserialize(self, value: Any) -> datetime | None:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value
        return datetime.fromisoformat(value)


def _pack_string(value: Any) -> bytes:
    if not isinstance(value, str):
        raise EncryptionError(f"Expected str, got {type(value).__name__}")
    return value.encode("utf-8")


def _pack_binary(value: Any) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise EncryptionError(f"Expected bytes, got {type(value).__name__}")
    return bytes(value)


def _pack_integer(value: Any) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncryptionError(f"Expected int, got {type(value).__name__}")
    try:
        return value.to_bytes(8, "big", signed=True)
    except OverflowError as e:
        raise EncryptionError("Integer out of 64-bit range") from e


def _pack_float(value: Any) -> bytes:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EncryptionError(f"Expected float, got {type(value).__name__}")
    return struct.pack(">d", float(value))


def _pack_boolean(value: Any) -> bytes:
    if not isinstance(value, bool):
        raise EncryptionError(f"Expected bool, got {type(value).__name__}")
    return b"t" if value else b"f"


def _pack_json(value: Any) -> bytes:
    try:
        return json.dumps(value).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncryptionError(f"Value is not JSON serializable: {e}") from e


def _pack_datetime(value: Any) -> bytes:
    if not isinstance(value, datetime):
        raise EncryptionError(f"Expected datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat().encode("utf-8")


# type name -> (pack to bytes, unpack from bytes)
PLAINTEXT_TYPES: dict[str, tuple[Any, Any]] = {
    "string": (_pack_string, lambda b: b.decode("utf-8")),
    "binary": (_pack_binary, bytes),
    "integer": (_pack_integer, lambda b: int.from_bytes(b, "big", signed=True)),
    "float": (_pack_float, lambda b: struct.unpack(">d", b)[0]),
    "boolean": (_pack_boolean, lambda b: b == b"t"),
    "json": (_pack_json, lambda b: json.loads(b.decode("utf-8"))),
    "datetime": (_pack_datetime, lambda b: datetime.fromisoformat(b.decode("utf-8"))),
}


class EncryptedAttribute(Attribute[Any]):
    """Attribute stored encrypted in a paired ciphertext column.

    The attribute itself is virtual: reads and writes go through the model's
    codec registry, and only `<name>_ciphertext` (or `ciphertext_name`) is
    stored. Encryption happens on save, decryption on read. In protected
    mode reads return the ciphertext and saves that would encrypt a new
    value are rejected.

    Args:
        type: Plaintext type. One of "string" (default), "binary",
            "integer", "float", "boolean", "json", "datetime".
        encode: Store base64 text (default) instead of raw bytes.
        ciphertext_name: Name of the storage column. Defaults to
            "<name>_ciphertext".
        key_table: Table part of the key coordinate. Defaults to the
            model's table.
        key_attribute: Attribute part of the key coordinate. Defaults to
            the ciphertext column name.
        key: Explicit key for this attribute, bypassing the key resolver.
        previous_versions: Older explicit keys tried on decrypt.
        null: Whether None is allowed.

    Example:
        >>> from lockbox import Model, ModelConfig
        >>> from lockbox.attributes import StringAttribute, EncryptedAttribute
        >>>
        >>> class User(Model):
        ...     model_config = ModelConfig(table="users")
        ...     pk = StringAttribute(hash_key=True)
        ...     name = StringAttribute()
        ...     email = EncryptedAttribute()
        ...     born_on = EncryptedAttribute(type="datetime")
        >>>
        >>> user = User.create(pk="USER#1", name="John", email="john@example.org")
        >>> user.email
        'john@example.org'
        >>> user.email_ciphertext
        'k2nb...'
    """

    def __init__(
        self,
        type: str = "string",
        encode: bool = True,
        ciphertext_name: str | None = None,
        key_table: str | None = None,
        key_attribute: str | None = None,
        key: RawKey | None = None,
        previous_versions: list[RawKey] | None = None,
        null: bool = True,
    ):
        super().__init__(hash_key=False, range_key=False, default=None, null=null)
        if type not in PLAINTEXT_TYPES:
            raise ConfigurationError(f"Unknown encrypted attribute type: {type}")
        self.type = type
        self.encode = encode
        self.key_table = key_table
        self.key_attribute = key_attribute
        self.key = key
        self.previous_versions = previous_versions or []
        self._ciphertext_name = ciphertext_name

    @property
    def attr_type(self) -> str:  # type: ignore[override]
        return "S" if self.encode else "B"

    @property
    def ciphertext_name(self) -> str:
        if self._ciphertext_name is not None:
            return self._ciphertext_name
        if self.attr_name is None:
            raise ConfigurationError("EncryptedAttribute is not bound to a model")
        return f"{self.attr_name}_ciphertext"

    def pack(self, value: Any) -> bytes:
        """Serialize a plaintext value to bytes before encryption."""
        return PLAINTEXT_TYPES[self.type][0](value)

    def unpack(self, data: bytes) -> Any:
        """Deserialize decrypted bytes back to the plaintext type."""
        return PLAINTEXT_TYPES[self.type][1](data)

    def __get__(self, instance: Model | None, owner: type[Model]) -> Any:
        if instance is None:
            return self
        return instance._codecs[self.attr_name].read_plaintext(instance)  # type: ignore[index]

    def __set__(self, instance: Model, value: Any) -> None:
        instance._codecs[self.attr_name].write_plaintext(instance, value)  # type: ignore[index]


class CiphertextAttribute(Attribute[Any]):
    """Storage column paired with an EncryptedAttribute.

    Reading it always returns the stored ciphertext, protected mode or not.
    Assigning to it writes a literal ciphertext and drops any pending
    plaintext for the paired attribute.
    """

    def __init__(self, source: EncryptedAttribute):
        super().__init__(hash_key=False, range_key=False, default=None, null=True)
        self.source = source
        self.attr_name = source.ciphertext_name

    @property
    def attr_type(self) -> str:  # type: ignore[override]
        return self.source.attr_type

    def __get__(self, instance: Model | None, owner: type[Model]) -> Any:
        if instance is None:
            return self
        return instance._ciphertexts.get(self.attr_name)  # type: ignore[arg-type]

    def __set__(self, instance: Model, value: Any) -> None:
        instance._ciphertexts[self.attr_name] = value  # type: ignore[index]
        instance._pending.pop(self.source.attr_name, None)  # type: ignore[arg-type]
