"""Model base class with ORM-style CRUD operations and field-level encryption."""

from __future__ import annotations

from typing import Any, ClassVar, TypeVar

from lockbox._internal._logging import _log_warning
from lockbox.attributes import Attribute, CiphertextAttribute, EncryptedAttribute
from lockbox.client import DatabaseClient
from lockbox.codec import AttributeCodec
from lockbox.config import ModelConfig, get_default_client, get_default_key_resolver
from lockbox.exceptions import ConfigurationError, ItemNotFoundError, ProtectedModeError
from lockbox.hooks import HookType
from lockbox.keys import KeyResolver
from lockbox.protected import ProtectedModeGuard, get_default_guard

M = TypeVar("M", bound="Model")


class ModelMeta(type):
    """Metaclass that collects attributes, storage columns and codecs."""

    _attributes: dict[str, Attribute[Any]]
    _columns: dict[str, Attribute[Any]]
    _codecs: dict[str, AttributeCodec]
    _hash_key: str | None
    _range_key: str | None
    _hooks: dict[HookType, list[Any]]

    def __new__(mcs, name: str, bases: tuple[type, ...], namespace: dict[str, Any]) -> ModelMeta:
        # Collect attributes from parent classes
        attributes: dict[str, Attribute[Any]] = {}
        hash_key: str | None = None
        range_key: str | None = None
        hooks: dict[HookType, list[Any]] = {hook_type: [] for hook_type in HookType}

        for base in bases:
            if hasattr(base, "_attributes"):
                attributes.update(base._attributes)
            if hasattr(base, "_hash_key") and base._hash_key:
                hash_key = base._hash_key
            if hasattr(base, "_range_key") and base._range_key:
                range_key = base._range_key
            if hasattr(base, "_hooks"):
                for hook_type, hook_list in base._hooks.items():
                    hooks[hook_type].extend(hook_list)

        # Collect attributes and hooks from this class
        for attr_name, attr_value in namespace.items():
            if isinstance(attr_value, Attribute):
                attr_value.attr_name = attr_name
                attributes[attr_name] = attr_value

                if attr_value.hash_key:
                    hash_key = attr_name
                if attr_value.range_key:
                    range_key = attr_name

            # Collect hooks
            if callable(attr_value) and hasattr(attr_value, "_hook_type"):
                hooks[getattr(attr_value, "_hook_type")].append(attr_value)

        # Storage columns: plain attributes as-is, encrypted ones by their ciphertext column
        columns: dict[str, Attribute[Any]] = {}
        ciphertext_columns: dict[str, CiphertextAttribute] = {}
        for attr_name, attr in attributes.items():
            if isinstance(attr, EncryptedAttribute):
                column = CiphertextAttribute(attr)
                if column.attr_name in columns or column.attr_name in attributes:
                    raise ConfigurationError(
                        f"{name}: ciphertext column {column.attr_name!r} is already declared"
                    )
                columns[column.attr_name] = column  # type: ignore[index]
                ciphertext_columns[column.attr_name] = column  # type: ignore[index]
            else:
                columns[attr_name] = attr

        # Create the class
        cls = super().__new__(mcs, name, bases, namespace)

        # Ciphertext accessors, e.g. User.email_ciphertext
        for column_name, column in ciphertext_columns.items():
            setattr(cls, column_name, column)

        # Store metadata
        cls._attributes = attributes
        cls._columns = columns
        cls._codecs = {
            attr_name: AttributeCodec(attr, cls)  # type: ignore[arg-type]
            for attr_name, attr in attributes.items()
            if isinstance(attr, EncryptedAttribute)
        }
        cls._hash_key = hash_key
        cls._range_key = range_key
        cls._hooks = hooks

        return cls


class Model(metaclass=ModelMeta):
    """Base class for models with ORM-style CRUD and encrypted attributes.

    Define your model by subclassing and adding attributes:

    Example:
        >>> from lockbox import DatabaseClient, Model, ModelConfig, set_default_client
        >>> from lockbox.attributes import StringAttribute, EncryptedAttribute
        >>>
        >>> set_default_client(DatabaseClient("sqlite:///app.db"))
        >>>
        >>> class User(Model):
        ...     model_config = ModelConfig(table="users")
        ...     pk = StringAttribute(hash_key=True)
        ...     name = StringAttribute()
        ...     email = EncryptedAttribute()
        >>>
        >>> User.create_table()
        >>>
        >>> # Create and save
        >>> user = User.create(pk="USER#123", name="John", email="john@example.org")
        >>>
        >>> # Get by key
        >>> user = User.get(pk="USER#123")
        >>> print(user.email)
        >>>
        >>> # Update
        >>> user.update(email="jane@example.org")
        >>>
        >>> # Delete
        >>> user.delete()
    """

    _attributes: ClassVar[dict[str, Attribute[Any]]]
    _columns: ClassVar[dict[str, Attribute[Any]]]
    _codecs: ClassVar[dict[str, AttributeCodec]]
    _hash_key: ClassVar[str | None]
    _range_key: ClassVar[str | None]
    _hooks: ClassVar[dict[HookType, list[Any]]]

    model_config: ClassVar[ModelConfig]

    def __init__(self, **kwargs: Any):
        """Create a model instance.

        Args:
            **kwargs: Attribute values. Encrypted attributes take plaintext;
                ciphertext columns (e.g. email_ciphertext) take stored values.
        """
        self._ciphertexts: dict[str, Any] = {}
        self._pending: dict[str, Any] = {}
        self._decrypted: dict[str, tuple[Any, Any]] = {}
        self._original: dict[str, Any] = {}
        self._persisted = False
        self._destroyed = False
        self.errors: list[str] = []

        unknown = set(kwargs) - set(self._attributes) - set(self._columns)
        if unknown:
            raise ValueError(f"Unknown attribute: {', '.join(sorted(unknown))}")

        for attr_name, attr in self._attributes.items():
            if isinstance(attr, EncryptedAttribute):
                column = attr.ciphertext_name
                if kwargs.get(attr_name) is not None:
                    setattr(self, attr_name, kwargs[attr_name])
                elif column in kwargs:
                    self._ciphertexts[column] = kwargs[column]
                elif not attr.null:
                    raise ValueError(f"Attribute '{attr_name}' is required")
            elif attr_name in kwargs:
                setattr(self, attr_name, kwargs[attr_name])
            elif attr.default is not None:
                setattr(self, attr_name, attr.default)
            elif not attr.null:
                raise ValueError(f"Attribute '{attr_name}' is required")
            else:
                setattr(self, attr_name, None)

    # ========== CONFIG ==========

    @classmethod
    def _get_client(cls) -> DatabaseClient:
        """Get the database client for this model.

        Priority:
        1. Client from model_config.client
        2. Global default client (set via set_default_client)
        3. Error if neither is set
        """
        if hasattr(cls, "model_config") and cls.model_config.client is not None:
            return cls.model_config.client

        default = get_default_client()
        if default is not None:
            return default

        raise ValueError(
            f"No client configured for {cls.__name__}. "
            "Either pass client to ModelConfig or call lockbox.set_default_client()"
        )

    @classmethod
    def _get_table(cls) -> str:
        """Get the table name from model_config."""
        if not hasattr(cls, "model_config"):
            raise ValueError(f"Model {cls.__name__} must define model_config")
        return cls.model_config.table

    @classmethod
    def _get_key_resolver(cls) -> KeyResolver:
        if hasattr(cls, "model_config") and cls.model_config.key_resolver is not None:
            return cls.model_config.key_resolver
        return get_default_key_resolver()

    @classmethod
    def _get_guard(cls) -> ProtectedModeGuard:
        if hasattr(cls, "model_config") and cls.model_config.guard is not None:
            return cls.model_config.guard
        return get_default_guard()

    def _should_skip_hooks(self, skip_hooks: bool | None) -> bool:
        """Check if hooks should be skipped."""
        if skip_hooks is not None:
            return skip_hooks
        if hasattr(self, "model_config"):
            return self.model_config.skip_hooks
        return False

    def _run_hooks(self, hook_type: HookType) -> None:
        """Run all hooks of the given type."""
        for hook in self._hooks.get(hook_type, []):
            hook(self)

    # ========== STATE ==========

    @property
    def is_persisted(self) -> bool:
        """True once the row has been stored (and not deleted)."""
        return self._persisted and not self._destroyed

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def _storage_values(self) -> dict[str, Any]:
        """Current in-memory row, without pending plaintext."""
        row = {}
        for column_name, column in self._columns.items():
            if isinstance(column, CiphertextAttribute):
                row[column_name] = self._ciphertexts.get(column_name)
            else:
                row[column_name] = column.serialize(getattr(self, column_name, None))
        return row

    def _snapshot(self) -> None:
        self._original = self._storage_values()

    def _changed_columns(self) -> dict[str, Any]:
        current = self._storage_values()
        return {k: v for k, v in current.items() if self._original.get(k) != v}

    @property
    def changes(self) -> dict[str, tuple[Any, Any]]:
        """Uncommitted changes as {attribute: (old, new)}.

        Encrypted attributes show what the accessor returned before the
        change, so in protected mode the old value is the ciphertext.
        """
        result: dict[str, tuple[Any, Any]] = {}
        for column_name, new in self._changed_columns().items():
            column = self._columns[column_name]
            if isinstance(column, CiphertextAttribute):
                result[column_name] = (self._original.get(column_name), new)
            else:
                result[column_name] = (column.deserialize(self._original.get(column_name)), getattr(self, column_name))
        for attr_name, codec in self._codecs.items():
            if codec.is_dirty(self):
                result[attr_name] = (codec.committed_value(self), self._pending[attr_name])
        return result

    @property
    def has_changes(self) -> bool:
        return bool(self._changed_columns()) or bool(self._pending)

    def _encrypt_pending(self) -> dict[str, Any]:
        """Persistence-commit hook for encrypted attributes.

        Returns:
            New ciphertexts as {ciphertext_column: value}.

        Raises:
            ProtectedModeError: If any pending plaintext would be encrypted
                while protected mode is on. Lists every blocked attribute.
        """
        blocked = [name for name, codec in self._codecs.items() if codec.is_dirty(self) and codec.protected]
        if blocked:
            raise ProtectedModeError(self.__class__.__name__, blocked)

        encrypted: dict[str, Any] = {}
        for codec in self._codecs.values():
            encrypted.update(codec.before_persist(self))
        return encrypted

    def _reject(self, error: ProtectedModeError, strict: bool) -> bool:
        self.errors.append(str(error))
        _log_warning("save", f"{self.__class__.__name__} rejected in protected mode: {', '.join(error.attributes)}")
        if strict:
            raise error
        return False

    def _commit(self) -> None:
        """Write pending changes to storage. Raises ProtectedModeError before any write."""
        encrypted = self._encrypt_pending()

        client = self._get_client()
        table = self._get_table()

        row = self._storage_values()
        row.update(encrypted)

        if self._persisted and not self._destroyed:
            changed = {k: v for k, v in row.items() if self._original.get(k) != v}
            # Key changes aren't updates, the original row is looked up by its stored key
            if changed:
                client.update_item(table, self._original_key(), updates=changed)
        else:
            client.put_item(table, row, overwrite=False)

        for codec in self._codecs.values():
            column = codec.ciphertext_name
            codec.after_persist(self, row[column])
        self._persisted = True
        self._destroyed = False
        self._snapshot()

    # ========== CRUD ==========

    @classmethod
    def get(cls: type[M], **keys: Any) -> M | None:
        """Get an item by its key.

        Args:
            **keys: The key attributes (hash_key and optional range_key).

        Returns:
            The model instance if found, None otherwise.

        Example:
            >>> user = User.get(pk="USER#123")
            >>> if user:
            ...     print(user.email)
        """
        client = cls._get_client()
        table = cls._get_table()

        item = client.get_item(table, keys)
        if item is None:
            return None

        instance = cls.from_dict(item)
        skip = cls.model_config.skip_hooks if hasattr(cls, "model_config") else False
        if not skip:
            instance._run_hooks(HookType.AFTER_LOAD)
        return instance

    @classmethod
    def create(cls: type[M], strict: bool = False, skip_hooks: bool | None = None, **kwargs: Any) -> M:
        """Build and save an instance in one call.

        Args:
            strict: Raise instead of returning an unsaved instance.
            skip_hooks: Skip hooks for this operation.
            **kwargs: Attribute values.

        Returns:
            The instance. If the save was rejected, `is_persisted` is False
            and `errors` says why.

        Raises:
            ProtectedModeError: If strict and an encrypted attribute is set
                in protected mode.

        Example:
            >>> user = User.create(pk="USER#1", email="john@example.org")
            >>> user.is_persisted
            True
        """
        instance = cls(**kwargs)
        instance.save(strict=strict, skip_hooks=skip_hooks)
        return instance

    def save(self, strict: bool = False, skip_hooks: bool | None = None) -> bool:
        """Save the model.

        New instances are inserted, loaded ones only write changed columns.
        Encrypted attributes are encrypted only if they changed.

        Args:
            strict: Raise on a rejected commit instead of returning False.
            skip_hooks: Skip hooks for this operation. If None, uses model_config.skip_hooks.

        Returns:
            True if saved, False if the commit was rejected. Nothing is
            written when a commit is rejected.

        Raises:
            ProtectedModeError: If strict and an encrypted attribute changed
                in protected mode.

        Example:
            >>> user.email = "jane@example.org"
            >>> user.save()
            True
        """
        skip = self._should_skip_hooks(skip_hooks)

        if not skip:
            self._run_hooks(HookType.BEFORE_SAVE)

        try:
            self._commit()
        except ProtectedModeError as e:
            return self._reject(e, strict)

        if not skip:
            self._run_hooks(HookType.AFTER_SAVE)
        return True

    def update(self, strict: bool = False, skip_hooks: bool | None = None, **kwargs: Any) -> bool:
        """Assign attributes and save them.

        Args:
            strict: Raise on a rejected commit instead of returning False.
            skip_hooks: Skip hooks for this operation. If None, uses model_config.skip_hooks.
            **kwargs: Attribute values to update.

        Returns:
            True if saved, False if rejected. A rejected update writes
            nothing, unencrypted attributes included.

        Raises:
            ProtectedModeError: If strict and an encrypted attribute is set
                in protected mode.

        Example:
            >>> user = User.get(pk="USER#123")
            >>> user.update(name="Jane", email="jane@example.org")
            True
        """
        for attr_name in kwargs:
            if attr_name not in self._attributes:
                raise ValueError(f"Unknown attribute: {attr_name}")

        skip = self._should_skip_hooks(skip_hooks)

        for attr_name, value in kwargs.items():
            setattr(self, attr_name, value)

        if not skip:
            self._run_hooks(HookType.BEFORE_UPDATE)

        try:
            self._commit()
        except ProtectedModeError as e:
            return self._reject(e, strict)

        if not skip:
            self._run_hooks(HookType.AFTER_UPDATE)
        return True

    def delete(self, skip_hooks: bool | None = None) -> None:
        """Delete the row.

        The instance keeps its in-memory values, ciphertexts included, so
        encrypted attributes can still be read (and decrypted) afterwards.

        Args:
            skip_hooks: Skip hooks for this operation. If None, uses model_config.skip_hooks.

        Example:
            >>> user = User.get(pk="USER#123")
            >>> user.delete()
            >>> user.email
            'john@example.org'
        """
        skip = self._should_skip_hooks(skip_hooks)

        if not skip:
            self._run_hooks(HookType.BEFORE_DELETE)

        client = self._get_client()
        table = self._get_table()
        client.delete_item(table, self._original_key())
        self._destroyed = True

        if not skip:
            self._run_hooks(HookType.AFTER_DELETE)

    def reload(self: M) -> M:
        """Reload stored values, dropping any uncommitted changes.

        Raises:
            ItemNotFoundError: If the row no longer exists.
        """
        client = self._get_client()
        table = self._get_table()
        key = self._original_key()
        item = client.get_item(table, key)
        if item is None:
            raise ItemNotFoundError(table, key)
        self._load(item)
        self.errors = []
        return self

    def update_column(self, name: str, value: Any) -> None:
        """Write one column straight to storage.

        See update_columns.
        """
        self.update_columns(**{name: value})

    def update_columns(self, **values: Any) -> None:
        """Write columns straight to storage, skipping hooks and protected mode.

        Encrypted attributes are encrypted before writing; ciphertext
        columns are written literally. This bypasses protected mode on
        purpose, as an operational escape hatch (migrations, repairs). It
        is not a security boundary.

        Raises:
            ValueError: If the instance hasn't been saved, or a name is unknown.

        Example:
            >>> user.update_column("email", "new@example.org")
        """
        if not self._persisted or self._destroyed:
            raise ValueError(f"Can't update columns of an unsaved {self.__class__.__name__}")

        unknown = [name for name in values if name not in self._codecs and name not in self._columns]
        if unknown:
            raise ValueError(f"Unknown attribute: {', '.join(unknown)}")

        # Build the row first, memory only changes once storage has it
        updates: dict[str, Any] = {}
        for name, value in values.items():
            if name in self._codecs:
                updates[self._codecs[name].ciphertext_name] = self._codecs[name].encrypt_value(value)
            else:
                updates[name] = self._columns[name].serialize(value)

        client = self._get_client()
        table = self._get_table()
        client.update_item(table, self._original_key(), updates=updates)

        for name, value in values.items():
            if name in self._codecs:
                codec = self._codecs[name]
                codec.write_column(self, value, updates[codec.ciphertext_name])
            else:
                setattr(self, name, value)
        self._original.update(updates)

    # ========== BULK ==========

    @classmethod
    def scan(cls: type[M], page_size: int | None = None) -> list[M]:
        """Load every row as a model instance, in key order."""
        client = cls._get_client()
        table = cls._get_table()
        skip = cls.model_config.skip_hooks if hasattr(cls, "model_config") else False
        instances = []
        for item in client.scan(table, page_size=page_size):
            instance = cls.from_dict(item)
            if not skip:
                instance._run_hooks(HookType.AFTER_LOAD)
            instances.append(instance)
        return instances

    @classmethod
    def pluck(cls, *names: str) -> list[Any]:
        """Read columns straight from storage without building instances.

        Encrypted attributes are decrypted, or returned as ciphertext in
        protected mode, exactly like their accessors.

        Args:
            *names: Attribute or ciphertext column names.

        Returns:
            A list of values for one name, a list of tuples for several.

        Example:
            >>> User.pluck("email")
            ['john@example.org', 'jane@example.org']
            >>> User.pluck("name", "email")
            [('John', 'john@example.org'), ('Jane', 'jane@example.org')]
        """
        if not names:
            raise ValueError("pluck needs at least one attribute name")

        storage_names = []
        for name in names:
            if name in cls._codecs:
                storage_names.append(cls._codecs[name].ciphertext_name)
            elif name in cls._columns:
                storage_names.append(name)
            else:
                raise ValueError(f"Unknown attribute: {name}")

        client = cls._get_client()
        rows = list(client.scan(cls._get_table(), attributes=list(dict.fromkeys(storage_names))))

        columns = []
        for name, storage_name in zip(names, storage_names):
            raw = [row[storage_name] for row in rows]
            if name in cls._codecs:
                columns.append(cls._codecs[name].project(raw))
            else:
                columns.append([cls._columns[name].deserialize(v) for v in raw])

        if len(names) == 1:
            return columns[0]
        return list(zip(*columns))

    @classmethod
    def count(cls) -> int:
        return cls._get_client().count(cls._get_table())

    @classmethod
    def delete_all(cls) -> int:
        """Delete every row of this model's table. Skips hooks.

        Returns:
            Number of rows deleted.
        """
        return cls._get_client().delete_all(cls._get_table())

    @classmethod
    def create_table(cls) -> None:
        """Create this model's table if it doesn't exist."""
        if cls._hash_key is None:
            raise ConfigurationError(f"Model {cls.__name__} has no hash_key attribute")

        hash_attr = cls._columns[cls._hash_key]
        range_key = None
        if cls._range_key is not None:
            range_key = (cls._range_key, cls._columns[cls._range_key].attr_type)

        attributes = {
            name: column.attr_type
            for name, column in cls._columns.items()
            if name not in (cls._hash_key, cls._range_key)
        }
        cls._get_client().create_table(
            cls._get_table(),
            hash_key=(cls._hash_key, hash_attr.attr_type),
            range_key=range_key,
            attributes=attributes,
        )

    # ========== SERIALIZATION ==========

    def _get_key(self) -> dict[str, Any]:
        """Get the key dict for this instance."""
        key = {}
        if self._hash_key:
            key[self._hash_key] = getattr(self, self._hash_key)
        if self._range_key:
            key[self._range_key] = getattr(self, self._range_key)
        return key

    def _original_key(self) -> dict[str, Any]:
        """Key of the stored row, even if the key attributes were changed in memory."""
        if not self._persisted:
            return self._get_key()
        return {name: self._original.get(name) for name in self._get_key()}

    def _load(self, data: dict[str, Any]) -> None:
        """Replace in-memory state with a stored row."""
        self._pending.clear()
        self._decrypted.clear()
        for column_name, column in self._columns.items():
            value = data.get(column_name)
            if isinstance(column, CiphertextAttribute):
                self._ciphertexts[column_name] = value
            else:
                setattr(self, column_name, column.deserialize(value))
        self._persisted = True
        self._destroyed = False
        self._snapshot()

    def to_dict(self) -> dict[str, Any]:
        """Convert the model to its stored form.

        Encrypted attributes appear only as ciphertext columns, so the result
        is safe to log. Uncommitted plaintext isn't included.

        Example:
            >>> user.to_dict()
            {'pk': 'USER#123', 'name': 'John', 'email_ciphertext': 'k2nb...'}
        """
        return {k: v for k, v in self._storage_values().items() if v is not None}

    @classmethod
    def from_dict(cls: type[M], data: dict[str, Any]) -> M:
        """Create a model instance from a stored row.

        Args:
            data: Dict with column values, as returned by the client.

        Returns:
            A loaded model instance.
        """
        instance = cls.__new__(cls)
        instance._ciphertexts = {}
        instance._pending = {}
        instance._decrypted = {}
        instance._original = {}
        instance.errors = []
        instance._load(data)
        return instance

    def __repr__(self) -> str:
        """Return a string representation of the model."""
        attrs = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"{self.__class__.__name__}({attrs})"

    def __eq__(self, other: object) -> bool:
        """Check equality based on key attributes."""
        if not isinstance(other, self.__class__):
            return False
        return self._get_key() == other._get_key()

    def __hash__(self) -> int:
        return hash((self.__class__, tuple(sorted(self._get_key().items()))))
