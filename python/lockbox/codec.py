"""Per-attribute encryption codec.

Each EncryptedAttribute on a model gets one AttributeCodec, kept in the
model's `_codecs` registry. The codec decides, for every read, write and
commit, whether to decrypt, return ciphertext, encrypt or refuse, based on
the model's protected mode guard.

Entity state the codec works on:

- `entity._ciphertexts[ciphertext_name]`: last loaded or committed ciphertext.
- `entity._pending[name]`: plaintext assigned but not yet committed.
- `entity._decrypted[name]`: (ciphertext, plaintext) cache.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from lockbox.box import Box
from lockbox.exceptions import DecryptionError, ProtectedModeError

if TYPE_CHECKING:
    from lockbox.attributes import EncryptedAttribute
    from lockbox.keys import KeyMaterial
    from lockbox.model import Model
    from lockbox.protected import ProtectedModeGuard


class AttributeCodec:
    """Bridges one EncryptedAttribute declaration to storage.

    Args:
        attribute: The bound EncryptedAttribute.
        model: Model class the attribute is declared on. Table, key
            resolver and guard are looked up through it on every call, so
            changing the defaults at runtime takes effect immediately.
    """

    def __init__(self, attribute: EncryptedAttribute, model: type[Model]):
        self.attribute = attribute
        self.model = model

    @property
    def name(self) -> str:
        return self.attribute.attr_name  # type: ignore[return-value]

    @property
    def ciphertext_name(self) -> str:
        return self.attribute.ciphertext_name

    @property
    def guard(self) -> ProtectedModeGuard:
        return self.model._get_guard()

    @property
    def protected(self) -> bool:
        return self.guard.enabled

    @property
    def key_coordinate(self) -> tuple[str, str]:
        table = self.attribute.key_table or self.model._get_table()
        return table, self.attribute.key_attribute or self.ciphertext_name

    def key_material(self) -> KeyMaterial:
        """Resolve the key material for this attribute."""
        table, attribute = self.key_coordinate
        return self.model._get_key_resolver().attribute_key(table, attribute)

    def box(self) -> Box:
        if self.attribute.key is not None:
            return Box(
                key=self.attribute.key,
                encode=self.attribute.encode,
                previous_versions=self.attribute.previous_versions,
                guard=self.guard,
            )
        return Box(key=self.key_material(), encode=self.attribute.encode, guard=self.guard)

    def encrypt_value(self, value: Any) -> Any:
        """Encrypt a plaintext value into its stored form. None stays None."""
        if value is None:
            return None
        return self.box().encrypt(self.attribute.pack(value))

    def decrypt_value(self, stored: Any) -> Any:
        """Decrypt a stored ciphertext back to plaintext.

        None stays None. In protected mode the ciphertext is returned as is.
        """
        if stored is None or self.protected:
            return stored
        return self.attribute.unpack(self.box().decrypt(stored))

    def _decrypt_cached(self, entity: Model, stored: Any) -> Any:
        cached = entity._decrypted.get(self.name)
        if cached is not None and cached[0] == stored:
            return cached[1]
        value = self.decrypt_value(stored)
        entity._decrypted[self.name] = (stored, value)
        return value

    def stored_value(self, entity: Model) -> Any:
        return entity._ciphertexts.get(self.ciphertext_name)

    def read_plaintext(self, entity: Model) -> Any:
        """Value of the plaintext accessor.

        Protected: the in-memory ciphertext, verbatim, without any decrypt
        attempt. Unprotected: the pending value if one was assigned, else
        the decrypted ciphertext. This works on deleted entities too, since
        only in-memory state is used.

        Raises:
            DecryptionError: If the ciphertext can't be decrypted.
        """
        stored = self.stored_value(entity)
        if self.protected:
            return stored
        if self.name in entity._pending:
            return entity._pending[self.name]
        return self._decrypt_cached(entity, stored)

    def committed_value(self, entity: Model) -> Any:
        """Accessor value ignoring any pending write. Used for change tracking."""
        stored = self.stored_value(entity)
        if self.protected:
            return stored
        return self._decrypt_cached(entity, stored)

    def write_plaintext(self, entity: Model, value: Any) -> None:
        """Assign a plaintext value in memory.

        Always allowed, in protected mode too; the commit decides. Writing
        back the committed plaintext while unprotected is not a change, and
        drops any pending value.
        """
        if not self.protected and entity._persisted:
            stored = self.stored_value(entity)
            try:
                unchanged = stored is not None and value == self._decrypt_cached(entity, stored)
            except DecryptionError:
                unchanged = False
            if unchanged:
                entity._pending.pop(self.name, None)
                return
        entity._pending[self.name] = value

    def is_dirty(self, entity: Model) -> bool:
        return self.name in entity._pending

    def before_persist(self, entity: Model) -> dict[str, Any]:
        """Encrypt a pending value for commit.

        Returns:
            {ciphertext_name: new_ciphertext} if the accessor is dirty,
            an empty dict otherwise, so clean values are never re-encrypted.

        Raises:
            ProtectedModeError: If the accessor is dirty in protected mode.
        """
        if not self.is_dirty(entity):
            return {}
        if self.protected:
            raise ProtectedModeError(entity.__class__.__name__, [self.name])
        return {self.ciphertext_name: self.encrypt_value(entity._pending[self.name])}

    def after_persist(self, entity: Model, stored: Any) -> None:
        """Record a committed ciphertext and move the pending value into the cache."""
        entity._ciphertexts[self.ciphertext_name] = stored
        if self.name in entity._pending:
            entity._decrypted[self.name] = (stored, entity._pending.pop(self.name))

    def write_column(self, entity: Model, value: Any, stored: Any) -> None:
        """Record a direct column write that storage already accepted.

        Args:
            entity: The written entity.
            value: Plaintext that was written.
            stored: Its ciphertext, from encrypt_value.

        The guard isn't consulted: direct column writes are an operational
        escape hatch, not covered by protected mode.
        """
        entity._pending.pop(self.name, None)
        entity._ciphertexts[self.ciphertext_name] = stored
        entity._decrypted[self.name] = (stored, value)

    def project(self, values: list[Any]) -> list[Any]:
        """Bulk projection of stored ciphertexts.

        Protected: the raw ciphertexts. Unprotected: decrypted values.
        """
        if self.protected:
            return list(values)
        box = self.box()
        return [None if v is None else self.attribute.unpack(box.decrypt(v)) for v in values]

    def __repr__(self) -> str:
        return f"AttributeCodec({self.name!r} -> {self.ciphertext_name!r})"
