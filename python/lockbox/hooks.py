"""Lifecycle hooks for Model operations.

Decorate model methods to run them before or after a persistence
operation. Hooks run in declaration order, parent class hooks first.

Example:
    >>> from lockbox import Model, ModelConfig
    >>> from lockbox.attributes import StringAttribute, EncryptedAttribute
    >>> from lockbox.hooks import before_save
    >>>
    >>> class User(Model):
    ...     model_config = ModelConfig(table="users")
    ...     pk = StringAttribute(hash_key=True)
    ...     email = EncryptedAttribute()
    ...
    ...     @before_save
    ...     def normalize_email(self):
    ...         if self.email:
    ...             self.email = self.email.strip().lower()
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, TypeVar

F = TypeVar("F", bound=Callable[..., Any])


class HookType(Enum):
    BEFORE_SAVE = "before_save"
    AFTER_SAVE = "after_save"
    BEFORE_UPDATE = "before_update"
    AFTER_UPDATE = "after_update"
    BEFORE_DELETE = "before_delete"
    AFTER_DELETE = "after_delete"
    AFTER_LOAD = "after_load"


def _hook(hook_type: HookType) -> Callable[[F], F]:
    def decorator(func: F) -> F:
        func._hook_type = hook_type  # type: ignore[attr-defined]
        return func

    return decorator


before_save = _hook(HookType.BEFORE_SAVE)
after_save = _hook(HookType.AFTER_SAVE)
before_update = _hook(HookType.BEFORE_UPDATE)
after_update = _hook(HookType.AFTER_UPDATE)
before_delete = _hook(HookType.BEFORE_DELETE)
after_delete = _hook(HookType.AFTER_DELETE)
after_load = _hook(HookType.AFTER_LOAD)

__all__ = [
    "HookType",
    "before_save",
    "after_save",
    "before_update",
    "after_update",
    "before_delete",
    "after_delete",
    "after_load",
]
