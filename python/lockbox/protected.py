"""Protected mode.

While protected mode is on, encrypted attributes read back as their stored
ciphertext and any commit that would encrypt a new plaintext is rejected.
Box.decrypt returns its input unchanged.

The default guard is shared by the whole process. Toggle it between units
of work, not while other threads are reading or writing models. For a
scoped switch use `protected_mode()`, which only affects the current thread
or asyncio task and always restores the previous state.

Example:
    >>> import lockbox
    >>> lockbox.enable_protected_mode()
    >>> user.email == user.email_ciphertext
    True
    >>> lockbox.disable_protected_mode()

    >>> with lockbox.protected_mode():
    ...     user.update(email="new@example.com")
    False
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from contextvars import ContextVar

from lockbox._internal._logging import _log_info


class ProtectedModeGuard:
    """Two-state switch: unprotected (initial) or protected.

    Args:
        enabled: Initial state.
        name: Label used in logs and for the scope context variable.
    """

    def __init__(self, enabled: bool = False, name: str = "default"):
        self.name = name
        self._enabled = enabled
        self._scoped: ContextVar[bool | None] = ContextVar(
            f"lockbox_protected_mode_{name}", default=None
        )

    @property
    def enabled(self) -> bool:
        """Current state, with any active scope taking precedence."""
        scoped = self._scoped.get()
        if scoped is not None:
            return scoped
        return self._enabled

    def enable(self) -> None:
        """Turn protected mode on. No-op if already on."""
        if not self._enabled:
            self._enabled = True
            _log_info("protected mode enabled (guard=%s)", self.name)

    def disable(self) -> None:
        """Turn protected mode off. No-op if already off."""
        if self._enabled:
            self._enabled = False
            _log_info("protected mode disabled (guard=%s)", self.name)

    @contextmanager
    def scope(self, enabled: bool = True) -> Iterator[ProtectedModeGuard]:
        """Override the state for the current context until the block exits."""
        token = self._scoped.set(enabled)
        try:
            yield self
        finally:
            self._scoped.reset(token)

    def __repr__(self) -> str:
        return f"ProtectedModeGuard(name={self.name!r}, enabled={self.enabled})"


_default_guard = ProtectedModeGuard()


def get_default_guard() -> ProtectedModeGuard:
    """Get the process-wide guard used by models without their own."""
    return _default_guard


def enable_protected_mode() -> None:
    """Turn on protected mode for the whole process."""
    _default_guard.enable()


def disable_protected_mode() -> None:
    """Turn off protected mode for the whole process."""
    _default_guard.disable()


def is_protected_mode() -> bool:
    """Check if the default guard is protecting right now."""
    return _default_guard.enabled


def protected_mode(enabled: bool = True) -> AbstractContextManager[ProtectedModeGuard]:
    """Scoped protected mode on the default guard.

    Example:
        >>> with protected_mode():
        ...     assert user.email == user.email_ciphertext
    """
    return _default_guard.scope(enabled)
