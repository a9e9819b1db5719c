"""Tests for the protected mode guard."""

import pytest
import lockbox
from lockbox import ProtectedModeGuard


@pytest.fixture(autouse=True)
def reset_default_guard():
    yield
    lockbox.disable_protected_mode()


def test_guard_starts_unprotected():
    assert ProtectedModeGuard().enabled is False
    assert lockbox.is_protected_mode() is False


def test_guard_enable_disable():
    guard = ProtectedModeGuard()

    guard.enable()
    assert guard.enabled is True

    guard.disable()
    assert guard.enabled is False


def test_guard_toggles_are_idempotent():
    guard = ProtectedModeGuard()

    guard.enable()
    guard.enable()
    assert guard.enabled is True

    guard.disable()
    guard.disable()
    assert guard.enabled is False


def test_module_functions_use_default_guard():
    lockbox.enable_protected_mode()

    assert lockbox.is_protected_mode() is True
    assert lockbox.get_default_guard().enabled is True

    lockbox.disable_protected_mode()

    assert lockbox.is_protected_mode() is False


def test_scope_restores_state():
    with lockbox.protected_mode():
        assert lockbox.is_protected_mode() is True

    assert lockbox.is_protected_mode() is False


def test_scope_restores_state_on_exception():
    with pytest.raises(RuntimeError):
        with lockbox.protected_mode():
            raise RuntimeError("boom")

    assert lockbox.is_protected_mode() is False


def test_scope_can_disable():
    lockbox.enable_protected_mode()

    with lockbox.protected_mode(enabled=False):
        assert lockbox.is_protected_mode() is False

    assert lockbox.is_protected_mode() is True


def test_nested_scopes():
    with lockbox.protected_mode():
        with lockbox.protected_mode(enabled=False):
            assert lockbox.is_protected_mode() is False
        assert lockbox.is_protected_mode() is True
    assert lockbox.is_protected_mode() is False


def test_guards_are_independent():
    guard = ProtectedModeGuard(name="reports")

    guard.enable()

    assert lockbox.is_protected_mode() is False
    assert guard.enabled is True
