"""Shared fixtures for integration tests.

Uses an in-memory SQLite database through DatabaseClient. Every test gets a
fresh database, so tests can reuse keys.
"""

import pytest

import lockbox
from lockbox import (
    DatabaseClient,
    KeyResolver,
    Model,
    ModelConfig,
    clear_default_client,
    clear_default_key_resolver,
    set_default_client,
    set_default_key_resolver,
)
from lockbox.attributes import EncryptedAttribute, StringAttribute

MASTER_KEY = "0" * 64


class User(Model):
    """User with an encrypted email, on the default client and resolver."""

    model_config = ModelConfig(table="users")

    pk = StringAttribute(hash_key=True)
    name = StringAttribute()
    email = EncryptedAttribute()


@pytest.fixture
def client():
    """A fresh in-memory database."""
    return DatabaseClient()


@pytest.fixture
def master_key():
    return MASTER_KEY


@pytest.fixture
def key_resolver(master_key):
    return KeyResolver(master_key=master_key)


@pytest.fixture
def defaults(client, key_resolver):
    """Install client and resolver as process defaults for the test."""
    set_default_client(client)
    set_default_key_resolver(key_resolver)
    yield client
    clear_default_client()
    clear_default_key_resolver()


@pytest.fixture
def unprotected():
    """Make sure protected mode is off after the test, whatever happens."""
    lockbox.disable_protected_mode()
    yield
    lockbox.disable_protected_mode()


@pytest.fixture
def user_model(defaults, unprotected):
    """The User model with its table created."""
    User.create_table()
    User.delete_all()
    return User
