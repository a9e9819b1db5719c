"""Tests for key derivation and lookup."""

import pytest
from lockbox import KeyResolver, generate_key
from lockbox.exceptions import ConfigurationError
from lockbox.keys import KEY_SIZE, decode_key, derive_key

MASTER_KEY = "0" * 64


def test_generate_key():
    key = generate_key()

    assert len(key) == 64
    assert len(decode_key(key)) == KEY_SIZE
    assert generate_key() != key


def test_derive_key_is_deterministic():
    assert derive_key(MASTER_KEY, "users", "email_ciphertext") == derive_key(
        MASTER_KEY, "users", "email_ciphertext"
    )


@pytest.mark.parametrize(
    "table,attribute",
    [
        pytest.param("posts", "email_ciphertext", id="other-table"),
        pytest.param("users", "phone_ciphertext", id="other-attribute"),
    ],
)
def test_derive_key_depends_on_coordinate(table, attribute):
    assert derive_key(MASTER_KEY, table, attribute) != derive_key(MASTER_KEY, "users", "email_ciphertext")


def test_resolver_derives_from_master_key():
    resolver = KeyResolver(master_key=MASTER_KEY)

    material = resolver.attribute_key("users", "email_ciphertext")

    assert material.key == derive_key(MASTER_KEY, "users", "email_ciphertext")
    assert material.previous == ()
    assert resolver.has_master_key


def test_resolver_caches_material():
    resolver = KeyResolver(master_key=MASTER_KEY)

    assert resolver.attribute_key("users", "email_ciphertext") is resolver.attribute_key(
        "users", "email_ciphertext"
    )


def test_resolver_previous_master_keys():
    old_master = generate_key()
    resolver = KeyResolver(master_key=MASTER_KEY, previous_master_keys=[old_master])

    material = resolver.attribute_key("users", "email_ciphertext")

    assert material.candidates == (
        derive_key(MASTER_KEY, "users", "email_ciphertext"),
        derive_key(old_master, "users", "email_ciphertext"),
    )


def test_resolver_registered_key_wins():
    key = generate_key()
    resolver = KeyResolver(master_key=MASTER_KEY, keys={("users", "email_ciphertext"): key})

    material = resolver.attribute_key("users", "email_ciphertext")

    assert material.key == bytes.fromhex(key)


def test_resolver_register_previous_versions():
    resolver = KeyResolver()
    key, old_key = generate_key(), generate_key()

    resolver.register("users", "ssn_ciphertext", key, previous_versions=[old_key])

    assert resolver.attribute_key("users", "ssn_ciphertext").candidates == (
        bytes.fromhex(key),
        bytes.fromhex(old_key),
    )


def test_resolver_without_key_fails():
    resolver = KeyResolver()

    with pytest.raises(ConfigurationError, match="No key configured for users.email_ciphertext"):
        resolver.attribute_key("users", "email_ciphertext")


def test_key_material_repr_hides_key():
    material = KeyResolver(master_key=MASTER_KEY).attribute_key("users", "email_ciphertext")

    assert material.key.hex() not in repr(material)
