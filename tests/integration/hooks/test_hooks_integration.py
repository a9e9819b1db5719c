"""Integration tests for lifecycle hooks with real database operations."""

import pytest

import lockbox
from lockbox import Model, ModelConfig
from lockbox.attributes import EncryptedAttribute, StringAttribute
from lockbox.hooks import (
    after_delete,
    after_load,
    after_save,
    after_update,
    before_delete,
    before_save,
    before_update,
)


@pytest.fixture
def user_model(defaults, unprotected):
    """Create a User model for testing."""
    call_log = []

    class User(Model):
        model_config = ModelConfig(table="hook_users")

        pk = StringAttribute(hash_key=True)
        name = StringAttribute()
        email = EncryptedAttribute()

        @before_save
        def log_before_save(self):
            call_log.append(f"before_save:{self.pk}")

        @after_save
        def log_after_save(self):
            call_log.append(f"after_save:{self.pk}")

        @before_update
        def log_before_update(self):
            call_log.append(f"before_update:{self.pk}")

        @after_update
        def log_after_update(self):
            call_log.append(f"after_update:{self.pk}")

        @before_delete
        def log_before_delete(self):
            call_log.append(f"before_delete:{self.pk}")

        @after_delete
        def log_after_delete(self):
            call_log.append(f"after_delete:{self.pk}")

        @after_load
        def log_after_load(self):
            call_log.append(f"after_load:{self.pk}")

    User.create_table()
    # Attach call_log to class for test access
    User.call_log = call_log
    return User


def test_hooks_run_on_save(user_model):
    """Test that hooks run in order when saving."""
    User = user_model

    user = User(pk="USER#1", name="John", email="john@example.org")
    user.save()

    assert User.call_log == ["before_save:USER#1", "after_save:USER#1"]

    # Verify item was saved
    loaded = User.get(pk="USER#1")
    assert loaded is not None
    assert loaded.email == "john@example.org"
    assert User.call_log[-1] == "after_load:USER#1"


def test_hooks_run_on_update(user_model):
    User = user_model
    user = User.create(pk="USER#1", name="John")
    User.call_log.clear()

    user.update(name="Jane")

    assert User.call_log == ["before_update:USER#1", "after_update:USER#1"]


def test_hooks_run_on_delete(user_model):
    """Test that hooks run when deleting."""
    User = user_model

    # Create and save
    user = User(pk="USER#2", name="Jane")
    user.save()
    User.call_log.clear()

    # Delete
    user.delete()

    assert User.call_log == ["before_delete:USER#2", "after_delete:USER#2"]

    # Verify item was deleted
    assert User.get(pk="USER#2") is None


def test_after_save_does_not_run_when_rejected(user_model):
    """A commit rejected in protected mode skips after hooks."""
    User = user_model
    user = User.create(pk="USER#3", name="Bob")
    User.call_log.clear()

    with lockbox.protected_mode():
        assert user.update(email="bob@example.org") is False

    assert User.call_log == ["before_update:USER#3"]


def test_skip_hooks_on_save(user_model):
    """Test that skip_hooks=True skips hooks on save."""
    User = user_model

    user = User(pk="USER#3", name="Bob")
    user.save(skip_hooks=True)

    assert "before_save:USER#3" not in User.call_log
    assert "after_save:USER#3" not in User.call_log

    # But item should still be saved
    loaded = User.get(pk="USER#3")
    assert loaded is not None
    assert loaded.name == "Bob"


def test_before_save_validation_blocks_save(defaults):
    """Test that before_save can block save with exception."""

    class ValidatedUser(Model):
        model_config = ModelConfig(table="validated_users")

        pk = StringAttribute(hash_key=True)
        email = EncryptedAttribute()

        @before_save
        def validate_email(self):
            if not self.email.endswith("@company.com"):
                raise ValueError("Email must be @company.com")

    ValidatedUser.create_table()
    user = ValidatedUser(pk="USER#4", email="test@gmail.com")

    with pytest.raises(ValueError, match="Email must be @company.com"):
        user.save()

    # Item should NOT be saved
    assert ValidatedUser.get(pk="USER#4") is None


def test_before_save_can_modify_encrypted_data(defaults, unprotected):
    """Test that before_save can modify data before encryption."""

    class NormalizedUser(Model):
        model_config = ModelConfig(table="normalized_users")

        pk = StringAttribute(hash_key=True)
        email = EncryptedAttribute()

        @before_save
        def normalize_email(self):
            self.email = self.email.strip().lower()

    NormalizedUser.create_table()
    user = NormalizedUser(pk="USER#5", email="  John@Example.ORG  ")
    user.save()

    # Local instance should be modified
    assert user.email == "john@example.org"

    # Saved data should be normalized
    assert NormalizedUser.get(pk="USER#5").email == "john@example.org"


def test_model_config_skip_hooks_default(defaults):
    """Test that ModelConfig skip_hooks=True skips hooks by default."""
    call_log = []

    class BulkModel(Model):
        model_config = ModelConfig(table="bulk", skip_hooks=True)

        pk = StringAttribute(hash_key=True)

        @before_save
        def log_save(self):
            call_log.append("called")

    BulkModel.create_table()
    item = BulkModel(pk="BULK#1")
    item.save()

    assert len(call_log) == 0

    # But item should be saved
    assert BulkModel.get(pk="BULK#1") is not None


def test_model_config_skip_hooks_override(defaults):
    """Test that skip_hooks=False overrides ModelConfig skip_hooks=True."""
    call_log = []

    class BulkModel(Model):
        model_config = ModelConfig(table="bulk", skip_hooks=True)

        pk = StringAttribute(hash_key=True)

        @before_save
        def log_save(self):
            call_log.append("called")

    BulkModel.create_table()
    item = BulkModel(pk="BULK#2")
    item.save(skip_hooks=False)

    assert call_log == ["called"]
