"""Protected mode example."""

import lockbox
from lockbox import Box, DatabaseClient, KeyResolver, Model, ModelConfig, attribute_key
from lockbox.attributes import EncryptedAttribute, StringAttribute

lockbox.set_default_client(DatabaseClient("sqlite:///app.db"))
lockbox.set_default_key_resolver(KeyResolver(master_key=lockbox.generate_key()))


class User(Model):
    model_config = ModelConfig(table="users")

    pk = StringAttribute(hash_key=True)
    name = StringAttribute()
    email = EncryptedAttribute()


User.create_table()
user = User.create(pk="USER#1", name="John", email="john@example.org")

# Support console: nobody sees plaintext, nobody re-encrypts by accident
lockbox.enable_protected_mode()

user = User.get(pk="USER#1")
print(user.email == user.email_ciphertext)  # True
print(User.pluck("email"))  # ciphertexts

print(user.update(name="Johnny"))  # True, unencrypted columns still work
print(user.update(email="jane@example.org"))  # False
print(user.errors)

# Direct column writes are not covered by protected mode
user.update_column("email", "jane@example.org")

lockbox.disable_protected_mode()

# Decrypt by hand with the same key the model uses
box = Box(attribute_key(table="users", attribute="email_ciphertext"), encode=True)
print(box.decrypt_str(user.email_ciphertext))  # jane@example.org

# Scoped: only this block, restored even on errors
with lockbox.protected_mode():
    print(user.email)  # ciphertext
print(user.email)  # jane@example.org
