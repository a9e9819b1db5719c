"""Key rotation example."""

import os

import lockbox
from lockbox import KeyResolver

# Old ciphertexts keep decrypting with the previous master key,
# new writes use the new one.
lockbox.set_default_key_resolver(
    KeyResolver(
        master_key=os.environ["NEW_MASTER_KEY"],
        previous_master_keys=[os.environ["OLD_MASTER_KEY"]],
    )
)

# Or from the environment:
#   LOCKBOX_MASTER_KEY=<new key>
#   LOCKBOX_PREVIOUS_MASTER_KEYS='["<old key>"]'
lockbox.clear_default_key_resolver()
resolver = lockbox.get_default_key_resolver()
