"""Environment settings.

Read once when lockbox needs a default key resolver and none was
set explicitly. All variables use the LOCKBOX_ prefix:

- LOCKBOX_MASTER_KEY: 64 hex characters.
- LOCKBOX_PREVIOUS_MASTER_KEYS: JSON list of older master keys, newest first.
"""

from __future__ import annotations

import re
from typing import Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


class LockboxSettings(BaseSettings):
    """Settings loaded from the environment (and an optional .env file)."""

    model_config = SettingsConfigDict(env_prefix="LOCKBOX_", env_file=".env", extra="ignore")

    master_key: Optional[SecretStr] = None
    previous_master_keys: list[SecretStr] = []

    @field_validator("master_key")
    @classmethod
    def validate_master_key(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        if v is not None and not _HEX_KEY.match(v.get_secret_value()):
            raise ValueError("master_key must be 64 hex characters")
        return v

    @field_validator("previous_master_keys")
    @classmethod
    def validate_previous_master_keys(cls, v: list[SecretStr]) -> list[SecretStr]:
        for key in v:
            if not _HEX_KEY.match(key.get_secret_value()):
                raise ValueError("previous_master_keys must be 64 hex characters each")
        return v
