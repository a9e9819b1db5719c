"""Internal logging helpers.

All lockbox loggers live under the "lockbox" hierarchy. Values of encrypted
attributes, plaintext or ciphertext, are never passed to these helpers.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger("lockbox")


def _log_operation(operation: str, table: str, duration_ms: float, **extra: Any) -> None:
    """Log a storage operation at DEBUG level."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    details = " ".join(f"{k}={v}" for k, v in extra.items() if v is not None)
    logger.debug("%s table=%s duration_ms=%.2f %s", operation, table, duration_ms, details)


def _log_warning(operation: str, message: str) -> None:
    """Log a warning tied to an operation."""
    logger.warning("%s: %s", operation, message)


def _log_info(message: str, *args: Any) -> None:
    logger.info(message, *args)
