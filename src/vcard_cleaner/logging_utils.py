from __future__ import annotations

import logging
import os
from typing import Optional

from .config_loader import CleanerConfig

LOG_LEVEL_ENV = "VCARD_CLEANER_LOG_LEVEL"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _resolve_level(level_name: str) -> int:
    """Map a level name such as ``"info"`` or ``"20"`` to a number; unknown names mean WARNING."""
    normalized = (level_name or "WARNING").upper()
    if normalized.isdigit():
        return int(normalized)
    level = getattr(logging, normalized, None)
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(
    config: Optional[CleanerConfig], level_override: Optional[str] = None
) -> None:
    """
    Set the level for the cleaner's warnings (skipped phones, invalid numbers,
    duplicate phone listing) and the CLI's error messages.

    The ``VCARD_CLEANER_LOG_LEVEL`` environment variable wins over ``--log-level``,
    which wins over ``logging.level`` in the YAML file. Without any of them only
    warnings and errors are shown. ``config`` may be ``None`` when the YAML file
    could not be read; the CLI then still reports the failure.
    """
    config_level = config.logging.level if config is not None else None
    effective_level_name = os.getenv(LOG_LEVEL_ENV) or level_override or config_level or "WARNING"
    level_value = _resolve_level(effective_level_name)

    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level_value)
    else:
        logging.basicConfig(level=level_value, format=LOG_FORMAT)
