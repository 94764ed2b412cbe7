"""Core VouchLedger utilities.

This module exports core utilities for use throughout the application.
"""

from vouchledger.core.config import Settings, get_settings
from vouchledger.core.context import (
    get_current_actor_id,
    reset_current_actor_id,
    set_current_actor_id,
)
from vouchledger.core.logging import (
    LoggingContext,
    bind_correlation_id,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggingContext",
    "bind_correlation_id",
    "clear_context",
    "get_current_actor_id",
    "set_current_actor_id",
    "reset_current_actor_id",
]
