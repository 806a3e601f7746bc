# Infrastructure module - Logging and configuration

from .logging import (
    get_logger, configure_logging, TurnContext,
    log_turn_end, get_turn_id, generate_turn_id
)
from .config import ConfigManager, ChatConfig, CredentialStore

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "TurnContext",
    "log_turn_end",
    "get_turn_id",
    "generate_turn_id",
    # Config
    "ConfigManager",
    "ChatConfig",
    "CredentialStore",
]
