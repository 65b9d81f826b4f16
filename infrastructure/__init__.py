"""
STACKBRIDGE INFRASTRUCTURE - System-Level Modules

This package contains infrastructure components:
- config: TOML configuration loading (config/stackbridge.toml)
- logger: Mutation journal for graph proxies
"""

from infrastructure.logger import (
    MutationLogger,
    MutationEvent,
    MutationType,
    LoggerConfig,
    get_logger,
    configure_logger,
)
from infrastructure.config import BridgeConfig, load_config, apply_config

__all__ = [
    "MutationLogger",
    "MutationEvent",
    "MutationType",
    "LoggerConfig",
    "get_logger",
    "configure_logger",
    "BridgeConfig",
    "load_config",
    "apply_config",
]
