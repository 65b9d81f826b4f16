"""
STACKBRIDGE CONFIG - Loading config/stackbridge.toml

Configuration is read once, decoded into msgspec structs, and applied to the
stdlib logging hierarchy and the global mutation journal.

Usage:
    from infrastructure.config import load_config, apply_config

    config = load_config()              # config/stackbridge.toml
    journal = apply_config(config)      # configures logging + journal
"""
import logging
import tomllib
import warnings
from pathlib import Path
from typing import Optional

import msgspec

from infrastructure.logger import LoggerConfig, MutationLogger, configure_logger


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "stackbridge.toml"

# Top-level packages whose loggers the [logging] section controls
LOGGER_NAMESPACES = ("core", "bridge", "infrastructure")


# =============================================================================
# CONFIG STRUCTS
# =============================================================================

class LoggingSection(msgspec.Struct, kw_only=True):
    level: str = "WARNING"


class JournalSection(msgspec.Struct, kw_only=True):
    enabled: bool = True
    buffer_size: int = 10000
    file_log: bool = False
    log_path: str = "./workspace/logs"


class BridgeConfig(msgspec.Struct, kw_only=True):
    logging: LoggingSection = msgspec.field(default_factory=LoggingSection)
    journal: JournalSection = msgspec.field(default_factory=JournalSection)


# =============================================================================
# LOADING
# =============================================================================

def load_config(path: Optional[Path] = None) -> BridgeConfig:
    """
    Load configuration from a TOML file.

    Falls back to defaults (with a warning) if the file cannot be read or
    does not match the expected shape.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    try:
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        warnings.warn(f"Failed to load config from TOML: {e}")
        return BridgeConfig()

    try:
        return msgspec.convert(raw, type=BridgeConfig)
    except msgspec.ValidationError as e:
        warnings.warn(f"Invalid config in {config_path}: {e}")
        return BridgeConfig()


def logger_config_from(config: BridgeConfig) -> LoggerConfig:
    journal = config.journal
    return LoggerConfig(
        enabled=journal.enabled,
        enable_file_log=journal.file_log,
        log_path=Path(journal.log_path),
        buffer_size=journal.buffer_size,
    )


def configure_logging(config: BridgeConfig) -> int:
    """Apply the configured level to the package loggers. Returns the level."""
    level = logging.getLevelName(config.logging.level.upper())
    if not isinstance(level, int):
        warnings.warn(f"Unknown log level {config.logging.level!r}, using WARNING")
        level = logging.WARNING
    for name in LOGGER_NAMESPACES:
        logging.getLogger(name).setLevel(level)
    return level


def apply_config(config: BridgeConfig) -> MutationLogger:
    """Configure logging and install a new global journal."""
    configure_logging(config)
    return configure_logger(logger_config_from(config))
