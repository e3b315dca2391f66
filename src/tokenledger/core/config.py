"""
TokenLedger Configuration

Settings are read from environment variables:

    TOKENLEDGER_LOG_LEVEL     logging level (default INFO)
    TOKENLEDGER_LOG_FILE      JSON log file path (default: console only)
    TOKENLEDGER_ENVIRONMENT   environment name (default development)
    TOKENLEDGER_LOG_EVENTS    1/0, log every delivered ledger event (default 1)
    TOKENLEDGER_STATE_FILE    JSON state file used by LedgerHost.save/load
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .logging_config import VALID_LEVELS

logger = logging.getLogger(__name__)

ENV_PREFIX = "TOKENLEDGER_"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class LedgerSettings:
    log_level: str = "INFO"
    log_file: Optional[str] = None
    environment: str = "development"
    log_events: bool = True
    state_file: Optional[str] = None


def _parse_flag(env_var: str, raw: str) -> bool:
    value = raw.strip()
    if value in ("1", "true", "yes"):
        return True
    if value in ("0", "false", "no"):
        return False
    raise ConfigurationError(f"{env_var} must be 1 or 0, got {raw!r}")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> LedgerSettings:
    """
    Build settings from the environment.

    Args:
        environ: Mapping to read instead of os.environ (used by tests)

    Raises:
        ConfigurationError: If a variable holds an invalid value
    """
    env = os.environ if environ is None else environ

    log_level = env.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO").strip().upper()
    if log_level not in VALID_LEVELS:
        raise ConfigurationError(
            f"{ENV_PREFIX}LOG_LEVEL {log_level!r} not in valid levels {VALID_LEVELS}"
        )

    log_file = env.get(f"{ENV_PREFIX}LOG_FILE", "").strip() or None
    environment = env.get(f"{ENV_PREFIX}ENVIRONMENT", "development").strip() or "development"
    log_events = _parse_flag(
        f"{ENV_PREFIX}LOG_EVENTS", env.get(f"{ENV_PREFIX}LOG_EVENTS", "1")
    )
    state_file = env.get(f"{ENV_PREFIX}STATE_FILE", "").strip() or None

    settings = LedgerSettings(
        log_level=log_level,
        log_file=log_file,
        environment=environment,
        log_events=log_events,
        state_file=state_file,
    )
    logger.debug(
        "Settings loaded",
        extra={"event": "config.loaded", "environment": environment, "log_level": log_level},
    )
    return settings
