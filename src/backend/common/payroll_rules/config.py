from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .exceptions import ConfigError


load_dotenv()

STORE_PATH_DEFAULT = ".payroll_rules.json"


@dataclass(frozen=True)
class RulesSettings:
    store_path: str
    default_category: str
    default_priority: int
    decimal_places: int
    log_level: str


def get_settings() -> RulesSettings:
    """
    Load rules configuration from environment variables.

    Reads (all optional):
      RULES_STORE_PATH, RULES_DEFAULT_CATEGORY, RULES_DEFAULT_PRIORITY,
      RULES_DECIMAL_PLACES, RULES_LOG_LEVEL
    """
    return RulesSettings(
        store_path=os.getenv("RULES_STORE_PATH", STORE_PATH_DEFAULT).strip() or STORE_PATH_DEFAULT,
        default_category=os.getenv("RULES_DEFAULT_CATEGORY", "payment").strip() or "payment",
        default_priority=_int_env("RULES_DEFAULT_PRIORITY", 1, minimum=1),
        decimal_places=_int_env("RULES_DECIMAL_PLACES", 2, minimum=0),
        log_level=os.getenv("RULES_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )


def _int_env(name: str, default: int, *, minimum: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}.") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}.")
    return value
