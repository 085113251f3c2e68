"""
🧠 Foreman Runtime Core
-----------------------
Centralized utilities for logging, timing, timestamps,
and masked environment introspection.
"""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone
from typing import Optional

# Internal state flags
_LOGGING_CONFIGURED = False
_CORE_ENV_LOGGED = False


# ────────────────────────────────────────────────
# ENV MASKING + LOGGING CONFIG
# ────────────────────────────────────────────────
def mask_env_value(value: Optional[str]) -> str:
    """Mask sensitive env values (API keys, tokens, etc.)."""
    if not value:
        return "<missing>"
    trimmed = value.strip()
    if len(trimmed) <= 4:
        return "*" * len(trimmed)
    if len(trimmed) <= 8:
        return f"{trimmed[:2]}...{trimmed[-2:]}"
    return f"{trimmed[:4]}...{trimmed[-4:]}"


def _normalize_level(value: int | str | None) -> int:
    """Normalize string or int log level."""
    if value is None:
        env_level = os.getenv("FOREMAN_LOG_LEVEL")
        if env_level:
            value = env_level
        else:
            return logging.INFO
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: int | str | None = None) -> None:
    """Initialize root logging configuration once."""
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=_normalize_level(level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    _LOGGING_CONFIGURED = True
    _log_core_env()


def get_logger(name: str = "foreman") -> logging.Logger:
    """Return module-specific logger."""
    if not _LOGGING_CONFIGURED:
        configure_logging()
    return logging.getLogger(name)


# ────────────────────────────────────────────────
# CORE ENV LOGGING
# ────────────────────────────────────────────────
def _log_core_env() -> None:
    """Logs masked environment variables for observability."""
    global _CORE_ENV_LOGGED
    if _CORE_ENV_LOGGED:
        return
    logger = logging.getLogger("env")

    base = os.getenv("AIRTABLE_BASE_ID") or os.getenv("FOREMAN_AIRTABLE_BASE_ID") or "<missing>"
    logger.info(
        "Core env summary:\n"
        "• Airtable Key=%s | Base=%s | InMemory=%s\n"
        "• OpenAI Key=%s | Model=%s\n"
        "• Flow=%s | Closing=%s | Leads=%s",
        mask_env_value(os.getenv("AIRTABLE_API_KEY")),
        base,
        os.getenv("FOREMAN_FORCE_IN_MEMORY", "false"),
        mask_env_value(os.getenv("OPENAI_API_KEY")),
        os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        os.getenv("FLOW_PROFILE", "basic"),
        os.getenv("CLOSING_MODE", "model"),
        os.getenv("LEADS_ENABLED", "true"),
    )
    _CORE_ENV_LOGGED = True


# ────────────────────────────────────────────────
# TIME UTILITIES
# ────────────────────────────────────────────────
def utc_now() -> datetime:
    """Return UTC datetime (always timezone-aware)."""
    return datetime.now(timezone.utc)


def iso_now() -> str:
    """Return ISO8601 UTC timestamp (Z suffix)."""
    return utc_now().isoformat(timespec="seconds").replace("+00:00", "Z")


# ────────────────────────────────────────────────
# PERF TIMER
# ────────────────────────────────────────────────
class PerfTimer:
    """Context manager that logs the duration of a block."""

    def __init__(self, label: str):
        self.label = label
        self.start: Optional[float] = None
        self.duration: Optional[float] = None

    def __enter__(self):
        self.start = time.time()
        return self

    def __exit__(self, *_):
        self.duration = round(time.time() - (self.start or time.time()), 3)
        get_logger("perf").info("⏱ %s: %ss", self.label, self.duration)
