from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

# -----------------------------
# .env Loader
# -----------------------------
from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
ENV_PATH = os.path.join(BASE_DIR, "..", ".env")
load_dotenv(dotenv_path=ENV_PATH, override=False)


# -----------------------------
# Env helpers
# -----------------------------
def env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None or not str(v).strip():
        return default
    return str(v).strip().lower() in ("1", "true", "yes", "on")


def env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, default))
    except Exception:
        return default


def env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, default))
    except Exception:
        return default


def env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(key)
    return v.strip() if (v and str(v).strip() != "") else default


def env_first(*keys: str, default: Optional[str] = None) -> Optional[str]:
    for k in keys:
        v = env_str(k)
        if v:
            return v
    return default


def _csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(p.strip() for p in value.split(",") if p.strip())


FLOW_PROFILES = ("basic", "contact")
CLOSING_MODES = ("model", "summary", "canned")


# -----------------------------
# Settings Object
# -----------------------------
@dataclass(frozen=True)
class Settings:
    AIRTABLE_API_KEY: Optional[str]
    AIRTABLE_BASE_ID: Optional[str]
    CONVERSATIONS_TABLE: str
    LEADS_TABLE: str
    FORCE_IN_MEMORY: bool
    OPENAI_API_KEY: Optional[str]
    OPENAI_MODEL: str
    OPENAI_TEMPERATURE: float
    OPENAI_TIMEOUT: float
    OPENAI_MAX_RETRIES: int
    OPENAI_MAX_TOKENS: int
    FLOW_PROFILE: str
    CLOSING_MODE: str
    LEADS_ENABLED: bool
    LEAD_SOURCE: str
    SESSION_HEADER: str
    REQUIRE_SESSION_HEADER: bool
    CORS_ALLOW_ORIGINS: Tuple[str, ...]
    STRICT_MODE: bool

    @property
    def airtable_configured(self) -> bool:
        return bool(self.AIRTABLE_API_KEY and self.AIRTABLE_BASE_ID)

    def missing_env(self) -> list[str]:
        missing: list[str] = []
        if not self.AIRTABLE_API_KEY:
            missing.append("AIRTABLE_API_KEY")
        if not self.AIRTABLE_BASE_ID:
            missing.append("AIRTABLE_BASE_ID|FOREMAN_AIRTABLE_BASE_ID")
        if self.CLOSING_MODE == "model" and not self.OPENAI_API_KEY:
            missing.append("OPENAI_API_KEY")
        return missing


def _choice(key: str, allowed: Tuple[str, ...], default: str) -> str:
    v = (env_str(key) or default).lower()
    return v if v in allowed else default


@lru_cache(maxsize=1)
def settings() -> Settings:
    return Settings(
        AIRTABLE_API_KEY=env_str("AIRTABLE_API_KEY"),
        AIRTABLE_BASE_ID=env_first("AIRTABLE_BASE_ID", "FOREMAN_AIRTABLE_BASE_ID"),
        CONVERSATIONS_TABLE=env_str("CONVERSATIONS_TABLE", "Conversations") or "Conversations",
        LEADS_TABLE=env_str("LEADS_TABLE", "Leads") or "Leads",
        FORCE_IN_MEMORY=env_bool("FOREMAN_FORCE_IN_MEMORY", False),
        OPENAI_API_KEY=env_str("OPENAI_API_KEY"),
        OPENAI_MODEL=env_str("OPENAI_MODEL", "gpt-4o-mini") or "gpt-4o-mini",
        OPENAI_TEMPERATURE=env_float("OPENAI_TEMPERATURE", 0.4),
        OPENAI_TIMEOUT=env_float("OPENAI_TIMEOUT", 12.0),
        OPENAI_MAX_RETRIES=env_int("OPENAI_MAX_RETRIES", 0),
        OPENAI_MAX_TOKENS=env_int("OPENAI_MAX_TOKENS", 300),
        FLOW_PROFILE=_choice("FLOW_PROFILE", FLOW_PROFILES, "basic"),
        CLOSING_MODE=_choice("CLOSING_MODE", CLOSING_MODES, "model"),
        LEADS_ENABLED=env_bool("LEADS_ENABLED", True),
        LEAD_SOURCE=env_str("LEAD_SOURCE", "Website Chat") or "Website Chat",
        SESSION_HEADER=(env_str("SESSION_HEADER", "x-session-id") or "x-session-id").lower(),
        REQUIRE_SESSION_HEADER=env_bool("REQUIRE_SESSION_HEADER", False),
        CORS_ALLOW_ORIGINS=_csv(env_str("CORS_ALLOW_ORIGINS", "*")) or ("*",),
        STRICT_MODE=env_bool("STRICT_MODE", False),
    )
