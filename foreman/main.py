"""
IronPaw Foreman: chat intake service
- Website widget → /dispatch → question flow → Airtable
- CORS open to the widget origins
- Startup checks (fatal only under STRICT_MODE)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from foreman import __version__
from foreman.chat_webhook import router as chat_router
from foreman.config import settings
from foreman.runtime import get_logger
from foreman.tables import summary as tables_summary

logger = get_logger("main")


def _iso_ts() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


# ─────────────────────────── Startup checks ─────────────────────────
def startup_checks() -> None:
    cfg = settings()
    logger.info("✅ Environment loaded:")
    logger.info(f"   Store: {tables_summary()}")
    logger.info(f"   FLOW_PROFILE={cfg.FLOW_PROFILE} CLOSING_MODE={cfg.CLOSING_MODE} LEADS_ENABLED={cfg.LEADS_ENABLED}")

    missing = cfg.missing_env()
    if missing:
        msg = f"🚨 Missing env vars → {', '.join(missing)}"
        logger.error(msg)
        if cfg.STRICT_MODE:
            raise RuntimeError(msg)
    else:
        logger.info("✅ Startup checks passed")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    startup_checks()
    yield


# ─────────────────────────── FastAPI app ────────────────────────────
app = FastAPI(title="IronPaw Foreman", version=__version__, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings().CORS_ALLOW_ORIGINS),
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["*"],
)
app.include_router(chat_router)


# ─────────────────────────── Health ────────────────────────────────
@app.get("/ping")
async def ping():
    return {"ok": True, "pong": True, "time": _iso_ts()}


@app.get("/health")
async def health():
    cfg = settings()
    return {
        "ok": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "flow_profile": cfg.FLOW_PROFILE,
        "closing_mode": cfg.CLOSING_MODE,
        "leads_enabled": cfg.LEADS_ENABLED,
        "store": tables_summary()["backend"],
    }
