"""
💬 Chat Widget Webhook
----------------------
POST /dispatch  { "message": "..." }  →  { "ok": true, "reply_text": "..." }

4xx only for malformed input. Store or model failures, and anything
unexpected past validation, still answer 200 with a usable reply.
"""

from __future__ import annotations

import asyncio
import json
from functools import lru_cache
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from foreman.config import settings
from foreman.dispatcher import FlowDispatcher, build_dispatcher
from foreman.flow import FALLBACK_REPLY
from foreman.runtime import get_logger
from foreman.session import MissingSessionError, resolve_session_id

logger = get_logger("chat_webhook")

router = APIRouter()

DISPATCH_PATHS = ("/dispatch", "/.netlify/functions/dispatch")


@lru_cache(maxsize=1)
def get_dispatcher() -> FlowDispatcher:
    return build_dispatcher()


def _json(status_code: int, body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body)


def _error(status_code: int, message: str) -> JSONResponse:
    return _json(status_code, {"ok": False, "error": message})


async def _parse_message(request: Request) -> str | JSONResponse:
    raw = await request.body()
    try:
        body = json.loads(raw or b"{}")
    except (ValueError, UnicodeDecodeError):
        return _error(400, "Invalid JSON")
    if not isinstance(body, dict):
        return _error(400, "Invalid JSON")

    message = body.get("message")
    message = message.strip() if isinstance(message, str) else ""
    if not message:
        return _error(400, "No message provided")
    return message


async def dispatch(request: Request):
    parsed = await _parse_message(request)
    if isinstance(parsed, JSONResponse):
        return parsed

    cfg = settings()
    try:
        resolved = resolve_session_id(
            request.headers,
            header_name=cfg.SESSION_HEADER,
            require_header=cfg.REQUIRE_SESSION_HEADER,
        )
    except MissingSessionError:
        return _error(400, "Missing session header")

    try:
        result = await asyncio.to_thread(get_dispatcher().handle_message, resolved.session_id, parsed)
        reply = result.reply_text or FALLBACK_REPLY
    except Exception:
        logger.exception(f"❌ Dispatch failed for session {resolved.session_id}")
        reply = FALLBACK_REPLY

    return _json(200, {"ok": True, "reply_text": reply})


async def method_not_allowed(request: Request):
    return _error(405, "Method not allowed")


for _path in DISPATCH_PATHS:
    router.add_api_route(_path, dispatch, methods=["POST"])
    router.add_api_route(_path, method_not_allowed, methods=["GET", "PUT", "PATCH", "DELETE"])
