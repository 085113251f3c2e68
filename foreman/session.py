"""
🔑 Session Resolver
-------------------
Maps an inbound request to a stable session id.

Preferred: an explicit token header set by the chat widget on first load.
Fallback: md5 of the User-Agent. Two visitors with the same browser string
share a conversation, so deployments should always send the header.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Mapping, Optional

from foreman.runtime import get_logger

logger = get_logger("session")


class MissingSessionError(ValueError):
    """Raised when the session header is required but absent."""


@dataclass(frozen=True)
class SessionResolution:
    session_id: str
    source: str  # "header" | "fingerprint"


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    # starlette Headers are case-insensitive already; plain dicts are not
    v = headers.get(name)
    if v is None:
        lowered = name.lower()
        v = next((val for key, val in headers.items() if key.lower() == lowered), None)
    v = (v or "").strip()
    return v or None


def fingerprint(user_agent: Optional[str]) -> str:
    return hashlib.md5((user_agent or "anon").encode("utf-8")).hexdigest()


def resolve_session_id(
    headers: Mapping[str, str],
    *,
    header_name: str = "x-session-id",
    require_header: bool = False,
) -> SessionResolution:
    token = _header(headers, header_name)
    if token:
        return SessionResolution(session_id=token, source="header")

    if require_header:
        raise MissingSessionError(f"Missing {header_name} header")

    sid = fingerprint(_header(headers, "user-agent"))
    logger.warning(f"⚠️ No {header_name} header; falling back to user-agent fingerprint {sid[:8]}…")
    return SessionResolution(session_id=sid, source="fingerprint")
