# foreman/ai/closer.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from openai import OpenAI

from foreman.config import Settings, settings
from foreman.flow import FlowStep, flow_fields
from foreman.runtime import PerfTimer, get_logger

logger = get_logger("ai_closer")


# ───────────────────────────────────────────────────────────
# Persona
# ───────────────────────────────────────────────────────────
SYSTEM_PROMPT = """
You are the AI Foreman for IronPaw Forestry, LLC.

You guide landowners through a forestry mulching estimate.
You ask ONE clear question at a time.
You never repeat a question that was already answered.
You are calm, practical, and professional.

Do not give exact prices.
Explain that pricing depends on site conditions.
Always end your reply with exactly one follow-up question.
""".strip()


@dataclass(frozen=True)
class CompletionResult:
    ok: bool
    text: Optional[str] = None
    error: Optional[str] = None


def build_user_message(answers: Mapping[str, str], flow: Tuple[FlowStep, ...]) -> str:
    lines = [f"{name}: {answers.get(name, '')}" for name in flow_fields(flow)]
    return (
        "Customer details:\n"
        + "\n".join(lines)
        + "\n\nExplain next steps and offer to schedule an estimate."
    )


# ───────────────────────────────────────────────────────────
# Client
# ───────────────────────────────────────────────────────────
class AICloser:
    """Asks the chat-completion endpoint to phrase the closing reply."""

    def __init__(self, cfg: Optional[Settings] = None, client: Optional[Any] = None):
        self.cfg = cfg or settings()
        self._client = client

    def _get_client(self) -> Optional[Any]:
        if self._client is not None:
            return self._client
        if not self.cfg.OPENAI_API_KEY:
            return None
        self._client = OpenAI(
            api_key=self.cfg.OPENAI_API_KEY,
            timeout=self.cfg.OPENAI_TIMEOUT,
            max_retries=self.cfg.OPENAI_MAX_RETRIES,
        )
        return self._client

    def reply(self, answers: Dict[str, str], flow: Tuple[FlowStep, ...]) -> CompletionResult:
        """
        Single stateless completion call. Never raises; failures come back
        as ``ok=False`` so the caller can substitute the fallback closing.
        """
        try:
            cli = self._get_client()
        except Exception as e:
            logger.error(f"❌ OpenAI client init failed: {e}")
            return CompletionResult(ok=False, error=str(e))
        if cli is None:
            logger.warning("⚠️ OpenAI unavailable or missing API key; using fallback closing.")
            return CompletionResult(ok=False, error="openai not configured")

        try:
            with PerfTimer("openai_closing"):
                resp = cli.chat.completions.create(
                    model=self.cfg.OPENAI_MODEL,
                    temperature=self.cfg.OPENAI_TEMPERATURE,
                    max_tokens=self.cfg.OPENAI_MAX_TOKENS,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": build_user_message(answers, flow)},
                    ],
                )
            content = ((resp.choices[0].message.content if resp and resp.choices else None) or "").strip()
        except Exception as e:
            logger.error(f"❌ OpenAI error: {e}")
            return CompletionResult(ok=False, error=str(e))

        if not content:
            logger.warning("⚠️ OpenAI returned empty content; using fallback closing.")
            return CompletionResult(ok=False, error="empty completion")
        return CompletionResult(ok=True, text=content)
