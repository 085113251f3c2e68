"""
🏁 Terminal Action Handler
--------------------------
Runs once, on the transition into ``complete``:
  • lead emission into the Leads table (optional)
  • the closing reply: model-phrased, templated summary, or canned sentence
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from foreman.conversation_store import LeadResult, LeadStore
from foreman.flow import FALLBACK_CLOSING, FlowStep, flow_fields, is_answered
from foreman.runtime import get_logger

logger = get_logger("closing")

CLOSING_MODEL = "model"
CLOSING_SUMMARY = "summary"
CLOSING_CANNED = "canned"


@dataclass(frozen=True)
class ClosingOutcome:
    reply: str
    lead: Optional[LeadResult] = None
    used_fallback: bool = False


def summary_reply(answers: Dict[str, str], flow: Tuple[FlowStep, ...]) -> str:
    parts = [f"{name}: {answers[name]}" for name in flow_fields(flow) if is_answered(answers, name)]
    recap = "; ".join(parts)
    return f"Here's what I have: {recap}. {FALLBACK_CLOSING}" if recap else FALLBACK_CLOSING


class ClosingHandler:
    def __init__(
        self,
        *,
        leads: Optional[LeadStore],
        closer: Optional[Any],
        flow: Tuple[FlowStep, ...],
        mode: str = CLOSING_MODEL,
        leads_enabled: bool = True,
    ):
        self.leads = leads
        self.closer = closer
        self.flow = flow
        self.mode = mode
        self.leads_enabled = leads_enabled

    def _emit_lead(self, session_id: str, answers: Dict[str, str]) -> Optional[LeadResult]:
        if not (self.leads_enabled and self.leads):
            return None
        result = self.leads.create_lead(session_id, answers)
        if not result.ok:
            logger.warning(f"⚠️ Lead emission failed for {session_id}: {result.error}")
        return result

    def _reply(self, answers: Dict[str, str]) -> Tuple[str, bool]:
        if self.mode == CLOSING_SUMMARY:
            return summary_reply(answers, self.flow), False
        if self.mode == CLOSING_CANNED or self.closer is None:
            return FALLBACK_CLOSING, False

        result = self.closer.reply(answers, self.flow)
        if result.ok and result.text:
            return result.text, False
        logger.warning(f"⚠️ Closing reply fell back: {result.error}")
        return FALLBACK_CLOSING, True

    def finish(self, session_id: str, answers: Dict[str, str]) -> ClosingOutcome:
        lead = self._emit_lead(session_id, answers)
        reply, used_fallback = self._reply(answers)
        return ClosingOutcome(reply=reply, lead=lead, used_fallback=used_fallback)
