# foreman/dispatcher.py
"""
Conversation Dispatcher
-----------------------
One request-response cycle per inbound chat message:

    load record → store prior answer → compute next step → persist step
    → (on completion) terminal action

All external calls run sequentially. There is no lock around the
read-modify-write: two concurrent messages for one session may both store
an answer for the same field, and one of the two answers is silently lost.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from foreman.ai.closer import AICloser
from foreman.airtable_schema import conversations_field_map
from foreman.closing import ClosingHandler
from foreman.config import Settings, settings
from foreman.conversation_store import ConversationStore, LeadStore
from foreman.flow import COMPLETED_REPLY, STEP_COMPLETE, FlowStep, get_flow
from foreman.flow_engine import TURN_ASK, TURN_COMPLETED, plan_fallback_opening, plan_turn
from foreman.runtime import get_logger
from foreman.tables import get_convos, get_leads

logger = get_logger("dispatcher")


@dataclass(frozen=True)
class DispatchResult:
    reply_text: str
    step: Optional[str] = None
    stored_field: Optional[str] = None
    lead_created: bool = False
    degraded: bool = False


class FlowDispatcher:
    def __init__(self, *, store: ConversationStore, closing: ClosingHandler, flow: Tuple[FlowStep, ...]):
        self.store = store
        self.closing = closing
        self.flow = flow

    def handle_message(self, session_id: str, message: str) -> DispatchResult:
        loaded = self.store.load_or_create(session_id)
        if not loaded.ok or loaded.record is None:
            plan = plan_fallback_opening(self.flow)
            logger.warning(f"⚠️ Record unavailable for {session_id} ({loaded.error}); sending opening prompt")
            return DispatchResult(reply_text=plan.reply, degraded=True)

        record = loaded.record
        plan = plan_turn(record, message, self.flow)
        cf = conversations_field_map()
        degraded = False

        if plan.kind == TURN_COMPLETED:
            logger.info(f"✅ Session {session_id} already complete")
            return DispatchResult(reply_text=COMPLETED_REPLY, step=STEP_COMPLETE)

        if plan.answer_field:
            stored = self.store.update(record.record_id, {plan.answer_field: message})
            if not stored.ok:
                degraded = True
                logger.warning(f"⚠️ Answer for {plan.answer_field} not persisted (session {session_id})")

        if plan.kind == TURN_ASK:
            step = plan.next_step
            moved = self.store.update(record.record_id, {cf["STEP"]: step.field, cf["LAST_QUESTION"]: step.question})
            if not moved.ok:
                degraded = True
                logger.warning(f"⚠️ Step advance to {step.field} not persisted (session {session_id})")
            return DispatchResult(
                reply_text=plan.reply,
                step=step.field,
                stored_field=plan.answer_field,
                degraded=degraded,
            )

        finished = self.store.update(record.record_id, {cf["STEP"]: STEP_COMPLETE})
        if not finished.ok:
            degraded = True
            logger.warning(f"⚠️ Completion not persisted (session {session_id})")

        outcome = self.closing.finish(session_id, plan.answers)
        logger.info(f"🏁 Session {session_id} complete (lead={bool(outcome.lead and outcome.lead.created)})")
        return DispatchResult(
            reply_text=outcome.reply,
            step=STEP_COMPLETE,
            stored_field=plan.answer_field,
            lead_created=bool(outcome.lead and outcome.lead.created),
            degraded=degraded or outcome.used_fallback,
        )


def build_dispatcher(cfg: Optional[Settings] = None) -> FlowDispatcher:
    cfg = cfg or settings()
    flow = get_flow(cfg.FLOW_PROFILE)
    closing = ClosingHandler(
        leads=LeadStore(get_leads(), flow, cfg.LEAD_SOURCE),
        closer=AICloser(cfg),
        flow=flow,
        mode=cfg.CLOSING_MODE,
        leads_enabled=cfg.LEADS_ENABLED,
    )
    return FlowDispatcher(store=ConversationStore(get_convos(), flow), closing=closing, flow=flow)
