"""Airtable-backed record store for Conversations and Leads.

Every call into the table is wrapped: failures come back as ``ok=False``
results (and a log line) instead of exceptions, so the dispatcher can pick a
fallback reply explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from foreman.airtable_schema import conversations_field_map, leads_field_map, match_formula
from foreman.flow import STEP_START, FlowStep, flow_fields, is_answered
from foreman.runtime import get_logger, iso_now

logger = get_logger("conversation_store")


@dataclass
class ConversationRecord:
    record_id: str
    session_id: str
    step: str = STEP_START
    answers: Dict[str, str] = field(default_factory=dict)
    last_question: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_airtable(cls, record: Dict[str, Any], flow: Tuple[FlowStep, ...]) -> "ConversationRecord":
        cf = conversations_field_map()
        fields = record.get("fields", {}) or {}
        answers: Dict[str, str] = {}
        for name in flow_fields(flow):
            if is_answered(fields, name):
                answers[name] = str(fields[name])
        return cls(
            record_id=record.get("id", ""),
            session_id=str(fields.get(cf["SESSION_ID"]) or ""),
            step=str(fields.get(cf["STEP"]) or STEP_START),
            answers=answers,
            last_question=fields.get(cf["LAST_QUESTION"]) or None,
            updated_at=fields.get(cf["UPDATED_AT"]) or None,
        )


@dataclass(frozen=True)
class StoreResult:
    ok: bool
    record: Optional[ConversationRecord] = None
    error: Optional[str] = None
    created: bool = False


@dataclass(frozen=True)
class LeadResult:
    ok: bool
    lead_id: Optional[str] = None
    created: bool = False
    error: Optional[str] = None


def _describe(exc: Exception) -> str:
    return f"{exc.__class__.__name__}: {exc}"


class ConversationStore:
    """find / create / update over the Conversations table, keyed by Session ID."""

    def __init__(self, table: Any, flow: Tuple[FlowStep, ...]):
        self.table = table
        self.flow = flow

    def find(self, session_id: str) -> StoreResult:
        cf = conversations_field_map()
        try:
            rows = self.table.all(formula=match_formula(cf["SESSION_ID"], session_id), max_records=1) or []
        except Exception as e:
            logger.error(f"❌ Conversation lookup failed for {session_id}: {_describe(e)}")
            return StoreResult(ok=False, error=_describe(e))
        if not rows:
            return StoreResult(ok=True)
        # first row is authoritative; duplicates for a session are not reconciled here
        return StoreResult(ok=True, record=ConversationRecord.from_airtable(rows[0], self.flow))

    def create(self, session_id: str) -> StoreResult:
        cf = conversations_field_map()
        payload = {
            cf["SESSION_ID"]: session_id,
            cf["STEP"]: STEP_START,
            cf["UPDATED_AT"]: iso_now(),
        }
        try:
            created = self.table.create(payload)
        except Exception as e:
            logger.error(f"❌ Conversation create failed for {session_id}: {_describe(e)}")
            return StoreResult(ok=False, error=_describe(e))
        record = ConversationRecord.from_airtable(created or {}, self.flow)
        if not record.record_id:
            return StoreResult(ok=False, error="create returned no record id")
        record.session_id = record.session_id or session_id
        logger.info(f"🆕 Conversation created {record.record_id} for session {session_id}")
        return StoreResult(ok=True, record=record, created=True)

    def load_or_create(self, session_id: str) -> StoreResult:
        found = self.find(session_id)
        if not found.ok or found.record is not None:
            return found
        return self.create(session_id)

    def update(self, record_id: str, fields: Dict[str, Any]) -> StoreResult:
        cf = conversations_field_map()
        payload = dict(fields)
        payload[cf["UPDATED_AT"]] = iso_now()
        try:
            updated = self.table.update(record_id, payload)
        except Exception as e:
            logger.error(f"❌ Conversation update failed for {record_id}: {_describe(e)}")
            return StoreResult(ok=False, error=_describe(e))
        return StoreResult(ok=True, record=ConversationRecord.from_airtable(updated or {}, self.flow))


class LeadStore:
    """Write-only lead emission into the Leads table."""

    def __init__(self, table: Any, flow: Tuple[FlowStep, ...], source: str):
        self.table = table
        self.flow = flow
        self.source = source

    def _existing(self, session_id: str) -> Optional[Dict[str, Any]]:
        lf = leads_field_map()
        rows = self.table.all(formula=match_formula(lf["SESSION_ID"], session_id), max_records=1) or []
        return rows[0] if rows else None

    def create_lead(self, session_id: str, answers: Dict[str, str]) -> LeadResult:
        lf = leads_field_map()
        try:
            existing = self._existing(session_id)
            if existing:
                logger.warning(f"⚠️ Lead already exists for session {session_id} ({existing.get('id')}); skipping")
                return LeadResult(ok=True, lead_id=existing.get("id"), created=False)

            payload: Dict[str, Any] = {
                lf["SESSION_ID"]: session_id,
                lf["SOURCE"]: self.source,
                lf["CREATED_AT"]: iso_now(),
            }
            for name in flow_fields(self.flow):
                if is_answered(answers, name):
                    payload[name] = answers[name]

            created = self.table.create(payload) or {}
        except Exception as e:
            logger.error(f"❌ Lead create failed for {session_id}: {_describe(e)}")
            return LeadResult(ok=False, error=_describe(e))

        logger.info(f"📇 Lead {created.get('id')} created for session {session_id}")
        return LeadResult(ok=True, lead_id=created.get("id"), created=True)
