"""
⚙️ Flow Engine
--------------
Pure decision logic: (record snapshot, incoming message) → TurnPlan.

No I/O happens here. The dispatcher applies the plan against the store.

Attribution is step-indexed: a message answers the field named by the
record's ``Step``. When the step is ``start``, blank, or not a field of the
configured flow, the message answers the first pending field.
``Last Question`` is written for operators but never read back here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from foreman.conversation_store import ConversationRecord
from foreman.flow import (
    OPENING_PROMPT,
    STEP_COMPLETE,
    FlowStep,
    is_answered,
    next_pending,
    step_for,
)

TURN_COMPLETED = "completed"  # session already closed; no mutation
TURN_ASK = "ask"              # ask the next pending question
TURN_FINISH = "finish"        # last field answered; run the terminal action
TURN_OPENING = "opening"      # record unavailable; ask the opening question


@dataclass(frozen=True)
class TurnPlan:
    kind: str
    answer_field: Optional[str] = None
    next_step: Optional[FlowStep] = None
    reply: Optional[str] = None
    answers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.kind == TURN_FINISH


def resolve_answer_field(record: ConversationRecord, flow: Tuple[FlowStep, ...]) -> Optional[str]:
    """Which field the incoming message answers."""
    current = step_for(flow, record.step)
    if current is not None:
        return current.field
    pending = next_pending(flow, record.answers)
    return pending.field if pending else None


def plan_turn(record: ConversationRecord, message: str, flow: Tuple[FlowStep, ...]) -> TurnPlan:
    if record.step == STEP_COMPLETE:
        return TurnPlan(kind=TURN_COMPLETED, answers=dict(record.answers))

    answers = dict(record.answers)
    answer_field = resolve_answer_field(record, flow)

    # first answer wins; a repeat for a filled field answers nothing
    if answer_field and not is_answered(answers, answer_field):
        answers[answer_field] = message
    else:
        answer_field = None

    upcoming = next_pending(flow, answers)
    if upcoming is not None:
        return TurnPlan(
            kind=TURN_ASK,
            answer_field=answer_field,
            next_step=upcoming,
            reply=upcoming.question,
            answers=answers,
        )
    return TurnPlan(kind=TURN_FINISH, answer_field=answer_field, answers=answers)


def plan_fallback_opening(flow: Tuple[FlowStep, ...]) -> TurnPlan:
    first = flow[0] if flow else None
    return TurnPlan(
        kind=TURN_OPENING,
        next_step=first,
        reply=first.question if first else OPENING_PROMPT,
    )
