"""
🌲 Intake Flow Definition
-------------------------
The fixed questionnaire the Foreman walks a landowner through.
The ordering of each flow is the contract the flow engine follows.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from foreman.runtime import get_logger

logger = get_logger("flow")

STEP_START = "start"
STEP_COMPLETE = "complete"


@dataclass(frozen=True)
class FlowStep:
    field: str
    question: str


SITE_FLOW: Tuple[FlowStep, ...] = (
    FlowStep("Acreage", "About how many acres are you looking to clear?"),
    FlowStep("Density", "How dense is the vegetation? Light brush, heavy brush, or small trees?"),
    FlowStep("Terrain", "Is the terrain mostly flat, hilly, or steep?"),
    FlowStep("Access", "How is access for equipment? Easy access or somewhat limited?"),
    FlowStep("Location", "What city or county is the property located in?"),
)

CONTACT_FLOW: Tuple[FlowStep, ...] = SITE_FLOW + (
    FlowStep("ContactName", "Who should we ask for when we follow up?"),
    FlowStep("Phone", "What's the best phone number to reach you?"),
    FlowStep("Email", "And what email address should we send the estimate to?"),
)

FLOWS = {
    "basic": SITE_FLOW,
    "contact": CONTACT_FLOW,
}

# -----------------------------
# Fixed replies
# -----------------------------
OPENING_PROMPT = SITE_FLOW[0].question

COMPLETED_REPLY = (
    "Thanks again! We already have everything we need, "
    "and someone from IronPaw Forestry will reach out to schedule your site visit."
)

FALLBACK_CLOSING = (
    "Thanks for the details. The next step would be scheduling a site visit "
    "so we can give you an accurate estimate."
)

FALLBACK_REPLY = (
    "Sorry, I didn't catch that on our end. "
    "Could you send it one more time?"
)


def get_flow(profile: Optional[str]) -> Tuple[FlowStep, ...]:
    key = (profile or "basic").strip().lower()
    flow = FLOWS.get(key)
    if flow is None:
        logger.warning(f"⚠️ Unknown flow profile {profile!r}; using 'basic'")
        return SITE_FLOW
    return flow


def flow_fields(flow: Tuple[FlowStep, ...]) -> Tuple[str, ...]:
    return tuple(s.field for s in flow)


def step_for(flow: Tuple[FlowStep, ...], field: Optional[str]) -> Optional[FlowStep]:
    if not field:
        return None
    return next((s for s in flow if s.field == field), None)


def is_answered(answers: Mapping[str, object], field: str) -> bool:
    v = answers.get(field)
    if v is None:
        return False
    return bool(str(v).strip())


def next_pending(flow: Tuple[FlowStep, ...], answers: Mapping[str, object]) -> Optional[FlowStep]:
    """First step in flow order whose field has no answer yet."""
    return next((s for s in flow if not is_answered(answers, s.field)), None)
