import os
import sys

# Ensure project root is in sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from foreman import chat_webhook
from foreman.config import settings
from foreman.tables import reset_tables


class CountingCloser:
    """Stands in for AICloser; records every call."""

    def __init__(self, result):
        self.result = result
        self.calls = []

    def reply(self, answers, flow):
        self.calls.append(dict(answers))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FailingTable:
    """Table whose every call raises, like an unreachable Airtable."""

    def __init__(self, exc=None):
        self.exc = exc or RuntimeError("503 Service Unavailable")
        self.calls = 0

    def all(self, **kwargs):
        self.calls += 1
        raise self.exc

    def create(self, payload):
        self.calls += 1
        raise self.exc

    def update(self, rec_id, payload):
        self.calls += 1
        raise self.exc


@pytest.fixture(autouse=True)
def _reset_state():
    for key in [
        "AIRTABLE_API_KEY",
        "AIRTABLE_BASE_ID",
        "FOREMAN_AIRTABLE_BASE_ID",
        "OPENAI_API_KEY",
        "FLOW_PROFILE",
        "CLOSING_MODE",
        "LEADS_ENABLED",
        "REQUIRE_SESSION_HEADER",
        "SESSION_HEADER",
    ]:
        os.environ.pop(key, None)
    os.environ["FOREMAN_FORCE_IN_MEMORY"] = "1"
    settings.cache_clear()
    reset_tables()
    chat_webhook.get_dispatcher.cache_clear()
    yield
    settings.cache_clear()
    reset_tables()
    chat_webhook.get_dispatcher.cache_clear()
