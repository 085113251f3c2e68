import pytest
from fastapi.testclient import TestClient

import foreman.chat_webhook as chat_webhook
from foreman.dispatcher import DispatchResult
from foreman.flow import COMPLETED_REPLY, FALLBACK_CLOSING, FALLBACK_REPLY, SITE_FLOW
from foreman.main import app
from foreman.tables import get_convos, get_leads

client = TestClient(app)


def _post(message, sid="sid-web", **kwargs):
    headers = {"X-Session-Id": sid} if sid else {}
    return client.post("/dispatch", json={"message": message}, headers=headers, **kwargs)


class CountingDispatcher:
    def __init__(self, exc=None):
        self.calls = []
        self.exc = exc

    def handle_message(self, session_id, message):
        self.calls.append((session_id, message))
        if self.exc:
            raise self.exc
        return DispatchResult(reply_text="ok")


@pytest.fixture
def counting(monkeypatch):
    dispatcher = CountingDispatcher()
    monkeypatch.setattr(chat_webhook, "get_dispatcher", lambda: dispatcher)
    return dispatcher


def test_first_message_returns_second_question():
    resp = _post("5 acres")

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "reply_text": SITE_FLOW[1].question}
    row = get_convos().all()[0]["fields"]
    assert row["Session ID"] == "sid-web"
    assert row["Acreage"] == "5 acres"


def test_full_conversation_without_model_key_falls_back():
    replies = [_post(m).json()["reply_text"] for m in ["5", "light", "flat", "easy", "Ocala"]]

    assert replies[-1] == FALLBACK_CLOSING
    assert len(get_leads().all()) == 1
    assert _post("thanks").json()["reply_text"] == COMPLETED_REPLY
    assert len(get_leads().all()) == 1


def test_netlify_path_is_mounted():
    resp = client.post("/.netlify/functions/dispatch", json={"message": "5 acres"}, headers={"X-Session-Id": "n1"})
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


@pytest.mark.parametrize("body", [{"message": ""}, {"message": "   "}, {}, {"message": 42}])
def test_empty_message_is_rejected_before_dispatch(counting, body):
    resp = client.post("/dispatch", json=body, headers={"X-Session-Id": "s"})

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "No message provided"}
    assert counting.calls == []


@pytest.mark.parametrize("raw", [b"{not json", b"[1, 2]", b"\xff\xfe"])
def test_invalid_json_is_rejected(counting, raw):
    resp = client.post("/dispatch", content=raw, headers={"Content-Type": "application/json"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid JSON"
    assert counting.calls == []


def test_non_post_is_405(counting):
    resp = client.get("/dispatch")

    assert resp.status_code == 405
    assert resp.json() == {"ok": False, "error": "Method not allowed"}
    assert counting.calls == []


def test_required_session_header(monkeypatch, counting):
    monkeypatch.setenv("REQUIRE_SESSION_HEADER", "true")
    from foreman.config import settings

    settings.cache_clear()
    resp = _post("5 acres", sid=None)

    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing session header"
    assert counting.calls == []


def test_user_agent_fingerprint_when_no_header(counting):
    _post("hi", sid=None)
    _post("again", sid=None)

    assert len(counting.calls) == 2
    assert counting.calls[0][0] == counting.calls[1][0]


def test_unexpected_error_downgrades_to_fallback(monkeypatch):
    monkeypatch.setattr(chat_webhook, "get_dispatcher", lambda: CountingDispatcher(exc=KeyError("boom")))
    resp = _post("5 acres")

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "reply_text": FALLBACK_REPLY}


def test_cors_allows_widget_origin():
    resp = client.post(
        "/dispatch",
        json={"message": "5 acres"},
        headers={"X-Session-Id": "cors", "Origin": "https://ironpawforestry.com"},
    )
    assert resp.headers["access-control-allow-origin"] == "*"
