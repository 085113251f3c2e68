import hashlib

import pytest

from foreman.session import MissingSessionError, fingerprint, resolve_session_id


def test_explicit_header_wins():
    res = resolve_session_id({"X-Session-Id": "  abc123  ", "User-Agent": "Mozilla"})
    assert res.session_id == "abc123"
    assert res.source == "header"


def test_fingerprint_is_stable_per_user_agent():
    a = resolve_session_id({"user-agent": "Mozilla/5.0"})
    b = resolve_session_id({"user-agent": "Mozilla/5.0"})

    assert a.source == "fingerprint"
    assert a.session_id == b.session_id == hashlib.md5(b"Mozilla/5.0").hexdigest()


def test_missing_user_agent_hashes_anon():
    assert resolve_session_id({}).session_id == fingerprint(None) == hashlib.md5(b"anon").hexdigest()


def test_blank_header_falls_back():
    assert resolve_session_id({"x-session-id": "   ", "user-agent": "UA"}).source == "fingerprint"


def test_custom_header_name():
    res = resolve_session_id({"X-Chat-Token": "tok"}, header_name="x-chat-token")
    assert res.session_id == "tok"


def test_required_header_raises():
    with pytest.raises(MissingSessionError):
        resolve_session_id({"user-agent": "UA"}, require_header=True)
