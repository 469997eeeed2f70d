"""Signed identity tokens."""
import time

from emotrain.core.config import get_settings
from emotrain.core.security import (
    Role,
    SessionContext,
    create_session_token,
    verify_session_token,
)


def test_round_trip_keeps_identity():
    ctx = SessionContext(user_id="t-9", display_name="Dr. Lee", role=Role.THERAPIST)
    decoded = verify_session_token(create_session_token(ctx))
    assert decoded == ctx
    assert decoded.is_therapist


def test_default_role_is_user():
    decoded = verify_session_token(create_session_token(SessionContext("u-1", "Sam")))
    assert decoded.role is Role.USER
    assert not decoded.is_therapist


def test_tampered_token_rejected():
    token = create_session_token(SessionContext("u-1", "Sam"))
    payload, sig = token.rsplit(".", 1)
    forged = create_session_token(SessionContext("u-1", "Sam", Role.THERAPIST)).rsplit(".", 1)[0]
    assert verify_session_token(forged + "." + sig) is None
    assert verify_session_token(payload + "." + "0" * len(sig)) is None


def test_expired_token_rejected():
    old = int(time.time()) - get_settings().auth_token_max_age - 60
    assert verify_session_token(create_session_token(SessionContext("u-1", "Sam"), issued_at=old)) is None


def test_garbage_rejected():
    assert verify_session_token(None) is None
    assert verify_session_token("") is None
    assert verify_session_token("no-dot") is None
    assert verify_session_token("!!!.abc") is None
