"""Signed identity tokens and the per-request session context.

Login and sign-up live with the identity provider; this module only mints and
verifies the token it hands out: base64(json payload).hmac_sha256.
"""
import base64
import enum
import hashlib
import hmac
import json
import time
from dataclasses import dataclass

from emotrain.core.config import get_settings


class Role(str, enum.Enum):
    USER = "user"
    THERAPIST = "therapist"


@dataclass(frozen=True)
class SessionContext:
    """Who is calling. Built once per request and passed to whoever needs it."""

    user_id: str
    display_name: str
    role: Role = Role.USER

    @property
    def is_therapist(self) -> bool:
        return self.role is Role.THERAPIST


def _secret() -> bytes:
    return get_settings().secret_key.encode("utf-8")


def _sign_payload(payload: bytes) -> str:
    sig = hmac.new(_secret(), payload, hashlib.sha256).hexdigest()
    return base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=") + "." + sig


def _verify_sig(payload: bytes, sig: str) -> bool:
    expected = hmac.new(_secret(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, sig)


def create_session_token(ctx: SessionContext, issued_at: int | None = None) -> str:
    """Create a signed token carrying the caller's identity."""
    ts = int(time.time()) if issued_at is None else issued_at
    payload = json.dumps(
        {"sub": ctx.user_id, "name": ctx.display_name, "role": ctx.role.value, "iat": ts},
        separators=(",", ":"),
        sort_keys=True,
    ).encode("utf-8")
    return _sign_payload(payload)


def verify_session_token(token: str | None) -> SessionContext | None:
    """Verify signed token and return its SessionContext; None if invalid or expired."""
    if not token or "." not in token:
        return None
    try:
        encoded, sig = token.rsplit(".", 1)
        pad = 4 - len(encoded) % 4
        if pad != 4:
            encoded += "=" * pad
        payload = base64.urlsafe_b64decode(encoded)
        if not _verify_sig(payload, sig):
            return None
        data = json.loads(payload.decode("utf-8"))
        ts = int(data["iat"])
        if abs(time.time() - ts) > get_settings().auth_token_max_age:
            return None
        return SessionContext(
            user_id=str(data["sub"]),
            display_name=str(data.get("name") or ""),
            role=Role(data.get("role", Role.USER.value)),
        )
    except (ValueError, KeyError, TypeError):
        return None
