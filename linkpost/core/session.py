"""Typed session payloads carried in the encrypted `li_session` cookie."""

from __future__ import annotations

import time
from typing import Optional, Union

from fastapi import Response
from pydantic import BaseModel, ValidationError

from linkpost.config import get_settings
from linkpost.core.session_codec import decrypt_from_cookie_value, encrypt_to_cookie_value

COOKIE_NAME = "li_session"
STATE_TTL_SECONDS = 600  # 10 minutes


def now_ms() -> int:
    return int(time.time() * 1000)


class LinkedInProfile(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    picture: Optional[str] = None


class OAuthPending(BaseModel):
    oauthState: str
    expiresAt: int


class Authenticated(BaseModel):
    accessToken: str
    expiresAt: int
    profile: LinkedInProfile

    @property
    def author_urn(self) -> str:
        return f"urn:li:person:{self.profile.id}"


SessionPayload = Union[Authenticated, OAuthPending]


def parse_session_payload(data: Optional[dict]) -> Optional[SessionPayload]:
    """Map a decrypted dict onto one of the two session shapes."""
    if not data:
        return None
    try:
        if "accessToken" in data:
            return Authenticated.model_validate(data)
        if "oauthState" in data:
            return OAuthPending.model_validate(data)
    except ValidationError:
        return None
    return None


def read_session(cookie_value: Optional[str], now: Optional[int] = None) -> Optional[SessionPayload]:
    """Decrypt and validate a cookie value; expired sessions read as absent."""
    if not cookie_value:
        return None
    payload = parse_session_payload(decrypt_from_cookie_value(cookie_value))
    if payload is None:
        return None
    if payload.expiresAt <= (now if now is not None else now_ms()):
        return None
    return payload


def _set_cookie(response: Response, value: str, max_age: int) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=value,
        max_age=max_age,
        path="/",
        secure=True,
        httponly=True,
        samesite="lax",
    )


def set_session_cookie(response: Response, payload: SessionPayload, max_age: Optional[int] = None) -> None:
    settings = get_settings()
    max_age = settings.session_max_age_seconds if max_age is None else max_age
    token = encrypt_to_cookie_value(payload.model_dump())
    _set_cookie(response, token, max_age)


def set_oauth_state_cookie(response: Response, state: str) -> OAuthPending:
    """Store a pending OAuth state that lives ~10 minutes."""
    settings = get_settings()
    ttl = settings.oauth_state_max_age_seconds or STATE_TTL_SECONDS
    pending = OAuthPending(oauthState=state, expiresAt=now_ms() + ttl * 1000)
    set_session_cookie(response, pending, max_age=ttl)
    return pending


def clear_session_cookie(response: Response) -> None:
    _set_cookie(response, "", 0)
