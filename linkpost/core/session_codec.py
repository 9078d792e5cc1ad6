"""Encrypt/decrypt session payloads into cookie-safe tokens with AES-256-GCM (session_secret derived)."""

from __future__ import annotations

import base64
import binascii
import enum
import hashlib
import json
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from linkpost.config import get_settings
from linkpost.core.exceptions import SessionConfigError

NONCE_SIZE = 12
TAG_SIZE = 16
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class DecodeError(str, enum.Enum):
    MISSING_KEY = "missing_key"
    MALFORMED = "malformed"
    TOO_SHORT = "too_short"
    BAD_TAG = "bad_tag"
    BAD_JSON = "bad_json"


@dataclass(frozen=True)
class DecodeResult:
    payload: Optional[dict[str, Any]] = None
    error: Optional[DecodeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@lru_cache(maxsize=8)
def _derive_key(secret: str) -> bytes:
    return hashlib.sha256(secret.encode("utf-8")).digest()


def _get_cipher(secret: Optional[str] = None) -> Optional[AESGCM]:
    secret = get_settings().session_secret if secret is None else secret
    if not secret:
        return None
    return AESGCM(_derive_key(secret))


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(token: str) -> bytes:
    padded = token + "=" * (-len(token) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def encrypt_to_cookie_value(payload: dict[str, Any], secret: Optional[str] = None) -> str:
    """Encrypt a JSON-serializable dict; wire format is b64url(nonce || tag || ciphertext)."""
    cipher = _get_cipher(secret)
    if cipher is None:
        raise SessionConfigError("SESSION_SECRET environment variable is required")
    nonce = os.urandom(NONCE_SIZE)
    plaintext = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    # AESGCM appends the tag to the ciphertext
    sealed = cipher.encrypt(nonce, plaintext, None)
    ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return _b64url_encode(nonce + tag + ciphertext)


def decode_cookie_value(token: Optional[str], secret: Optional[str] = None) -> DecodeResult:
    cipher = _get_cipher(secret)
    if cipher is None:
        return DecodeResult(error=DecodeError.MISSING_KEY)
    if not token:
        return DecodeResult(error=DecodeError.MALFORMED)
    if not _TOKEN_RE.match(token):
        return DecodeResult(error=DecodeError.MALFORMED)
    try:
        raw = _b64url_decode(token)
    except (binascii.Error, ValueError):
        return DecodeResult(error=DecodeError.MALFORMED)
    # Reject non-canonical encodings (stray padding bits in the last char)
    if _b64url_encode(raw) != token:
        return DecodeResult(error=DecodeError.MALFORMED)
    if len(raw) < NONCE_SIZE + TAG_SIZE:
        return DecodeResult(error=DecodeError.TOO_SHORT)
    nonce = raw[:NONCE_SIZE]
    tag = raw[NONCE_SIZE:NONCE_SIZE + TAG_SIZE]
    ciphertext = raw[NONCE_SIZE + TAG_SIZE:]
    try:
        plaintext = cipher.decrypt(nonce, ciphertext + tag, None)
    except InvalidTag:
        return DecodeResult(error=DecodeError.BAD_TAG)
    try:
        payload = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return DecodeResult(error=DecodeError.BAD_JSON)
    if not isinstance(payload, dict):
        return DecodeResult(error=DecodeError.BAD_JSON)
    return DecodeResult(payload=payload)


def decrypt_from_cookie_value(token: Optional[str], secret: Optional[str] = None) -> Optional[dict[str, Any]]:
    """Return the verified payload, or None for any failure."""
    result = decode_cookie_value(token, secret)
    return result.payload if result.ok else None
