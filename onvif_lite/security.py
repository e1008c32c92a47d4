from __future__ import annotations

import base64
import hashlib
import os
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from xml.sax.saxutils import escape

from .errors import TokenGenerationError
from .models import SecurityToken


WSSE_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd"
WSU_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-utility-1.0.xsd"
WSSE_PW_DIGEST_TYPE = (
    "http://docs.oasis-open.org/wss/2004/01/"
    "oasis-200401-wss-username-token-profile-1.0#PasswordDigest"
)
WSSE_BASE64_ENCODING = (
    "http://docs.oasis-open.org/wss/2004/01/"
    "oasis-200401-wss-soap-message-security-1.0#Base64Binary"
)
NONCE_SIZE = 16
CREATED_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

NonceSource = Callable[[int], bytes]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_created(moment: datetime) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(CREATED_FORMAT)


def compute_digest(nonce: bytes, created: str, secret: str) -> str:
    """
    PasswordDigest = Base64(SHA1(nonce + created + password)).

    ``nonce`` is the raw value, not its base64 transport form.
    """
    raw = nonce + created.encode("utf-8") + secret.encode("utf-8")
    return base64.b64encode(hashlib.sha1(raw).digest()).decode("ascii")


def generate_token(
    username: str,
    secret: str,
    freshness_offset: timedelta = timedelta(0),
    *,
    nonce_source: Optional[NonceSource] = None,
    clock: Optional[Clock] = None,
) -> SecurityToken:
    """
    Build a single-use UsernameToken.

    The offset shifts ``Created`` forward or backward to match the device
    clock. A failing random source aborts the request: there is no fallback
    to an empty or reused nonce.
    """
    source = nonce_source or os.urandom
    try:
        nonce = source(NONCE_SIZE)
    except Exception as e:
        raise TokenGenerationError("random source failed", cause=e) from e
    if not isinstance(nonce, (bytes, bytearray)) or len(nonce) != NONCE_SIZE:
        raise TokenGenerationError(f"random source returned an invalid {NONCE_SIZE}-byte nonce")
    nonce = bytes(nonce)

    created = format_created((clock or utc_now)() + freshness_offset)
    return SecurityToken(
        username=username,
        nonce=nonce,
        created=created,
        digest=compute_digest(nonce, created, secret),
    )


def render_security_header(token: SecurityToken) -> str:
    return f"""
    <wsse:Security s:mustUnderstand="1" xmlns:wsse="{WSSE_NS}" xmlns:wsu="{WSU_NS}">
      <wsse:UsernameToken>
        <wsse:Username>{escape(token.username)}</wsse:Username>
        <wsse:Password Type="{WSSE_PW_DIGEST_TYPE}">{token.digest}</wsse:Password>
        <wsse:Nonce EncodingType="{WSSE_BASE64_ENCODING}">{token.nonce_b64}</wsse:Nonce>
        <wsu:Created>{token.created}</wsu:Created>
      </wsse:UsernameToken>
    </wsse:Security>
"""


__all__ = [
    "WSSE_NS",
    "WSU_NS",
    "WSSE_PW_DIGEST_TYPE",
    "WSSE_BASE64_ENCODING",
    "NONCE_SIZE",
    "utc_now",
    "format_created",
    "compute_digest",
    "generate_token",
    "render_security_header",
]
