"""
Signed cookies. Values are HS256 JWTs keyed with DATABASE_ENCRYPTION_KEY: tampering is
detected, contents are not hidden. The PKCE cookie carries an exp claim (20 minutes);
the identity cookie has none.
"""
import hmac
import logging
import time

import jwt
from fastapi import Response

from canva_relay.config import AUTH_COOKIE_NAME, PKCE_COOKIE_NAME, PKCE_COOKIE_TTL, Settings
from canva_relay.errors import PKCEError

logger = logging.getLogger(__name__)

COOKIE_ALGORITHM = "HS256"


def sign_value(payload: dict, secret: str) -> str:
    return jwt.encode(payload, secret, algorithm=COOKIE_ALGORITHM)


def unsign_value(value: str, secret: str) -> dict:
    """Verify signature (and exp when present). Raises jwt.InvalidTokenError."""
    return jwt.decode(value, secret, algorithms=[COOKIE_ALGORITHM])


# --- PKCE verifier cookie ---


def set_pkce_cookie(response: Response, settings: Settings, code_verifier: str, state: str) -> None:
    now = int(time.time())
    value = sign_value(
        {"cv": code_verifier, "st": state, "iat": now, "exp": now + PKCE_COOKIE_TTL},
        settings.cookie_secret,
    )
    response.set_cookie(
        PKCE_COOKIE_NAME,
        value,
        max_age=PKCE_COOKIE_TTL,
        httponly=True,
        samesite="lax",  # Canva redirects back cross-site; strict would drop the cookie
        secure=settings.profile.secure_cookies,
    )


def read_pkce_cookie(value: str | None, secret: str) -> tuple[str, str]:
    """
    Return (code_verifier, state) from the signed PKCE cookie.
    Raises PKCEError if the cookie is absent, expired, or fails verification.
    """
    if not value:
        raise PKCEError("Missing code verifier cookie")
    try:
        payload = unsign_value(value, secret)
    except jwt.ExpiredSignatureError:
        raise PKCEError("Code verifier cookie expired")
    except jwt.InvalidTokenError as e:
        logger.debug("PKCE cookie verification failed: %s", e)
        raise PKCEError("Invalid code verifier cookie")
    code_verifier = payload.get("cv")
    state = payload.get("st")
    if not isinstance(code_verifier, str) or not isinstance(state, str):
        raise PKCEError("Invalid code verifier cookie")
    return code_verifier, state


def check_state(expected: str, received: str | None) -> None:
    """Raise PKCEError unless the redirect echoed back the state we issued."""
    if not received or not hmac.compare_digest(expected.encode("ascii"), received.encode("ascii", "replace")):
        raise PKCEError("State mismatch")


def clear_pkce_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        PKCE_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=settings.profile.secure_cookies,
    )


# --- identity cookie ---


def set_auth_cookie(response: Response, settings: Settings, identity: str) -> None:
    value = sign_value({"sub": identity}, settings.cookie_secret)
    response.set_cookie(
        AUTH_COOKIE_NAME,
        value,
        httponly=True,
        samesite=settings.profile.auth_cookie_samesite,
        secure=settings.profile.secure_cookies,
    )


def read_auth_cookie(value: str | None, secret: str) -> str | None:
    """Identity from the signed auth cookie, or None if absent or invalid."""
    if not value:
        return None
    try:
        payload = unsign_value(value, secret)
    except jwt.InvalidTokenError as e:
        logger.debug("Auth cookie verification failed: %s", e)
        return None
    sub = payload.get("sub")
    return sub if isinstance(sub, str) and sub else None


def clear_auth_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        AUTH_COOKIE_NAME,
        httponly=True,
        samesite=settings.profile.auth_cookie_samesite,
        secure=settings.profile.secure_cookies,
    )
