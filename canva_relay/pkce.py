"""
PKCE (RFC 7636, S256 only) and authorize URL helpers for the Canva login redirect.
"""
import hashlib
import secrets
from base64 import urlsafe_b64encode
from dataclasses import dataclass
from urllib.parse import urlencode

# 96 random bytes -> 128 chars base64url, the RFC 7636 maximum verifier length
VERIFIER_BYTES = 96
STATE_BYTES = 96


@dataclass(frozen=True)
class PKCEChallenge:
    code_verifier: str
    code_challenge: str
    state: str


def _b64url(raw: bytes) -> str:
    return urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_state() -> str:
    """Opaque value for CSRF protection; must come back unchanged on the redirect."""
    return _b64url(secrets.token_bytes(STATE_BYTES))


def generate_code_verifier() -> str:
    return _b64url(secrets.token_bytes(VERIFIER_BYTES))


def code_challenge_for(code_verifier: str) -> str:
    """S256 challenge: base64url(SHA256(verifier)), no padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return _b64url(digest)


def begin_challenge() -> PKCEChallenge:
    code_verifier = generate_code_verifier()
    return PKCEChallenge(
        code_verifier=code_verifier,
        code_challenge=code_challenge_for(code_verifier),
        state=generate_state(),
    )


def build_authorize_url(
    *,
    authorize_url: str,
    client_id: str,
    redirect_uri: str,
    scope: str,
    state: str,
    code_challenge: str,
) -> str:
    """Build the Canva /authorize URL."""
    params = {
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "scope": scope,
        "response_type": "code",
        "client_id": client_id,
        "state": state,
        "redirect_uri": redirect_uri,
    }
    return f"{authorize_url}?{urlencode(params)}"
