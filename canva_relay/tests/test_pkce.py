"""Tests for PKCE and authorize URL building."""
import hashlib
import re
from base64 import urlsafe_b64encode
from urllib.parse import parse_qs, urlparse

from canva_relay.pkce import begin_challenge, build_authorize_url, code_challenge_for, generate_state

B64URL = re.compile(r"^[A-Za-z0-9_-]+$")


def test_generate_state_is_urlsafe_and_long():
    s = generate_state()
    assert len(s) == 128
    assert B64URL.match(s)


def test_begin_challenge_verifier_shape():
    c = begin_challenge()
    # 96 bytes -> 128 chars, the RFC 7636 upper bound
    assert len(c.code_verifier) == 128
    assert B64URL.match(c.code_verifier)
    assert B64URL.match(c.code_challenge)
    assert len(c.code_challenge) == 43


def test_challenge_is_s256_of_verifier():
    c = begin_challenge()
    expected = urlsafe_b64encode(hashlib.sha256(c.code_verifier.encode("ascii")).digest()).rstrip(b"=").decode()
    assert c.code_challenge == expected
    assert code_challenge_for(c.code_verifier) == expected


def test_rfc7636_appendix_b_vector():
    assert code_challenge_for("dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk") == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_verifiers_and_states_are_distinct():
    challenges = [begin_challenge() for _ in range(1000)]
    assert len({c.code_verifier for c in challenges}) == 1000
    assert len({c.state for c in challenges}) == 1000
    assert all(c.state != c.code_verifier for c in challenges)


def test_build_authorize_url_includes_required_params():
    url = build_authorize_url(
        authorize_url="https://www.canva.com/api/oauth/authorize",
        client_id="client1",
        redirect_uri="http://127.0.0.1:3001/oauth/redirect",
        scope="asset:read profile:read",
        state="mystate",
        code_challenge="challenge123",
    )
    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://www.canva.com/api/oauth/authorize"
    params = {k: v[0] for k, v in parse_qs(parsed.query).items()}
    assert params == {
        "code_challenge": "challenge123",
        "code_challenge_method": "S256",
        "scope": "asset:read profile:read",
        "response_type": "code",
        "client_id": "client1",
        "state": "mystate",
        "redirect_uri": "http://127.0.0.1:3001/oauth/redirect",
    }
