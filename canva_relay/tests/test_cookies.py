"""Tests for signed PKCE and identity cookies."""
import time

import pytest

from canva_relay.cookies import check_state, read_auth_cookie, read_pkce_cookie, sign_value
from canva_relay.errors import PKCEError

SECRET = "cookie-secret-for-unit-tests-32-bytes-min"


def test_pkce_cookie_round_trip():
    value = sign_value({"cv": "verifier", "st": "state", "exp": int(time.time()) + 60}, SECRET)
    assert read_pkce_cookie(value, SECRET) == ("verifier", "state")


@pytest.mark.parametrize("value", [None, ""])
def test_pkce_cookie_missing(value):
    with pytest.raises(PKCEError, match="Missing"):
        read_pkce_cookie(value, SECRET)


def test_pkce_cookie_expired():
    value = sign_value({"cv": "verifier", "st": "state", "exp": int(time.time()) - 5}, SECRET)
    with pytest.raises(PKCEError, match="expired"):
        read_pkce_cookie(value, SECRET)


def test_pkce_cookie_wrong_secret():
    value = sign_value({"cv": "verifier", "st": "state"}, "some-other-secret-also-32-bytes-long!")
    with pytest.raises(PKCEError, match="Invalid"):
        read_pkce_cookie(value, SECRET)


def test_pkce_cookie_tampered():
    value = sign_value({"cv": "verifier", "st": "state"}, SECRET)
    header, payload, signature = value.split(".")
    signature = ("B" if signature[0] == "A" else "A") + signature[1:]
    tampered = ".".join([header, payload, signature])
    with pytest.raises(PKCEError):
        read_pkce_cookie(tampered, SECRET)


def test_pkce_cookie_missing_fields():
    value = sign_value({"cv": "verifier"}, SECRET)
    with pytest.raises(PKCEError):
        read_pkce_cookie(value, SECRET)


def test_check_state():
    check_state("abc", "abc")
    with pytest.raises(PKCEError):
        check_state("abc", "abd")
    with pytest.raises(PKCEError):
        check_state("abc", None)


def test_auth_cookie():
    assert read_auth_cookie(sign_value({"sub": "user-1"}, SECRET), SECRET) == "user-1"
    assert read_auth_cookie(None, SECRET) is None
    assert read_auth_cookie("garbage", SECRET) is None
    assert read_auth_cookie(sign_value({"sub": "user-1"}, "another-secret-of-at-least-32-bytes"), SECRET) is None
    assert read_auth_cookie(sign_value({"name": "no sub"}, SECRET), SECRET) is None
