"""
OAuth2 authorization code + PKCE exchange with Canva.
GET /authorize -> Canva consent page; GET /oauth/redirect -> token exchange, identity cookie,
credential stored; GET /success; GET /logout.
"""
import html
import logging
from typing import Annotated

import jwt
from fastapi import APIRouter, Cookie, Depends
from fastapi.responses import HTMLResponse, RedirectResponse

from canva_relay.canva import CanvaClient
from canva_relay.config import AUTHORIZE_URL, PKCE_COOKIE_NAME, Settings
from canva_relay.cookies import (
    check_state,
    clear_auth_cookie,
    clear_pkce_cookie,
    read_pkce_cookie,
    set_auth_cookie,
    set_pkce_cookie,
)
from canva_relay.credential_store import CredentialStore
from canva_relay.deps import get_canva, get_settings, get_store
from canva_relay.errors import CredentialStoreError, PKCEError, ProviderError
from canva_relay.pkce import begin_challenge, build_authorize_url

logger = logging.getLogger(__name__)

router = APIRouter()


def extract_subject(access_token: str) -> str:
    """
    Canva user id (sub claim) from the access token, decoded WITHOUT signature verification.
    Only safe because the token was just returned by the token endpoint over a
    client-authenticated TLS call; anywhere else, verify the signature first.
    """
    try:
        claims = jwt.decode(access_token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        raise ProviderError(None, f"Access token is not a decodable JWT: {e}")
    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub:
        raise ProviderError(None, "Access token has no subject claim")
    return sub


def _error_page(title: str, message: str, status_code: int = 400) -> HTMLResponse:
    return HTMLResponse(
        f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body>
  <h1>{html.escape(title)}</h1>
  <p>{html.escape(message)}</p>
  <p><a href="/authorize">Try again</a></p>
</body>
</html>""",
        status_code=status_code,
    )


@router.get("/authorize")
def authorize(settings: Annotated[Settings, Depends(get_settings)]):
    """Start login: new PKCE verifier + state in a signed cookie, redirect to Canva."""
    challenge = begin_challenge()
    url = build_authorize_url(
        authorize_url=AUTHORIZE_URL,
        client_id=settings.client_id,
        redirect_uri=settings.profile.redirect_uri,
        scope=settings.scope,
        state=challenge.state,
        code_challenge=challenge.code_challenge,
    )
    response = RedirectResponse(url=url, status_code=302)
    set_pkce_cookie(response, settings, challenge.code_verifier, challenge.state)
    return response


@router.get("/oauth/redirect")
async def oauth_redirect(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[CredentialStore, Depends(get_store)],
    canva: Annotated[CanvaClient, Depends(get_canva)],
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    ocv: Annotated[str | None, Cookie(alias=PKCE_COOKIE_NAME)] = None,
):
    """
    Canva redirects here with ?code=&state=. Validate the PKCE cookie and state,
    exchange the code, remember the token, set the identity cookie.
    Nothing is stored and no identity cookie is set on any failure.
    """
    if error:
        logger.info("Authorization denied by Canva: %s", error)
        return _error_page("Login error", error_description or error)
    if not code:
        return _error_page("Error", "Missing code parameter.")

    try:
        code_verifier, expected_state = read_pkce_cookie(ocv, settings.cookie_secret)
        check_state(expected_state, state)
    except PKCEError as e:
        logger.warning("Rejected OAuth redirect: %s", e)
        return _error_page("Error", f"{e}. Please try logging in again.")

    try:
        data = await canva.exchange_code(
            code=code,
            code_verifier=code_verifier,
            redirect_uri=settings.profile.redirect_uri,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
        )
        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ProviderError(None, "Token response has no access_token")
        identity = extract_subject(access_token)
    except ProviderError as e:
        logger.error("Error fetching OAuth token: %s", e.message)
        return _error_page("Token exchange failed", e.message)

    try:
        await store.set_token(identity, access_token)
    except CredentialStoreError as e:
        logger.error("Could not store token for user %s: %s", identity, e)
        return _error_page("Login failed", "Could not save your Canva credentials. Please try again.", status_code=500)
    logger.info("User %s signed in", identity)

    response = RedirectResponse(url="/success", status_code=302)
    set_auth_cookie(response, settings, identity)
    clear_pkce_cookie(response, settings)
    return response


@router.get("/success", response_class=HTMLResponse)
def success():
    return HTMLResponse("<p>Success</p>")


@router.get("/logout")
def logout(settings: Annotated[Settings, Depends(get_settings)]):
    """Forget the browser session. The stored token is kept; Canva revocation is out of scope."""
    response = RedirectResponse(url=settings.profile.frontend_origin, status_code=302)
    clear_auth_cookie(response, settings)
    return response
