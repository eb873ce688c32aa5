"""
FastAPI dependencies. Collaborators (settings, credential store, Canva client) are
created in the app lifespan and kept on app.state; handlers receive them from here.
"""
from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, Request, status

from canva_relay.canva import CanvaClient
from canva_relay.config import AUTH_COOKIE_NAME, Settings
from canva_relay.cookies import read_auth_cookie
from canva_relay.credential_store import CredentialStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> CredentialStore:
    return request.app.state.store


def get_canva(request: Request) -> CanvaClient:
    return request.app.state.canva


def current_identity(
    settings: Annotated[Settings, Depends(get_settings)],
    aut: Annotated[str | None, Cookie(alias=AUTH_COOKIE_NAME)] = None,
) -> str:
    """Canva user id from the signed identity cookie. 401 if missing or tampered."""
    identity = read_auth_cookie(aut, settings.cookie_secret)
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail={"error": "Not authenticated"})
    return identity


def current_token(
    identity: Annotated[str, Depends(current_identity)],
    store: Annotated[CredentialStore, Depends(get_store)],
) -> str:
    """Stored access token for the signed-in user. 401 if we have none."""
    token = store.get_token(identity)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail={"error": "No stored credential"})
    return token
