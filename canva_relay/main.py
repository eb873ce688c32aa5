"""
Canva relay backend.
OAuth2 + PKCE login against Canva, per-user token store, and proxied profile,
folder and asset upload calls. Port 3001 by default.
"""
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from canva_relay.canva import CanvaClient
from canva_relay.config import Settings, load_settings
from canva_relay.credential_store import CredentialStore
from canva_relay.logging_config import setup_logging
from canva_relay.oauth import router as oauth_router
from canva_relay.resources import router as resources_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    store: CredentialStore | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """
    Build the app. Settings default to load_settings(); the credential store
    (CREDENTIALS_FILE) and httpx client, when not passed in, are created at startup.
    Also usable as `uvicorn --factory canva_relay.main:create_app`.
    """
    if settings is None:
        settings = load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Configure logging, load the credential store (fatal if unreadable), open the HTTP client."""
        setup_logging(settings.log_level)
        app_store = store or CredentialStore(settings.credentials_file)
        app_store.init()
        http = http_client or httpx.AsyncClient(timeout=None)
        app.state.settings = settings
        app.state.store = app_store
        app.state.canva = CanvaClient(http)
        logger.info("Canva relay started (profile=%s)", settings.profile.name)
        try:
            yield
        finally:
            if http_client is None:
                await http.aclose()

    app = FastAPI(title="Canva Relay", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.profile.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(oauth_router, tags=["oauth"])
    app.include_router(resources_router, tags=["resources"])

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "canva_relay"}

    return app


if __name__ == "__main__":
    import uvicorn

    _settings = load_settings()
    uvicorn.run(create_app(_settings), host="127.0.0.1", port=_settings.port)
