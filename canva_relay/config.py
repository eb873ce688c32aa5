"""
Relay configuration. Secrets come from the environment (or a local .env file);
deployment-specific URLs come from the fixed profile table below.
Resolved once at startup by load_settings(); unknown profiles fail fast.
"""
import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

from canva_relay.errors import ConfigError

# Canva endpoints (public, identical for every profile)
AUTHORIZE_URL = "https://www.canva.com/api/oauth/authorize"
TOKEN_URL = "https://api.canva.com/rest/v1/oauth/token"
API_BASE_URL = "https://api.canva.com/rest/v1"

# Capabilities requested on /authorize
SCOPES = (
    "asset:read",
    "asset:write",
    "brandtemplate:content:read",
    "brandtemplate:meta:read",
    "design:content:read",
    "design:content:write",
    "design:meta:read",
    "folder:read",
    "folder:write",
    "profile:read",
)

# Cookie names
PKCE_COOKIE_NAME = "ocv"
AUTH_COOKIE_NAME = "aut"

# PKCE verifier cookie lifetime (seconds)
PKCE_COOKIE_TTL = 20 * 60

DEFAULT_PORT = 3001
DEFAULT_CREDENTIALS_FILE = "db.json"


@dataclass(frozen=True)
class DeploymentProfile:
    name: str
    frontend_origin: str
    redirect_uri: str
    secure_cookies: bool
    auth_cookie_samesite: str


PROFILES: dict[str, DeploymentProfile] = {
    "development": DeploymentProfile(
        name="development",
        frontend_origin="http://127.0.0.1:3000",
        redirect_uri="http://127.0.0.1:3001/oauth/redirect",
        secure_cookies=False,
        auth_cookie_samesite="lax",
    ),
    "production": DeploymentProfile(
        name="production",
        frontend_origin="https://canva-hacaton-frontend-2ad65e9dc464.herokuapp.com",
        redirect_uri="https://canva-hackathon-backend-33cb89cc3ea5.herokuapp.com/oauth/redirect",
        secure_cookies=True,
        auth_cookie_samesite="strict",
    ),
}


@dataclass(frozen=True)
class PollPolicy:
    """Upload job polling budget. Delays and timeout in seconds."""

    interval: float = 1.0
    backoff: float = 2.0
    max_interval: float = 10.0
    max_attempts: int = 30
    timeout: float = 120.0

    def delays(self):
        """Sleep before poll 2, 3, ...: interval, interval*backoff, ... capped at max_interval."""
        delay = self.interval
        while True:
            yield min(delay, self.max_interval)
            delay *= self.backoff


@dataclass(frozen=True)
class Settings:
    client_id: str
    client_secret: str
    cookie_secret: str
    profile: DeploymentProfile
    port: int = DEFAULT_PORT
    credentials_file: str = DEFAULT_CREDENTIALS_FILE
    log_level: str = "INFO"
    upload_poll: PollPolicy = PollPolicy()

    @property
    def scope(self) -> str:
        return " ".join(SCOPES)


def get_profile(name: str) -> DeploymentProfile:
    """Look up a deployment profile by name. Raises ConfigError for unknown names."""
    profile = PROFILES.get(name.strip().lower())
    if profile is None:
        raise ConfigError(f"Unknown deployment profile {name!r}; expected one of {sorted(PROFILES)}")
    return profile


def _required(environ: Mapping[str, str], key: str) -> str:
    value = environ.get(key, "").strip()
    if not value:
        raise ConfigError(f"Required environment variable {key} is missing or empty")
    return value


def _number(environ: Mapping[str, str], key: str, default, cast):
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"Environment variable {key} must be a number, got {raw!r}")


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from the environment. When environ is None, a .env file in the
    working directory is loaded first (real environment variables win).
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    profile_name = environ.get("APP_ENV") or environ.get("NODE_ENV") or "development"
    defaults = PollPolicy()
    upload_poll = PollPolicy(
        interval=_number(environ, "UPLOAD_POLL_INTERVAL", defaults.interval, float),
        backoff=_number(environ, "UPLOAD_POLL_BACKOFF", defaults.backoff, float),
        max_interval=_number(environ, "UPLOAD_POLL_MAX_INTERVAL", defaults.max_interval, float),
        max_attempts=_number(environ, "UPLOAD_POLL_MAX_ATTEMPTS", defaults.max_attempts, int),
        timeout=_number(environ, "UPLOAD_TIMEOUT", defaults.timeout, float),
    )
    if upload_poll.max_attempts < 1:
        raise ConfigError("UPLOAD_POLL_MAX_ATTEMPTS must be at least 1")

    return Settings(
        client_id=_required(environ, "CANVA_CLIENT_ID"),
        client_secret=_required(environ, "CANVA_CLIENT_SECRET"),
        cookie_secret=_required(environ, "DATABASE_ENCRYPTION_KEY"),
        profile=get_profile(profile_name),
        port=_number(environ, "PORT", DEFAULT_PORT, int),
        credentials_file=environ.get("CREDENTIALS_FILE", "").strip() or DEFAULT_CREDENTIALS_FILE,
        log_level=environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        upload_poll=upload_poll,
    )
