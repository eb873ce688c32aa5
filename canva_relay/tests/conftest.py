"""
Shared fixtures: test settings, a credential store in tmp_path, and a fake Canva API
served through httpx.MockTransport so no test touches the network.
"""
import dataclasses
import json
from urllib.parse import parse_qs

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from canva_relay.config import PollPolicy, Settings, get_profile
from canva_relay.cookies import sign_value
from canva_relay.credential_store import CredentialStore
from canva_relay.main import create_app

COOKIE_SECRET = "test-cookie-secret-that-is-at-least-32-bytes"
PROVIDER_SECRET = "canva-side-signing-secret-we-never-verify-with"


def make_access_token(sub: str = "canva-user-1") -> str:
    return jwt.encode({"sub": sub, "aud": "canva"}, PROVIDER_SECRET, algorithm="HS256")


class FakeCanva:
    """Scriptable stand-in for the Canva REST API. Records every request it sees."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_body = {"access_token": make_access_token(), "token_type": "Bearer", "expires_in": 14400}
        self.profile_status = 200
        self.profile_body = {"profile": {"display_name": "Ada"}}
        self.folder_status = 200
        self.folder_body = {"items": []}
        self.upload_job_id = "job-1"
        self.job_statuses: list[dict] = [{"status": "success"}]
        # path prefixes that raise httpx.ConnectError instead of answering
        self.unreachable: set[str] = set()

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if any(path.startswith(prefix) for prefix in self.unreachable):
            raise httpx.ConnectError("Connection refused", request=request)
        if path == "/rest/v1/oauth/token":
            return httpx.Response(self.token_status, json=self.token_body)
        if path == "/rest/v1/users/me/profile":
            return httpx.Response(self.profile_status, json=self.profile_body)
        if path.startswith("/rest/v1/folders/"):
            return httpx.Response(self.folder_status, json=self.folder_body)
        if path == "/rest/v1/asset-uploads" and request.method == "POST":
            return httpx.Response(200, json={"job": {"id": self.upload_job_id, "status": "in_progress"}})
        if path == f"/rest/v1/asset-uploads/{self.upload_job_id}":
            job = {"id": self.upload_job_id}
            job.update(self.job_statuses.pop(0) if len(self.job_statuses) > 1 else self.job_statuses[0])
            return httpx.Response(200, json={"job": job})
        return httpx.Response(404, json={"code": "not_found", "message": f"No fake for {path}"})

    @staticmethod
    def form(request: httpx.Request) -> dict:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.fixture
def settings():
    return Settings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        cookie_secret=COOKIE_SECRET,
        profile=get_profile("development"),
        upload_poll=PollPolicy(interval=0, backoff=1, max_interval=0, max_attempts=5, timeout=5),
    )


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "db.json"


@pytest.fixture
def store(store_path):
    return CredentialStore(store_path)


@pytest.fixture
def fake_canva():
    return FakeCanva()


def _test_client(settings, store, fake_canva, base_url="http://testserver"):
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_canva.handler))
    app = create_app(settings=settings, store=store, http_client=http)
    return TestClient(app, base_url=base_url)


@pytest.fixture
def client(settings, store, fake_canva):
    with _test_client(settings, store, fake_canva) as c:
        yield c


@pytest.fixture
def signed_in(settings, store_path, store, fake_canva):
    """Client carrying a valid identity cookie for canva-user-1, whose token is stored."""
    store_path.write_text(json.dumps([{"id": "canva-user-1", "token": "stored-token"}]))
    with _test_client(settings, store, fake_canva) as c:
        c.cookies.set("aut", sign_value({"sub": "canva-user-1"}, COOKIE_SECRET))
        yield c


@pytest.fixture
def production_client(settings, store, fake_canva):
    """Client for the production profile, over https so Secure cookies are kept and sent."""
    production = dataclasses.replace(settings, profile=get_profile("production"))
    with _test_client(production, store, fake_canva, base_url="https://testserver") as c:
        yield c
