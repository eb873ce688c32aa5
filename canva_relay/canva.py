"""
Async client for the Canva Connect REST API (token exchange, profile, folders, asset uploads).
Non-2xx responses and transport failures are raised as ProviderError.
"""
import json
import logging

import httpx

from canva_relay.config import API_BASE_URL, TOKEN_URL
from canva_relay.errors import ProviderError

logger = logging.getLogger(__name__)


def _error_from_response(r: httpx.Response) -> ProviderError:
    """Build a ProviderError, preferring Canva's {"code", "message"} error body when present."""
    code = None
    message = None
    try:
        body = r.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("code") or body.get("error")
        message = body.get("message") or body.get("error_description")
    return ProviderError(r.status_code, message or f"HTTP Error! status: {r.status_code}", code=code)


class CanvaClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        api_base_url: str = API_BASE_URL,
        token_url: str = TOKEN_URL,
    ):
        self.http = http
        self.api_base_url = api_base_url.rstrip("/")
        self.token_url = token_url

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            r = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise ProviderError(None, str(e) or e.__class__.__name__) from e
        if not r.is_success:
            raise _error_from_response(r)
        try:
            data = r.json()
        except ValueError as e:
            raise ProviderError(r.status_code, f"Invalid JSON from {url}") from e
        if not isinstance(data, dict):
            raise ProviderError(r.status_code, f"Unexpected response from {url}: expected a JSON object")
        return data

    async def exchange_code(
        self,
        *,
        code: str,
        code_verifier: str,
        redirect_uri: str,
        client_id: str,
        client_secret: str,
    ) -> dict:
        """POST authorization_code grant to the token endpoint with HTTP Basic client auth."""
        return await self._request(
            "POST",
            self.token_url,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "code_verifier": code_verifier,
                "redirect_uri": redirect_uri,
            },
            auth=httpx.BasicAuth(client_id, client_secret),
            headers={"Accept": "application/json"},
        )

    def _bearer(self, token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    async def get_profile(self, token: str) -> dict:
        return await self._request("GET", f"{self.api_base_url}/users/me/profile", headers=self._bearer(token))

    async def list_folder_items(self, token: str, folder_id: str) -> list[dict]:
        data = await self._request(
            "GET",
            f"{self.api_base_url}/folders/{folder_id}/items",
            headers=self._bearer(token),
        )
        items = data.get("items") or []
        return [item for item in items if isinstance(item, dict)]

    async def create_upload_job(self, token: str, name_base64: str, body: bytes) -> dict:
        """Start an asset upload job; returns the job object ({"id", "status", ...})."""
        headers = self._bearer(token)
        headers["Content-Type"] = "application/octet-stream"
        headers["Asset-Upload-Metadata"] = json.dumps({"name_base64": name_base64})
        data = await self._request("POST", f"{self.api_base_url}/asset-uploads", headers=headers, content=body)
        return _job_from(data)

    async def get_upload_job(self, token: str, job_id: str) -> dict:
        data = await self._request(
            "GET",
            f"{self.api_base_url}/asset-uploads/{job_id}",
            headers=self._bearer(token),
        )
        return _job_from(data)


def _job_from(data: dict) -> dict:
    job = data.get("job") if isinstance(data, dict) else None
    if not isinstance(job, dict) or not job.get("id"):
        raise ProviderError(None, "Asset upload response did not contain a job")
    return job
