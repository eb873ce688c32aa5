"""
Authenticated proxy routes: GET /user, GET /folder, POST /upload.
Every route needs the identity cookie and a stored token (401 otherwise).
Provider failures are answered with 400.
"""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from canva_relay.canva import CanvaClient
from canva_relay.config import Settings
from canva_relay.deps import current_identity, current_token, get_canva, get_settings
from canva_relay.errors import ProviderError, RelayError, UploadJobError
from canva_relay.uploads import upload_asset

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_ACCESS_TOKEN = "invalid_access_token"


def _sub_object(item: dict, item_type: str) -> dict:
    """Folder items carry their payload under a key named after their type."""
    inner = item.get(item_type)
    return inner if isinstance(inner, dict) else item


def project_asset(item: dict) -> dict:
    asset = _sub_object(item, "asset")
    thumbnail = asset.get("thumbnail") or {}
    return {"id": asset.get("id"), "name": asset.get("name"), "url": thumbnail.get("url")}


def project_folder(item: dict) -> dict:
    folder = _sub_object(item, "folder")
    return {"id": folder.get("id"), "name": folder.get("name")}


def partition_folder_items(items: list[dict]) -> dict:
    """Split folder items by type into minimal asset and folder shapes; other types are dropped."""
    assets = [project_asset(item) for item in items if item.get("type") == "asset"]
    folders = [project_folder(item) for item in items if item.get("type") == "folder"]
    return {"assets": assets, "folders": folders}


@router.get("/user")
async def user_profile(
    token: Annotated[str, Depends(current_token)],
    canva: Annotated[CanvaClient, Depends(get_canva)],
):
    """Canva profile of the signed-in user, or 400 with an empty body."""
    try:
        data = await canva.get_profile(token)
    except ProviderError as e:
        logger.warning("Profile lookup failed: %s", e.message)
        return Response(status_code=400)
    profile = data.get("profile")
    if not profile:
        return Response(status_code=400)
    return profile


@router.get("/folder")
async def folder_items(
    token: Annotated[str, Depends(current_token)],
    canva: Annotated[CanvaClient, Depends(get_canva)],
    folderId: str | None = None,
):
    """Assets and sub-folders of folderId."""
    if not folderId:
        return JSONResponse({"error": "Missing required query parameter: folderId"}, status_code=400)
    try:
        items = await canva.list_folder_items(token, folderId)
    except ProviderError as e:
        if e.code == INVALID_ACCESS_TOKEN:
            logger.info("Canva rejected stored access token: %s", e.message)
        else:
            logger.warning("Folder listing for %s failed: %s", folderId, e.message)
        return JSONResponse({"error": e.message}, status_code=400)
    return partition_folder_items(items)


@router.post("/upload", response_class=PlainTextResponse)
async def upload(
    identity: Annotated[str, Depends(current_identity)],
    token: Annotated[str, Depends(current_token)],
    settings: Annotated[Settings, Depends(get_settings)],
    canva: Annotated[CanvaClient, Depends(get_canva)],
    image: Annotated[UploadFile | None, File()] = None,
    name: str | None = None,
):
    """Upload the multipart `image` to Canva as an asset called `name`; waits for the job."""
    if not name:
        return PlainTextResponse("Missing required query parameter: name", status_code=400)
    if image is None:
        return PlainTextResponse("Missing required form field: image", status_code=400)
    try:
        body = await image.read()
        await upload_asset(canva, token, name, body, settings.upload_poll)
    except UploadJobError as e:
        return PlainTextResponse(e.message, status_code=400)
    except ProviderError as e:
        logger.warning("Upload of %r for user %s failed: %s", name, identity, e.message)
        return PlainTextResponse(e.message, status_code=400)
    except RelayError as e:
        logger.warning("Upload of %r for user %s failed: %s", name, identity, e)
        return PlainTextResponse(str(e), status_code=400)
    except Exception as e:
        logger.exception("Unexpected error uploading %r for user %s", name, identity)
        return PlainTextResponse(str(e) or e.__class__.__name__, status_code=400)
    logger.info("User %s uploaded asset %r", identity, name)
    return PlainTextResponse("Asset uploaded successfully")
