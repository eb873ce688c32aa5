"""
Asset upload: submit the file to Canva, then poll the upload job until it leaves
in_progress. Polling is bounded (attempt budget, exponential backoff, overall deadline)
so a job stuck in_progress cannot hold the request open forever.
"""
import asyncio
import base64
import logging
from typing import Awaitable, Callable

from canva_relay.canva import CanvaClient
from canva_relay.config import PollPolicy
from canva_relay.errors import UploadJobError, UploadTimeoutError

logger = logging.getLogger(__name__)

STATUS_IN_PROGRESS = "in_progress"
STATUS_FAILED = "failed"


def encode_asset_name(name: str) -> str:
    return base64.b64encode(name.encode("utf-8")).decode("ascii")


async def poll_upload_job(
    client: CanvaClient,
    token: str,
    job_id: str,
    policy: PollPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> dict:
    """
    Poll job_id until it is no longer in_progress. Returns the final job dict.
    Raises UploadJobError when the job failed, UploadTimeoutError when the attempt
    budget runs out.
    """
    delays = policy.delays()
    for attempt in range(1, policy.max_attempts + 1):
        job = await client.get_upload_job(token, job_id)
        status = job.get("status")
        if status == STATUS_IN_PROGRESS:
            if attempt == policy.max_attempts:
                break
            delay = next(delays)
            logger.debug("Upload job %s in progress (attempt %d); retrying in %.1fs", job_id, attempt, delay)
            await sleep(delay)
            continue
        if status == STATUS_FAILED:
            error = job.get("error")
            if isinstance(error, dict):
                message, code = error.get("message"), error.get("code")
            else:
                message, code = error, None
            message = str(message) if message else "Asset upload failed"
            logger.info("Upload job %s failed: %s", job_id, message)
            raise UploadJobError(message, code=code)
        logger.info("Upload job %s finished with status %s after %d poll(s)", job_id, status, attempt)
        return job
    raise UploadTimeoutError(f"Upload job {job_id} still in progress after {policy.max_attempts} status checks")


async def upload_asset(
    client: CanvaClient,
    token: str,
    name: str,
    body: bytes,
    policy: PollPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> dict:
    """Submit the asset and wait for its upload job to finish (within policy.timeout)."""

    async def _run() -> dict:
        job = await client.create_upload_job(token, encode_asset_name(name), body)
        logger.info("Started upload job %s for asset %r", job["id"], name)
        return await poll_upload_job(client, token, job["id"], policy, sleep=sleep)

    try:
        return await asyncio.wait_for(_run(), timeout=policy.timeout)
    except asyncio.TimeoutError:
        raise UploadTimeoutError(f"Asset upload did not finish within {policy.timeout:g}s")
