"""
Uploads review screenshots to object storage and returns their public URL.

Objects live under "<campaign id>/<epoch millis>_<filename>" in the evidence
bucket, so each campaign's screenshots share a prefix.
"""
from dataclasses import dataclass
from typing import Optional
from datetime import datetime, timezone
import logging
import re
import uuid

import httpx

from reviewflow.core.config import settings
from reviewflow.core.errors import UploadFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvidenceFile:
    content: bytes
    filename: str
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def safe_filename(filename: Optional[str]) -> str:
    """Reduce a client-supplied filename to a storage-safe basename."""
    name = (filename or "").replace("\\", "/").split("/")[-1].strip()
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return name or "screenshot"


def evidence_path(campaign_id: uuid.UUID, filename: Optional[str], now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"{campaign_id}/{millis}_{safe_filename(filename)}"


class EvidenceUploader:
    def __init__(
        self,
        base_url: Optional[str] = None,
        bucket: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = (base_url or settings.STORAGE_URL).rstrip("/")
        self.bucket = bucket or settings.EVIDENCE_BUCKET
        self.api_key = api_key if api_key is not None else settings.STORAGE_API_KEY
        self.timeout = timeout or settings.STORAGE_TIMEOUT_SECONDS
        self._client = client

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/object/public/{self.bucket}/{path}"

    def upload(self, campaign_id: uuid.UUID, content: bytes, filename: str, content_type: str) -> str:
        """Store the image and return its public URL, or raise UploadFailed."""
        path = evidence_path(campaign_id, filename)
        url = f"{self.base_url}/object/{self.bucket}/{path}"
        headers = {"content-type": content_type or "application/octet-stream"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            if self._client is not None:
                resp = self._client.post(url, content=content, headers=headers, timeout=self.timeout)
            else:
                resp = httpx.post(url, content=content, headers=headers, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.warning("[EVIDENCE] Upload request error for campaign %s: %s", campaign_id, e)
            raise UploadFailed() from e

        if resp.status_code not in (200, 201):
            message = None
            try:
                body = resp.json()
                if isinstance(body, dict):
                    message = body.get("message") or body.get("error")
            except ValueError:
                pass
            logger.warning(
                "[EVIDENCE] Upload failed for campaign %s (status %s): %s",
                campaign_id, resp.status_code, resp.text[:500],
            )
            raise UploadFailed(f"Screenshot upload failed: {message}" if isinstance(message, str) and message else None)

        logger.info("[EVIDENCE] Stored screenshot %s (%d bytes)", path, len(content))
        return self.public_url(path)
