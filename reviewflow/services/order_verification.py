"""
Client for the order verification service.

The service looks up a marketplace order with the campaign owner's seller
credentials and answers with the ASIN that was purchased. Every failure
(unknown order, malformed order number, service outage) is reported to the
customer the same way: as a retryable VerificationFailed carrying the
service's message when it sent one.
"""
from typing import Optional
import logging
import uuid

import httpx

from reviewflow.core.config import settings
from reviewflow.core.errors import VerificationFailed

logger = logging.getLogger(__name__)


class OrderVerifier:
    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url or settings.ORDER_VERIFICATION_URL
        self.api_key = api_key if api_key is not None else settings.ORDER_VERIFICATION_API_KEY
        self.timeout = timeout or settings.ORDER_VERIFICATION_TIMEOUT_SECONDS
        self._client = client

    def _headers(self) -> dict:
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _post(self, payload: dict) -> httpx.Response:
        if self._client is not None:
            return self._client.post(self.url, json=payload, headers=self._headers(), timeout=self.timeout)
        return httpx.post(self.url, json=payload, headers=self._headers(), timeout=self.timeout)

    def verify(self, campaign_id: uuid.UUID, order_id: str) -> str:
        """Return the ASIN for order_id, or raise VerificationFailed."""
        payload = {"campaignId": str(campaign_id), "orderId": order_id}
        logger.info("[ORDER VERIFY] Verifying order for campaign %s", campaign_id)

        try:
            response = self._post(payload)
        except httpx.HTTPError as e:
            logger.warning("[ORDER VERIFY] Request error for campaign %s: %s", campaign_id, e)
            raise VerificationFailed() from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            logger.warning(
                "[ORDER VERIFY] Unexpected response (status %s): %s",
                response.status_code, response.text[:500],
            )
            raise VerificationFailed()

        error = data.get("error")
        if response.status_code >= 400 or error:
            message = _error_message(error) or data.get("message")
            logger.info(
                "[ORDER VERIFY] Order not verified for campaign %s (status %s): %s",
                campaign_id, response.status_code, message,
            )
            raise VerificationFailed(message)

        asin = data.get("asin")
        if not isinstance(asin, str) or not asin.strip():
            logger.warning("[ORDER VERIFY] Response without ASIN for campaign %s", campaign_id)
            raise VerificationFailed()

        logger.info("[ORDER VERIFY] Order verified for campaign %s, ASIN %s", campaign_id, asin.strip())
        return asin.strip()


def _error_message(error) -> Optional[str]:
    if isinstance(error, str):
        return error or None
    if isinstance(error, dict):
        message = error.get("message")
        return message if isinstance(message, str) and message else None
    return None
