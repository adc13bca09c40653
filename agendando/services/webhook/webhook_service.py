# ===== agendando/services/webhook/webhook_service.py =====
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

import httpx

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("POST", "PUT", "PATCH")


class WebhookService:
    """Delivers workflow webhooks to host-configured URLs"""

    def __init__(self, http_client: Optional[httpx.Client] = None):
        self.http_client = http_client or httpx.Client(
            timeout=15.0,  # 15 second timeout
            follow_redirects=True,
        )

    @staticmethod
    def build_payload(event_type: str, host_id, event_data: Dict[str, Any]) -> Dict[str, Any]:
        """Build the webhook payload in a consistent format."""
        return {
            "event": event_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "host_id": str(host_id),
            "data": event_data,
        }

    def deliver(self, url: str, method: str, payload: Dict[str, Any]) -> int:
        """
        Send one webhook. Non-2xx responses and transport errors raise so
        the job runner can retry.
        """
        method = (method or "POST").upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported webhook method: {method}")

        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Event": str(payload.get("event", "booking")),
            "User-Agent": "Agendando-Webhook/1.0",
        }

        try:
            response = self.http_client.request(
                method, url, content=json.dumps(payload), headers=headers
            )
        except httpx.TimeoutException:
            logger.warning(f"Webhook to {url} timed out")
            raise
        except httpx.RequestError as e:
            logger.warning(f"Webhook to {url} failed: {e}")
            raise

        if not 200 <= response.status_code < 300:
            raise RuntimeError(f"Webhook {url} returned HTTP {response.status_code}: {response.text[:200]}")

        logger.info(f"Webhook delivered to {url} ({response.status_code})")
        return response.status_code
