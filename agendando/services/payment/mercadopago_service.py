# ===== agendando/services/payment/mercadopago_service.py =====
"""MercadoPago checkout preferences, payment lookup and webhook signatures"""
import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging

import httpx
from sqlalchemy.orm import Session

from agendando.config.settings import get_settings
from agendando.core.exceptions import InvalidInputException, ServiceException
from agendando.models import Booking, EventType, Integration, IntegrationProvider
from agendando.services.integration.integration_service import IntegrationService

settings = get_settings()
logger = logging.getLogger(__name__)


class MercadoPagoService:

    def __init__(self, http_client: httpx.Client = None):
        self.base_url = settings.MP_API_URL.rstrip("/")
        self.http_client = http_client or httpx.Client(timeout=15.0)

    def get_access_token(self, db: Session, host_id) -> str:
        """The host's MercadoPago token, refreshed when expired"""
        integration = IntegrationService.get_active(db, host_id, IntegrationProvider.MERCADOPAGO)
        if not integration:
            raise InvalidInputException("MercadoPago not connected")

        now = datetime.now(timezone.utc)
        if integration.expires_at and now >= integration.expires_at:
            return self._refresh_token(db, integration)
        return IntegrationService.get_access_token(integration)

    def _refresh_token(self, db: Session, integration: Integration) -> str:
        refresh_token = IntegrationService.get_refresh_token(integration)
        if not refresh_token:
            raise InvalidInputException("MercadoPago token expired and no refresh token available")

        response = self.http_client.post(
            f"{self.base_url}/oauth/token",
            json={
                "grant_type": "refresh_token",
                "client_id": settings.MP_CLIENT_ID,
                "client_secret": settings.MP_CLIENT_SECRET,
                "refresh_token": refresh_token,
            },
        )
        response.raise_for_status()
        tokens = response.json()

        IntegrationService.store_tokens(
            integration,
            tokens["access_token"],
            tokens.get("refresh_token"),
            datetime.now(timezone.utc) + timedelta(seconds=int(tokens["expires_in"])),
        )
        db.commit()
        return tokens["access_token"]

    def create_preference(
            self,
            access_token: str,
            booking: Booking,
            event_type: EventType,
    ) -> Dict[str, str]:
        """
        Create a checkout preference for a held booking.

        The booking id travels as external_reference and the host id in the
        notification URL, so the webhook can resolve both without a scan.
        """
        frontend_url = settings.FRONTEND_URL.rstrip("/")
        backend_url = settings.BACKEND_URL.rstrip("/")
        expires_at = booking.payment_expires_at or (
            datetime.now(timezone.utc) + timedelta(minutes=settings.PAYMENT_HOLD_MINUTES)
        )

        body = {
            "items": [
                {
                    "id": str(booking.id),
                    "title": event_type.title,
                    "quantity": 1,
                    "unit_price": float(booking.payment_amount),
                    "currency_id": booking.payment_currency,
                }
            ],
            "payer": {"name": booking.guest_name, "email": booking.guest_email},
            "external_reference": str(booking.id),
            "back_urls": {
                "success": f"{frontend_url}/booking/payment-result?status=success",
                "failure": f"{frontend_url}/booking/payment-result?status=failure",
                "pending": f"{frontend_url}/booking/payment-result?status=pending",
            },
            "auto_return": "approved",
            "notification_url": f"{backend_url}/webhooks/mercadopago?host_id={booking.host_id}",
            "expires": True,
            "expiration_date_to": expires_at.astimezone(timezone.utc).isoformat(timespec="milliseconds"),
        }

        response = self.http_client.post(
            f"{self.base_url}/checkout/preferences",
            headers={"Authorization": f"Bearer {access_token}"},
            json=body,
        )
        response.raise_for_status()
        preference = response.json()

        if not preference.get("id") or not preference.get("init_point"):
            raise ServiceException("Failed to create MercadoPago preference")

        return {"preference_id": preference["id"], "init_point": preference["init_point"]}

    def get_payment(self, access_token: str, payment_id: str) -> Dict[str, Any]:
        response = self.http_client.get(
            f"{self.base_url}/v1/payments/{payment_id}",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        response.raise_for_status()
        payment = response.json()
        return {
            "id": str(payment["id"]),
            "status": payment.get("status"),
            "external_reference": payment.get("external_reference"),
            "transaction_amount": payment.get("transaction_amount"),
            "currency_id": payment.get("currency_id"),
        }

    @staticmethod
    def verify_signature(
            x_signature: Optional[str],
            x_request_id: Optional[str],
            data_id: Optional[str],
            secret: Optional[str],
    ) -> bool:
        """
        Check the x-signature header ("ts=...,v1=...") against
        HMAC-SHA256 of "id:<data.id>;request-id:<x-request-id>;ts:<ts>;".
        """
        if not secret:
            logger.warning("MP_WEBHOOK_SECRET not configured, skipping signature verification")
            return True

        if not x_signature or not x_request_id:
            return False

        parts = {}
        for part in x_signature.split(","):
            key, _, value = part.partition("=")
            if key.strip() and value.strip():
                parts[key.strip()] = value.strip()

        ts, v1 = parts.get("ts"), parts.get("v1")
        if not ts or not v1:
            return False

        manifest = ""
        if data_id:
            manifest += f"id:{data_id};"
        manifest += f"request-id:{x_request_id};ts:{ts};"

        expected = hmac.new(secret.encode(), manifest.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, v1)
