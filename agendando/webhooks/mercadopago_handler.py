# ===== agendando/webhooks/mercadopago_handler.py =====
"""
MercadoPago payment notifications.

The notification URL carries the host id, so the payment is fetched with that
host's own token. Once the signature checks out the endpoint always answers
200; MercadoPago would otherwise keep redelivering.
"""
from typing import Optional
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from agendando.config.database import get_db
from agendando.config.settings import settings
from agendando.core.exceptions import DomainException
from agendando.services.booking.booking_service import BookingService
from agendando.services.payment.mercadopago_service import MercadoPagoService

logger = logging.getLogger(__name__)

router = APIRouter()

REJECTED_STATUSES = ("rejected", "cancelled")


def get_mercadopago_service() -> MercadoPagoService:
    return MercadoPagoService()


@router.post("")
def handle_payment_notification(
        request_body: dict,
        host_id: Optional[str] = Query(None),
        data_id: Optional[str] = Query(None, alias="data.id"),
        x_signature: Optional[str] = Header(None),
        x_request_id: Optional[str] = Header(None),
        db: Session = Depends(get_db),
        mp_service: MercadoPagoService = Depends(get_mercadopago_service),
):
    if not MercadoPagoService.verify_signature(x_signature, x_request_id, data_id, settings.MP_WEBHOOK_SECRET):
        logger.warning(f"Rejected MercadoPago notification with bad signature (data.id={data_id})")
        raise HTTPException(status_code=401, detail="Invalid signature")

    if request_body.get("type") != "payment":
        return {"status": "ignored"}

    payment_id = data_id or str((request_body.get("data") or {}).get("id") or "")
    if not payment_id or not host_id:
        logger.warning(f"MercadoPago notification missing payment or host id: {request_body}")
        return {"status": "ignored"}

    try:
        host_uuid = UUID(host_id)
        access_token = mp_service.get_access_token(db, host_uuid)
        payment = mp_service.get_payment(access_token, payment_id)
    except Exception as e:
        logger.error(f"Could not fetch MercadoPago payment {payment_id} for host {host_id}: {e}", exc_info=True)
        return {"status": "error"}

    booking_id = payment.get("external_reference")
    if not booking_id:
        logger.info(f"Payment {payment_id} has no external reference, ignoring")
        return {"status": "ignored"}

    try:
        if payment["status"] == "approved":
            BookingService.confirm_payment(
                db, booking_id, payment_id, payment.get("transaction_amount"), host_id=host_uuid
            )
        elif payment["status"] in REJECTED_STATUSES:
            BookingService.reject_payment(db, booking_id, payment_id, payment["status"], host_id=host_uuid)
        else:
            logger.info(f"Payment {payment_id} for booking {booking_id} is {payment['status']}, waiting")
    except DomainException as e:
        logger.info(f"Payment {payment_id} for booking {booking_id} not applied: {e.message}")

    return {"status": "ok"}
