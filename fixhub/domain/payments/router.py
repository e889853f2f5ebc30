"""Payment router - FastAPI endpoints for service payments"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...config import PAYMONGO_WEBHOOK_SECRET
from ...database import get_db
from ...errors import InvalidInput, NotFound
from ...models import User
from ...schemas import MessageResponse
from ...webhook_security import verify_paymongo_webhook
from ..services.schemas import ServiceResponse
from .gateway import PayMongoGateway, get_payment_gateway
from .schemas import PaymentConfirmationResponse, PaymentResponse, PaymentsResponse
from .service import ConfirmationResult, InitiateCheckout, PaymentGate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])

PAID_EVENT = "checkout_session.payment.paid"


def get_payment_gate(
    db: Session = Depends(get_db),
    gateway: PayMongoGateway = Depends(get_payment_gateway),
) -> PaymentGate:
    """Dependency injection for PaymentGate"""
    return PaymentGate(db, gateway)


def confirmation_response(result: ConfirmationResult) -> PaymentConfirmationResponse:
    return PaymentConfirmationResponse(
        payment=PaymentResponse.model_validate(result.payment),
        service=ServiceResponse.model_validate(result.service),
        alreadySettled=result.already_settled,
        resumedQuoteId=result.resumed_quote.id if result.resumed_quote is not None else None,
    )


@router.post("/make-payment/{service_id}")
async def make_payment(
    service_id: int,
    current_user: User = Depends(get_current_user),
    gate: PaymentGate = Depends(get_payment_gate),
):
    """Open (or reuse) a checkout session for an unpaid service"""
    outcome = await gate.start_checkout(current_user, service_id)
    if isinstance(outcome, InitiateCheckout):
        return JSONResponse(status_code=200, content=outcome.to_dict())
    return {"status": "paid", "message": "Service has been paid for already"}


@router.post("/{service_id}/successful-payment", response_model=PaymentConfirmationResponse)
async def successful_payment(
    service_id: int,
    current_user: User = Depends(get_current_user),
    gate: PaymentGate = Depends(get_payment_gate),
):
    """Success redirect: confirm with the gateway, then settle"""
    result = await gate.confirm_from_gateway(service_id, current_user)
    return confirmation_response(result)


@router.get("/{service_id}/cancel-payment", response_model=MessageResponse)
async def cancel_payment(
    service_id: int,
    current_user: User = Depends(get_current_user),
    gate: PaymentGate = Depends(get_payment_gate),
):
    return gate.cancel_payment(current_user, service_id)


@router.get("/history", response_model=PaymentsResponse)
async def payment_history(
    current_user: User = Depends(get_current_user),
    gate: PaymentGate = Depends(get_payment_gate),
):
    """Payment history of the current user"""
    return {"payments": gate.list_payments(current_user)}


# ============================================================================
# WEBHOOK
# ============================================================================


@router.post("/webhook")
async def paymongo_webhook(request: Request, gate: PaymentGate = Depends(get_payment_gate)):
    """
    PayMongo webhook. Only signed ``checkout_session.payment.paid`` events
    settle payments; every other event is acknowledged and ignored.
    """
    raw_body = await verify_paymongo_webhook(request, PAYMONGO_WEBHOOK_SECRET)

    try:
        event = json.loads(raw_body)
        attributes = event["data"]["attributes"]
        event_type = attributes["type"]
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidInput("Malformed webhook payload") from e

    if event_type != PAID_EVENT:
        logger.info(f"Ignoring PayMongo event {event_type}")
        return {"received": True}

    checkout = attributes.get("data") or {}
    external_id = checkout.get("id")
    metadata = (checkout.get("attributes") or {}).get("metadata") or {}
    payment_id = metadata.get("payment_id")
    try:
        payment_id = int(payment_id) if payment_id is not None else None
    except (TypeError, ValueError):
        payment_id = None

    try:
        result = await gate.confirm_payment(external_id, payment_id)
    except NotFound:
        logger.warning(f"PayMongo webhook for unknown checkout {external_id}")
        return {"received": True, "matched": False}

    return {
        "received": True,
        "matched": True,
        "paymentId": result.payment.id,
        "alreadySettled": result.already_settled,
    }
