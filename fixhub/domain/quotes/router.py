"""Quote router - FastAPI endpoints for quote decisions and listings"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ..payments.gateway import PayMongoGateway, get_payment_gateway
from ..services.schemas import ServiceResponse
from .schemas import ApprovalResponse, QuoteResponse, QuotesResponse
from .service import ApprovalOutcome, QuoteNegotiationEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["Quotes"])


def get_quote_engine(
    db: Session = Depends(get_db),
    gateway: PayMongoGateway = Depends(get_payment_gateway),
) -> QuoteNegotiationEngine:
    """Dependency injection for QuoteNegotiationEngine"""
    return QuoteNegotiationEngine(db, gateway)


def approval_response(outcome: ApprovalOutcome) -> JSONResponse:
    """200 with the approved quote and service, or 202 with the checkout to complete"""
    if outcome.payment_required:
        return JSONResponse(status_code=202, content=outcome.checkout.to_dict())

    body = ApprovalResponse(
        quote=QuoteResponse.model_validate(outcome.quote),
        service=ServiceResponse.model_validate(outcome.service),
    )
    return JSONResponse(status_code=200, content=body.model_dump(mode="json"))


@router.post("/{quote_id}/decline", response_model=QuoteResponse)
async def decline_quote(
    quote_id: int,
    current_user: User = Depends(get_current_user),
    engine: QuoteNegotiationEngine = Depends(get_quote_engine),
):
    """Decline a pending quote (service owner or assigned contractor)"""
    return await engine.decline_quote(current_user, quote_id)


@router.get("/service-quotes/{service_id}", response_model=QuotesResponse)
async def get_service_quotes(
    service_id: int,
    current_user: User = Depends(get_current_user),
    engine: QuoteNegotiationEngine = Depends(get_quote_engine),
):
    """All quotes of a service, newest first"""
    return {"quotes": engine.list_service_quotes(current_user, service_id)}
