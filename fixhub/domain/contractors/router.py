"""Contractor router - listings and quote operations for contractors"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...auth import get_current_contractor
from ...models import ServiceStatus, User
from ..quotes.router import approval_response, get_quote_engine
from ..quotes.schemas import QuoteResponse, QuoteTerms
from ..quotes.service import QuoteNegotiationEngine
from ..services.router import get_service_manager
from ..services.schemas import ServicesResponse
from ..services.service import ServiceManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contractor", tags=["Contractors"])


@router.get("/contractor-services", response_model=ServicesResponse)
async def get_contractor_services(
    date_: Optional[date] = Query(None, alias="date", description="Only services available on this day"),
    status: Optional[ServiceStatus] = Query(None),
    page: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    contractor: User = Depends(get_current_contractor),
    manager: ServiceManager = Depends(get_service_manager),
):
    """Services assigned to the current contractor"""
    services = manager.get_contractor_services(
        contractor, on_date=date_, status=status, page=page, limit=limit
    )
    return {"services": services}


@router.get("/completed-services", response_model=ServicesResponse)
async def get_completed_services(
    contractor: User = Depends(get_current_contractor),
    manager: ServiceManager = Depends(get_service_manager),
):
    return {
        "services": manager.get_contractor_services(contractor, status=ServiceStatus.COMPLETED)
    }


@router.get("/all-contractor-services", response_model=ServicesResponse)
async def get_all_contractor_services(
    contractor: User = Depends(get_current_contractor),
    manager: ServiceManager = Depends(get_service_manager),
):
    return {"services": manager.get_contractor_services(contractor)}


@router.post("/create-quote/{service_id}", response_model=QuoteResponse, status_code=201)
async def create_quote(
    service_id: int,
    terms: QuoteTerms,
    contractor: User = Depends(get_current_contractor),
    engine: QuoteNegotiationEngine = Depends(get_quote_engine),
):
    """Submit a quote (price and proposed schedule) on a service"""
    return await engine.create_quote(contractor, service_id, terms)


@router.post("/approve-quote/{quote_id}")
async def approve_quote(
    quote_id: int,
    contractor: User = Depends(get_current_contractor),
    engine: QuoteNegotiationEngine = Depends(get_quote_engine),
):
    """Confirm a quote on a service assigned to the current contractor"""
    outcome = await engine.contractor_approve_quote(contractor, quote_id)
    return approval_response(outcome)
