"""Service router - FastAPI endpoints for service requests"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import ServiceStatus, User
from ...schemas import MessageResponse
from ..quotes.router import approval_response, get_quote_engine
from ..quotes.schemas import QuoteResponse, QuoteTerms
from ..quotes.service import QuoteNegotiationEngine
from .schemas import ServiceCreate, ServiceResponse, ServicesResponse, ServiceUpdate
from .service import ServiceManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["Services"])


def get_service_manager(db: Session = Depends(get_db)) -> ServiceManager:
    """Dependency injection for ServiceManager"""
    return ServiceManager(db)


# ============================================================================
# OWNER OPERATIONS
# ============================================================================


@router.post("/create-service", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(get_current_user),
    manager: ServiceManager = Depends(get_service_manager),
):
    """Post a new service request"""
    return manager.create_service(current_user, data)


@router.put("/edit-service/{service_id}", response_model=ServiceResponse)
async def edit_service(
    service_id: int,
    data: ServiceUpdate,
    current_user: User = Depends(get_current_user),
    manager: ServiceManager = Depends(get_service_manager),
):
    """Edit a pending service request"""
    return manager.edit_service(current_user, service_id, data)


@router.post("/cancel-service/{service_id}", response_model=ServiceResponse)
async def cancel_service(
    service_id: int,
    current_user: User = Depends(get_current_user),
    manager: ServiceManager = Depends(get_service_manager),
):
    return await manager.cancel_service(current_user, service_id)


@router.post("/complete-service/{service_id}", response_model=ServiceResponse)
async def complete_service(
    service_id: int,
    current_user: User = Depends(get_current_user),
    manager: ServiceManager = Depends(get_service_manager),
):
    return await manager.complete_service(current_user, service_id)


@router.get("/user-services", response_model=ServicesResponse)
async def get_user_services(
    status: Optional[ServiceStatus] = Query(None, description="Filter by service status"),
    current_user: User = Depends(get_current_user),
    manager: ServiceManager = Depends(get_service_manager),
):
    """Services posted by the current user, newest first"""
    return {"services": manager.get_user_services(current_user, status)}


@router.get("/search-service", response_model=ServicesResponse)
async def search_services(
    q: Optional[str] = Query(None, max_length=200, description="Text in name or description"),
    category: Optional[str] = Query(None),
    status: Optional[ServiceStatus] = Query(None),
    current_user: User = Depends(get_current_user),
    manager: ServiceManager = Depends(get_service_manager),
):
    return {"services": manager.search_services(q, category, status)}


# ============================================================================
# QUOTE NEGOTIATION
# ============================================================================


@router.post("/{service_id}/quotes", response_model=QuoteResponse, status_code=201)
async def create_quote(
    service_id: int,
    terms: QuoteTerms,
    current_user: User = Depends(get_current_user),
    engine: QuoteNegotiationEngine = Depends(get_quote_engine),
):
    """Submit a quote on a service (owner or contractor)"""
    return await engine.create_quote(current_user, service_id, terms)


@router.post("/approve-quote/{quote_id}")
async def approve_quote(
    quote_id: int,
    current_user: User = Depends(get_current_user),
    engine: QuoteNegotiationEngine = Depends(get_quote_engine),
):
    """
    Approve a quote as the counterparty.

    Returns 200 with the approved quote and service, or 202 with a checkout
    URL when the service must be paid first.
    """
    outcome = await engine.approve_quote(current_user, quote_id)
    return approval_response(outcome)


@router.post("/disapprove-quote/{quote_id}", response_model=MessageResponse)
async def disapprove_quote(
    quote_id: int,
    current_user: User = Depends(get_current_user),
    manager: ServiceManager = Depends(get_service_manager),
):
    """Withdraw the contractor bound to the service and cancel it"""
    service = await manager.disapprove_quote(current_user, quote_id)
    return {"message": f"Contractor removed and service {service.id} cancelled"}
