"""Admin router - moderation and mediation endpoints"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import User
from ...schemas import UserResponse
from ..quotes.router import approval_response, get_quote_engine
from ..quotes.schemas import QuoteResponse, QuotesResponse, QuoteTerms
from ..quotes.service import QuoteNegotiationEngine
from ..services.router import get_service_manager
from ..services.schemas import (
    AssignContractorRequest,
    MonthlyServicesResponse,
    ServiceResponse,
    ServicesResponse,
)
from ..services.service import ServiceManager
from ..users.schemas import ContractorStatusRequest, UsersResponse
from .service import AdminService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


# ============================================================================
# ACCOUNTS
# ============================================================================


@router.get("/get-tenants-and-houseowners", response_model=UsersResponse)
async def get_tenants_and_owners(
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"users": service.list_tenants_and_owners(admin)}


@router.get("/all-contractors", response_model=UsersResponse)
async def get_all_contractors(
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"users": service.list_contractors(admin)}


@router.post("/verify-contractor/{user_id}", response_model=UserResponse)
async def verify_contractor(
    user_id: int,
    data: ContractorStatusRequest,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Set a contractor account active or disabled"""
    return await service.verify_contractor(admin, user_id, data.status)


@router.post("/verify-user/{user_id}", response_model=UserResponse)
async def verify_user(
    user_id: int,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return await service.verify_user(admin, user_id)


@router.post("/upgrade-to-homeowner/{user_id}", response_model=UserResponse)
async def upgrade_to_homeowner(
    user_id: int,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.upgrade_to_homeowner(admin, user_id)


@router.post("/downgrade-to-tenant/{user_id}", response_model=UserResponse)
async def downgrade_to_tenant(
    user_id: int,
    admin: User = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.downgrade_to_tenant(admin, user_id)


# ============================================================================
# SERVICES & QUOTES
# ============================================================================


@router.get("/get-all-services", response_model=ServicesResponse)
async def get_all_services(
    admin: User = Depends(get_current_admin),
    manager: ServiceManager = Depends(get_service_manager),
):
    return {"services": manager.get_all_services(admin)}


@router.get("/get-service-quotes/{service_id}", response_model=QuotesResponse)
async def get_service_quotes(
    service_id: int,
    admin: User = Depends(get_current_admin),
    engine: QuoteNegotiationEngine = Depends(get_quote_engine),
):
    return {"quotes": engine.list_service_quotes(admin, service_id)}


@router.get("/filter-services-monthly", response_model=MonthlyServicesResponse)
async def filter_services_monthly(
    year: Optional[int] = Query(None, description="Defaults to the current year"),
    admin: User = Depends(get_current_admin),
    manager: ServiceManager = Depends(get_service_manager),
):
    """Number of services created per month"""
    year = year or datetime.utcnow().year
    return {"year": year, "months": manager.monthly_counts(admin, year)}


@router.post("/counter-offer/{quote_id}", response_model=QuoteResponse, status_code=201)
async def counter_offer(
    quote_id: int,
    terms: QuoteTerms,
    admin: User = Depends(get_current_admin),
    engine: QuoteNegotiationEngine = Depends(get_quote_engine),
):
    """Answer a quote with new terms; omitted fields keep the original values"""
    return await engine.counter_offer(admin, quote_id, terms)


@router.post("/approve-quote/{quote_id}")
async def approve_quote(
    quote_id: int,
    admin: User = Depends(get_current_admin),
    engine: QuoteNegotiationEngine = Depends(get_quote_engine),
):
    """Approve a quote on behalf of the owner (200, or 202 when payment is required)"""
    outcome = await engine.admin_approve_quote(admin, quote_id)
    return approval_response(outcome)


@router.post("/assign-contractor/{service_id}", response_model=ServiceResponse)
async def assign_contractor(
    service_id: int,
    data: AssignContractorRequest,
    admin: User = Depends(get_current_admin),
    manager: ServiceManager = Depends(get_service_manager),
):
    return await manager.assign_contractor(admin, service_id, data.contractorId)
