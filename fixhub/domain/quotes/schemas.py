"""Quote domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import ApprovalState
from ..services.schemas import ServiceResponse


class QuoteTerms(BaseModel):
    """
    Price and optional schedule proposed for a service.

    Completeness (description, cost, all-or-nothing availability window) is
    checked by the negotiation engine so counter-offers can inherit omitted
    fields from the quote they answer.
    """

    description: Optional[str] = None
    estimatedCost: Optional[float] = None
    availableFromDate: Optional[date] = None
    availableToDate: Optional[date] = None
    availableFromTime: Optional[str] = None
    availableToTime: Optional[str] = None

    @field_validator("description", "availableFromTime", "availableToTime")
    @classmethod
    def blank_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class QuoteResponse(BaseModel):
    id: int
    author_id: int
    service_id: int
    description: str
    estimated_cost: float
    currency: str
    available_from_date: Optional[date] = None
    available_to_date: Optional[date] = None
    available_from_time: Optional[str] = None
    available_to_time: Optional[str] = None
    approval_state: ApprovalState
    decided_at: Optional[datetime] = None
    decided_by_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuotesResponse(BaseModel):
    quotes: list[QuoteResponse]


class ApprovalResponse(BaseModel):
    """Returned by approve endpoints when the approval completed"""

    status: str = "approved"
    quote: QuoteResponse
    service: ServiceResponse
