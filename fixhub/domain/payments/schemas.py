"""Payment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..services.schemas import ServiceResponse


class PaymentResponse(BaseModel):
    id: int
    user_id: int
    service_id: int
    amount: float
    currency: str
    payment_method: str
    external_payment_id: Optional[str] = None
    paid: bool
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentsResponse(BaseModel):
    payments: list[PaymentResponse]


class CheckoutResponse(BaseModel):
    """Returned when a checkout session was opened (HTTP 202 on approve endpoints)"""

    status: str = "payment_required"
    checkoutUrl: str
    externalId: str
    paymentId: int


class PaymentConfirmationResponse(BaseModel):
    payment: PaymentResponse
    service: ServiceResponse
    alreadySettled: bool
    resumedQuoteId: Optional[int] = None
