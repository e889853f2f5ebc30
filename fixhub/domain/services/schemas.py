"""Service domain schemas - Pydantic models for validation"""

import math
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import ServiceStatus
from ...shared.validators import validate_categories, validate_time


class ServiceCreate(BaseModel):
    """Schema for an owner posting a new service request"""

    name: str
    categories: list[str]
    description: str
    amount: float
    currency: Optional[str] = None
    availableFromDate: date
    availableToDate: Optional[date] = None
    availableFromTime: str
    availableToTime: str
    media: Optional[list[str]] = None

    @field_validator("categories")
    @classmethod
    def check_categories(cls, v):
        if not v:
            raise ValueError("Please provide at least one category")
        return validate_categories(v)

    @field_validator("amount")
    @classmethod
    def check_amount(cls, v):
        if not math.isfinite(v):
            raise ValueError("Amount must be a finite number")
        if v <= 0:
            raise ValueError("Amount must be greater than 0")
        return v

    @field_validator("availableFromTime", "availableToTime")
    @classmethod
    def check_time(cls, v):
        return validate_time(v)


class ServiceUpdate(BaseModel):
    """Schema for editing a pending service request"""

    name: Optional[str] = None
    categories: Optional[list[str]] = None
    description: Optional[str] = None
    amount: Optional[float] = None
    availableFromDate: Optional[date] = None
    availableToDate: Optional[date] = None
    availableFromTime: Optional[str] = None
    availableToTime: Optional[str] = None
    media: Optional[list[str]] = None

    @field_validator("categories")
    @classmethod
    def check_categories(cls, v):
        return validate_categories(v)

    @field_validator("amount")
    @classmethod
    def check_amount(cls, v):
        if v is None:
            return v
        if not math.isfinite(v):
            raise ValueError("Amount must be a finite number")
        if v <= 0:
            raise ValueError("Amount must be greater than 0")
        return v

    @field_validator("availableFromTime", "availableToTime")
    @classmethod
    def check_time(cls, v):
        return validate_time(v)


class AssignContractorRequest(BaseModel):
    contractorId: int


class ServiceResponse(BaseModel):
    """Schema for service response"""

    id: int
    owner_id: int
    contractor_id: Optional[int] = None
    name: str
    categories: list[str]
    description: str
    amount: float
    currency: str
    available_from_date: date
    available_to_date: Optional[date] = None
    available_from_time: str
    available_to_time: str
    status: ServiceStatus
    paid: bool
    media: Optional[list[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ServicesResponse(BaseModel):
    services: list[ServiceResponse]


class MonthlyCount(BaseModel):
    month: int
    count: int


class MonthlyServicesResponse(BaseModel):
    year: int
    months: list[MonthlyCount]
