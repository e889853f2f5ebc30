import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

ALLOWED_CATEGORIES = (
    "plumbing",
    "painting",
    "furniture assembly",
    "electrical work",
    "room cleaning",
    "other",
)


class UserRole(str, enum.Enum):
    OWNER = "owner"
    TENANT = "tenant"
    CONTRACTOR = "contractor"
    ADMIN = "admin"


class ContractorStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    DISABLED = "disabled"


class ServiceStatus(str, enum.Enum):
    PENDING = "pending"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ApprovalState(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


def _enum_column(enum_cls, **kwargs):
    """String-backed enum column storing member values, portable across databases"""
    return Column(
        Enum(
            enum_cls,
            native_enum=False,
            length=20,
            values_callable=lambda members: [m.value for m in members],
            validate_strings=True,
        ),
        **kwargs,
    )


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = _enum_column(UserRole, nullable=False)
    avatar_url = Column(String(500), nullable=True)

    verified = Column(Boolean, default=False, nullable=False)  # Email confirmed
    admin_verified = Column(Boolean, default=False, nullable=False)  # Required for tenant/owner login
    contractor_status = _enum_column(ContractorStatus, nullable=True)
    deactivated_at = Column(DateTime, nullable=True)

    # One-time tokens live on the row, each with its own expiry
    verification_token = Column(String(128), nullable=True, index=True)
    verification_token_expires_at = Column(DateTime, nullable=True)
    password_reset_token = Column(String(128), nullable=True, index=True)
    password_reset_token_expires_at = Column(DateTime, nullable=True)
    # jti of the currently valid session token; cleared on logout
    session_token_id = Column(String(64), nullable=True)

    country = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    categories = Column(JSON, default=list, nullable=True)  # Contractor trades
    years_of_experience = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    services = relationship(
        "Service", back_populates="owner", foreign_keys="Service.owner_id"
    )
    assigned_services = relationship(
        "Service", back_populates="contractor", foreign_keys="Service.contractor_id"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    contractor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    name = Column(String(255), nullable=False)
    categories = Column(JSON, default=list, nullable=False)
    description = Column(Text, nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="PHP")

    available_from_date = Column(Date, nullable=False)
    available_to_date = Column(Date, nullable=True)
    available_from_time = Column(String(5), nullable=False)  # HH:mm
    available_to_time = Column(String(5), nullable=False)  # HH:mm

    status = _enum_column(ServiceStatus, nullable=False, default=ServiceStatus.PENDING, index=True)
    paid = Column(Boolean, default=False, nullable=False)
    media = Column(JSON, default=list, nullable=True)  # Public URLs from the media store

    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="services", foreign_keys=[owner_id])
    contractor = relationship("User", back_populates="assigned_services", foreign_keys=[contractor_id])
    quotes = relationship("Quote", back_populates="service", order_by="Quote.created_at.desc()")
    payments = relationship("Payment", back_populates="service")


class Quote(Base):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)

    description = Column(Text, nullable=False)
    estimated_cost = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="PHP")

    # Optional work schedule proposed alongside the price
    available_from_date = Column(Date, nullable=True)
    available_to_date = Column(Date, nullable=True)
    available_from_time = Column(String(5), nullable=True)
    available_to_time = Column(String(5), nullable=True)

    approval_state = _enum_column(
        ApprovalState, nullable=False, default=ApprovalState.PENDING, index=True
    )
    decided_at = Column(DateTime, nullable=True)
    decided_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    author = relationship("User", foreign_keys=[author_id])
    decided_by = relationship("User", foreign_keys=[decided_by_id])
    service = relationship("Service", back_populates="quotes")

    @property
    def has_availability(self) -> bool:
        return any(
            [
                self.available_from_date,
                self.available_to_date,
                self.available_from_time,
                self.available_to_time,
            ]
        )


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)

    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="PHP")
    payment_method = Column(String(50), nullable=False, default="none")
    external_payment_id = Column(String(255), unique=True, nullable=True, index=True)
    checkout_url = Column(String(1000), nullable=True)
    paid = Column(Boolean, default=False, nullable=False)
    paid_at = Column(DateTime, nullable=True)

    # Quote approval parked until the gateway confirms settlement
    resume_approval = Column(Boolean, default=False, nullable=False)
    resume_approver_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    resume_quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    resume_approver = relationship("User", foreign_keys=[resume_approver_id])
    resume_quote = relationship("Quote", foreign_keys=[resume_quote_id])
    service = relationship("Service", back_populates="payments")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), index=True)

    from_user = relationship("User", foreign_keys=[from_user_id])
    to_user = relationship("User", foreign_keys=[to_user_id])
