"""Service manager - Business logic for service requests and their lifecycle"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...config import DEFAULT_CURRENCY
from ...errors import Conflict, InvalidInput, InvalidTransition, NotAuthorized, NotFound
from ...models import ContractorStatus, Quote, Service, ServiceStatus, User, UserRole
from ...services.notification_service import notify
from ...utils.sanitization import sanitize_string, sanitize_text
from ..authorization import Action, enforce
from . import lifecycle
from .repository import ServiceRepository
from .schemas import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)

POSTING_ROLES = (UserRole.OWNER, UserRole.TENANT)


class ServiceManager:
    """Service layer for service requests"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def get_service(self, service_id: int) -> Service:
        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise NotFound("Service not found")
        return service

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ========================================================================
    # OWNER OPERATIONS
    # ========================================================================

    def create_service(self, owner: User, data: ServiceCreate) -> Service:
        """Post a new service request; starts pending, unpaid and unassigned"""
        if owner.role not in POSTING_ROLES:
            raise NotAuthorized("Only owners and tenants can post service requests")

        if data.availableToDate and data.availableToDate < data.availableFromDate:
            raise InvalidInput("availableToDate cannot be before availableFromDate")

        try:
            name = sanitize_string(data.name)
            description = sanitize_text(data.description)
        except ValueError as e:
            raise InvalidInput(str(e)) from e
        if not name or not description:
            raise InvalidInput("Name and description are required")

        logger.info(f"📥 Creating service for user_id: {owner.id}")
        try:
            service = self.repo.create_service(
                self.db,
                owner.id,
                name=name,
                categories=data.categories,
                description=description,
                amount=data.amount,
                currency=(data.currency or DEFAULT_CURRENCY).upper(),
                available_from_date=data.availableFromDate,
                available_to_date=data.availableToDate,
                available_from_time=data.availableFromTime,
                available_to_time=data.availableToTime,
                status=ServiceStatus.PENDING,
                paid=False,
                media=data.media or [],
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(service)
        logger.info(f"✅ Service {service.id} created by user {owner.id}")
        return service

    def edit_service(self, owner: User, service_id: int, data: ServiceUpdate) -> Service:
        """Edit a service; only allowed while it is still pending"""
        service = self.get_service(service_id)
        enforce(owner, Action.EDIT_SERVICE, service=service)

        if service.status != ServiceStatus.PENDING:
            raise InvalidTransition("Only pending services can be edited")

        try:
            updates = {
                "name": sanitize_string(data.name),
                "categories": data.categories,
                "description": sanitize_text(data.description),
                "amount": data.amount,
                "available_from_date": data.availableFromDate,
                "available_to_date": data.availableToDate,
                "available_from_time": data.availableFromTime,
                "available_to_time": data.availableToTime,
                "media": data.media,
            }
        except ValueError as e:
            raise InvalidInput(str(e)) from e

        from_date = data.availableFromDate or service.available_from_date
        to_date = data.availableToDate or service.available_to_date
        if to_date and to_date < from_date:
            raise InvalidInput("availableToDate cannot be before availableFromDate")

        # Conditional on status so an approval racing this edit wins cleanly
        values = {k: v for k, v in updates.items() if v is not None}
        if values:
            matched = (
                self.db.query(Service)
                .filter(Service.id == service.id, Service.status == ServiceStatus.PENDING)
                .update(values, synchronize_session=False)
            )
            if matched != 1:
                self.db.rollback()
                raise Conflict("Service was modified by another request; reload and retry")
            self._commit()
            self.db.refresh(service)

        logger.info(f"✅ Service {service.id} edited")
        return service

    async def cancel_service(self, owner: User, service_id: int) -> Service:
        service = self.get_service(service_id)
        enforce(owner, Action.CANCEL_SERVICE, service=service)

        try:
            lifecycle.apply_transition(self.db, service, ServiceStatus.CANCELLED)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        await notify(
            self.db,
            owner,
            [service.contractor],
            "Service cancelled",
            f"The service '{service.name}' was cancelled by its owner.",
            service,
        )
        return service

    async def complete_service(self, owner: User, service_id: int) -> Service:
        service = self.get_service(service_id)
        enforce(owner, Action.COMPLETE_SERVICE, service=service)

        try:
            lifecycle.apply_transition(self.db, service, ServiceStatus.COMPLETED)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        await notify(
            self.db,
            owner,
            [service.contractor],
            "Service completed",
            f"The service '{service.name}' was marked as completed.",
            service,
        )
        return service

    async def disapprove_quote(self, owner: User, quote_id: int) -> Service:
        """
        Owner withdraws approval of the contractor bound to the service.
        The contractor is unassigned and the service is cancelled; the
        decided quote itself stays as it was.
        """
        quote = self.db.query(Quote).filter(Quote.id == quote_id).first()
        if not quote:
            raise NotFound("Quote not found")
        service = quote.service
        enforce(owner, Action.DISAPPROVE_CONTRACTOR, service=service, quote=quote)

        if service.contractor_id is None:
            raise InvalidTransition("No contractor is assigned to this service")

        contractor = service.contractor
        try:
            lifecycle.apply_transition(
                self.db, service, ServiceStatus.CANCELLED, contractor_id=None
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Owner {owner.id} disapproved contractor {contractor.id} on service {service.id}")
        await notify(
            self.db,
            owner,
            [contractor],
            "Quote disapproved",
            f"The owner disapproved your engagement on '{service.name}'. The service was cancelled.",
            service,
        )
        return service

    # ========================================================================
    # ADMIN OPERATIONS
    # ========================================================================

    async def assign_contractor(self, actor: User, service_id: int, contractor_id: int) -> Service:
        """Bind an active contractor to a non-terminal service"""
        service = self.get_service(service_id)
        enforce(actor, Action.ASSIGN_CONTRACTOR, service=service)

        contractor = self.repo.get_user(self.db, contractor_id)
        if not contractor:
            raise NotFound("Contractor not found")
        if contractor.role != UserRole.CONTRACTOR or contractor.contractor_status != ContractorStatus.ACTIVE:
            raise InvalidInput("Target user is not an active contractor")
        if lifecycle.is_terminal(ServiceStatus(service.status)):
            raise InvalidTransition(f"Cannot assign a contractor to a {service.status.value} service")

        open_states = [s for s in ServiceStatus if not lifecycle.is_terminal(s)]
        matched = (
            self.db.query(Service)
            .filter(Service.id == service.id, Service.status.in_(open_states))
            .update({"contractor_id": contractor.id}, synchronize_session=False)
        )
        if matched != 1:
            self.db.rollback()
            raise Conflict("Service was modified by another request; reload and retry")
        self._commit()
        self.db.refresh(service)

        logger.info(f"Contractor {contractor.id} assigned to service {service.id} by user {actor.id}")
        await notify(
            self.db,
            actor,
            [contractor, service.owner],
            "Contractor assigned",
            f"{contractor.full_name} was assigned to '{service.name}'.",
            service,
        )
        return service

    def get_all_services(self, admin: User) -> list[Service]:
        enforce(admin, Action.VIEW_ALL)
        return self.repo.get_all_services(self.db)

    def monthly_counts(self, admin: User, year: int) -> list[dict]:
        """Number of services created per month of a year"""
        enforce(admin, Action.VIEW_ALL)
        if year < 1970 or year > 9999:
            raise InvalidInput("Invalid year")

        services = self.repo.get_services_created_between(
            self.db, datetime(year, 1, 1), datetime(year + 1, 1, 1)
        )
        counts = [0] * 12
        for service in services:
            counts[service.created_at.month - 1] += 1
        return [{"month": i + 1, "count": c} for i, c in enumerate(counts)]

    # ========================================================================
    # LISTINGS
    # ========================================================================

    def get_user_services(self, user: User, status: Optional[ServiceStatus] = None) -> list[Service]:
        return self.repo.get_owner_services(self.db, user.id, status)

    def get_contractor_services(
        self,
        contractor: User,
        on_date: Optional[date] = None,
        status: Optional[ServiceStatus] = None,
        page: int = 0,
        limit: Optional[int] = None,
    ) -> list[Service]:
        if page < 0 or (limit is not None and limit < 1):
            raise InvalidInput("Invalid pagination parameters")
        return self.repo.get_contractor_services(
            self.db, contractor.id, on_date=on_date, status=status, page=page, limit=limit
        )

    def search_services(
        self,
        text: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[ServiceStatus] = None,
    ) -> list[Service]:
        services = self.repo.search_services(self.db, text=text, status=status)
        if category:
            wanted = category.strip().lower()
            services = [s for s in services if wanted in (s.categories or [])]
        return services
