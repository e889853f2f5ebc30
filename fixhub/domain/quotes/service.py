"""
Quote negotiation engine.

Quote lifecycle:
    PENDING → APPROVED
    PENDING → DECLINED

Approved and declined quotes are immutable; renegotiation always creates a
new quote. Approving a quote binds its terms to the service, moves the
service to ongoing and declines every other pending quote on the service.
Approval of an unpaid service is parked behind a checkout and resumed by
the payment gate once the gateway confirms settlement.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import Conflict, InvalidInput, InvalidTransition, NotFound
from ...models import ApprovalState, Quote, Service, ServiceStatus, User, UserRole
from ...services.notification_service import notify
from ...shared.validators import validate_availability_window, validate_time
from ...utils.sanitization import sanitize_text
from ..authorization import Action, enforce
from ..payments.gateway import PayMongoGateway
from ..payments.service import InitiateCheckout, PaymentGate
from ..services import lifecycle
from .repository import QuoteRepository
from .schemas import QuoteTerms

logger = logging.getLogger(__name__)


@dataclass
class ApprovalOutcome:
    quote: Optional[Quote] = None
    service: Optional[Service] = None
    checkout: Optional[InitiateCheckout] = None

    @property
    def payment_required(self) -> bool:
        return self.checkout is not None


def _terms_to_fields(terms: QuoteTerms, base: Optional[Quote] = None) -> dict:
    """
    Validate quote terms and map them to Quote columns. Fields missing from
    terms fall back to ``base`` (the quote being countered).
    """

    def pick(value, attr):
        if value is None and base is not None:
            return getattr(base, attr)
        return value

    description = pick(terms.description, "description")
    estimated_cost = pick(terms.estimatedCost, "estimated_cost")

    if not description:
        raise InvalidInput("Quote description is required")
    if estimated_cost is None:
        raise InvalidInput("Estimated cost is required")
    if not math.isfinite(estimated_cost):
        raise InvalidInput("Estimated cost must be a finite number")
    if estimated_cost <= 0:
        raise InvalidInput("Estimated cost must be greater than 0")

    window_given = any(
        v is not None
        for v in (
            terms.availableFromDate,
            terms.availableToDate,
            terms.availableFromTime,
            terms.availableToTime,
        )
    )
    if window_given or base is None:
        window = (
            terms.availableFromDate,
            terms.availableToDate,
            terms.availableFromTime,
            terms.availableToTime,
        )
    else:
        window = (
            base.available_from_date,
            base.available_to_date,
            base.available_from_time,
            base.available_to_time,
        )

    try:
        description = sanitize_text(description)
        validate_availability_window(*window)
    except ValueError as e:
        raise InvalidInput(str(e)) from e

    return {
        "description": description,
        "estimated_cost": float(estimated_cost),
        "available_from_date": window[0],
        "available_to_date": window[1],
        "available_from_time": window[2].strip() if window[2] else None,
        "available_to_time": window[3].strip() if window[3] else None,
    }


class QuoteNegotiationEngine:
    """Service layer for quote negotiation"""

    def __init__(self, db: Session, gateway: PayMongoGateway):
        self.db = db
        self.repo = QuoteRepository()
        self.payments = PaymentGate(db, gateway)

    def _get_service(self, service_id: int) -> Service:
        service = self.db.query(Service).filter(Service.id == service_id).first()
        if not service:
            raise NotFound("Service not found")
        return service

    def _get_quote_and_service(self, quote_id: int) -> tuple[Optional[Quote], Optional[Service]]:
        quote = self.repo.get_quote(self.db, quote_id)
        return quote, (quote.service if quote is not None else None)

    # ========================================================================
    # CREATE
    # ========================================================================

    async def create_quote(self, author: User, service_id: int, terms: QuoteTerms) -> Quote:
        """Submit a pending quote on a service"""
        service = self._get_service(service_id)
        enforce(author, Action.CREATE_QUOTE, service=service)

        if lifecycle.is_terminal(ServiceStatus(service.status)):
            raise InvalidTransition(f"Cannot quote on a {service.status.value} service")

        fields = _terms_to_fields(terms)
        try:
            quote = self.repo.create_quote(
                self.db,
                author_id=author.id,
                service_id=service.id,
                currency=service.currency,
                approval_state=ApprovalState.PENDING,
                **fields,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(quote)

        logger.info(f"📝 Quote {quote.id} submitted by user {author.id} on service {service.id}")
        recipients = [service.contractor] if author.id == service.owner_id else [service.owner]
        await notify(
            self.db,
            author,
            recipients,
            "New quote",
            f"{author.full_name} submitted a quote of {quote.currency} {quote.estimated_cost:,.2f} "
            f"for '{service.name}'.",
            service,
        )
        return quote

    async def counter_offer(self, admin: User, quote_id: int, terms: QuoteTerms) -> Quote:
        """
        Admin answers a quote with a new pending quote on the same service.
        The original quote is left as it is, whatever its state.
        """
        original, service = self._get_quote_and_service(quote_id)
        enforce(admin, Action.COUNTER_OFFER, service=service, quote=original)

        if lifecycle.is_terminal(ServiceStatus(service.status)):
            raise InvalidTransition(f"Cannot counter on a {service.status.value} service")

        fields = _terms_to_fields(terms, base=original)
        try:
            quote = self.repo.create_quote(
                self.db,
                author_id=admin.id,
                service_id=service.id,
                currency=original.currency,
                approval_state=ApprovalState.PENDING,
                **fields,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(quote)

        logger.info(f"↩️ Counter-offer {quote.id} by admin {admin.id} answering quote {original.id}")
        await notify(
            self.db,
            admin,
            [service.owner, service.contractor, original.author],
            "Counter-offer",
            f"A counter-offer of {quote.currency} {quote.estimated_cost:,.2f} was made for '{service.name}'.",
            service,
        )
        return quote

    # ========================================================================
    # APPROVE
    # ========================================================================

    async def approve_quote(self, approver: User, quote_id: int) -> ApprovalOutcome:
        """Counterparty approval by the service owner or assigned contractor"""
        return await self._approve(approver, quote_id, Action.APPROVE_QUOTE)

    async def contractor_approve_quote(self, contractor: User, quote_id: int) -> ApprovalOutcome:
        """Schedule confirmation by the contractor assigned to the service"""
        return await self._approve(contractor, quote_id, Action.CONTRACTOR_APPROVE_QUOTE)

    async def admin_approve_quote(self, admin: User, quote_id: int) -> ApprovalOutcome:
        """Approval by an admin on behalf of the owner"""
        return await self._approve(admin, quote_id, Action.ADMIN_APPROVE_QUOTE)

    async def approve_as(self, approver: User, quote_id: int) -> ApprovalOutcome:
        """Approve through the entry point matching the approver's role"""
        if approver.role == UserRole.ADMIN:
            action = Action.ADMIN_APPROVE_QUOTE
        elif approver.role == UserRole.CONTRACTOR:
            action = Action.CONTRACTOR_APPROVE_QUOTE
        else:
            action = Action.APPROVE_QUOTE
        return await self._approve(approver, quote_id, action)

    async def _approve(self, approver: User, quote_id: int, action: Action) -> ApprovalOutcome:
        quote, service = self._get_quote_and_service(quote_id)
        enforce(approver, action, service=service, quote=quote)

        if quote.approval_state == ApprovalState.APPROVED:
            raise Conflict("Quote has already been approved")
        if quote.approval_state != ApprovalState.PENDING:
            raise InvalidTransition(f"Cannot approve a {quote.approval_state.value} quote")
        if lifecycle.is_terminal(ServiceStatus(service.status)):
            raise InvalidTransition(f"Cannot approve a quote on a {service.status.value} service")

        if not service.paid:
            outcome = await self.payments.ensure_paid(
                service, approver, resume_quote=quote, approver=approver
            )
            if isinstance(outcome, InitiateCheckout):
                logger.info(
                    f"Approval of quote {quote.id} parked until payment {outcome.payment_id} settles"
                )
                return ApprovalOutcome(checkout=outcome)

        updates = {
            "amount": quote.estimated_cost,
            "description": quote.description,
        }
        if quote.has_availability:
            try:
                updates["available_from_time"] = validate_time(quote.available_from_time, "availableFromTime")
                updates["available_to_time"] = validate_time(quote.available_to_time, "availableToTime")
            except ValueError as e:
                raise InvalidInput(str(e)) from e
            updates["available_from_date"] = quote.available_from_date
            updates["available_to_date"] = quote.available_to_date

        if approver.role == UserRole.CONTRACTOR:
            updates["contractor_id"] = approver.id
        elif service.contractor_id is None and quote.author.role == UserRole.CONTRACTOR:
            updates["contractor_id"] = quote.author_id

        try:
            if not self.repo.mark_approved(self.db, quote.id, approver.id):
                raise Conflict("Quote was decided by another request")
            declined = self.repo.decline_pending_siblings(self.db, service.id, quote.id, approver.id)
            lifecycle.apply_transition(self.db, service, ServiceStatus.ONGOING, **updates)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(quote)
        self.db.refresh(service)
        logger.info(
            f"✅ Quote {quote.id} approved by user {approver.id} ({action.value}); "
            f"{declined} sibling quote(s) declined"
        )

        await notify(
            self.db,
            approver,
            [quote.author, service.owner, service.contractor],
            "Quote approved",
            f"The quote of {quote.currency} {quote.estimated_cost:,.2f} for '{service.name}' was approved.",
            service,
        )
        return ApprovalOutcome(quote=quote, service=service)

    # ========================================================================
    # DECLINE
    # ========================================================================

    async def decline_quote(self, decliner: User, quote_id: int) -> Quote:
        quote, service = self._get_quote_and_service(quote_id)
        enforce(decliner, Action.DECLINE_QUOTE, service=service, quote=quote)

        if quote.approval_state != ApprovalState.PENDING:
            raise InvalidTransition(f"Cannot decline a {quote.approval_state.value} quote")

        # Another contractor's negotiation already won the service
        if (
            service.contractor_id is not None
            and quote.author.role == UserRole.CONTRACTOR
            and quote.author_id != service.contractor_id
        ):
            raise Conflict("Service already has a contractor bound by a different negotiation")

        try:
            if not self.repo.mark_declined(self.db, quote.id, decliner.id):
                raise Conflict("Quote was decided by another request")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(quote)

        logger.info(f"❌ Quote {quote.id} declined by user {decliner.id}")
        await notify(
            self.db,
            decliner,
            [quote.author],
            "Quote declined",
            f"Your quote for '{service.name}' was declined.",
            service,
        )
        return quote

    # ========================================================================
    # LISTINGS
    # ========================================================================

    def list_service_quotes(self, actor: User, service_id: int) -> list[Quote]:
        service = self.db.query(Service).filter(Service.id == service_id).first()
        enforce(actor, Action.VIEW_SERVICE_QUOTES, service=service)
        return self.repo.get_service_quotes(self.db, service.id)

    def list_user_quotes(self, user: User) -> list[Quote]:
        """Quotes received on every service the user posted"""
        return self.repo.get_owner_quotes(self.db, user.id)
