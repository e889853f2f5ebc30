"""Payment gate - decides whether a service is settled and drives checkout"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.orm import Session

from ...errors import (
    DomainError,
    InvalidTransition,
    NotFound,
    PaymentGatewayError,
    PaymentRequired,
)
from ...models import Payment, Quote, Service, User
from ...services.notification_service import notify
from ...shared.validators import validate_external_id
from ..authorization import Action, enforce
from .gateway import STATUS_PAID, PayMongoGateway
from .repository import PaymentRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Paid:
    """The service is already settled"""

    payment: Optional[Payment] = None


@dataclass(frozen=True)
class InitiateCheckout:
    """A checkout session is open; the payer must complete it"""

    checkout_url: str
    external_id: str
    payment_id: int

    def to_dict(self) -> dict:
        return {
            "status": "payment_required",
            "checkoutUrl": self.checkout_url,
            "externalId": self.external_id,
            "paymentId": self.payment_id,
        }


PaymentOutcome = Union[Paid, InitiateCheckout]


@dataclass
class ConfirmationResult:
    payment: Payment
    service: Service
    already_settled: bool
    resumed_quote: Optional[Quote] = None


class PaymentGate:
    """Service layer for service payments"""

    def __init__(self, db: Session, gateway: PayMongoGateway):
        self.db = db
        self.gateway = gateway
        self.repo = PaymentRepository()

    def _get_service(self, service_id: int) -> Service:
        service = self.db.query(Service).filter(Service.id == service_id).first()
        if not service:
            raise NotFound("Service not found")
        return service

    async def ensure_paid(
        self,
        service: Service,
        actor: User,
        resume_quote: Optional[Quote] = None,
        approver: Optional[User] = None,
    ) -> PaymentOutcome:
        """
        Return Paid when the service is settled, otherwise open a checkout
        session for the service owner.

        The latest unsettled payment of the service is reused so repeated
        attempts never pile up duplicate payments. On any gateway failure
        the session is rolled back and nothing is persisted.
        """
        if service.paid:
            return Paid(self.repo.get_settled(self.db, service.id))

        try:
            payment = self.repo.get_latest_unsettled(self.db, service.id)
            if payment is None:
                payment = self.repo.create_payment(
                    self.db,
                    user_id=service.owner_id,
                    service_id=service.id,
                    amount=service.amount,
                    currency=service.currency,
                    payment_method="paymongo",
                )
            else:
                payment.amount = service.amount
                payment.currency = service.currency

            if resume_quote is not None:
                payment.resume_approval = True
                payment.resume_quote_id = resume_quote.id
                payment.resume_approver_id = (approver or actor).id
            self.db.flush()

            session = await self.gateway.create_checkout(
                amount=payment.amount,
                currency=payment.currency,
                description=f"Payment for service {service.id}",
                metadata={
                    "payment_id": payment.id,
                    "service_id": service.id,
                    "user_id": service.owner_id,
                },
                line_item_name=service.name,
            )

            try:
                external_id = validate_external_id(session.external_id)
            except ValueError as e:
                raise PaymentGatewayError("Gateway returned an invalid checkout id") from e
            checkout_url = session.checkout_url
            if not isinstance(checkout_url, str) or not checkout_url.startswith(("https://", "http://")):
                raise PaymentGatewayError("Gateway returned an invalid checkout URL")

            payment.external_payment_id = external_id
            payment.checkout_url = checkout_url
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Checkout {external_id} opened for service {service.id} "
            f"(payment {payment.id}, resume_approval={payment.resume_approval})"
        )
        return InitiateCheckout(checkout_url, external_id, payment.id)

    async def start_checkout(self, owner: User, service_id: int) -> PaymentOutcome:
        """Explicit 'make payment' request from the owner"""
        service = self._get_service(service_id)
        enforce(owner, Action.PAY_SERVICE, service=service)
        return await self.ensure_paid(service, owner)

    async def confirm_payment(
        self, external_id: Optional[str], payment_id: Optional[int] = None
    ) -> ConfirmationResult:
        """
        Settle a payment once the gateway reports it paid.

        Only the caller whose conditional write flips paid false -> true
        marks the service paid and resumes a parked approval; later
        confirmations of the same payment are no-ops.
        """
        payment = self.repo.get_by_external_id(self.db, external_id) if external_id else None
        if payment is None and payment_id is not None:
            payment = self.repo.get_payment(self.db, payment_id)
        if payment is None:
            raise NotFound("Payment not found")

        try:
            won = self.repo.mark_paid(self.db, payment.id)
            if won:
                self.repo.mark_service_paid(self.db, payment.service_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(payment)
        service = payment.service
        self.db.refresh(service)

        if not won:
            logger.info(f"Payment {payment.id} already settled; confirmation ignored")
            return ConfirmationResult(payment, service, already_settled=True)

        logger.info(f"💰 Payment {payment.id} settled for service {service.id}")

        resumed = None
        if payment.resume_approval:
            resumed = await self._resume_approval(payment, service)

        await notify(
            self.db,
            None,
            [service.owner, service.contractor],
            "Payment received",
            f"Payment of {payment.currency} {payment.amount:,.2f} for '{service.name}' was received.",
            service,
        )
        return ConfirmationResult(payment, service, already_settled=False, resumed_quote=resumed)

    async def _resume_approval(self, payment: Payment, service: Service) -> Optional[Quote]:
        """Finish the approval that was parked behind this payment"""
        from ..quotes.service import QuoteNegotiationEngine

        approver = payment.resume_approver or payment.user
        engine = QuoteNegotiationEngine(self.db, self.gateway)
        quote = payment.resume_quote
        if quote is None:
            quote = engine.repo.get_latest_pending(self.db, service.id, exclude_author_id=approver.id)
        if quote is None:
            logger.warning(f"No pending quote to resume on service {service.id} after payment {payment.id}")
            return None

        try:
            outcome = await engine.approve_as(approver, quote.id)
        except DomainError as e:
            logger.warning(f"Could not resume approval of quote {quote.id}: {e.message}")
            return None
        logger.info(f"Approval of quote {quote.id} resumed after payment {payment.id}")
        return outcome.quote

    async def confirm_from_gateway(self, service_id: int, user: User) -> ConfirmationResult:
        """Success-redirect handler: confirm only what the gateway reports paid"""
        service = self._get_service(service_id)
        enforce(user, Action.PAY_SERVICE, service=service)

        if service.paid:
            settled = self.repo.get_settled(self.db, service.id)
            if settled is not None:
                return ConfirmationResult(settled, service, already_settled=True)

        payment = self.repo.get_latest_with_checkout(self.db, service.id)
        if payment is None:
            raise InvalidTransition("No checkout was started for this service")
        if payment.paid:
            return ConfirmationResult(payment, service, already_settled=True)

        status = await self.gateway.get_status(payment.external_payment_id)
        if status != STATUS_PAID:
            raise PaymentRequired(f"Payment has not been completed (status: {status})")
        return await self.confirm_payment(payment.external_payment_id)

    def cancel_payment(self, owner: User, service_id: int) -> dict:
        """Abandoned checkout; the unsettled payment stays for reuse"""
        service = self._get_service(service_id)
        enforce(owner, Action.PAY_SERVICE, service=service)
        logger.info(f"Checkout cancelled by user {owner.id} for service {service.id}")
        return {"message": "Payment process cancelled"}

    def list_payments(self, user: User) -> list[Payment]:
        return self.repo.get_user_payments(self.db, user.id)
