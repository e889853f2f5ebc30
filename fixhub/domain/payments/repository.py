"""Payment repository - Database operations for service payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Payment, Service


class PaymentRepository:
    """Repository for payment database operations (flush only, never commit)"""

    @staticmethod
    def get_payment(db: Session, payment_id: int) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == payment_id).first()

    @staticmethod
    def get_by_external_id(db: Session, external_id: str) -> Optional[Payment]:
        """Get payment by gateway checkout ID"""
        return db.query(Payment).filter(Payment.external_payment_id == external_id).first()

    @staticmethod
    def get_latest_unsettled(db: Session, service_id: int) -> Optional[Payment]:
        """Most recent payment for a service that has not been confirmed yet"""
        return (
            db.query(Payment)
            .filter(Payment.service_id == service_id, Payment.paid.is_(False))
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .first()
        )

    @staticmethod
    def get_latest_with_checkout(db: Session, service_id: int) -> Optional[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.service_id == service_id, Payment.external_payment_id.isnot(None))
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .first()
        )

    @staticmethod
    def get_settled(db: Session, service_id: int) -> Optional[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.service_id == service_id, Payment.paid.is_(True))
            .order_by(Payment.paid_at.desc(), Payment.id.desc())
            .first()
        )

    @staticmethod
    def create_payment(db: Session, **payment_data) -> Payment:
        payment = Payment(**payment_data)
        db.add(payment)
        db.flush()
        return payment

    @staticmethod
    def mark_paid(db: Session, payment_id: int) -> bool:
        """
        Conditional write paid false -> true.

        Returns:
            True only for the single caller that settled the payment
        """
        matched = (
            db.query(Payment)
            .filter(Payment.id == payment_id, Payment.paid.is_(False))
            .update({"paid": True, "paid_at": datetime.utcnow()}, synchronize_session=False)
        )
        return matched == 1

    @staticmethod
    def mark_service_paid(db: Session, service_id: int) -> None:
        db.query(Service).filter(Service.id == service_id).update(
            {"paid": True}, synchronize_session=False
        )

    @staticmethod
    def get_user_payments(db: Session, user_id: int) -> list[Payment]:
        """Payment history for a user, newest first"""
        return (
            db.query(Payment)
            .filter(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        )
