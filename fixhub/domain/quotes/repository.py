"""Quote repository - Database operations for quotes"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import ApprovalState, Quote, Service


class QuoteRepository:
    """Repository for quote database operations (flush only, never commit)"""

    @staticmethod
    def get_quote(db: Session, quote_id: int) -> Optional[Quote]:
        """Get a quote by ID"""
        return db.query(Quote).filter(Quote.id == quote_id).first()

    @staticmethod
    def create_quote(db: Session, **quote_data) -> Quote:
        quote = Quote(**quote_data)
        db.add(quote)
        db.flush()
        return quote

    @staticmethod
    def _decide(db: Session, quote_id: int, state: ApprovalState, decider_id: int) -> bool:
        """Compare-and-set pending -> state; False when another request decided first"""
        matched = (
            db.query(Quote)
            .filter(Quote.id == quote_id, Quote.approval_state == ApprovalState.PENDING)
            .update(
                {
                    "approval_state": state,
                    "decided_at": datetime.utcnow(),
                    "decided_by_id": decider_id,
                },
                synchronize_session=False,
            )
        )
        return matched == 1

    @classmethod
    def mark_approved(cls, db: Session, quote_id: int, approver_id: int) -> bool:
        return cls._decide(db, quote_id, ApprovalState.APPROVED, approver_id)

    @classmethod
    def mark_declined(cls, db: Session, quote_id: int, decider_id: int) -> bool:
        return cls._decide(db, quote_id, ApprovalState.DECLINED, decider_id)

    @staticmethod
    def decline_pending_siblings(db: Session, service_id: int, keep_id: int, decider_id: int) -> int:
        """Decline every other pending quote of a service; returns how many"""
        return (
            db.query(Quote)
            .filter(
                Quote.service_id == service_id,
                Quote.id != keep_id,
                Quote.approval_state == ApprovalState.PENDING,
            )
            .update(
                {
                    "approval_state": ApprovalState.DECLINED,
                    "decided_at": datetime.utcnow(),
                    "decided_by_id": decider_id,
                },
                synchronize_session=False,
            )
        )

    @staticmethod
    def get_latest_pending(
        db: Session, service_id: int, exclude_author_id: Optional[int] = None
    ) -> Optional[Quote]:
        """Most recent pending quote of a service, optionally skipping one author"""
        query = db.query(Quote).filter(
            Quote.service_id == service_id, Quote.approval_state == ApprovalState.PENDING
        )
        if exclude_author_id is not None:
            query = query.filter(Quote.author_id != exclude_author_id)
        return query.order_by(Quote.created_at.desc(), Quote.id.desc()).first()

    @staticmethod
    def get_service_quotes(db: Session, service_id: int) -> list[Quote]:
        return (
            db.query(Quote)
            .filter(Quote.service_id == service_id)
            .order_by(Quote.created_at.desc(), Quote.id.desc())
            .all()
        )

    @staticmethod
    def get_owner_quotes(db: Session, owner_id: int) -> list[Quote]:
        """Every quote on services posted by an owner"""
        return (
            db.query(Quote)
            .join(Service, Quote.service_id == Service.id)
            .filter(Service.owner_id == owner_id)
            .order_by(Quote.created_at.desc(), Quote.id.desc())
            .all()
        )
