"""Service repository - Database operations for service requests"""

from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Service, ServiceStatus, User


class ServiceRepository:
    """Repository for service database operations.

    Methods flush but never commit; the calling service layer owns the
    transaction so multi-step workflows commit or roll back as one unit.
    """

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        """Get a service by ID"""
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def create_service(db: Session, owner_id: int, **service_data) -> Service:
        """Create a new service request"""
        service = Service(owner_id=owner_id, **service_data)
        db.add(service)
        db.flush()
        return service

    @staticmethod
    def update_service(db: Session, service: Service, **updates) -> Service:
        """Update a service with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(service, key):
                setattr(service, key, value)
        db.flush()
        return service

    @staticmethod
    def get_owner_services(
        db: Session, owner_id: int, status: Optional[ServiceStatus] = None
    ) -> list[Service]:
        """Services posted by an owner, newest first"""
        query = db.query(Service).filter(Service.owner_id == owner_id)
        if status is not None:
            query = query.filter(Service.status == status)
        return query.order_by(Service.created_at.desc(), Service.id.desc()).all()

    @staticmethod
    def get_contractor_services(
        db: Session,
        contractor_id: int,
        on_date: Optional[date] = None,
        status: Optional[ServiceStatus] = None,
        page: int = 0,
        limit: Optional[int] = None,
    ) -> list[Service]:
        """Services assigned to a contractor, optionally filtered and paginated"""
        query = db.query(Service).filter(Service.contractor_id == contractor_id)

        if on_date is not None:
            query = query.filter(
                Service.available_from_date <= on_date,
                or_(Service.available_to_date.is_(None), Service.available_to_date >= on_date),
            )
        if status is not None:
            query = query.filter(Service.status == status)

        query = query.order_by(Service.created_at.desc(), Service.id.desc())
        if limit is not None:
            query = query.offset(page * limit).limit(limit)
        return query.all()

    @staticmethod
    def search_services(
        db: Session,
        text: Optional[str] = None,
        status: Optional[ServiceStatus] = None,
    ) -> list[Service]:
        """Search services by name/description text and status"""
        query = db.query(Service)
        if text:
            pattern = f"%{text}%"
            query = query.filter(or_(Service.name.ilike(pattern), Service.description.ilike(pattern)))
        if status is not None:
            query = query.filter(Service.status == status)
        return query.order_by(Service.created_at.desc(), Service.id.desc()).all()

    @staticmethod
    def get_all_services(db: Session) -> list[Service]:
        return db.query(Service).order_by(Service.created_at.desc(), Service.id.desc()).all()

    @staticmethod
    def get_services_created_between(db: Session, start, end) -> list[Service]:
        return (
            db.query(Service)
            .filter(Service.created_at >= start, Service.created_at < end)
            .all()
        )
