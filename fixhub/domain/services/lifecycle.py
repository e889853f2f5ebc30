"""Service lifecycle - enforces valid status transitions.

Service lifecycle:
    PENDING → ONGOING → COMPLETED
    PENDING | ONGOING → CANCELLED

- ONGOING → ONGOING is the re-approval of a counter-quote: terms change,
  status does not.
- COMPLETED and CANCELLED are terminal.

Status writes are conditional updates filtered on the allowed source
states, so two requests racing on the same service cannot both win and a
cancelled service can never be observed moving back to ongoing.
"""

import logging
from typing import Any

from sqlalchemy.orm import Session

from ...errors import Conflict, InvalidTransition
from ...models import Service, ServiceStatus

logger = logging.getLogger(__name__)

# Valid transitions: {from_state: {allowed_to_states}}
TRANSITIONS: dict[ServiceStatus, set[ServiceStatus]] = {
    ServiceStatus.PENDING: {ServiceStatus.ONGOING, ServiceStatus.CANCELLED},
    ServiceStatus.ONGOING: {
        ServiceStatus.ONGOING,
        ServiceStatus.COMPLETED,
        ServiceStatus.CANCELLED,
    },
    # Terminal states, no outgoing transitions
    ServiceStatus.COMPLETED: set(),
    ServiceStatus.CANCELLED: set(),
}

TERMINAL_STATES = {ServiceStatus.COMPLETED, ServiceStatus.CANCELLED}


def sources_for(target: ServiceStatus) -> set[ServiceStatus]:
    """States from which target is reachable"""
    return {state for state, allowed in TRANSITIONS.items() if target in allowed}


def is_terminal(status: ServiceStatus) -> bool:
    return status in TERMINAL_STATES


def validate_transition(service: Service, target: ServiceStatus) -> None:
    """Raise InvalidTransition if target is not reachable from the current status"""
    current = ServiceStatus(service.status)
    if target not in TRANSITIONS[current]:
        allowed = ", ".join(sorted(s.value for s in TRANSITIONS[current])) or "none"
        raise InvalidTransition(
            f"Cannot move service from {current.value} to {target.value}. "
            f"Allowed from {current.value}: [{allowed}]"
        )


def apply_transition(
    db: Session, service: Service, target: ServiceStatus, **updates: Any
) -> Service:
    """
    Validate against the in-memory status, then write with a conditional
    update so a concurrent writer that already moved the service wins.
    Does not commit; the caller owns the transaction.
    """
    validate_transition(service, target)

    values = dict(updates)
    values["status"] = target
    matched = (
        db.query(Service)
        .filter(Service.id == service.id, Service.status.in_(list(sources_for(target))))
        .update(values, synchronize_session=False)
    )
    if matched != 1:
        logger.warning(
            f"Service {service.id} status write to {target.value} lost a concurrent update"
        )
        raise Conflict("Service was modified by another request; reload and retry")

    db.refresh(service)
    logger.info(f"Service {service.id} → {target.value}")
    return service
