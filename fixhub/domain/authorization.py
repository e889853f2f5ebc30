"""
Authorization policy for every mutating workflow operation.

One ``Action`` enum and one decision table replace per-endpoint role checks.
Each rule is a predicate over (actor, service, quote) returning the error to
raise, or None to allow. Rules fail closed: a missing entity the rule needs
is ``NotFound``.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import DomainError, NotAuthorized, NotFound, SelfApprovalForbidden
from ..models import Quote, Service, User, UserRole

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    CREATE_QUOTE = "create_quote"
    APPROVE_QUOTE = "approve_quote"
    DECLINE_QUOTE = "decline_quote"
    CONTRACTOR_APPROVE_QUOTE = "contractor_approve_quote"
    ADMIN_APPROVE_QUOTE = "admin_approve_quote"
    COUNTER_OFFER = "counter_offer"
    VIEW_SERVICE_QUOTES = "view_service_quotes"
    EDIT_SERVICE = "edit_service"
    CANCEL_SERVICE = "cancel_service"
    COMPLETE_SERVICE = "complete_service"
    DISAPPROVE_CONTRACTOR = "disapprove_contractor"
    PAY_SERVICE = "pay_service"
    ASSIGN_CONTRACTOR = "assign_contractor"
    VERIFY_USER = "verify_user"
    CHANGE_ROLE = "change_role"
    VIEW_ALL = "view_all"


@dataclass(frozen=True)
class Decision:
    action: Action
    error: Optional[DomainError] = None

    @property
    def allowed(self) -> bool:
        return self.error is None


Rule = Callable[[User, Optional[Service], Optional[Quote]], Optional[DomainError]]


def _is_owner(actor: User, service: Service) -> bool:
    return service.owner_id == actor.id


def _is_assigned_contractor(actor: User, service: Service) -> bool:
    return service.contractor_id is not None and service.contractor_id == actor.id


def _admin_only(actor, service, quote):
    if actor.role != UserRole.ADMIN:
        return NotAuthorized("Admin privileges required")
    return None


def _owner_only(actor, service, quote):
    if not _is_owner(actor, service):
        return NotAuthorized("Only the service owner can perform this action")
    return None


def _create_quote(actor, service, quote):
    if _is_owner(actor, service) or actor.role == UserRole.CONTRACTOR:
        return None
    return NotAuthorized("Only the service owner or a contractor can submit a quote")


def _counterparty_decision(actor, service, quote):
    if quote.author_id == actor.id:
        return SelfApprovalForbidden()
    if _is_owner(actor, service) or _is_assigned_contractor(actor, service):
        return None
    return NotAuthorized("Only the service owner or the assigned contractor can decide on this quote")


def _contractor_confirm(actor, service, quote):
    if quote.author_id == actor.id:
        return SelfApprovalForbidden()
    if actor.role != UserRole.CONTRACTOR or not _is_assigned_contractor(actor, service):
        return NotAuthorized("Only the contractor assigned to this service can confirm the quote")
    return None


def _admin_approve(actor, service, quote):
    if quote.author_id == actor.id:
        return SelfApprovalForbidden()
    return _admin_only(actor, service, quote)


def _view_quotes(actor, service, quote):
    if (
        _is_owner(actor, service)
        or _is_assigned_contractor(actor, service)
        or actor.role in (UserRole.CONTRACTOR, UserRole.ADMIN)
    ):
        return None
    return NotAuthorized("You cannot view quotes for this service")


def _assign_contractor(actor, service, quote):
    if actor.role == UserRole.ADMIN or _is_owner(actor, service):
        return None
    return NotAuthorized("Only an admin or the service owner can assign a contractor")


# action -> (needs service, needs quote, rule)
_POLICY: dict[Action, tuple[bool, bool, Rule]] = {
    Action.CREATE_QUOTE: (True, False, _create_quote),
    Action.APPROVE_QUOTE: (True, True, _counterparty_decision),
    Action.DECLINE_QUOTE: (True, True, _counterparty_decision),
    Action.CONTRACTOR_APPROVE_QUOTE: (True, True, _contractor_confirm),
    Action.ADMIN_APPROVE_QUOTE: (True, True, _admin_approve),
    Action.COUNTER_OFFER: (True, True, _admin_only),
    Action.VIEW_SERVICE_QUOTES: (True, False, _view_quotes),
    Action.EDIT_SERVICE: (True, False, _owner_only),
    Action.CANCEL_SERVICE: (True, False, _owner_only),
    Action.COMPLETE_SERVICE: (True, False, _owner_only),
    Action.DISAPPROVE_CONTRACTOR: (True, False, _owner_only),
    Action.PAY_SERVICE: (True, False, _owner_only),
    Action.ASSIGN_CONTRACTOR: (True, False, _assign_contractor),
    Action.VERIFY_USER: (False, False, _admin_only),
    Action.CHANGE_ROLE: (False, False, _admin_only),
    Action.VIEW_ALL: (False, False, _admin_only),
}


def authorize(
    actor: Optional[User],
    action: Action,
    service: Optional[Service] = None,
    quote: Optional[Quote] = None,
) -> Decision:
    """Evaluate the decision table without raising"""
    if actor is None:
        return Decision(action, NotAuthorized("No acting user"))

    needs_service, needs_quote, rule = _POLICY[action]
    if needs_quote and quote is None:
        return Decision(action, NotFound("Quote not found"))
    if needs_service and service is None:
        return Decision(action, NotFound("Service not found"))

    return Decision(action, rule(actor, service, quote))


def enforce(
    actor: Optional[User],
    action: Action,
    service: Optional[Service] = None,
    quote: Optional[Quote] = None,
) -> None:
    """Raise the denial error if the policy does not allow the action"""
    decision = authorize(actor, action, service, quote)
    if not decision.allowed:
        logger.info(
            f"Denied {action.value} for user {getattr(actor, 'id', None)}: {decision.error.kind}"
        )
        raise decision.error
