"""
Domain error taxonomy.

Every failure raised by the workflow carries a stable machine-readable ``kind``
and the HTTP status it maps to. ``main.py`` renders them as
``{"error": {"kind": ..., "message": ...}}``.
"""

from typing import Optional


class DomainError(Exception):
    """Base class for workflow errors"""

    kind = "error"
    status_code = 400

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return cls.kind.replace("_", " ").capitalize()

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class NotFound(DomainError):
    kind = "not_found"
    status_code = 404


class NotAuthenticated(DomainError):
    kind = "not_authenticated"
    status_code = 401


class NotAuthorized(DomainError):
    kind = "not_authorized"
    status_code = 403


class SelfApprovalForbidden(DomainError):
    kind = "self_approval_forbidden"
    status_code = 403

    @classmethod
    def default_message(cls) -> str:
        return "You cannot approve or decline your own quote"


class InvalidInput(DomainError):
    kind = "invalid_input"
    status_code = 400


class InvalidTransition(DomainError):
    kind = "invalid_transition"
    status_code = 409


class Conflict(DomainError):
    kind = "conflict"
    status_code = 409


class PaymentRequired(DomainError):
    kind = "payment_required"
    status_code = 402

    @classmethod
    def default_message(cls) -> str:
        return "The service must be paid before this action can complete"


class PaymentGatewayError(DomainError):
    kind = "payment_gateway_error"
    status_code = 502

    def __init__(self, message: Optional[str] = None, retryable: bool = False):
        super().__init__(message or "Payment gateway request failed")
        self.retryable = retryable
        if retryable:
            self.status_code = 504

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retryable"] = self.retryable
        return data
