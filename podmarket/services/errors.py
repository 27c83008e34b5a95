# -*- coding: utf-8 -*-
"""
Typed failures raised by the core services.

Services raise these; only the HTTP boundary
(podmarket.middleware.errors) turns them into responses.
"""
from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    """Base class for expected, user-safe failures."""

    status_code = 500
    error_code = "internal_error"
    default_message = "Unexpected server error"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotAuthenticated(MarketplaceError):
    status_code = 401
    error_code = "auth_required"
    default_message = "Authentication required"


class NotAuthorized(MarketplaceError):
    status_code = 403
    error_code = "forbidden"
    default_message = "You do not have access to this resource"


class NotFound(MarketplaceError):
    status_code = 404
    error_code = "not_found"
    default_message = "Resource not found"


class ObjectNotFound(NotFound):
    default_message = "Object not found"


class Conflict(MarketplaceError):
    status_code = 409
    error_code = "conflict"
    default_message = "This entry already exists"


class PurchaseConflict(Conflict):
    error_code = "already_purchased"
    default_message = "Podcast already purchased"


class ValidationFailed(MarketplaceError):
    status_code = 400
    error_code = "validation_error"
    default_message = "Invalid request"


class PaymentNotCompleted(ValidationFailed):
    error_code = "payment_not_completed"
    default_message = "Payment not successful"


class PaymentMismatch(ValidationFailed):
    error_code = "payment_mismatch"
    default_message = "Payment does not match this purchase"


class UpstreamFailure(MarketplaceError):
    """A collaborator (payment processor, email provider, object store) failed.

    The message shown to clients is always generic; the cause is only logged.
    """
    status_code = 500
    error_code = "upstream_failure"
    default_message = "A required service is temporarily unavailable"

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": self.default_message}
