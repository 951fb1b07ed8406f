"""
Exception hierarchy for the event manager.

Services raise these; `main.py` maps each family to an HTTP status. Callers
can branch on the concrete class (or on `code`) to tell causes apart.
"""

from typing import Any, Optional


class EventManagerError(Exception):
    """
    Base exception for all event manager errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(EventManagerError):
    """Input validation failed."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field} if field else None,
        )
        self.field = field


class InvalidFieldError(ValidationError):
    """An unsupported field name was passed to a query (e.g. order by)."""

    def __init__(self, field: str, allowed: Optional[list[str]] = None):
        super().__init__(f"Unsupported field: {field}", field=field)
        self.code = "INVALID_FIELD"
        if allowed:
            self.details["allowed"] = allowed


class NotFoundError(EventManagerError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        super().__init__(
            f"{resource} not found",
            code="NOT_FOUND",
            details={"resource": resource, "id": identifier},
        )


class AuthenticationError(EventManagerError):
    """Authentication failed (invalid or missing credentials)."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, code="AUTHENTICATION_FAILED")


class AccountNotVerifiedError(AuthenticationError):
    """Login refused because the email address is not verified yet."""

    def __init__(self):
        super().__init__(
            "Your email address is not verified. Please check your email and "
            "click the verification link before logging in."
        )
        self.code = "EMAIL_NOT_VERIFIED"


class AccountInactiveError(AuthenticationError):
    """Login refused because the account is deactivated."""

    def __init__(self):
        super().__init__("Your account is not active.")
        self.code = "ACCOUNT_INACTIVE"


class ForbiddenError(EventManagerError):
    """The actor is not allowed to perform the operation."""

    def __init__(self, message: str = "You are not allowed to perform this action."):
        super().__init__(message, code="FORBIDDEN")


class BusinessRuleError(EventManagerError):
    """A business rule rejected the operation."""

    pass


class IneligibleRegistrationError(BusinessRuleError):
    """Event is not planned, not upcoming, or already full."""

    def __init__(self, event_id: Optional[int] = None):
        super().__init__(
            "You cannot register for this event.",
            code="INELIGIBLE_REGISTRATION",
            details={"event_id": event_id},
        )


class AlreadyRegisteredError(BusinessRuleError):
    """User is already a participant of the event."""

    def __init__(self, event_id: Optional[int] = None):
        super().__init__(
            "You are already registered for this event.",
            code="ALREADY_REGISTERED",
            details={"event_id": event_id},
        )


class NotRegisteredError(BusinessRuleError):
    """User is not a participant of the event."""

    def __init__(self, event_id: Optional[int] = None):
        super().__init__(
            "You are not registered for this event.",
            code="NOT_REGISTERED",
            details={"event_id": event_id},
        )


class AlreadyVerifiedError(BusinessRuleError):
    """User email is already verified."""

    def __init__(self):
        super().__init__("User email is already verified.", code="ALREADY_VERIFIED")


class ConflictError(EventManagerError):
    """A uniqueness constraint was violated at commit time."""

    pass


class DuplicateEmailError(ConflictError):
    """Email address already belongs to another account."""

    def __init__(self, email: str):
        super().__init__(
            "This email address is already registered.",
            code="DUPLICATE_EMAIL",
            details={"email": email},
        )


class DuplicateSlugError(ConflictError):
    """Another post already uses the slug derived from this title."""

    def __init__(self, slug: str):
        super().__init__(
            f"A post with the slug '{slug}' already exists.",
            code="DUPLICATE_SLUG",
            details={"slug": slug},
        )


class ExternalServiceError(EventManagerError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service


class MailTransportError(ExternalServiceError):
    """The mail transport refused or failed to deliver a message."""

    def __init__(self, message: str):
        super().__init__(message, service="smtp", code="MAIL_TRANSPORT_ERROR")
