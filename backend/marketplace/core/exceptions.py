# backend/marketplace/core/exceptions.py
"""
Domain-specific exceptions for the marketplace.

Services raise these; routes convert them with ``to_http_exception()`` so the
HTTP status of every failure is decided in one place.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)

NO_PROVIDER_AVAILABLE_MESSAGE = (
    "No service providers are currently available for these services in your area at this time."
)
NO_REPLACEMENT_PROVIDER_MESSAGE = "You cannot cancel, no replacement found"


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def _detail(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}

    def to_http_exception(self) -> HTTPException:
        """Default conversion to HTTPException (override in subclasses)."""
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=self._detail()
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=self._detail())


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=self._detail())


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=self._detail())


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=HTTP_422_UNPROCESSABLE, detail=self._detail())


class UnauthorizedException(DomainException):
    """Raised when user is not authenticated."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=self._detail(),
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenException(DomainException):
    """Raised when the actor lacks permission for an action."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=self._detail())


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details,
            },
        )


# Booking lifecycle exceptions


class InvalidStateException(ConflictException):
    """Raised when a booking transition is not allowed from its current status."""

    def __init__(self, message: str, *, current_status: Optional[str] = None):
        super().__init__(
            message=message,
            code="INVALID_BOOKING_STATE",
            details={"current_status": current_status} if current_status else {},
        )


class NoProviderAvailableException(BusinessRuleException):
    """Raised when no eligible provider exists for a booking request."""

    def __init__(
        self,
        message: str = NO_PROVIDER_AVAILABLE_MESSAGE,
        *,
        code: str = "NO_PROVIDER_AVAILABLE",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, details=details)


class NoReplacementProviderException(NoProviderAvailableException):
    """Raised when a provider cancels and nobody can take the booking over."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            NO_REPLACEMENT_PROVIDER_MESSAGE, code="NO_REPLACEMENT_PROVIDER", details=details
        )


class BookingConflictException(ConflictException):
    """Raised when a booking write loses a race with a concurrent write."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "The booking was modified concurrently, please retry",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class ProviderQueryTimeoutException(DomainException):
    """Raised when the provider eligibility query exceeds its time budget."""

    def __init__(self, timeout_ms: int):
        super().__init__(
            message="Provider search timed out. Please try again.",
            code="PROVIDER_QUERY_TIMEOUT",
            details={"timeout_ms": timeout_ms},
        )

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=self._detail(),
            headers={"Retry-After": "2"},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Wraps data access failures (connection issues, query failures, constraint
    violations) so services do not depend on SQLAlchemy exception types.
    """
