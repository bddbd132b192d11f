"""Custom application exceptions.

Every exception carries a stable machine-readable ``code`` next to the
human-readable ``detail``; the app-level handler renders both.
"""

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
        code: str | None = None,
    ) -> None:
        if code:
            self.code = code
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Malformed or out-of-range input."""

    code = "VALIDATION_ERROR"

    def __init__(self, detail: str = "Validation failed", field: str | None = None) -> None:
        self.field = field
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(AppException):
    """Overlapping booking for the same customer."""

    code = "BOOKING_CONFLICT"

    def __init__(self, detail: str = "You already have a booking during this time period") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InvalidTransition(AppException):
    """Status change not permitted from the current status."""

    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, target: str, detail: str | None = None) -> None:
        self.current = current
        self.target = target
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail or f"Invalid booking transition: {current} → {target}",
        )


class AlreadyPaid(AppException):
    code = "ALREADY_PAID"

    def __init__(self, detail: str = "This booking has already been paid") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AlreadyCancelled(AppException):
    code = "ALREADY_CANCELLED"

    def __init__(self, detail: str = "Cannot create payment for cancelled booking") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidPrice(AppException):
    code = "INVALID_PRICE"

    def __init__(self, detail: str = "Invalid booking price") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotEligible(AppException):
    """Review attempted before the booking was paid."""

    code = "REVIEW_NOT_ELIGIBLE"

    def __init__(self, detail: str = "Can only review paid or completed bookings") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class DuplicateReview(AppException):
    code = "DUPLICATE_REVIEW"

    def __init__(self, detail: str = "This booking has already been reviewed") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class WebhookSignatureError(AppException):
    code = "INVALID_SIGNATURE"

    def __init__(self, detail: str = "Webhook signature verification failed") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class PaymentsNotConfigured(AppException):
    code = "PAYMENTS_NOT_CONFIGURED"

    def __init__(self, detail: str = "Card payments are not configured") -> None:
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class DependencyError(AppException):
    """External service error."""

    code = "DEPENDENCY_ERROR"

    def __init__(self, service: str, detail: str | None = None) -> None:
        self.service = service
        message = f"External service '{service}' failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=message)


class DependencyTimeout(AppException):
    """External service did not answer in time."""

    code = "DEPENDENCY_TIMEOUT"

    def __init__(self, service: str, timeout: float) -> None:
        self.service = service
        super().__init__(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"External service '{service}' timed out after {timeout:g}s",
        )


class InternalError(AppException):
    code = "INTERNAL_ERROR"

    def __init__(self, detail: str = "An internal server error occurred") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
