"""Core utilities: exceptions, locks and middleware."""

from flupp.core.exceptions import (
    AlreadyCancelled,
    AlreadyPaid,
    AppException,
    ConflictError,
    DependencyError,
    DependencyTimeout,
    DuplicateReview,
    InternalError,
    InvalidPrice,
    InvalidTransition,
    NotEligible,
    NotFoundError,
    PaymentsNotConfigured,
    ValidationError,
    WebhookSignatureError,
)

__all__ = [
    "AlreadyCancelled",
    "AlreadyPaid",
    "AppException",
    "ConflictError",
    "DependencyError",
    "DependencyTimeout",
    "DuplicateReview",
    "InternalError",
    "InvalidPrice",
    "InvalidTransition",
    "NotEligible",
    "NotFoundError",
    "PaymentsNotConfigured",
    "ValidationError",
    "WebhookSignatureError",
]
