"""Core utilities: exceptions and in-flight protection."""

from guestflow.core.exceptions import (
    AppException,
    BusinessError,
    GuardViolation,
    InvalidTransition,
    NotFoundError,
    OperationInProgress,
    PaymentError,
    PaymentRequired,
    TransportError,
    ValidationError,
)
from guestflow.core.inflight import InFlightRegistry, generate_operation_key

__all__ = [
    "AppException",
    "BusinessError",
    "GuardViolation",
    "InvalidTransition",
    "NotFoundError",
    "OperationInProgress",
    "PaymentError",
    "PaymentRequired",
    "TransportError",
    "ValidationError",
    "InFlightRegistry",
    "generate_operation_key",
]
