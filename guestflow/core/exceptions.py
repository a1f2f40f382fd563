"""Custom application exceptions.

Three families mirror how failures reach the user:

- validation errors never leave the process (no network call is made)
- business errors carry the backend's own message, shown verbatim
- transport errors carry whatever message could be extracted, or a generic one
"""

from typing import Any

HTTP_400_BAD_REQUEST = 400
HTTP_402_PAYMENT_REQUIRED = 402
HTTP_404_NOT_FOUND = 404
HTTP_409_CONFLICT = 409
HTTP_422_UNPROCESSABLE_ENTITY = 422
HTTP_500_INTERNAL_SERVER_ERROR = 500
HTTP_503_SERVICE_UNAVAILABLE = 503


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class GuardViolation(ValidationError):
    """A server-delivered guard forbids the requested action."""

    def __init__(self, detail: str = "This action is not allowed for the current unlock") -> None:
        super().__init__(detail=detail)
        self.status_code = HTTP_409_CONFLICT


class OperationInProgress(ValidationError):
    """Another action on the same record has not completed yet."""

    def __init__(self, detail: str = "Another request for this item is still in progress") -> None:
        super().__init__(detail=detail)
        self.status_code = HTTP_409_CONFLICT


class InvalidTransition(AppException):
    """State machine transition outside the allowed table."""

    def __init__(self, detail: str = "Invalid state transition") -> None:
        super().__init__(status_code=HTTP_409_CONFLICT, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=HTTP_404_NOT_FOUND, detail=detail)


class BusinessError(AppException):
    """Backend reported ``success: false``; detail is the backend message."""

    def __init__(
        self,
        detail: str,
        status_code: int = HTTP_400_BAD_REQUEST,
        errors: list[str] | None = None,
    ) -> None:
        self.errors = errors or []
        super().__init__(status_code=status_code, detail=detail)


class TransportError(AppException):
    """Network, timeout or response parsing failure."""

    def __init__(self, detail: str | None = None, status_code: int | None = None) -> None:
        self.response_status = status_code
        super().__init__(
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail or "An unexpected error occurred. Please try again.",
        )


class PaymentError(AppException):
    """Payment reference could not be verified."""

    def __init__(self, detail: str = "Payment verification failed") -> None:
        super().__init__(status_code=HTTP_402_PAYMENT_REQUIRED, detail=detail)


class PaymentRequired(AppException):
    """The backend requires payment at the property before the flow can continue."""

    def __init__(self, payment_url: str, detail: str = "This booking requires payment at the property") -> None:
        self.payment_url = payment_url
        super().__init__(status_code=HTTP_402_PAYMENT_REQUIRED, detail=detail)
