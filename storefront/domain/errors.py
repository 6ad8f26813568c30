# storefront/domain/errors.py
"""Exceptions raised by the storefront client core."""

from typing import Dict


class StorefrontError(Exception):
    """Base exception for all storefront errors.

    `user_message` is what the UI shows; `str(exc)` is what the logs show.
    """

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None, user_message: str | None = None):
        if user_message:
            self.user_message = user_message
        super().__init__(message or self.user_message)


class MalformedResponseError(StorefrontError):
    """Raised when the shop service returns a payload shape we cannot interpret."""

    user_message = "Server returned invalid data structure. Please try again."

    def __init__(self, reason: str, payload=None):
        self.reason = reason
        self.payload = payload
        super().__init__(f"Malformed response: {reason}")


class InvalidItemIdError(StorefrontError):
    """Raised before dispatch when an item or product id is missing or blank."""

    user_message = "Invalid item ID"

    def __init__(self, value=None):
        self.value = value
        super().__init__(f"Invalid item ID: {value!r}")


class InvalidQuantityError(StorefrontError):
    """Raised before dispatch when a quantity is not an integer >= 1."""

    user_message = "Invalid quantity"

    def __init__(self, value=None):
        self.value = value
        super().__init__(f"Invalid quantity: {value!r}")


class AuthRequiredError(StorefrontError):
    """Raised on a 401, or locally when an operation needs a token we don't have."""

    user_message = "Authentication required. Please log in again."


class NotFoundError(StorefrontError):
    """Raised on a 404."""

    user_message = "The requested resource was not found."


class ItemNotFoundError(NotFoundError):
    """Raised when a cart mutation targets a line the server does not have."""

    user_message = "Item not found in cart"


class ValidationFailedError(StorefrontError):
    """Raised on a 422. Carries per-field messages."""

    user_message = "Validation error. Please check your order details."

    def __init__(self, message: str | None = None, field_errors: Dict[str, str] | None = None):
        self.field_errors = dict(field_errors or {})
        super().__init__(message, user_message=message)


class ServerError(StorefrontError):
    """Raised on a 5xx or an HTML error page."""

    user_message = "Server error. Please try again later."

    def __init__(self, message: str | None = None, status: int | None = None):
        self.status = status
        super().__init__(message)


class TransportError(StorefrontError):
    """Raised when the request never got an answer (network error, timeout)."""

    user_message = "Network error. Please try again later."


class ApiError(StorefrontError):
    """Any other 4xx from the shop service."""

    def __init__(self, status: int, message: str | None = None):
        self.status = status
        super().__init__(f"HTTP {status}: {message}" if message else f"HTTP {status}", user_message=message)
