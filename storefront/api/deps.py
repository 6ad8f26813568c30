# storefront/api/deps.py
from fastapi import HTTPException, Request

from storefront.container import Storefront
from storefront.domain.errors import (
    ApiError,
    AuthRequiredError,
    InvalidItemIdError,
    InvalidQuantityError,
    MalformedResponseError,
    NotFoundError,
    ServerError,
    StorefrontError,
    TransportError,
    ValidationFailedError,
)

STATUS_BY_ERROR = [
    (AuthRequiredError, 401),
    (NotFoundError, 404),
    (ValidationFailedError, 422),
    (InvalidItemIdError, 400),
    (InvalidQuantityError, 400),
    (MalformedResponseError, 502),
    (ServerError, 503),
    (TransportError, 503),
    (ApiError, 400),
]


def get_storefront(request: Request) -> Storefront:
    return request.app.state.storefront


def to_http(e: StorefrontError, storefront: Storefront) -> HTTPException:
    """Records the user-facing notification and maps the error onto a status code."""
    storefront.notifier.from_exception(e)
    status_code = next((code for cls, code in STATUS_BY_ERROR if isinstance(e, cls)), 500)

    detail = {"message": e.user_message, "kind": type(e).__name__}
    if isinstance(e, ValidationFailedError) and e.field_errors:
        detail["fields"] = e.field_errors
    return HTTPException(status_code=status_code, detail=detail)
