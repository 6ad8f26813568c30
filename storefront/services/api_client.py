# storefront/services/api_client.py
from typing import Any, Callable, Dict, List, Tuple
from urllib.parse import quote

import requests
from requests import RequestException

from storefront.domain.errors import (
    ApiError,
    AuthRequiredError,
    MalformedResponseError,
    NotFoundError,
    ServerError,
    TransportError,
    ValidationFailedError,
)
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry
from storefront.utils.settings import API_BASE_URL, HTTP_TIMEOUT_SECONDS

logger = get_logger(__name__)

DEFAULT_VALIDATION_MESSAGE = "Validation error. Please check your order details."


def _path(value: Any) -> str:
    return quote(str(value), safe="")


def _field_name(err: Dict[str, Any]) -> str:
    field = err.get("field") or err.get("path") or err.get("param")
    if isinstance(field, (list, tuple)):
        field = ".".join(str(p) for p in field)
    return str(field) if field else "general"


def extract_validation_errors(body: Any) -> Tuple[str, Dict[str, str]]:
    """
    422 body -> (message, {field: message}).

    Understands {errors: [{field|path, message|msg}]}, {details: str | [...]}
    and {message}.
    """
    if not isinstance(body, dict):
        return DEFAULT_VALIDATION_MESSAGE, {}

    entries = None
    if isinstance(body.get("errors"), list):
        entries = body["errors"]
    elif isinstance(body.get("details"), list):
        entries = body["details"]
    elif body.get("details"):
        return str(body["details"]), {}
    elif body.get("message"):
        return str(body["message"]), {}

    if not entries:
        return DEFAULT_VALIDATION_MESSAGE, {}

    messages: List[str] = []
    field_errors: Dict[str, str] = {}
    for err in entries:
        if isinstance(err, dict):
            msg = str(err.get("message") or err.get("msg") or "Invalid value")
            field = _field_name(err)
        else:
            msg, field = str(err), "general"
        messages.append(msg)
        field_errors[field] = f"{field_errors[field]}; {msg}" if field in field_errors else msg

    return ", ".join(messages), field_errors


def _error_message(body: Any) -> str | None:
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if isinstance(body.get(key), str):
                return body[key]
    return None


class StorefrontAPI:
    """
    HTTP transport to the shop service.

    - bearer token injection from `token_provider`
    - HTTP status -> StorefrontError mapping
    - auth failure hooks (a 401 anywhere clears identity)
    - retries only for idempotent GETs
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        token_provider: Callable[[], str | None] | None = None,
        session: requests.Session | None = None,
    ):
        self.base_url = (base_url or API_BASE_URL).rstrip("/")
        self.timeout = timeout or HTTP_TIMEOUT_SECONDS
        self.token_provider = token_provider or (lambda: None)
        self.session = session or requests.Session()
        self._auth_failure_hooks: List[Callable[[], None]] = []

    def add_auth_failure_hook(self, hook: Callable[[], None]) -> None:
        self._auth_failure_hooks.append(hook)

    # =====================================================
    # TRANSPORT
    # =====================================================
    def _headers(self, authenticated: bool) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.token_provider() if authenticated else None
        if token:
            headers["Authorization"] = token if token.startswith("Bearer ") else f"Bearer {token}"
        return headers

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        return self.session.request(method, url, timeout=self.timeout, **kwargs)

    @http_retry()
    def _send_with_retry(self, method: str, url: str, **kwargs) -> requests.Response:
        return self._send(method, url, **kwargs)

    def call(
        self,
        method: str,
        path: str,
        *,
        authenticated: bool = True,
        auth_hooks: bool = True,
        **kwargs,
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        headers = self._headers(authenticated)
        logger.info(f"StorefrontAPI {method} {url}")

        send = self._send_with_retry if method == "GET" else self._send
        try:
            resp = send(method, url, headers=headers, **kwargs)
        except (requests.Timeout, requests.ConnectionError) as e:
            logger.error(f"StorefrontAPI {method} {url} transport failure: {e}")
            raise TransportError(f"{method} {path}: {e}")
        except RequestException as e:
            logger.error(f"StorefrontAPI {method} {url} request failed: {e}")
            raise TransportError(f"{method} {path}: {e}")

        if resp.status_code >= 400:
            self._raise_for_status(method, path, resp, auth_hooks)
        return resp

    def request(self, method: str, path: str, **kwargs) -> Any:
        return self._parse(method, path, self.call(method, path, **kwargs))

    def _parse(self, method: str, path: str, resp: requests.Response) -> Any:
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            raise MalformedResponseError(f"{method} {path} returned a non-JSON body", resp.text[:200])

    def _raise_for_status(self, method: str, path: str, resp: requests.Response, auth_hooks: bool = True) -> None:
        status = resp.status_code
        try:
            body = resp.json()
        except ValueError:
            body = resp.text

        logger.error(f"StorefrontAPI {method} {path} -> {status}: {str(body)[:200]}")

        if isinstance(body, str) and "<!DOCTYPE html>" in body:
            raise ServerError(f"{method} {path} returned an HTML error page", status=status)

        message = _error_message(body)

        if status == 401:
            for hook in list(self._auth_failure_hooks) if auth_hooks else []:
                hook()
            raise AuthRequiredError(f"{method} {path}: {message or 'unauthorized'}")
        if status == 404:
            raise NotFoundError(f"{method} {path}: {message or 'not found'}")
        if status == 422:
            msg, field_errors = extract_validation_errors(body)
            raise ValidationFailedError(msg, field_errors)
        if status >= 500:
            raise ServerError(f"{method} {path}: {message or status}", status=status)
        raise ApiError(status, message)

    # =====================================================
    # AUTH
    # =====================================================
    def login(self, credentials: Dict[str, Any]) -> Tuple[Any, Dict[str, str]]:
        resp = self.call("POST", "/users/login", json=credentials, authenticated=False, auth_hooks=False)
        return self._parse("POST", "/users/login", resp), dict(resp.headers)

    def register(self, user_data: Dict[str, Any]) -> Tuple[Any, Dict[str, str]]:
        resp = self.call("POST", "/users/signUp", json=user_data, authenticated=False, auth_hooks=False)
        return self._parse("POST", "/users/signUp", resp), dict(resp.headers)

    def logout(self) -> Any:
        return self.request("POST", "/users/logout")

    def get_profile(self, auth_hooks: bool = True) -> Any:
        return self.request("GET", "/users/me", auth_hooks=auth_hooks)

    def refresh_token(self) -> Any:
        return self.request("POST", "/users/refresh-token", auth_hooks=False)

    # =====================================================
    # PRODUCTS
    # =====================================================
    def list_products(self, params: Dict[str, Any] | None = None) -> Any:
        return self.request("GET", "/products", params=params)

    def get_product(self, product_id: str) -> Any:
        return self.request("GET", f"/products/{_path(product_id)}")

    def count_products(self) -> Any:
        return self.request("GET", "/products/count")

    def create_product(self, data: Dict[str, Any], files: Dict[str, Any] | None = None) -> Any:
        if files:
            return self.request("POST", "/products", data=data, files=files)
        return self.request("POST", "/products", json=data)

    def update_product(self, product_id: str, data: Dict[str, Any], files: Dict[str, Any] | None = None) -> Any:
        if files:
            return self.request("PATCH", f"/products/{_path(product_id)}", data=data, files=files)
        return self.request("PATCH", f"/products/{_path(product_id)}", json=data)

    def delete_product(self, product_id: str) -> Any:
        return self.request("DELETE", f"/products/{_path(product_id)}")

    def sync_inventory(self, product_id: str) -> Any:
        return self.request("PUT", f"/{_path(product_id)}/sync-inventory")

    # =====================================================
    # CART
    # =====================================================
    def get_cart(self) -> Any:
        return self.request("GET", "/cart")

    def add_to_cart(self, product_id: str, quantity: int) -> Any:
        return self.request("POST", "/cart", json={"product": product_id, "quantity": quantity})

    def update_cart_item(self, item_id: str, quantity: int) -> Any:
        return self.request("PUT", f"/cart/{_path(item_id)}", json={"quantity": quantity})

    def remove_cart_item(self, item_id: str) -> Any:
        return self.request("DELETE", f"/cart/{_path(item_id)}")

    def clear_cart(self) -> Any:
        return self.request("DELETE", "/cart")

    # =====================================================
    # ORDERS
    # =====================================================
    def create_order(self, payload: Dict[str, Any]) -> Any:
        return self.request("POST", "/orders", json=payload)

    def list_orders(self) -> Any:
        return self.request("GET", "/orders")

    def get_order(self, order_id: str) -> Any:
        return self.request("GET", f"/orders/{_path(order_id)}")

    def cancel_order(self, order_id: str, reason: str | None = None) -> Any:
        return self.request("POST", f"/orders/{_path(order_id)}/cancel", json={"reason": reason})

    def initialize_payment(self, order_id: str) -> Any:
        return self.request("POST", f"/orders/{_path(order_id)}/pay")

    def verify_payment(self, reference: str) -> Any:
        return self.request("GET", f"/orders/verify-payment/{_path(reference)}")
