# storefront/services/order_service.py
from typing import Any, Dict, List

from storefront.domain.errors import MalformedResponseError, NotFoundError
from storefront.domain.identity import validate_item_id
from storefront.domain.schemas import DraftOrder
from storefront.services.api_client import StorefrontAPI
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def extract_order_id(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    for key in ("_id", "id", "orderId"):
        if data.get(key) not in (None, ""):
            return str(data[key])
    if isinstance(data.get("order"), dict):
        return extract_order_id(data["order"])
    return None


class OrderService:
    """
    Order domain, kept apart from the cart.
    Submission itself goes through the checkout gate; this is the transport
    side plus history, cancellation and payment.
    """

    def __init__(self, api: StorefrontAPI):
        self.api = api

    def create_order(self, draft: DraftOrder) -> Dict[str, Any]:
        payload = draft.to_payload()
        logger.info(
            f"Creating order: user {draft.user}, {len(draft.products)} products, "
            f"total {draft.total_price}, notes: {bool(draft.notes)}"
        )

        data = self.api.create_order(payload)
        if not isinstance(data, dict):
            raise MalformedResponseError("order response is not an object", data)

        logger.info(f"Order {extract_order_id(data)} created")
        return data

    def list_orders(self) -> List[Dict[str, Any]]:
        data = self.api.list_orders()
        if isinstance(data, dict):
            data = data.get("orders", data.get("data"))
        if not isinstance(data, list):
            raise MalformedResponseError("order list is not an array", data)
        return data

    def get_order(self, order_id: Any) -> Dict[str, Any]:
        order_id = validate_item_id(order_id)
        try:
            data = self.api.get_order(order_id)
        except NotFoundError as e:
            raise NotFoundError(str(e), user_message="Order not found")

        if isinstance(data, dict) and isinstance(data.get("order"), dict):
            data = data["order"]
        if not isinstance(data, dict):
            raise MalformedResponseError("order is not an object", data)
        return data

    def cancel_order(self, order_id: Any, reason: str | None = None) -> Dict[str, Any]:
        order_id = validate_item_id(order_id)
        logger.info(f"Cancelling order {order_id}, reason: {reason}")
        data = self.api.cancel_order(order_id, reason)
        return data if isinstance(data, dict) else {}

    def initialize_payment(self, order_id: Any) -> Dict[str, Any]:
        order_id = validate_item_id(order_id)
        logger.info(f"Initializing payment for order {order_id}")
        data = self.api.initialize_payment(order_id)
        if not isinstance(data, dict):
            raise MalformedResponseError("payment init response is not an object", data)
        return data

    def verify_payment(self, reference: Any) -> Dict[str, Any]:
        reference = validate_item_id(reference)
        logger.info(f"Verifying payment with reference {reference}")
        data = self.api.verify_payment(reference)
        if not isinstance(data, dict):
            raise MalformedResponseError("payment verification response is not an object", data)
        return data
