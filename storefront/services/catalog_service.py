# storefront/services/catalog_service.py
from typing import Any, BinaryIO, Dict, List, Tuple

from storefront.domain.errors import InvalidQuantityError, MalformedResponseError, NotFoundError
from storefront.domain.identity import validate_item_id
from storefront.domain.schemas import ProductSnapshot
from storefront.services.api_client import StorefrontAPI
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _snapshot(raw: Any) -> ProductSnapshot:
    try:
        return ProductSnapshot.from_payload(raw)
    except ValueError as e:
        raise MalformedResponseError(str(e), raw)


def _unwrap_product(data: Any) -> Any:
    if isinstance(data, dict) and isinstance(data.get("product"), dict):
        return data["product"]
    return data


class CatalogService:
    """
    Product catalog, read side for shoppers and write side for admins.
    Products come back as ProductSnapshot, the same type cart lines carry.
    """

    def __init__(self, api: StorefrontAPI):
        self.api = api

    # ===== QUERY =====
    def list_products(self, params: Dict[str, Any] | None = None) -> Tuple[List[ProductSnapshot], int]:
        data = self.api.list_products(params)

        if isinstance(data, list):
            raw_products, total = data, len(data)
        elif isinstance(data, dict) and isinstance(data.get("products"), list):
            raw_products = data["products"]
            total = data.get("total")
            if not isinstance(total, int) or isinstance(total, bool):
                total = len(raw_products)
        else:
            raise MalformedResponseError("product list has an unexpected shape", data)

        products = [_snapshot(raw) for raw in raw_products]
        logger.info(f"Fetched {len(products)} products (total {total})")
        return products, total

    def get_product(self, product_id: Any) -> ProductSnapshot:
        product_id = validate_item_id(product_id)
        try:
            data = self.api.get_product(product_id)
        except NotFoundError as e:
            raise NotFoundError(str(e), user_message="Product not found")
        return _snapshot(_unwrap_product(data))

    def count_products(self) -> int:
        data = self.api.count_products()
        count = data.get("count") if isinstance(data, dict) else data
        if not isinstance(count, int) or isinstance(count, bool):
            raise MalformedResponseError("product count is not an integer", data)
        return count

    # ===== ADMIN COMMANDS =====
    def create_product(self, data: Dict[str, Any], image: BinaryIO | None = None) -> ProductSnapshot:
        logger.info(f"Creating product {data.get('productName') or data.get('name')}")
        files = {"image": image} if image is not None else None
        return _snapshot(_unwrap_product(self.api.create_product(data, files)))

    def update_product(
        self, product_id: Any, data: Dict[str, Any], image: BinaryIO | None = None
    ) -> ProductSnapshot:
        product_id = validate_item_id(product_id)
        logger.info(f"Updating product {product_id}: {sorted(data)}")
        files = {"image": image} if image is not None else None
        return _snapshot(_unwrap_product(self.api.update_product(product_id, data, files)))

    def delete_product(self, product_id: Any) -> None:
        product_id = validate_item_id(product_id)
        logger.info(f"Deleting product {product_id}")
        self.api.delete_product(product_id)

    def update_inventory(self, product_id: Any, quantity: int) -> ProductSnapshot:
        # stock may go to zero, unlike cart quantities
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise InvalidQuantityError(quantity)
        return self.update_product(product_id, {"quantity": quantity})

    def sync_inventory(self, product_id: Any) -> Dict[str, Any]:
        product_id = validate_item_id(product_id)
        logger.info(f"Syncing inventory for product {product_id}")
        data = self.api.sync_inventory(product_id)
        return data if isinstance(data, dict) else {}
