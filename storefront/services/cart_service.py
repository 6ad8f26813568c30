# storefront/services/cart_service.py
import threading
from typing import Any

from storefront.domain.errors import (
    AuthRequiredError,
    InvalidQuantityError,
    ItemNotFoundError,
    MalformedResponseError,
    NotFoundError,
    StorefrontError,
)
from storefront.domain.identity import find_line, validate_item_id
from storefront.domain.normalizer import normalize_cart_response
from storefront.domain.reconciler import CartOperation, clear_cart_state, reconcile
from storefront.domain.schemas import Cart
from storefront.services.api_client import StorefrontAPI
from storefront.services.identity_service import IdentityService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def validate_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantityError(quantity)
    return quantity


class CartStore:
    """
    Canonical cart state.

    Responses are applied under one lock in arrival order (last applied wins).
    `generation` changes on every reset; a response started under an older
    generation belongs to state we no longer own and is dropped.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._cart = Cart.empty()
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self) -> Cart:
        with self._lock:
            return self._cart

    def apply(
        self,
        payload: Any,
        operation: CartOperation,
        target_id: Any = None,
        generation: int | None = None,
    ) -> Cart:
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.info(f"Dropping stale {operation.value} response (generation {generation} != {self._generation})")
                return self._cart

            result = normalize_cart_response(payload)
            self._cart = reconcile(self._cart, result, operation, target_id)
            logger.info(
                f"Cart reconciled after {operation.value} ({result.kind}): "
                f"{len(self._cart.lines)} lines, total {self._cart.total}"
            )
            return self._cart

    def clear(self) -> Cart:
        with self._lock:
            self._cart = clear_cart_state()
            return self._cart

    def reset(self) -> Cart:
        with self._lock:
            self._generation += 1
            self._cart = clear_cart_state()
            return self._cart


class CartService:
    """
    Cart use cases on top of the shop service.
    commands (add, update, remove, clear) go to the server and the answer is
    reconciled into the store; query (get) reads local state only
    """

    def __init__(self, api: StorefrontAPI, identity: IdentityService, store: CartStore | None = None):
        self.api = api
        self.identity = identity
        self.store = store or CartStore()

    # query - local state
    def get_cart(self) -> Cart:
        return self.store.get()

    def apply_cart_response(
        self,
        payload: Any,
        operation: CartOperation | str,
        target_id: Any = None,
        generation: int | None = None,
    ) -> Cart:
        return self.store.apply(payload, CartOperation(operation), target_id, generation)

    # commands
    def fetch_cart(self) -> Cart:
        generation = self.store.generation
        logger.info("Fetching cart data...")
        payload = self.api.get_cart()
        return self.apply_cart_response(payload, CartOperation.FETCH, generation=generation)

    def add_product(self, product_id: Any, quantity: int = 1) -> Cart:
        if not self.identity.get_token():
            # no point sending a request that can only come back 401
            raise AuthRequiredError("No token, cannot add to cart", user_message="Authentication required. Please log in.")

        product_id = validate_item_id(product_id)
        quantity = validate_quantity(quantity)

        logger.info(f"Adding product {product_id} x{quantity} to cart")
        return self._mutate(lambda: self.api.add_to_cart(product_id, quantity), CartOperation.ADD, product_id)

    def update_quantity(self, item_id: Any, quantity: int) -> Cart:
        item_id = validate_item_id(item_id)
        quantity = validate_quantity(quantity)

        self._ensure_line_exists(item_id)

        logger.info(f"Updating cart item {item_id} to quantity {quantity}")
        return self._mutate(lambda: self.api.update_cart_item(item_id, quantity), CartOperation.UPDATE, item_id)

    def remove_line(self, item_id: Any) -> Cart:
        item_id = validate_item_id(item_id)

        self._ensure_line_exists(item_id)

        logger.info(f"Removing item {item_id} from cart")
        return self._mutate(lambda: self.api.remove_cart_item(item_id), CartOperation.REMOVE, item_id)

    def clear_cart(self) -> Cart:
        logger.info("Clearing cart...")
        # the response body is advisory only
        self.api.clear_cart()
        return self.store.clear()

    def reset(self) -> Cart:
        """Local only: forget the cart and ignore responses still in flight (logout, 401)."""
        logger.info("Resetting local cart state")
        return self.store.reset()

    # =====================================================
    # internals
    # =====================================================
    def _ensure_line_exists(self, item_id: str) -> None:
        if find_line(self.store.get().lines, item_id) is not None:
            return

        # local copy may be stale or not loaded yet: one refetch before giving up
        cart = self.fetch_cart()
        if find_line(cart.lines, item_id) is None:
            logger.error(f"Item not found in cart: {item_id}")
            raise ItemNotFoundError(f"Cart item {item_id} not found")

    def _mutate(self, send, operation: CartOperation, target_id: str) -> Cart:
        generation = self.store.generation
        try:
            payload = send()
            return self.apply_cart_response(payload, operation, target_id, generation)
        except NotFoundError as e:
            self._resync()
            raise ItemNotFoundError(str(e)) from e
        except MalformedResponseError:
            self._resync()
            raise

    def _resync(self) -> None:
        try:
            self.fetch_cart()
        except StorefrontError as e:
            logger.warning(f"Cart resync failed: {e}")
