# storefront/container.py
from storefront.repos.token_repo import build_token_repo
from storefront.services.api_client import StorefrontAPI
from storefront.services.cart_service import CartService
from storefront.services.catalog_service import CatalogService
from storefront.services.checkout_service import CheckoutService
from storefront.services.identity_service import IdentityService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class Storefront:
    """
    One client session: transport, identity, cart and the services on top.

    Wiring:
    - the API reads its bearer token from identity
    - a 401 anywhere clears identity
    - clearing identity resets the cart (stale responses dropped)
    """

    def __init__(self, api: StorefrontAPI | None = None, token_repo=None, notifier: NotificationService | None = None):
        self.token_repo = token_repo if token_repo is not None else build_token_repo()
        self.api = api or StorefrontAPI()
        self.identity = IdentityService(self.api, self.token_repo)

        self.api.token_provider = self.identity.get_token
        self.api.add_auth_failure_hook(self.identity.handle_auth_failure)

        self.notifier = notifier or NotificationService()
        self.cart = CartService(self.api, self.identity)
        self.identity.on_clear(self.cart.reset)

        self.orders = OrderService(self.api)
        self.catalog = CatalogService(self.api)
        self.checkout = CheckoutService(self.cart, self.identity, self.orders, self.notifier)

        logger.info(f"Storefront session ready against {self.api.base_url}")
