# storefront/services/checkout_service.py
import re
from decimal import Decimal
from typing import Dict, List, Tuple

from storefront.domain.errors import AuthRequiredError, StorefrontError, ValidationFailedError
from storefront.domain.normalizer import compute_total
from storefront.domain.schemas import CheckoutForm, CheckoutResult, DraftOrder, OrderLine, ShippingAddress
from storefront.services.cart_service import CartService
from storefront.services.identity_service import IdentityService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService, extract_order_id
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

AUTH_MESSAGE = "Authentication required. Please log in again."
FORM_MESSAGE = "Please fix the errors in the form"
SUBMISSION_MESSAGE = "Failed to place order. Please try again later."
REQUIRED = "This field is required"

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NON_DIGITS_RE = re.compile(r"\D")


def validate_form(form: CheckoutForm) -> Tuple[ShippingAddress, Dict[str, str]]:
    address = form.shipping_address()
    errors: Dict[str, str] = {}

    for field in ("street", "city", "state"):
        if not getattr(address, field):
            errors[field] = REQUIRED

    if not address.phone:
        errors["phone"] = REQUIRED
    elif not 10 <= len(NON_DIGITS_RE.sub("", address.phone)) <= 15:
        errors["phone"] = "Phone number must be 10-15 digits"

    if not address.email:
        errors["email"] = REQUIRED
    elif not EMAIL_RE.match(address.email):
        errors["email"] = "Email is invalid"

    return address, errors


class CheckoutService:
    """
    Checkout gate: turns the current cart and a shipping form into an order.

    Outcomes are returned as CheckoutResult, never raised:
    - failure/auth: no usable identity (after one shared refresh attempt)
    - failure/validation: form or cart problems, or a 422 from the server
    - failure/submission: anything else the server or network did
    """

    def __init__(
        self,
        cart_service: CartService,
        identity: IdentityService,
        orders: OrderService,
        notifier: NotificationService,
    ):
        self.cart_service = cart_service
        self.identity = identity
        self.orders = orders
        self.notifier = notifier

    def submit_checkout(self, form: CheckoutForm) -> CheckoutResult:
        """
        Use Case: place an order from the cart.

        1. Makes sure the identity has a user id (refreshing once if needed)
        2. Validates the form, collecting every field error
        3. Builds the draft order from the cart and checks it locally
        4. Submits it
        5. Clears the cart and initializes payment
        """
        if not self.identity.ensure_usable():
            logger.error("Checkout blocked: no usable identity")
            return self._fail("auth", AUTH_MESSAGE)

        address, field_errors = validate_form(form)
        if field_errors:
            logger.warning(f"Checkout form invalid: {sorted(field_errors)}")
            return self._fail("validation", FORM_MESSAGE, field_errors)

        # a 401 elsewhere may clear identity after the gate passed
        identity = self.identity.current()
        if not identity.is_usable:
            logger.error("Checkout blocked: identity cleared during checkout")
            return self._fail("auth", AUTH_MESSAGE)

        draft, problems = self._build_draft(identity.user.stable_id, address, form.notes)
        if problems:
            logger.error(f"Checkout blocked, invalid cart: {problems}")
            return self._fail("validation", problems[0], {"cart": "; ".join(problems)})

        try:
            order = self.orders.create_order(draft)
        except ValidationFailedError as e:
            return self._fail("validation", e.user_message, e.field_errors)
        except AuthRequiredError:
            return self._fail("auth", AUTH_MESSAGE)
        except StorefrontError as e:
            logger.error(f"Order creation failed: {e}")
            return self._fail("submission", SUBMISSION_MESSAGE)

        order_id = extract_order_id(order)
        if not order_id:
            logger.error(f"Order created but no id in response: {order}")
            return self._fail("submission", SUBMISSION_MESSAGE)

        self._clear_cart()
        payment = self._initialize_payment(order_id)

        self.notifier.success("Order placed successfully!")
        logger.info(f"Checkout complete, order {order_id}")
        return CheckoutResult.success(order_id, payment)

    # =====================================================
    # internals
    # =====================================================
    def _fail(self, kind: str, message: str, details: Dict[str, str] | None = None) -> CheckoutResult:
        self.notifier.error(message, kind=kind)
        return CheckoutResult.failure(kind, message, details)

    def _build_draft(
        self, user_id: str, address: ShippingAddress, notes: str | None
    ) -> Tuple[DraftOrder | None, List[str]]:
        cart = self.cart_service.get_cart()
        if not cart.lines:
            return None, ["Your cart is empty"]

        problems: List[str] = []
        products: List[OrderLine] = []
        for line in cart.lines:
            name = line.product.name or line.line_id
            if not line.product_ref:
                problems.append(f"Invalid product ID for {name}")
                continue
            if line.quantity < 1:
                problems.append(f"Invalid quantity for {name}")
                continue
            if line.product.price is None or line.product.price <= 0:
                problems.append(f"Invalid price for {name}")
                continue
            products.append(OrderLine(product=line.product_ref, quantity=line.quantity))

        total = compute_total(cart.lines)
        if total <= Decimal("0"):
            problems.append("Order total must be greater than zero")
        if problems:
            return None, problems

        draft = DraftOrder(
            user=user_id,
            products=products,
            total_price=total,
            shipping_address=address,
            notes=(notes or "").strip() or None,
        )
        return draft, []

    def _clear_cart(self) -> None:
        try:
            self.cart_service.clear_cart()
        except StorefrontError as e:
            # the order exists; local state goes regardless
            logger.warning(f"Server cart clear failed after checkout: {e}")
            self.cart_service.store.clear()

    def _initialize_payment(self, order_id: str) -> Dict | None:
        try:
            return self.orders.initialize_payment(order_id)
        except StorefrontError as e:
            logger.error(f"Payment initialization failed for order {order_id}: {e}")
            self.notifier.error(
                "Order placed, but payment could not be started. You can retry from your orders.",
                kind="payment",
            )
            return None
