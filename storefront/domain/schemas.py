# storefront/domain/schemas.py
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field


def to_decimal(value: Any) -> Decimal:
    """JSON number (or numeric string) -> Decimal. Raises ValueError."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a number: {value!r}")
    return result


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ProductSnapshot(BaseModel):
    """Product fields denormalized onto a cart line (may be stale)."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    name: str | None = None
    price: Decimal | None = None
    image: str | None = None
    category: str | None = None
    stock: int | None = None
    stock_status: str | None = None

    def merged_over(self, previous: "ProductSnapshot") -> "ProductSnapshot":
        """Fill fields this (echoed) snapshot lacks from the previously known one."""
        missing = {k: v for k, v in previous.model_dump().items() if getattr(self, k) is None}
        return self.model_copy(update=missing)

    @classmethod
    def from_payload(cls, raw: Any) -> "ProductSnapshot":
        # product is sometimes just the id
        if isinstance(raw, str):
            return cls(id=_text(raw))
        if not isinstance(raw, dict):
            raise ValueError(f"Unrecognized product shape: {type(raw).__name__}")

        stock = raw.get("quantity")
        category = raw.get("category")
        if isinstance(category, dict):
            category = category.get("name") or category.get("_id")

        return cls(
            id=_text(raw.get("_id")) or _text(raw.get("id")) or _text(raw.get("productId")),
            name=_text(raw.get("productName")) or _text(raw.get("name")),
            price=to_decimal(raw["price"]) if raw.get("price") is not None else None,
            image=_text(raw.get("image")),
            category=_text(category),
            stock=stock if isinstance(stock, int) and not isinstance(stock, bool) else None,
            stock_status=_text(raw.get("stockStatus")),
        )


class CartLine(BaseModel):
    """One product line in the canonical cart."""

    model_config = ConfigDict(frozen=True)

    line_id: str = Field(..., min_length=1, description="Resolved line identifier")
    product_ref: str = Field(..., min_length=1, description="Opaque product identifier")
    product: ProductSnapshot
    quantity: int = Field(..., ge=1)
    aliases: Tuple[str, ...] = Field(default=(), description="Every id string that addresses this line")

    @property
    def subtotal(self) -> Decimal:
        return (self.product.price or Decimal("0")) * self.quantity


class Cart(BaseModel):
    lines: List[CartLine] = Field(default_factory=list)
    total: Decimal = Decimal("0.00")

    @classmethod
    def empty(cls) -> "Cart":
        return cls(lines=[], total=Decimal("0.00"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)


class UserProfile(BaseModel):
    stable_id: str | None = None
    email: str | None = None
    name: str | None = None
    role: str | None = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, raw: Dict[str, Any]) -> "UserProfile":
        return cls(
            stable_id=_text(raw.get("_id")) or _text(raw.get("id")),
            email=_text(raw.get("email")),
            name=_text(raw.get("name")) or _text(raw.get("username")),
            role=_text(raw.get("role")),
            raw=dict(raw),
        )


class Identity(BaseModel):
    token: str | None = None
    user: UserProfile | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def is_usable(self) -> bool:
        return self.user is not None and bool(self.user.stable_id)


class ShippingAddress(BaseModel):
    street: str
    city: str
    state: str
    phone: str
    email: str


class CheckoutForm(BaseModel):
    """Raw checkout form input. Fields may be blank; the checkout gate validates them."""

    street: str = ""
    city: str = ""
    state: str = ""
    phone: str = ""
    email: str = ""
    notes: str | None = None

    def shipping_address(self) -> ShippingAddress:
        return ShippingAddress(
            street=self.street.strip(),
            city=self.city.strip(),
            state=self.state.strip(),
            phone=self.phone.strip(),
            email=self.email.strip(),
        )


class OrderLine(BaseModel):
    product: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)


class DraftOrder(BaseModel):
    """Order assembled at submission time. Never persisted."""

    user: str = Field(..., min_length=1)
    products: List[OrderLine] = Field(..., min_length=1)
    total_price: Decimal = Field(..., gt=0)
    shipping_address: ShippingAddress
    notes: str | None = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "user": self.user,
            "products": [{"product": p.product, "quantity": p.quantity} for p in self.products],
            "totalPrice": float(self.total_price),
            "shippingAddress": self.shipping_address.model_dump(),
        }
        if self.notes:
            payload["notes"] = self.notes
        return payload


class CheckoutResult(BaseModel):
    status: Literal["success", "failure"]
    order_id: str | None = None
    kind: Literal["auth", "validation", "submission"] | None = None
    message: str | None = None
    details: Dict[str, str] = Field(default_factory=dict)
    payment: Dict[str, Any] | None = None

    @classmethod
    def success(cls, order_id: str, payment: Dict[str, Any] | None = None) -> "CheckoutResult":
        return cls(status="success", order_id=order_id, payment=payment)

    @classmethod
    def failure(cls, kind: str, message: str, details: Dict[str, str] | None = None) -> "CheckoutResult":
        return cls(status="failure", kind=kind, message=message, details=details or {})


# =====================================================
# BFF request / response bodies
# =====================================================
class LoginIn(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RegisterIn(BaseModel):
    """Passed through to the shop service as-is."""

    model_config = ConfigDict(extra="allow")

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    name: str | None = None


class ItemIn(BaseModel):
    product_id: str = Field(..., description="Product ID")
    quantity: int = Field(1, gt=0, description="Quantity (must be > 0)")


class QuantityIn(BaseModel):
    quantity: int = Field(..., gt=0)


class CancelIn(BaseModel):
    reason: str | None = None


class IdentityOut(BaseModel):
    is_authenticated: bool
    is_usable: bool
    user: UserProfile | None = None


class CartOut(BaseModel):
    lines: List[CartLine]
    total: Decimal
    item_count: int

    @classmethod
    def from_cart(cls, cart: Cart) -> "CartOut":
        return cls(lines=cart.lines, total=cart.total, item_count=cart.item_count)


class ProductsOut(BaseModel):
    products: List[ProductSnapshot]
    total: int


class NotificationOut(BaseModel):
    level: str
    message: str
    kind: str | None = None
