# storefront/domain/normalizer.py
"""
Cart Normalizer.

The shop service answers cart calls in (at least) four shapes:

- ``{"cart": [line, ...], "totalPrice": n}``  enveloped array, full cart
- ``{"cart": line, "totalPrice": n}``         enveloped echo of one mutated line
- ``[line, ...]``                             legacy bare array, no total
- ``line``                                    bare echo of one mutated line

`normalize_cart_response` turns any of them into a `FullCartResult` or a
`PatchCartResult` so call sites never look at the raw shape.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Mapping

from storefront.domain.errors import InvalidItemIdError, MalformedResponseError
from storefront.domain.identity import candidate_ids, resolve_line_id, resolve_product_ref
from storefront.domain.schemas import CartLine, ProductSnapshot, to_decimal


@dataclass(frozen=True)
class FullCartResult:
    lines: List[CartLine]
    total: Decimal

    kind = "full"


@dataclass(frozen=True)
class PatchCartResult:
    line: CartLine
    # echoes only the patched line; never use it as the cart total
    server_total: Decimal | None = None

    kind = "patch"


CartResult = FullCartResult | PatchCartResult


def compute_total(lines: Iterable[CartLine]) -> Decimal:
    return sum((line.subtotal for line in lines), Decimal("0.00"))


def _quantity(raw: Mapping[str, Any]) -> int:
    qty = raw.get("quantity")
    if qty is None:
        return 1
    if isinstance(qty, bool):
        raise MalformedResponseError(f"quantity is not an integer: {qty!r}", raw)
    if isinstance(qty, float) and qty.is_integer():
        qty = int(qty)
    if isinstance(qty, str) and qty.strip().isdigit():
        qty = int(qty.strip())
    if not isinstance(qty, int):
        raise MalformedResponseError(f"quantity is not an integer: {qty!r}", raw)
    if qty < 1:
        raise MalformedResponseError(f"quantity below 1: {qty}", raw)
    return qty


def normalize_line(raw: Any) -> CartLine:
    """One raw server line -> CartLine. Raises MalformedResponseError."""
    if not isinstance(raw, Mapping):
        raise MalformedResponseError(f"line is not an object: {type(raw).__name__}", raw)

    product = raw.get("product")
    if not isinstance(product, (Mapping, str)) or not product:
        raise MalformedResponseError("line has no recognizable product", raw)

    try:
        line_id = resolve_line_id(raw)
    except InvalidItemIdError:
        raise MalformedResponseError("line has no resolvable id", raw)

    product_ref = resolve_product_ref(raw)
    if not product_ref:
        raise MalformedResponseError("line has no resolvable product reference", raw)

    try:
        snapshot = ProductSnapshot.from_payload(product)
    except ValueError as e:
        raise MalformedResponseError(str(e), raw)

    return CartLine(
        line_id=line_id,
        product_ref=product_ref,
        product=snapshot,
        quantity=_quantity(raw),
        aliases=candidate_ids(raw),
    )


def _server_total(payload: Mapping[str, Any]) -> Decimal | None:
    if payload.get("totalPrice") is None:
        return None
    try:
        return to_decimal(payload["totalPrice"])
    except ValueError:
        raise MalformedResponseError(f"totalPrice is not a number: {payload['totalPrice']!r}", payload)


def _full(raw_lines: List[Any], total: Decimal | None) -> FullCartResult:
    lines = [normalize_line(raw) for raw in raw_lines]

    seen = set()
    for line in lines:
        if line.line_id in seen:
            raise MalformedResponseError(f"duplicate line id {line.line_id}")
        seen.add(line.line_id)

    return FullCartResult(lines=lines, total=total if total is not None else compute_total(lines))


def normalize_cart_response(payload: Any) -> CartResult:
    if payload is None:
        raise MalformedResponseError("empty payload")

    if isinstance(payload, Mapping) and "cart" in payload:
        cart = payload["cart"]
        if isinstance(cart, list):
            return _full(cart, _server_total(payload))
        if cart is None:
            return FullCartResult(lines=[], total=Decimal("0.00"))
        if isinstance(cart, Mapping):
            return PatchCartResult(line=normalize_line(cart), server_total=_server_total(payload))
        raise MalformedResponseError(f"cart is a {type(cart).__name__}", payload)

    if isinstance(payload, list):
        # legacy shape carries no total
        return _full(payload, None)

    if isinstance(payload, Mapping):
        return PatchCartResult(line=normalize_line(payload))

    raise MalformedResponseError(f"unexpected payload type {type(payload).__name__}", payload)
