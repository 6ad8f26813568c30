# storefront/domain/identity.py
"""
Item identity resolution for cart lines.

The shop service addresses a line by its own id on some endpoints and by the
product id on others, and it is inconsistent about which of `_id` / `id` it
fills in. Everything that needs to find a line goes through here.
"""
from typing import Any, List, Mapping, Sequence, Tuple

from storefront.domain.errors import InvalidItemIdError
from storefront.domain.schemas import CartLine


def _as_id(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def candidate_ids(raw: Mapping[str, Any]) -> Tuple[str, ...]:
    """Identity strings of a raw line, canonical one first."""
    product = raw.get("product")
    values = [raw.get("_id"), raw.get("id")]

    if isinstance(product, Mapping):
        values += [product.get("_id"), product.get("id"), product.get("productId")]
    else:
        values.append(product)

    ids: List[str] = []
    for v in values:
        text = _as_id(v)
        if text and text not in ids:
            ids.append(text)
    return tuple(ids)


def resolve_line_id(raw: Mapping[str, Any]) -> str:
    ids = candidate_ids(raw)
    if not ids:
        raise InvalidItemIdError(None)
    return ids[0]


def resolve_product_ref(raw: Mapping[str, Any]) -> str | None:
    product = raw.get("product")
    if isinstance(product, Mapping):
        for key in ("_id", "id", "productId"):
            ref = _as_id(product.get(key))
            if ref:
                return ref
    else:
        ref = _as_id(product)
        if ref:
            return ref
    return _as_id(raw.get("productId"))


def validate_item_id(value: Any) -> str:
    """Returns the id as a trimmed string. Must pass before any cart mutation is sent."""
    if value is None:
        raise InvalidItemIdError(value)
    text = str(value).strip()
    if not text:
        raise InvalidItemIdError(value)
    return text


def _aliases(line: CartLine | Mapping[str, Any]) -> Tuple[str, ...]:
    if isinstance(line, CartLine):
        return line.aliases or (line.line_id,)
    return candidate_ids(line)


def matches(line: CartLine | Mapping[str, Any], target_id: Any) -> bool:
    """True when `target_id` equals any of the line's identity fields, not just the canonical one."""
    target = _as_id(target_id)
    return target is not None and target in _aliases(line)


def same_line(a: CartLine | Mapping[str, Any], b: CartLine | Mapping[str, Any]) -> bool:
    return bool(set(_aliases(a)) & set(_aliases(b)))


def find_line(lines: Sequence[CartLine], target: CartLine | Any) -> int | None:
    for index, line in enumerate(lines):
        if isinstance(target, CartLine):
            if same_line(line, target):
                return index
        elif matches(line, target):
            return index
    return None
