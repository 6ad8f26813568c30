# storefront/domain/reconciler.py
from enum import Enum
from typing import Any, List

from storefront.domain.identity import find_line, matches, same_line
from storefront.domain.normalizer import CartResult, FullCartResult, PatchCartResult, compute_total
from storefront.domain.schemas import Cart, CartLine


class CartOperation(str, Enum):
    FETCH = "fetch"
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"


def clear_cart_state() -> Cart:
    return Cart.empty()


def _merge(existing: CartLine, incoming: CartLine) -> CartLine:
    # an echo often carries only the product id; keep what we already knew
    aliases = incoming.aliases + tuple(a for a in existing.aliases if a not in incoming.aliases)
    line_id = incoming.line_id
    if line_id == incoming.product_ref and existing.line_id != existing.product_ref:
        line_id = existing.line_id

    return incoming.model_copy(
        update={
            "line_id": line_id,
            "product": incoming.product.merged_over(existing.product),
            "aliases": aliases,
        }
    )


def _line_id_index(lines: List[CartLine], line_id: Any) -> int | None:
    return next((i for i, line in enumerate(lines) if line.line_id == line_id), None)


def _locate(lines: List[CartLine], incoming: CartLine, target_id: Any) -> int | None:
    # exact line id, then the line the mutation was aimed at, then any shared alias
    index = _line_id_index(lines, incoming.line_id)
    if index is None and target_id is not None:
        index = _line_id_index(lines, str(target_id).strip())
        if index is None:
            index = find_line(lines, target_id)
    if index is None:
        index = find_line(lines, incoming)
    return index


def _upsert(lines: List[CartLine], incoming: CartLine, target_id: Any) -> List[CartLine]:
    index = _locate(lines, incoming, target_id)

    updated = list(lines)
    if index is None:
        updated.append(incoming)
        return updated

    merged = _merge(updated[index], incoming)
    updated[index] = merged
    # line ids stay unique: the merged line absorbs any other line now carrying its id
    return [line for i, line in enumerate(updated) if i == index or line.line_id != merged.line_id]


def _remove(lines: List[CartLine], echoed: CartLine, target_id: Any) -> List[CartLine]:
    if target_id is not None:
        return [line for line in lines if not matches(line, target_id)]
    return [line for line in lines if not same_line(line, echoed)]


def reconcile(
    previous: Cart,
    result: CartResult,
    operation: CartOperation,
    target_id: Any = None,
) -> Cart:
    """
    Apply one normalized server response to the previous cart.
    Pure: `previous` is never modified, a new Cart is returned.

    - full result: lines replaced outright, server total kept
    - patch result: merged into the previous lines, total always recomputed
      (a patch echo's totalPrice covers the patched line only)
    """
    if isinstance(result, FullCartResult):
        return Cart(lines=list(result.lines), total=result.total)

    if not isinstance(result, PatchCartResult):
        raise TypeError(f"Unsupported cart result: {type(result).__name__}")

    operation = CartOperation(operation)

    if operation == CartOperation.FETCH:
        lines = [result.line]
    elif operation == CartOperation.REMOVE:
        lines = _remove(previous.lines, result.line, target_id)
    else:
        lines = _upsert(previous.lines, result.line, target_id)

    return Cart(lines=lines, total=compute_total(lines))
