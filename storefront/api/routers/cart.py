# storefront/api/routers/cart.py
from fastapi import APIRouter, Depends

from storefront.api.deps import get_storefront, to_http
from storefront.container import Storefront
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import CartOut, ItemIn, QuantityIn

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("/", response_model=CartOut)
def get_cart(sf: Storefront = Depends(get_storefront)):
    """Local cart state; never goes to the server."""
    return CartOut.from_cart(sf.cart.get_cart())


@router.post("/refresh", response_model=CartOut)
def refresh_cart(sf: Storefront = Depends(get_storefront)):
    try:
        return CartOut.from_cart(sf.cart.fetch_cart())
    except StorefrontError as e:
        raise to_http(e, sf)


@router.post("/items", response_model=CartOut)
def add_item(payload: ItemIn, sf: Storefront = Depends(get_storefront)):
    try:
        cart = sf.cart.add_product(payload.product_id, payload.quantity)
    except StorefrontError as e:
        raise to_http(e, sf)
    sf.notifier.success("Item added to cart")
    return CartOut.from_cart(cart)


@router.patch("/items/{item_id}", response_model=CartOut)
def update_item(item_id: str, payload: QuantityIn, sf: Storefront = Depends(get_storefront)):
    try:
        cart = sf.cart.update_quantity(item_id, payload.quantity)
    except StorefrontError as e:
        raise to_http(e, sf)
    sf.notifier.success("Cart updated")
    return CartOut.from_cart(cart)


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(item_id: str, sf: Storefront = Depends(get_storefront)):
    try:
        cart = sf.cart.remove_line(item_id)
    except StorefrontError as e:
        raise to_http(e, sf)
    sf.notifier.success("Item removed from cart")
    return CartOut.from_cart(cart)


@router.delete("/", response_model=CartOut)
def clear_cart(sf: Storefront = Depends(get_storefront)):
    try:
        cart = sf.cart.clear_cart()
    except StorefrontError as e:
        raise to_http(e, sf)
    sf.notifier.success("Cart cleared")
    return CartOut.from_cart(cart)
