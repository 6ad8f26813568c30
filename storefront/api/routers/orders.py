# storefront/api/routers/orders.py
from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from storefront.api.deps import get_storefront, to_http
from storefront.container import Storefront
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import CancelIn

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/", response_model=List[Dict[str, Any]])
def list_orders(sf: Storefront = Depends(get_storefront)):
    try:
        return sf.orders.list_orders()
    except StorefrontError as e:
        raise to_http(e, sf)


@router.get("/verify-payment/{reference}")
def verify_payment(reference: str, sf: Storefront = Depends(get_storefront)):
    try:
        return sf.orders.verify_payment(reference)
    except StorefrontError as e:
        raise to_http(e, sf)


@router.get("/{order_id}")
def get_order(order_id: str, sf: Storefront = Depends(get_storefront)):
    try:
        return sf.orders.get_order(order_id)
    except StorefrontError as e:
        raise to_http(e, sf)


@router.post("/{order_id}/cancel")
def cancel_order(order_id: str, payload: CancelIn, sf: Storefront = Depends(get_storefront)):
    try:
        data = sf.orders.cancel_order(order_id, payload.reason)
    except StorefrontError as e:
        raise to_http(e, sf)
    sf.notifier.success("Order cancelled")
    return data


@router.post("/{order_id}/pay")
def pay_order(order_id: str, sf: Storefront = Depends(get_storefront)):
    try:
        return sf.orders.initialize_payment(order_id)
    except StorefrontError as e:
        raise to_http(e, sf)
