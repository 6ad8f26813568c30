# storefront/api/routers/products.py
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_storefront, to_http
from storefront.container import Storefront
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import ProductSnapshot, ProductsOut

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/", response_model=ProductsOut)
def list_products(
    page: int | None = Query(None, ge=1),
    limit: int | None = Query(None, ge=1),
    category: str | None = None,
    search: str | None = None,
    sf: Storefront = Depends(get_storefront),
):
    params = {k: v for k, v in {"page": page, "limit": limit, "category": category, "search": search}.items() if v is not None}
    try:
        products, total = sf.catalog.list_products(params or None)
    except StorefrontError as e:
        raise to_http(e, sf)
    return ProductsOut(products=products, total=total)


@router.get("/count")
def count_products(sf: Storefront = Depends(get_storefront)):
    try:
        return {"count": sf.catalog.count_products()}
    except StorefrontError as e:
        raise to_http(e, sf)


@router.get("/{product_id}", response_model=ProductSnapshot)
def get_product(product_id: str, sf: Storefront = Depends(get_storefront)):
    try:
        return sf.catalog.get_product(product_id)
    except StorefrontError as e:
        raise to_http(e, sf)


# ===== ADMIN =====
@router.post("/", response_model=ProductSnapshot, status_code=201)
def create_product(payload: Dict[str, Any], sf: Storefront = Depends(get_storefront)):
    try:
        return sf.catalog.create_product(payload)
    except StorefrontError as e:
        raise to_http(e, sf)


@router.patch("/{product_id}", response_model=ProductSnapshot)
def update_product(product_id: str, payload: Dict[str, Any], sf: Storefront = Depends(get_storefront)):
    try:
        return sf.catalog.update_product(product_id, payload)
    except StorefrontError as e:
        raise to_http(e, sf)


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: str, sf: Storefront = Depends(get_storefront)):
    try:
        sf.catalog.delete_product(product_id)
    except StorefrontError as e:
        raise to_http(e, sf)


@router.put("/{product_id}/inventory", response_model=ProductSnapshot)
def update_inventory(product_id: str, quantity: int = Query(..., ge=0), sf: Storefront = Depends(get_storefront)):
    try:
        return sf.catalog.update_inventory(product_id, quantity)
    except StorefrontError as e:
        raise to_http(e, sf)


@router.post("/{product_id}/sync-inventory")
def sync_inventory(product_id: str, sf: Storefront = Depends(get_storefront)):
    try:
        return sf.catalog.sync_inventory(product_id)
    except StorefrontError as e:
        raise to_http(e, sf)
