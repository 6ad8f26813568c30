# storefront/api/routers/health.py
from fastapi import APIRouter, Depends

from storefront.api.deps import get_storefront
from storefront.container import Storefront

router = APIRouter(tags=["health"])


@router.get("/health")
def health(sf: Storefront = Depends(get_storefront)):
    return {"status": "ok", "upstream": sf.api.base_url}
