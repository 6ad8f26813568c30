# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from storefront.api.deps import get_storefront
from storefront.container import Storefront
from storefront.domain.schemas import CheckoutForm, CheckoutResult

router = APIRouter(prefix="/checkout", tags=["checkout"])

STATUS_BY_KIND = {"auth": 401, "validation": 422, "submission": 502}


@router.post("/", response_model=CheckoutResult)
def submit_checkout(form: CheckoutForm, sf: Storefront = Depends(get_storefront)):
    """
    Places an order from the current cart.
    The body is always a CheckoutResult; the status code follows its failure kind.
    """
    result = sf.checkout.submit_checkout(form)
    if result.status == "success":
        return result
    return JSONResponse(status_code=STATUS_BY_KIND[result.kind], content=result.model_dump(mode="json"))
