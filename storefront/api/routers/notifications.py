# storefront/api/routers/notifications.py
from typing import List

from fastapi import APIRouter, Depends

from storefront.api.deps import get_storefront
from storefront.container import Storefront
from storefront.domain.schemas import NotificationOut

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=List[NotificationOut])
def drain_notifications(sf: Storefront = Depends(get_storefront)):
    """Returns pending notifications and forgets them."""
    return [NotificationOut(level=n.level, message=n.message, kind=n.kind) for n in sf.notifier.drain()]
