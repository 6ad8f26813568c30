# storefront/api/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import get_storefront, to_http
from storefront.container import Storefront
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import Identity, IdentityOut, LoginIn, RegisterIn

router = APIRouter(prefix="/auth", tags=["auth"])


def _out(identity: Identity) -> IdentityOut:
    return IdentityOut(
        is_authenticated=identity.is_authenticated,
        is_usable=identity.is_usable,
        user=identity.user,
    )


@router.post("/login", response_model=IdentityOut)
def login(payload: LoginIn, sf: Storefront = Depends(get_storefront)):
    try:
        identity = sf.identity.login(payload.model_dump())
    except StorefrontError as e:
        raise to_http(e, sf)
    sf.notifier.success("Logged in successfully")
    return _out(identity)


@router.post("/register", response_model=IdentityOut, status_code=201)
def register(payload: RegisterIn, sf: Storefront = Depends(get_storefront)):
    try:
        identity = sf.identity.register(payload.model_dump(exclude_none=True))
    except StorefrontError as e:
        raise to_http(e, sf)
    sf.notifier.success("Account created successfully")
    return _out(identity)


@router.post("/logout", status_code=204)
def logout(sf: Storefront = Depends(get_storefront)):
    sf.identity.logout()
    sf.notifier.info("Logged out")


@router.get("/me", response_model=IdentityOut)
def me(sf: Storefront = Depends(get_storefront)):
    """Current identity, refreshed from the server when the profile is stale."""
    identity = sf.identity.refresh_if_stale()
    if not identity.is_authenticated:
        raise HTTPException(status_code=401, detail={"message": "Not logged in", "kind": "AuthRequiredError"})
    return _out(identity)


@router.post("/validate")
def validate(sf: Storefront = Depends(get_storefront)):
    return {"valid": sf.identity.validate_token()}
