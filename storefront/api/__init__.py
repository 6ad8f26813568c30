# storefront/api/__init__.py
from fastapi import FastAPI

from storefront.api.routers import auth, cart, checkout, health, notifications, orders, products
from storefront.container import Storefront


def create_app(storefront: Storefront | None = None) -> FastAPI:
    app = FastAPI(title="Storefront Client", version="1.0.0")
    app.state.storefront = storefront or Storefront()

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(products.router)
    app.include_router(cart.router)
    app.include_router(checkout.router)
    app.include_router(orders.router)
    app.include_router(notifications.router)
    return app
