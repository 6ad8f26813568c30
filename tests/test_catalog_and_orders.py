"""Tests for CatalogService and OrderService."""

import io
from decimal import Decimal

import pytest

from storefront.domain.errors import InvalidItemIdError, InvalidQuantityError, MalformedResponseError, NotFoundError
from storefront.services.order_service import extract_order_id

from conftest import make_response

MUG = {"_id": "P1", "productName": "Mug", "price": 12.5, "quantity": 7, "stockStatus": "in_stock"}


class TestCatalog:
    def test_list_bare(self, storefront, session):
        session.on("GET", "/products", make_response(200, [MUG]))

        products, total = storefront.catalog.list_products()

        assert total == 1
        assert products[0].name == "Mug"
        assert products[0].price == Decimal("12.5")

    def test_list_envelope_with_params(self, storefront, session):
        session.on("GET", "/products", make_response(200, {"products": [MUG], "total": 41}))

        products, total = storefront.catalog.list_products({"page": 2, "limit": 1})

        assert total == 41
        assert session.calls[0].kwargs["params"] == {"page": 2, "limit": 1}

    def test_list_malformed(self, storefront, session):
        session.on("GET", "/products", make_response(200, {"items": []}))
        with pytest.raises(MalformedResponseError):
            storefront.catalog.list_products()

    def test_get_product_unwraps(self, storefront, session):
        session.on("GET", "/products/P1", make_response(200, {"product": MUG}))
        assert storefront.catalog.get_product("P1").stock == 7

    def test_get_product_404(self, storefront, session):
        session.on("GET", "/products/P9", make_response(404, {"message": "Not found"}))
        with pytest.raises(NotFoundError) as exc:
            storefront.catalog.get_product("P9")
        assert exc.value.user_message == "Product not found"

    def test_count(self, storefront, session):
        session.on("GET", "/products/count", make_response(200, {"count": 12}))
        assert storefront.catalog.count_products() == 12

    def test_create_with_image_is_multipart(self, authed_storefront, session):
        session.on("POST", "/products", make_response(201, MUG))
        image = io.BytesIO(b"png")

        authed_storefront.catalog.create_product({"productName": "Mug", "price": 12.5}, image=image)

        call = session.calls[0]
        assert call.kwargs["data"] == {"productName": "Mug", "price": 12.5}
        assert call.kwargs["files"] == {"image": image}

    def test_update_inventory(self, authed_storefront, session):
        session.on("PATCH", "/products/P1", make_response(200, dict(MUG, quantity=0)))

        product = authed_storefront.catalog.update_inventory("P1", 0)

        assert product.stock == 0
        assert session.calls[0].kwargs["json"] == {"quantity": 0}

    def test_update_inventory_negative(self, authed_storefront, session):
        with pytest.raises(InvalidQuantityError):
            authed_storefront.catalog.update_inventory("P1", -1)
        assert session.calls == []

    def test_delete_and_sync(self, authed_storefront, session):
        session.on("DELETE", "/products/P1", make_response(204))
        session.on("PUT", "/P1/sync-inventory", make_response(200, {"synced": True}))

        authed_storefront.catalog.delete_product("P1")
        assert authed_storefront.catalog.sync_inventory("P1") == {"synced": True}


class TestOrders:
    def test_list_envelope(self, authed_storefront, session):
        session.on("GET", "/orders", make_response(200, {"orders": [{"_id": "o1"}]}))
        assert authed_storefront.orders.list_orders() == [{"_id": "o1"}]

    def test_list_bare(self, authed_storefront, session):
        session.on("GET", "/orders", make_response(200, [{"_id": "o1"}, {"_id": "o2"}]))
        assert len(authed_storefront.orders.list_orders()) == 2

    def test_get_order_404(self, authed_storefront, session):
        session.on("GET", "/orders/o9", make_response(404, {}))
        with pytest.raises(NotFoundError) as exc:
            authed_storefront.orders.get_order("o9")
        assert exc.value.user_message == "Order not found"

    def test_cancel(self, authed_storefront, session):
        session.on("POST", "/orders/o1/cancel", make_response(200, {"status": "cancelled"}))

        assert authed_storefront.orders.cancel_order("o1", "changed my mind") == {"status": "cancelled"}
        assert session.calls[0].kwargs["json"] == {"reason": "changed my mind"}

    def test_blank_ids_rejected(self, authed_storefront, session):
        with pytest.raises(InvalidItemIdError):
            authed_storefront.orders.cancel_order(" ")
        with pytest.raises(InvalidItemIdError):
            authed_storefront.orders.verify_payment("")
        assert session.calls == []

    def test_verify_payment(self, authed_storefront, session):
        session.on("GET", "/orders/verify-payment/ref1", make_response(200, {"status": "success"}))
        assert authed_storefront.orders.verify_payment("ref1") == {"status": "success"}


class TestExtractOrderId:
    @pytest.mark.parametrize(
        "data,expected",
        [
            ({"_id": "a"}, "a"),
            ({"id": 7}, "7"),
            ({"orderId": "b"}, "b"),
            ({"order": {"_id": "c"}}, "c"),
            ({"message": "ok"}, None),
            ([], None),
        ],
    )
    def test_shapes(self, data, expected):
        assert extract_order_id(data) == expected
