"""Tests for the checkout gate."""

from decimal import Decimal

import pytest

from storefront.domain.schemas import Cart, CartLine, CheckoutForm, ProductSnapshot
from storefront.services.checkout_service import validate_form

from conftest import make_response, raw_line

PROFILE = {"_id": "u1", "email": "ada@example.com"}


@pytest.fixture
def form():
    return CheckoutForm(
        street="1 Main St",
        city="Lagos",
        state="LA",
        phone="+234 801-234-5678",
        email="ada@example.com",
        notes="Leave at the door",
    )


@pytest.fixture
def shop(authed_storefront, session):
    """Authenticated storefront with a profile endpoint and a two-line cart loaded."""
    session.on("GET", "/users/me", make_response(200, PROFILE))
    session.on(
        "GET",
        "/cart",
        make_response(200, {"cart": [raw_line("A", "P1", 2, 10), raw_line("B", "P2", 1, 5)], "totalPrice": 25}),
    )
    authed_storefront.cart.fetch_cart()
    return authed_storefront


def set_cart(storefront, *lines):
    storefront.cart.store._cart = Cart(lines=list(lines), total=Decimal("0.00"))


class TestValidateForm:
    def test_valid(self, form):
        address, errors = validate_form(form)
        assert errors == {}
        assert address.street == "1 Main St"

    def test_collects_every_error(self):
        _, errors = validate_form(CheckoutForm(phone="123", email="not-an-email"))
        assert errors == {
            "street": "This field is required",
            "city": "This field is required",
            "state": "This field is required",
            "phone": "Phone number must be 10-15 digits",
            "email": "Email is invalid",
        }

    def test_blank_phone_and_email_are_required(self):
        _, errors = validate_form(CheckoutForm(street="s", city="c", state="st", phone="  ", email=""))
        assert errors == {"phone": "This field is required", "email": "This field is required"}

    @pytest.mark.parametrize("phone", ["0801234567", "(080) 1234-5678", "+1 234 567 890 123 45"])
    def test_phone_digits_counted_after_stripping(self, phone):
        _, errors = validate_form(CheckoutForm(street="s", city="c", state="st", phone=phone, email="a@b.co"))
        assert "phone" not in errors


class TestIdentityGate:
    def test_no_token(self, storefront, session, form):
        result = storefront.checkout.submit_checkout(form)

        assert result.status == "failure"
        assert result.kind == "auth"
        assert result.message == "Authentication required. Please log in again."
        assert session.calls_to("POST", "/orders") == []

    def test_token_without_user_refreshes_once_then_proceeds(self, shop, session, form):
        session.on("POST", "/orders", make_response(201, {"_id": "o1"}))
        session.on("DELETE", "/cart", make_response(200, {"message": "ok"}))
        session.on("POST", "/orders/o1/pay", make_response(200, {"authorization_url": "https://pay.test/x"}))
        assert not shop.identity.is_usable

        result = shop.checkout.submit_checkout(form)

        assert result.status == "success"
        assert len(session.calls_to("GET", "/users/me")) == 1

    def test_refresh_fails(self, authed_storefront, session, form):
        session.on("GET", "/users/me", make_response(401, {"message": "expired"}))

        result = authed_storefront.checkout.submit_checkout(form)

        assert result.kind == "auth"
        assert not authed_storefront.identity.is_authenticated
        assert session.calls_to("POST", "/orders") == []


    def test_identity_cleared_after_gate(self, shop, session, form, monkeypatch):
        passed_gate = shop.identity.ensure_usable

        def gate_then_concurrent_401():
            ok = passed_gate()
            shop.identity.handle_auth_failure()
            return ok

        monkeypatch.setattr(shop.identity, "ensure_usable", gate_then_concurrent_401)

        result = shop.checkout.submit_checkout(form)

        assert result.status == "failure"
        assert result.kind == "auth"
        assert session.calls_to("POST", "/orders") == []


class TestLocalValidation:
    def test_form_errors(self, shop, session):
        result = shop.checkout.submit_checkout(CheckoutForm(city="Lagos"))

        assert result.kind == "validation"
        assert set(result.details) == {"street", "state", "phone", "email"}
        assert session.calls_to("POST", "/orders") == []

    def test_empty_cart(self, shop, session, form):
        set_cart(shop)

        result = shop.checkout.submit_checkout(form)

        assert result.kind == "validation"
        assert session.calls_to("POST", "/orders") == []

    def test_quantity_zero(self, shop, session, form):
        bad = CartLine.model_construct(
            line_id="A", product_ref="P1", product=ProductSnapshot(id="P1", price=Decimal("10")), quantity=0, aliases=("A", "P1")
        )
        set_cart(shop, bad)

        result = shop.checkout.submit_checkout(form)

        assert result.kind == "validation"
        assert session.calls_to("POST", "/orders") == []

    def test_missing_product_ref(self, shop, session, form):
        bad = CartLine.model_construct(
            line_id="A", product_ref="", product=ProductSnapshot(price=Decimal("10")), quantity=1, aliases=("A",)
        )
        set_cart(shop, bad)

        result = shop.checkout.submit_checkout(form)

        assert result.kind == "validation"
        assert session.calls_to("POST", "/orders") == []

    def test_unknown_price(self, shop, session, form):
        shop.cart.apply_cart_response([raw_line("A", "P1", 1)], "fetch")

        result = shop.checkout.submit_checkout(form)

        assert result.kind == "validation"
        assert session.calls_to("POST", "/orders") == []


class TestSubmission:
    def test_success(self, shop, session, form):
        session.on("POST", "/orders", make_response(201, {"order": {"_id": "o1", "status": "pending"}}))
        session.on("DELETE", "/cart", make_response(200, {"message": "ok"}))
        session.on("POST", "/orders/o1/pay", make_response(200, {"reference": "ref1"}))

        result = shop.checkout.submit_checkout(form)

        assert result.status == "success"
        assert result.order_id == "o1"
        assert result.payment == {"reference": "ref1"}
        assert shop.cart.get_cart().lines == []

        body = session.calls_to("POST", "/orders")[0].kwargs["json"]
        assert body == {
            "user": "u1",
            "products": [{"product": "P1", "quantity": 2}, {"product": "P2", "quantity": 1}],
            "totalPrice": 25.0,
            "shippingAddress": {
                "street": "1 Main St",
                "city": "Lagos",
                "state": "LA",
                "phone": "+234 801-234-5678",
                "email": "ada@example.com",
            },
            "notes": "Leave at the door",
        }
        assert [n.level for n in shop.notifier.pending()] == ["success"]

    def test_cart_cleared_locally_when_server_clear_fails(self, shop, session, form):
        session.on("POST", "/orders", make_response(201, {"_id": "o1"}))
        session.on("DELETE", "/cart", make_response(500, {"message": "down"}))
        session.on("POST", "/orders/o1/pay", make_response(200, {}))

        result = shop.checkout.submit_checkout(form)

        assert result.status == "success"
        assert shop.cart.get_cart().lines == []

    def test_payment_failure_is_only_a_notification(self, shop, session, form):
        session.on("POST", "/orders", make_response(201, {"id": "o1"}))
        session.on("DELETE", "/cart", make_response(200, {}))
        session.on("POST", "/orders/o1/pay", make_response(503, {"message": "down"}))

        result = shop.checkout.submit_checkout(form)

        assert result.status == "success"
        assert result.payment is None
        assert any(n.kind == "payment" for n in shop.notifier.pending())

    def test_422_field_errors(self, shop, session, form):
        session.on(
            "POST",
            "/orders",
            make_response(
                422,
                {"errors": [{"path": ["shippingAddress", "phone"], "msg": "Invalid phone"}, {"field": "notes", "message": "Too long"}]},
            ),
        )

        result = shop.checkout.submit_checkout(form)

        assert result.kind == "validation"
        assert result.details == {"shippingAddress.phone": "Invalid phone", "notes": "Too long"}
        assert result.message == "Invalid phone, Too long"
        assert len(shop.cart.get_cart().lines) == 2

    def test_401_on_submit(self, shop, session, form):
        session.on("POST", "/orders", make_response(401, {"message": "expired"}))

        result = shop.checkout.submit_checkout(form)

        assert result.kind == "auth"
        assert not shop.identity.is_authenticated

    def test_server_error(self, shop, session, form):
        session.on("POST", "/orders", make_response(500, {"message": "db down"}))

        result = shop.checkout.submit_checkout(form)

        assert result.kind == "submission"
        assert result.message == "Failed to place order. Please try again later."
        assert len(shop.cart.get_cart().lines) == 2

    def test_no_order_id_in_response(self, shop, session, form):
        session.on("POST", "/orders", make_response(201, {"status": "created"}))

        result = shop.checkout.submit_checkout(form)

        assert result.kind == "submission"
