"""Tests for cart response normalization."""

from decimal import Decimal

import pytest

from storefront.domain.errors import MalformedResponseError
from storefront.domain.normalizer import FullCartResult, PatchCartResult, compute_total, normalize_cart_response

from conftest import raw_line


class TestFullShapes:
    def test_enveloped_list_keeps_server_total(self):
        payload = {
            "cart": [raw_line("A", "P1", 2, 10), raw_line("B", "P2", 1, 5)],
            "totalPrice": 24.5,
        }
        result = normalize_cart_response(payload)
        assert isinstance(result, FullCartResult)
        assert result.kind == "full"
        assert [line.line_id for line in result.lines] == ["A", "B"]
        assert result.total == Decimal("24.5")

    def test_enveloped_list_without_total_computes_it(self):
        result = normalize_cart_response({"cart": [raw_line("A", "P1", 2, 10), raw_line("B", "P2", 1, 5)]})
        assert result.total == Decimal("25")

    def test_bare_list_computes_total(self):
        payload = [raw_line("A", "P1", 3, "1.10"), raw_line("B", "P2", 1, 0.2)]
        result = normalize_cart_response(payload)
        assert len(result.lines) == len(payload)
        assert result.total == Decimal("3.50")

    def test_empty_list(self):
        result = normalize_cart_response([])
        assert result.lines == []
        assert result.total == Decimal("0.00")

    def test_null_cart_is_empty(self):
        result = normalize_cart_response({"cart": None, "totalPrice": 0})
        assert isinstance(result, FullCartResult)
        assert result.lines == []

    def test_product_snapshot_fields(self):
        payload = [
            {
                "_id": "A",
                "product": {
                    "_id": "P1",
                    "productName": "Mug",
                    "price": 12.99,
                    "image": "mug.png",
                    "category": {"name": "Kitchen"},
                    "quantity": 40,
                    "stockStatus": "in_stock",
                },
                "quantity": 2,
            }
        ]
        line = normalize_cart_response(payload).lines[0]
        assert line.product.name == "Mug"
        assert line.product.price == Decimal("12.99")
        assert line.product.category == "Kitchen"
        assert line.product.stock == 40
        assert line.product.stock_status == "in_stock"
        assert line.quantity == 2

    def test_same_payload_twice_gives_same_result(self):
        payload = {"cart": [raw_line("A", "P1", 2, 10)], "totalPrice": 20}
        assert normalize_cart_response(payload) == normalize_cart_response(payload)


class TestPatchShapes:
    def test_enveloped_object(self):
        result = normalize_cart_response({"cart": raw_line("A", "P1", 3), "totalPrice": 30})
        assert isinstance(result, PatchCartResult)
        assert result.kind == "patch"
        assert result.line.line_id == "A"
        assert result.line.quantity == 3
        assert result.server_total == Decimal("30")

    def test_bare_object(self):
        result = normalize_cart_response(raw_line("A", "P1", 1, 4))
        assert isinstance(result, PatchCartResult)
        assert result.server_total is None

    def test_missing_quantity_defaults_to_one(self):
        result = normalize_cart_response({"_id": "A", "product": "P1"})
        assert result.line.quantity == 1

    def test_missing_price_stays_unknown(self):
        result = normalize_cart_response(raw_line("A", "P1", 2))
        assert result.line.product.price is None
        assert result.line.subtotal == Decimal("0")


class TestMalformed:
    @pytest.mark.parametrize(
        "payload",
        [
            None,
            "cart",
            42,
            {"cart": "nope"},
            {"cart": [{"_id": "A", "quantity": 1}]},
            {"_id": "A", "product": {"name": "x"}, "quantity": 1},
            [raw_line("A", "P1", 0, 10)],
            [raw_line("A", "P1", 1.5, 10)],
            [raw_line("A", "P1", "two", 10)],
            [{"_id": "A", "product": {"_id": "P1", "price": "abc"}, "quantity": 1}],
            {"cart": [raw_line("A", "P1", 1, 10)], "totalPrice": "lots"},
            [raw_line("A", "P1", 1, 10), raw_line("A", "P2", 1, 10)],
        ],
    )
    def test_rejected(self, payload):
        with pytest.raises(MalformedResponseError):
            normalize_cart_response(payload)


class TestComputeTotal:
    def test_sums_price_times_quantity(self):
        lines = normalize_cart_response([raw_line("A", "P1", 2, "19.99"), raw_line("B", "P2", 3, "0.01")]).lines
        assert compute_total(lines) == Decimal("40.01")
